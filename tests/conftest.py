"""Shared fixtures."""

from __future__ import annotations

import pytest

from promptbox.models import Prompt
from promptbox.store import PromptStore


@pytest.fixture
def store():
    s = PromptStore.in_memory()
    yield s
    s.close()


@pytest.fixture
def sample_prompts() -> list[Prompt]:
    return [
        Prompt("a", "A", "x"),
        Prompt("b", "B", "y", description="second", category="dev", tags=["review", "code"]),
        Prompt("c", "Café", "unicode ✓ content\nwith a newline", category="writing", tags=["draft"]),
    ]
