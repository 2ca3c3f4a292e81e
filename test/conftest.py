"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from typing import Any

import pytest

from agent_transcript.store import TranscriptStore


@pytest.fixture
def test_data_dir() -> Path:
    """Return path to test data directory."""
    return Path(__file__).parent / "test_data"


@pytest.fixture
def agent_turn_events(test_data_dir: Path) -> list[dict[str, Any]]:
    """Raw events of one complete agent turn (init, assistant, tool result, result)."""
    return json.loads((test_data_dir / "agent_turn.json").read_text(encoding="utf-8"))


@pytest.fixture
def store(tmp_path: Path) -> TranscriptStore:
    """Create an isolated transcript store for testing."""
    return TranscriptStore(tmp_path / "transcripts.db")
