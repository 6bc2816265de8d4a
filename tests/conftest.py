"""
Shared test fixtures for taskboard tests.
Patches the config module so tests never read the real .env or boards directory.
"""

from datetime import datetime, timedelta, timezone

import pytest

from taskboard import config
from taskboard.models import Board, Card, Column


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Ensure every test starts with a clean config state and its own boards dir."""
    monkeypatch.setattr(config, "env", {})
    monkeypatch.setattr(config, "ENV_PATH", str(tmp_path / ".env"))
    monkeypatch.setattr(config, "BOARDS_DIR", str(tmp_path / "boards"))
    monkeypatch.setattr(config, "BACKUPS_ENABLED", True)
    monkeypatch.setattr(config, "MAX_BACKUPS", 10)
    monkeypatch.setattr(config, "LOG_ENABLED", False)
    monkeypatch.setattr(config, "LOG_SAMPLE_RATE", 1.0)
    monkeypatch.setattr(config, "RUNTIME_QUIET", False)
    monkeypatch.setattr(config, "RUNTIME_VERBOSE", False)


class FrozenClock:
    """Controllable replacement for _utils._now."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock(monkeypatch):
    frozen = FrozenClock(datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc))
    monkeypatch.setattr("taskboard._utils._now", frozen)
    return frozen


STAMP = "2025-01-01T00:00:00.000Z"


def make_card(card_id, column_id, position, **fields):
    fields.setdefault("title", f"Card {card_id}")
    fields.setdefault("created_at", STAMP)
    fields.setdefault("updated_at", STAMP)
    return Card(id=card_id, column_id=column_id, position=position, **fields)


@pytest.fixture
def board():
    """Four default columns; a, b, c in To Do and d in In Progress."""
    return Board(
        id="demo",
        project_name="Demo",
        columns=[
            Column(id="todo", name="To Do"),
            Column(id="doing", name="In Progress"),
            Column(id="blocked", name="Blocked"),
            Column(id="done", name="Done"),
        ],
        cards=[
            make_card("a", "todo", 0),
            make_card("b", "todo", 1),
            make_card("c", "todo", 2),
            make_card("d", "doing", 0, priority="high", tags=["api"]),
        ],
        next_steps=[],
        last_updated=STAMP,
        extra={"isDragging": False, "scrollToColumn": None},
    )


def column_ids(board, column_id):
    return [c.id for c in board.cards_in_column(column_id)]


def positions_are_dense(board):
    for col in board.columns:
        positions = sorted(c.position for c in board.cards if c.column_id == col.id)
        if positions != list(range(len(positions))):
            return False
    return True
