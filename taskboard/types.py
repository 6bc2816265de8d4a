"""Typed response definitions for TaskboardClient methods.

These TypedDicts document the shape of dicts stored on disk and returned
by public API methods. They are optional; runtime behavior is unchanged
(plain dicts).
"""

from __future__ import annotations

from typing import TypedDict

# ---------------------------------------------------------------------------
# Document types (on-disk field names)
# ---------------------------------------------------------------------------


class CardDict(TypedDict, total=False):
    """One card as stored in the board document."""

    id: str
    title: str
    content: str
    columnId: str
    position: int
    collapsed: bool
    subtasks: list[str]
    tags: list[str]
    dependencies: list[str]
    priority: str
    due_date: str
    created_at: str
    updated_at: str
    completed_at: str
    blocked_at: str


class ColumnDict(TypedDict, total=False):
    id: str
    name: str
    position: int


BoardDict = TypedDict(
    "BoardDict",
    {
        "id": str,
        "projectName": str,
        "columns": list[ColumnDict],
        "cards": list[CardDict],
        "next-steps": list[str],
        "last_updated": str,
        "isDragging": bool,
        "scrollToColumn": str | None,
    },
    total=False,
)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class BoardRow(TypedDict):
    """Entry returned by BoardStore.list_boards()."""

    id: str
    name: str
    last_updated: str


class OperationResult(TypedDict, total=False):
    type: str
    cardId: str
    columnId: str
    position: int


class MutationResult(TypedDict, total=False):
    """Common shape for single-operation mutation responses."""

    ok: bool
    board_id: str
    card: CardDict
    warnings: list[str]


class BatchResult(TypedDict, total=False):
    ok: bool
    board_id: str
    results: list[OperationResult]
    referenceMap: dict[str, str]
    warnings: list[str]


class CardListResult(TypedDict):
    """Return type of search_cards()."""

    cards: list[CardDict]
    total_count: int
    has_more: bool
    limit: int | None
    offset: int


class BoardStats(TypedDict):
    total_cards: int
    by_column: dict[str, int]
    by_priority: dict[str, int]
    overdue: int
    completion_rate: float


class IntegrityReport(TypedDict):
    valid: bool
    issues: list[str]
