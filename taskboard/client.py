"""
TaskboardClient: public Python API for managing kanban boards.

Single entry point for the CLI and the MCP server. Each mutating method
loads the board, hands it to the mutation engine, and persists the result
only if the engine succeeded. All methods return flat dicts suitable for
JSON serialization.
"""

from __future__ import annotations

import time
from typing import Any

from taskboard import engine
from taskboard._utils import log_event
from taskboard.config import StoreConfig
from taskboard.exceptions import CliError
from taskboard.formatters import format_board
from taskboard.models import parse_payload
from taskboard.query import CardQuery, board_stats, check_integrity, search_cards
from taskboard.store import BoardStore
from taskboard.types import BatchResult, BoardRow, CardListResult, MutationResult


class TaskboardClient:
    """Board operations over a BoardStore."""

    def __init__(self, store: BoardStore | None = None, *, boards_dir: str | None = None):
        """Initialize the client.

        Args:
            store: Store to use. Built from configuration when omitted.
            boards_dir: Override the boards directory of the default store.
        """
        self.store = store or BoardStore(StoreConfig.from_env(boards_dir))

    # -------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------

    def _mutate(self, board_id: str, label: str, fn) -> MutationResult:
        """Load, apply *fn* (board -> Outcome), save with a backup, report."""
        started = time.monotonic()
        board = self.store.load(board_id)
        try:
            outcome = fn(board)
        except CliError as e:
            log_event(
                "mutation.error",
                op=label,
                board_id=board_id,
                error=type(e).__name__,
                detail=str(e),
            )
            raise
        self.store.save(board_id, outcome.board, backup_label=label)
        log_event(
            "mutation",
            op=label,
            board_id=board_id,
            card_id=outcome.result.get("cardId"),
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        response: MutationResult = {"ok": True, "board_id": board_id}
        response.update(outcome.result)
        card_id = outcome.result.get("cardId")
        if card_id and outcome.result.get("type") != "delete":
            card = outcome.board.get_card(card_id)
            if card is not None:
                response["card"] = card.to_dict()
        if outcome.warnings:
            response["warnings"] = outcome.warnings
        return response

    # -------------------------------------------------------------------
    # Boards
    # -------------------------------------------------------------------

    def list_boards(self) -> list[BoardRow]:
        """List every readable board.

        Returns:
            list of dicts with keys: id, name, last_updated (sorted by name).
        """
        return self.store.list_boards()

    def get_board(
        self, board_id: str, *, format: str = "full", column_id: str | None = None
    ) -> dict[str, Any]:
        """Get a board in one of the output formats.

        Args:
            board_id: Board identifier (file stem).
            format: full, summary, compact or cards-only.
            column_id: Restrict cards-only output to one column.
        """
        board = self.store.load(board_id)
        return format_board(board, format, column_id=column_id)

    def create_board(self, name: str, *, columns: list[str] | None = None) -> dict[str, Any]:
        """Create a new board with fresh ids.

        Args:
            name: Project name shown on the board.
            columns: Column names, left to right. Defaults to
                To Do / In Progress / Blocked / Done.
        """
        board = self.store.create_board(name, columns)
        return {"ok": True, "board_id": board.id, "board": board.to_dict()}

    def delete_board(self, board_id: str) -> dict[str, Any]:
        backup_path = self.store.delete_board(board_id)
        return {"ok": True, "board_id": board_id, "backup": backup_path}

    def board_stats(self, board_id: str) -> dict[str, Any]:
        """Card counts per column and priority, overdue count, completion rate."""
        stats = board_stats(self.store.load(board_id))
        return {"board_id": board_id, **stats}

    def validate_board(self, board_id: str) -> dict[str, Any]:
        """Run the integrity check. Never modifies the board.

        Returns:
            dict with keys: board_id, valid, issues.
        """
        report = check_integrity(self.store.load(board_id))
        return {"board_id": board_id, **report}

    def list_backups(self, board_id: str) -> list[str]:
        return self.store.list_backups(board_id)

    def import_board(
        self, document: dict[str, Any] | str, *, board_id: str | None = None
    ) -> dict[str, Any]:
        """Store an exported board document as a new board.

        Args:
            document: Board document (dict or JSON text) with projectName,
                columns and cards.
            board_id: Id for the new board. Defaults to the document's own
                id, or a fresh one when that id is unusable or taken.

        Returns:
            dict with keys: ok, board_id, board.
        """
        board = self.store.import_board(parse_payload(document, "board"), board_id=board_id)
        return {"ok": True, "board_id": board.id, "board": board.to_dict()}

    def archive_board(self, board_id: str) -> dict[str, Any]:
        """Retire a board: it leaves the board listing but can be restored."""
        row = self.store.archive_board(board_id)
        return {"ok": True, "board_id": board_id, "archive": row}

    def list_archives(self) -> list[dict[str, Any]]:
        return self.store.list_archives()

    def restore_board(self, archive_id: str, *, board_id: str | None = None) -> dict[str, Any]:
        """Bring an archived board back. The archive entry is removed.

        Returns:
            dict with keys: ok, archive_id, board_id, board.
        """
        board = self.store.restore_board(archive_id, board_id=board_id)
        return {"ok": True, "archive_id": archive_id, "board_id": board.id, "board": board.to_dict()}

    # -------------------------------------------------------------------
    # Cards
    # -------------------------------------------------------------------

    def get_card(self, board_id: str, card_id: str) -> dict[str, Any]:
        """Get one card with its column name attached."""
        board = self.store.load(board_id)
        card = board.require_card(card_id)
        result = card.to_dict()
        column = board.get_column(card.column_id)
        result["column_name"] = column.name if column else None
        return result

    def search_cards(
        self,
        board_id: str,
        *,
        text: str | None = None,
        column_id: str | None = None,
        priority: str | list[str] | None = None,
        tags: str | list[str] | None = None,
        due_from: str | None = None,
        due_to: str | None = None,
        sort: str | None = None,
        order: str = "asc",
        limit: int | None = None,
        offset: int = 0,
    ) -> CardListResult:
        """List cards matching all given filters.

        Args:
            text: Case-insensitive substring of title or content.
            column_id: Only cards in this column.
            priority: One or more of high/medium/low (comma string or list).
            tags: Cards carrying any of these tags.
            due_from: Inclusive lower bound (YYYY-MM-DD) on due_date.
            due_to: Inclusive upper bound (YYYY-MM-DD) on due_date.
            sort: position, title, priority, created, updated or due.
            order: asc or desc.
            limit: Page size (None for all).
            offset: Number of matches to skip.

        Returns:
            dict with keys: cards, total_count, has_more, limit, offset.
        """
        query = CardQuery.from_kwargs(
            text=text,
            column_id=column_id,
            priority=priority,
            tags=tags,
            due_from=due_from,
            due_to=due_to,
            sort=sort,
            order=order,
            limit=limit,
            offset=offset,
        )
        board = self.store.load(board_id)
        if column_id:
            board.require_column(column_id)
        return search_cards(board, query)

    def create_card(
        self,
        board_id: str,
        *,
        column_id: str | None = None,
        card_data: dict[str, Any] | str | None = None,
        position: int | str | None = None,
        kind: str | None = None,
    ) -> MutationResult:
        """Create a card.

        Args:
            column_id: Target column; the first column when omitted.
            card_data: Card fields (dict or JSON string). Title defaults to a
                placeholder; id and timestamps are always generated.
            position: Index in the column, or first/last (default last).
            kind: basic, task or feature; inferred from the fields when omitted.
        """
        return self._mutate(
            board_id,
            "create_card",
            lambda b: engine.apply_create(
                b, column_id=column_id, fields=card_data, position=position, kind=kind
            ),
        )

    def update_card(
        self, board_id: str, card_id: str, card_data: dict[str, Any] | str
    ) -> MutationResult:
        """Patch the mutable fields of a card.

        Only title, content, collapsed, subtasks, tags, dependencies,
        priority and due_date may be given; anything else is rejected.
        """
        return self._mutate(
            board_id, "update_card", lambda b: engine.apply_update(b, card_id, card_data)
        )

    def move_card(
        self, board_id: str, card_id: str, column_id: str, position: int | str
    ) -> MutationResult:
        """Move a card to a column and position (index, first, last, up, down)."""
        return self._mutate(
            board_id,
            "move_card",
            lambda b: engine.apply_move(b, card_id, column_id, position),
        )

    def delete_card(self, board_id: str, card_id: str) -> MutationResult:
        """Delete a card and strip it from other cards' dependencies."""
        return self._mutate(board_id, "delete_card", lambda b: engine.apply_delete(b, card_id))

    def batch_cards(self, board_id: str, operations: list[dict[str, Any]]) -> BatchResult:
        """Apply up to 100 operations atomically.

        Returns:
            dict with keys: ok, board_id, results, referenceMap (when any
            create carried a reference), warnings (when any).
        """
        return self._mutate(
            board_id, "batch_cards", lambda b: engine.apply_batch(b, operations)
        )

    # -------------------------------------------------------------------
    # Columns and next steps
    # -------------------------------------------------------------------

    def add_column(self, board_id: str, name: str, *, position: int | None = None) -> dict[str, Any]:
        return self._mutate(
            board_id, "add_column", lambda b: engine.add_column(b, name, position)
        )

    def rename_column(self, board_id: str, column_id: str, name: str) -> dict[str, Any]:
        return self._mutate(
            board_id, "rename_column", lambda b: engine.rename_column(b, column_id, name)
        )

    def delete_column(self, board_id: str, column_id: str) -> dict[str, Any]:
        """Delete an empty column. Columns holding cards are rejected."""
        return self._mutate(
            board_id, "delete_column", lambda b: engine.delete_column(b, column_id)
        )

    def reorder_columns(self, board_id: str, column_ids: list[str]) -> dict[str, Any]:
        return self._mutate(
            board_id, "reorder_columns", lambda b: engine.reorder_columns(b, column_ids)
        )

    def set_next_steps(self, board_id: str, steps: list[str]) -> dict[str, Any]:
        return self._mutate(
            board_id, "set_next_steps", lambda b: engine.set_next_steps(b, steps)
        )
