"""Write tools: card mutations and atomic batches (5 tools)."""

from __future__ import annotations

import json
from typing import Any, Literal

from taskboard import CliError
from taskboard.mcp_server._core import (
    _call,
    _contract_error,
    _finalize_tool_result,
    _validate_card_ref,
    _validate_id,
)
from taskboard.mcp_server._security import _sanitize_board, _validate_card_data

Position = int | Literal["first", "last", "up", "down"]


def _clean_card_data(card_data):
    """Parse a JSON string payload and clean its user-text fields."""
    if isinstance(card_data, str):
        try:
            card_data = json.loads(card_data)
        except json.JSONDecodeError as e:
            raise CliError(f"[ERROR] Invalid JSON in cardData: {e.msg}") from e
    return _validate_card_data(card_data)


def _finish(result):
    if isinstance(result, dict) and result.get("ok") is not False:
        result = _sanitize_board(result)
    return _finalize_tool_result(result)


def create_card(
    board_id: str,
    title: str | None = None,
    column_id: str | None = None,
    content: str | None = None,
    priority: Literal["high", "medium", "low"] | None = None,
    subtasks: list[str] | None = None,
    tags: list[str] | None = None,
    dependencies: list[str] | None = None,
    due_date: str | None = None,
    position: int | Literal["first", "last"] | None = None,
    kind: Literal["basic", "task", "feature"] | None = None,
) -> dict:
    """Create a card. Omitted column means the first column; omitted position means last.

    Args:
        title: Card title (max 500 chars). A placeholder is used when omitted.
        content: Markdown body (max 50000 chars).
        subtasks: Checklist items; prefix with "✓ " to mark done.
        dependencies: Ids of cards this one depends on.
        due_date: YYYY-MM-DD.
        kind: Template; inferred from the given fields when omitted.

    Returns:
        Dict with ok, cardId, columnId, position and the created card.
    """
    card_data: dict[str, Any] = {}
    for key, value in (
        ("title", title),
        ("content", content),
        ("priority", priority),
        ("subtasks", subtasks),
        ("tags", tags),
        ("dependencies", dependencies),
        ("due_date", due_date),
    ):
        if value is not None:
            card_data[key] = value
    try:
        _validate_id(board_id, "board_id")
        if column_id is not None:
            _validate_id(column_id, "column_id")
        card_data = _clean_card_data(card_data)
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finish(
        _call(
            "create_card",
            board_id=board_id,
            column_id=column_id,
            card_data=card_data,
            position=position,
            kind=kind,
        )
    )


def update_card(board_id: str, card_id: str, card_data: dict[str, Any] | str) -> dict:
    """Update a card's fields. Only the given fields change.

    Args:
        card_data: Object (or JSON string) with any of: title, content,
            collapsed, subtasks, tags, dependencies, priority, due_date.
            Use null to clear content/priority/due_date. id, created_at,
            columnId and position are rejected (use move_card to relocate).

    Returns:
        Dict with ok, cardId, changed (field names) and the updated card.
    """
    try:
        _validate_id(board_id, "board_id")
        _validate_id(card_id, "card_id")
        card_data = _clean_card_data(card_data)
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finish(_call("update_card", board_id=board_id, card_id=card_id, card_data=card_data))


def move_card(board_id: str, card_id: str, column_id: str, position: Position) -> dict:
    """Move a card to a column and position.

    Args:
        position: Final index in the target column (clamped to its length),
            or first / last, or up / down (same column only).

    Returns:
        Dict with ok, cardId, columnId, position and the moved card.
    """
    try:
        _validate_id(board_id, "board_id")
        _validate_id(card_id, "card_id")
        _validate_id(column_id, "column_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finish(
        _call(
            "move_card",
            board_id=board_id,
            card_id=card_id,
            column_id=column_id,
            position=position,
        )
    )


def delete_card(board_id: str, card_id: str) -> dict:
    """Delete a card. Its id is removed from other cards' dependencies.

    Returns:
        Dict with ok, cardId and strippedFrom (cards whose dependencies changed).
    """
    try:
        _validate_id(board_id, "board_id")
        _validate_id(card_id, "card_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(_call("delete_card", board_id=board_id, card_id=card_id))


def batch_cards(board_id: str, operations: list[dict[str, Any]]) -> dict:
    """Apply up to 100 card operations atomically: all succeed or none are saved.

    Each operation is {"type": "create"|"update"|"move"|"delete", ...}:
        create: columnId?, cardData?, position?, kind?, reference?
        update: cardId, cardData
        move:   cardId, columnId, position
        delete: cardId
    A create with reference "x" can be addressed later as cardId "$ref:x"
    (also inside dependencies).

    Returns:
        Dict with ok, results (one per operation) and referenceMap. On failure,
        error_detail carries the 1-based index of the failing operation.
    """
    try:
        _validate_id(board_id, "board_id")
        if not isinstance(operations, list):
            raise CliError("[ERROR] operations must be a list")
        cleaned = []
        for op in operations:
            if isinstance(op, dict):
                op = dict(op)
                if "cardId" in op:
                    _validate_card_ref(op["cardId"], "cardId")
                if op.get("cardData") is not None:
                    op["cardData"] = _clean_card_data(op["cardData"])
            cleaned.append(op)
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(_call("batch_cards", board_id=board_id, operations=cleaned))


def register(mcp):
    """Register all write tools with the FastMCP instance."""
    mcp.tool()(create_card)
    mcp.tool()(update_card)
    mcp.tool()(move_card)
    mcp.tool()(delete_card)
    mcp.tool()(batch_cards)
