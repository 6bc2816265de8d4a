"""Read tools: boards, cards, search, stats and integrity (6 tools)."""

from __future__ import annotations

from typing import Literal

from taskboard import CliError
from taskboard.mcp_server._core import (
    _call,
    _contract_error,
    _finalize_tool_result,
    _validate_id,
)
from taskboard.mcp_server._security import _sanitize_board, _sanitize_card, _tag_user_text


def list_boards() -> dict:
    """List all boards.

    Returns:
        Dict with boards (list of id, name, last_updated) sorted by name.
    """
    result = _call("list_boards")
    if isinstance(result, list):
        result = {"boards": [{**row, "name": _tag_user_text(row["name"])} for row in result]}
    return _finalize_tool_result(result)


def get_board(
    board_id: str,
    format: Literal["full", "summary", "compact", "cards-only"] = "full",
    column_id: str | None = None,
) -> dict:
    """Get a board. Prefer 'summary' or 'compact' unless you need every field.

    Args:
        board_id: Board id.
        format: full (stored document), summary (column counts + progress),
            compact (short keys: t=title, col=columnId, p=position, c=content,
            sub=subtasks, tag=tags, dep=dependencies, pri=priority), or
            cards-only.
        column_id: With cards-only, restrict to one column.

    Returns:
        The board view.
    """
    try:
        _validate_id(board_id, "board_id")
        if column_id is not None:
            _validate_id(column_id, "column_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    result = _call("get_board", board_id=board_id, format=format, column_id=column_id)
    if isinstance(result, dict) and result.get("ok") is not False:
        result = _sanitize_board(result)
    return _finalize_tool_result(result)


def get_card(board_id: str, card_id: str) -> dict:
    """Get one card with its column name.

    Returns:
        Card dict (title/content/subtasks wrapped in [USER_DATA] markers).
    """
    try:
        _validate_id(board_id, "board_id")
        _validate_id(card_id, "card_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    result = _call("get_card", board_id=board_id, card_id=card_id)
    if isinstance(result, dict) and result.get("ok") is not False:
        result = _sanitize_card(result)
    return _finalize_tool_result(result)


def search_cards(
    board_id: str,
    text: str | None = None,
    column_id: str | None = None,
    priority: str | None = None,
    tags: str | None = None,
    due_from: str | None = None,
    due_to: str | None = None,
    sort: Literal["position", "title", "priority", "created", "updated", "due"] | None = None,
    order: Literal["asc", "desc"] = "asc",
    limit: int = 50,
    offset: int = 0,
) -> dict:
    """Search cards. Filters combine with AND.

    Args:
        text: Case-insensitive match on title or content.
        priority: Comma-separated. Values: high, medium, low.
        tags: Comma-separated; matches cards with any of them.
        due_from/due_to: Inclusive YYYY-MM-DD bounds; cards without a due date are excluded.
        limit/offset: Pagination (default 50/0).

    Returns:
        Dict with cards (list), total_count, has_more, limit, offset.
    """
    try:
        _validate_id(board_id, "board_id")
        if column_id is not None:
            _validate_id(column_id, "column_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    result = _call(
        "search_cards",
        board_id=board_id,
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
    if isinstance(result, dict) and result.get("ok") is not False:
        result = _sanitize_board(result)
    return _finalize_tool_result(result)


def board_stats(board_id: str) -> dict:
    """Card counts per column and priority, overdue count, completion rate."""
    try:
        _validate_id(board_id, "board_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(_call("board_stats", board_id=board_id))


def validate_board(board_id: str) -> dict:
    """Check board integrity (ids, positions, column refs, dependencies). Read-only.

    Returns:
        Dict with valid (bool) and issues (list of strings).
    """
    try:
        _validate_id(board_id, "board_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(_call("validate_board", board_id=board_id))


def register(mcp):
    """Register all read tools with the FastMCP instance."""
    mcp.tool()(list_boards)
    mcp.tool()(get_board)
    mcp.tool()(get_card)
    mcp.tool()(search_cards)
    mcp.tool()(board_stats)
    mcp.tool()(validate_board)
