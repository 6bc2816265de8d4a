"""Board tools: board lifecycle, archives, columns and next steps (11 tools)."""

from __future__ import annotations

from taskboard import CliError
from taskboard.mcp_server._core import (
    _call,
    _contract_error,
    _finalize_tool_result,
    _validate_archive_id,
    _validate_id,
)
from taskboard.mcp_server._security import (
    _sanitize_board,
    _tag_user_text,
    _validate_card_data,
    _validate_input,
)


def create_board(name: str, columns: list[str] | None = None) -> dict:
    """Create a board. Default columns: To Do, In Progress, Blocked, Done.

    Returns:
        Dict with ok, board_id and the new board document.
    """
    try:
        name = _validate_input(name, "name")
        if columns is not None:
            columns = [_validate_input(c, "name") for c in columns]
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(_call("create_board", name=name, columns=columns))


def delete_board(board_id: str) -> dict:
    """Delete a board. A backup copy is kept in the backups directory."""
    try:
        _validate_id(board_id, "board_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(_call("delete_board", board_id=board_id))


def import_board(document: dict, board_id: str | None = None) -> dict:
    """Store a full board document (projectName, columns, cards) as a new board.

    Args:
        document: Board document as returned by get_board(format='full').
        board_id: Id for the new board. Defaults to the document's id, or a
            fresh id when that one is taken.

    Returns:
        Dict with ok, board_id and the stored board document.
    """
    try:
        if board_id is not None:
            _validate_id(board_id, "board_id")
        if isinstance(document, dict):
            document = dict(document)
            if isinstance(document.get("projectName"), str):
                document["projectName"] = _validate_input(document["projectName"], "name")
            if isinstance(document.get("cards"), list):
                document["cards"] = [_validate_card_data(c) for c in document["cards"]]
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    result = _call("import_board", document=document, board_id=board_id)
    if isinstance(result, dict) and isinstance(result.get("board"), dict):
        result = {**result, "board": _sanitize_board(result["board"])}
    return _finalize_tool_result(result)


def archive_board(board_id: str) -> dict:
    """Archive a board. It disappears from list_boards until restored.

    Returns:
        Dict with ok, board_id and archive (id, boardId, name, archivedAt).
    """
    try:
        _validate_id(board_id, "board_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(_call("archive_board", board_id=board_id))


def list_archives() -> dict:
    """List archived boards, newest first."""
    result = _call("list_archives")
    if isinstance(result, list):
        result = {"archives": [{**row, "name": _tag_user_text(row["name"])} for row in result]}
    return _finalize_tool_result(result)


def restore_board(archive_id: str, board_id: str | None = None) -> dict:
    """Restore an archived board (ids from list_archives). The archive entry is removed.

    Args:
        archive_id: Archive id.
        board_id: Restore under this id instead of the original one.
    """
    try:
        _validate_archive_id(archive_id)
        if board_id is not None:
            _validate_id(board_id, "board_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    result = _call("restore_board", archive_id=archive_id, board_id=board_id)
    if isinstance(result, dict) and isinstance(result.get("board"), dict):
        result = {**result, "board": _sanitize_board(result["board"])}
    return _finalize_tool_result(result)


def add_column(board_id: str, name: str, position: int | None = None) -> dict:
    """Add a column (max 20). Position is the 0-based index; default is rightmost."""
    try:
        _validate_id(board_id, "board_id")
        name = _validate_input(name, "name")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(
        _call("add_column", board_id=board_id, name=name, position=position)
    )


def rename_column(board_id: str, column_id: str, name: str) -> dict:
    try:
        _validate_id(board_id, "board_id")
        _validate_id(column_id, "column_id")
        name = _validate_input(name, "name")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(
        _call("rename_column", board_id=board_id, column_id=column_id, name=name)
    )


def delete_column(board_id: str, column_id: str) -> dict:
    """Delete an empty column. Fails while it holds cards or if it is the last column."""
    try:
        _validate_id(board_id, "board_id")
        _validate_id(column_id, "column_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(_call("delete_column", board_id=board_id, column_id=column_id))


def reorder_columns(board_id: str, column_ids: list[str]) -> dict:
    """Reorder columns. column_ids must list every existing column exactly once."""
    try:
        _validate_id(board_id, "board_id")
        for cid in column_ids:
            _validate_id(cid, "column_id")
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(
        _call("reorder_columns", board_id=board_id, column_ids=column_ids)
    )


def set_next_steps(board_id: str, steps: list[str]) -> dict:
    """Replace the board's next-steps list."""
    try:
        _validate_id(board_id, "board_id")
        steps = [_validate_input(s, "step") for s in steps]
    except CliError as e:
        return _finalize_tool_result(_contract_error(str(e), e.error_type))
    return _finalize_tool_result(_call("set_next_steps", board_id=board_id, steps=steps))


def register(mcp):
    """Register all board tools with the FastMCP instance."""
    mcp.tool()(create_board)
    mcp.tool()(delete_board)
    mcp.tool()(import_board)
    mcp.tool()(archive_board)
    mcp.tool()(list_archives)
    mcp.tool()(restore_board)
    mcp.tool()(add_column)
    mcp.tool()(rename_column)
    mcp.tool()(delete_column)
    mcp.tool()(reorder_columns)
    mcp.tool()(set_next_steps)
