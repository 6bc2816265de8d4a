"""Core helpers: client caching, _call dispatcher, response contract, id validation."""

from __future__ import annotations

import re

from taskboard import CliError, TaskboardClient
from taskboard.config import CONTRACT_SCHEMA_VERSION, MCP_RESPONSE_MODE
from taskboard.exceptions import BatchError

_client: TaskboardClient | None = None


def _get_client() -> TaskboardClient:
    """Return a cached TaskboardClient, creating one on first use."""
    global _client
    if _client is None:
        _client = TaskboardClient()
    return _client


def _contract_error(
    message: str, error_type: str = "error", extra: dict | None = None
) -> dict:
    """Return a stable MCP error envelope with legacy compatibility fields."""
    detail = {"type": error_type, "message": message}
    if extra:
        detail.update(extra)
    return {
        "ok": False,
        "schema_version": CONTRACT_SCHEMA_VERSION,
        "type": error_type,  # legacy
        "error": message,  # legacy
        "error_detail": detail,
    }


def _ensure_contract_dict(payload: dict) -> dict:
    """Add stable contract metadata to dict responses."""
    out = dict(payload)
    out.setdefault("schema_version", CONTRACT_SCHEMA_VERSION)
    if out.get("ok") is False:
        error_type = str(out.get("type", "error"))
        error_message = out.get("error", "Unknown error")
        if not isinstance(error_message, str):
            error_message = str(error_message)
            out["error"] = error_message
        out.setdefault("error_detail", {"type": error_type, "message": error_message})
        return out
    out.setdefault("ok", True)
    return out


def _finalize_tool_result(result):
    """Finalize tool response based on configured MCP response mode.

    Modes:
        - legacy (default): preserve top-level shapes; dicts gain contract
          metadata (ok/schema_version).
        - envelope: always return {"ok", "schema_version", "data"} for success.
    """
    if isinstance(result, dict):
        normalized = _ensure_contract_dict(result)
        if normalized.get("ok") is False:
            return normalized
        if MCP_RESPONSE_MODE == "envelope":
            data = dict(normalized)
            data.pop("ok", None)
            data.pop("schema_version", None)
            return {"ok": True, "schema_version": CONTRACT_SCHEMA_VERSION, "data": data}
        return normalized
    if MCP_RESPONSE_MODE == "envelope":
        return {"ok": True, "schema_version": CONTRACT_SCHEMA_VERSION, "data": result}
    return result


_ALLOWED_METHODS = {
    "list_boards",
    "get_board",
    "create_board",
    "delete_board",
    "board_stats",
    "validate_board",
    "get_card",
    "search_cards",
    "create_card",
    "update_card",
    "move_card",
    "delete_card",
    "batch_cards",
    "add_column",
    "rename_column",
    "delete_column",
    "reorder_columns",
    "set_next_steps",
    "import_board",
    "archive_board",
    "list_archives",
    "restore_board",
}

_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")
_ARCHIVE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,199}$")


def _validate_id(value: str, field: str = "card_id") -> str:
    """Validate a board/column/card id (letters, digits, '-' and '_'). Raises CliError."""
    if not isinstance(value, str) or not _ID_RE.match(value):
        raise CliError(f"[ERROR] {field} must be a non-empty id string, got: {value!r}")
    return value


def _validate_archive_id(value: str) -> str:
    if not isinstance(value, str) or not _ARCHIVE_ID_RE.match(value):
        raise CliError(f"[ERROR] archive_id must be a non-empty id string, got: {value!r}")
    return value


def _validate_card_ref(value: str, field: str = "card_id") -> str:
    """Like _validate_id but also accepts batch references ("$ref:<name>")."""
    if isinstance(value, str) and value.startswith("$ref:") and len(value) > 5:
        return value
    return _validate_id(value, field)


def _call(method_name: str, **kwargs):
    """Call a TaskboardClient method, converting exceptions to error dicts."""
    if method_name not in _ALLOWED_METHODS:
        return _contract_error(f"Unknown method: {method_name}", "error")
    try:
        client = _get_client()
        return getattr(client, method_name)(**kwargs)
    except BatchError as e:
        return _contract_error(
            str(e),
            e.error_type,
            {"index": e.index, "operation": e.op_type, "errors": e.errors},
        )
    except CliError as e:
        extra = {"errors": e.errors} if getattr(e, "errors", None) else None
        return _contract_error(str(e), e.error_type, extra)
    except Exception as e:
        return _contract_error(f"Unexpected error: {e}", "error")
