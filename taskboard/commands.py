"""
Command implementations for taskboard.
Each cmd_*() function receives an argparse.Namespace and handles one CLI command.

Business logic lives in client.py (TaskboardClient). These thin wrappers
handle argparse → keyword args, format selection, and formatter dispatch.
"""

import json
import os
import sys

from taskboard import config
from taskboard.client import TaskboardClient
from taskboard.exceptions import CliError
from taskboard.formatters import (
    format_archives_table,
    format_batch_table,
    format_board_table,
    format_boards_table,
    format_card_detail,
    format_cards_table,
    format_integrity_table,
    format_stats_table,
    format_summary_table,
    mutation_response,
    output,
)


def _client(ns):
    return TaskboardClient(boards_dir=getattr(ns, "boards_dir", None))


def _csv(value):
    """Comma-separated list, or [] for 'none'."""
    if value is None:
        return None
    if value.strip().lower() == "none":
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def _clearable(value):
    """'none' clears the field (null); anything else is passed through."""
    if value is not None and value.strip().lower() == "none":
        return None
    return value


def _load_json_arg(raw, what):
    """Parse a JSON argument given inline, as @path, or '-' for stdin."""
    if raw == "-":
        raw = sys.stdin.read()
    elif raw.startswith("@"):
        path = raw[1:]
        try:
            with open(path, encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            raise CliError(f"[ERROR] Cannot read {what} file {path}: {e}") from e
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise CliError(f"[ERROR] Invalid JSON in {what}: {e.msg}") from e


# ---------------------------------------------------------------------------
# Boards
# ---------------------------------------------------------------------------


def cmd_boards(ns):
    output(_client(ns).list_boards(), format_boards_table, ns.format)


def cmd_board(ns):
    result = _client(ns).get_board(ns.board_id, format=ns.view, column_id=ns.column)
    if ns.view == "full":
        formatter = format_board_table
    elif ns.view == "summary":
        formatter = format_summary_table
    elif ns.view == "cards-only":
        formatter = format_cards_table
    else:
        formatter = None
    output(result, formatter, ns.format)


def cmd_new_board(ns):
    result = _client(ns).create_board(ns.name, columns=_csv(ns.columns))
    _print_board_result(result, "created", ns.format)


def cmd_delete_board(ns):
    if not ns.confirm:
        raise CliError(
            "[ERROR] Deleting a board requires --confirm. A backup is kept in the backups directory."
        )
    result = _client(ns).delete_board(ns.board_id)
    mutation_response("Deleted board", result, ns.format)


def _print_board_result(result, action, fmt):
    if config.RUNTIME_QUIET:
        print(result["board_id"])
        return
    if fmt == "table":
        print(f"OK: {action} board {result['board_id']}")
        print(format_board_table(result["board"]))
        return
    output(result, None, fmt)


def cmd_import_board(ns):
    document = _load_json_arg(ns.document, "board document")
    result = _client(ns).import_board(document, board_id=ns.id)
    _print_board_result(result, "imported", ns.format)


def cmd_archive_board(ns):
    result = _client(ns).archive_board(ns.board_id)
    if config.RUNTIME_QUIET:
        print(result["archive"]["id"])
        return
    print(f"OK: archived board {ns.board_id} as {result['archive']['id']}")
    if ns.format == "json":
        print(json.dumps(result, indent=2, ensure_ascii=False))


def cmd_archives(ns):
    output(_client(ns).list_archives(), format_archives_table, ns.format)


def cmd_restore_board(ns):
    result = _client(ns).restore_board(ns.archive_id, board_id=ns.id)
    _print_board_result(result, "restored", ns.format)


def cmd_stats(ns):
    output(_client(ns).board_stats(ns.board_id), format_stats_table, ns.format)


def cmd_validate(ns):
    report = _client(ns).validate_board(ns.board_id)
    output(report, format_integrity_table, ns.format)
    if not report["valid"]:
        sys.exit(1)


def cmd_backups(ns):
    paths = _client(ns).list_backups(ns.board_id)
    if ns.format == "table":
        for path in paths:
            print(os.path.basename(path))
        print(f"\nTotal: {len(paths)} backups")
        return
    output({"board_id": ns.board_id, "backups": paths}, None, ns.format)


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


def cmd_card(ns):
    output(_client(ns).get_card(ns.board_id, ns.card_id), format_card_detail, ns.format)


def cmd_cards(ns):
    result = _client(ns).search_cards(
        ns.board_id,
        text=ns.search,
        column_id=ns.column,
        priority=ns.priority,
        tags=ns.tag,
        due_from=ns.due_from,
        due_to=ns.due_to,
        sort=ns.sort,
        order="desc" if ns.desc else "asc",
        limit=ns.limit,
        offset=ns.offset,
    )
    output(result, format_cards_table, ns.format)


def _card_fields(ns, *, for_update):
    """Collect card fields given on the command line into a payload dict."""
    data = {}
    if ns.data:
        data.update(_load_json_arg(ns.data, "--data"))
    if ns.title is not None:
        data["title"] = ns.title
    if ns.content is not None:
        data["content"] = _clearable(ns.content) if for_update else ns.content
    if ns.priority is not None:
        data["priority"] = _clearable(ns.priority)
    if ns.due is not None:
        data["due_date"] = _clearable(ns.due)
    if ns.tag is not None:
        data["tags"] = _csv(ns.tag)
    if ns.depends is not None:
        data["dependencies"] = _csv(ns.depends)
    if ns.subtask:
        data["subtasks"] = list(ns.subtask)
    if getattr(ns, "collapsed", None) is not None:
        data["collapsed"] = ns.collapsed == "true"
    return data


def cmd_create(ns):
    result = _client(ns).create_card(
        ns.board_id,
        column_id=ns.column,
        card_data=_card_fields(ns, for_update=False),
        position=ns.position,
        kind=ns.kind,
    )
    mutation_response("Created", result, ns.format)


def cmd_update(ns):
    data = _card_fields(ns, for_update=True)
    if not data:
        raise CliError("[ERROR] Nothing to update. Pass at least one field flag or --data.")
    result = _client(ns).update_card(ns.board_id, ns.card_id, data)
    mutation_response("Updated", result, ns.format)


def cmd_move(ns):
    result = _client(ns).move_card(ns.board_id, ns.card_id, ns.column_id, ns.position)
    mutation_response("Moved", result, ns.format)


def cmd_delete(ns):
    if not ns.confirm:
        raise CliError("[ERROR] Deleting a card requires --confirm.")
    result = _client(ns).delete_card(ns.board_id, ns.card_id)
    mutation_response("Deleted", result, ns.format)


def cmd_batch(ns):
    operations = _load_json_arg(ns.operations, "operations")
    if isinstance(operations, dict) and "operations" in operations:
        operations = operations["operations"]
    result = _client(ns).batch_cards(ns.board_id, operations)
    if config.RUNTIME_QUIET:
        print(json.dumps(result, ensure_ascii=False))
        return
    output(result, format_batch_table, ns.format)


# ---------------------------------------------------------------------------
# Columns, next steps, config
# ---------------------------------------------------------------------------


def cmd_column_add(ns):
    result = _client(ns).add_column(ns.board_id, ns.name, position=ns.position)
    mutation_response("Added column", result, ns.format)


def cmd_column_rename(ns):
    result = _client(ns).rename_column(ns.board_id, ns.column_id, ns.name)
    mutation_response("Renamed column", result, ns.format)


def cmd_column_delete(ns):
    result = _client(ns).delete_column(ns.board_id, ns.column_id)
    mutation_response("Deleted column", result, ns.format)


def cmd_column_reorder(ns):
    result = _client(ns).reorder_columns(ns.board_id, list(ns.column_ids))
    mutation_response("Reordered columns", result, ns.format)


def cmd_next_steps(ns):
    result = _client(ns).set_next_steps(ns.board_id, list(ns.steps))
    mutation_response("Set next steps", result, ns.format)


def cmd_config(ns):
    if ns.action == "set-dir":
        if not ns.value:
            raise CliError("[ERROR] Usage: taskboard config set-dir <path>")
        path = os.path.abspath(ns.value)
        config.save_env_value("TASKBOARD_BOARDS_DIR", path)
        print(f"OK: boards directory set to {path}")
        return
    settings = {
        "boards_dir": getattr(ns, "boards_dir", None) or config.BOARDS_DIR,
        "backups_enabled": config.BACKUPS_ENABLED,
        "max_backups": config.MAX_BACKUPS,
        "log_enabled": config.LOG_ENABLED,
        "mcp_response_mode": config.MCP_RESPONSE_MODE,
        "env_path": config.ENV_PATH,
    }
    if ns.format == "table":
        for key, value in settings.items():
            print(f"{key:<18} {value}")
        return
    output(settings, None, ns.format)
