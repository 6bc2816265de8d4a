"""
taskboard: CLI tool for managing kanban boards stored as JSON documents
"""

import argparse
import json
import sys

from taskboard import config
from taskboard.commands import (
    cmd_archive_board,
    cmd_archives,
    cmd_backups,
    cmd_batch,
    cmd_board,
    cmd_boards,
    cmd_card,
    cmd_cards,
    cmd_column_add,
    cmd_column_delete,
    cmd_column_rename,
    cmd_column_reorder,
    cmd_config,
    cmd_create,
    cmd_delete,
    cmd_delete_board,
    cmd_import_board,
    cmd_move,
    cmd_new_board,
    cmd_next_steps,
    cmd_restore_board,
    cmd_stats,
    cmd_update,
    cmd_validate,
)
from taskboard.exceptions import CliError

HELP_TEXT = """\
Usage: taskboard <command> [args...]

Global flags:
  --format table          Output as readable text instead of JSON (default: json)
  --boards-dir <path>     Use this boards directory instead of the configured one
  --quiet, -q             Print only machine-readable results
  --verbose, -v           Log board events to stderr
  --version               Show version number

Boards:
  boards                  - List all boards
  board <board>           - Show a board
    --view <v>              full (default), summary, compact, cards-only
    --column <id>           With cards-only, restrict to one column
  new-board <name>        - Create a board
    --columns <a,b,c>       Column names (default: To Do,In Progress,Blocked,Done)
  delete-board <board> --confirm
                          - Delete a board (a backup is kept)
  stats <board>           - Card counts, overdue cards, completion rate
  validate <board>        - Check board integrity (exit 1 if issues are found)
  backups <board>         - List backup files of a board
  import-board <json>     - Store a board document as a new board (inline, @file or -)
    --id <board>            Id for the new board (default: the document's id)
  archive-board <board>   - Move a board to the archives
  archives                - List archived boards
  restore-board <archive> - Bring an archived board back
    --id <board>            Restore under this id

Cards:
  cards <board>           - Search cards
    -S, --search <text>     Match title or content
    --column <id>           Only cards in this column
    -p, --priority <p>      high, medium, low (comma-separated)
    --tag <tags>            Cards with any of these tags (comma-separated)
    --due-from <date>       Due on or after (YYYY-MM-DD)
    --due-to <date>         Due on or before (YYYY-MM-DD)
    --sort <field>          position, title, priority, created, updated, due
    --desc                  Reverse sort order
    --limit <n> / --offset <n>
  card <board> <card>     - Show one card
  create <board> [title]  - Create a card (first column, last position by default)
    --column <id>           Target column
    --position <p>          Index, first or last
    --kind <k>              basic, task, feature (inferred by default)
    -c, --content <text>    Card body
    -p, --priority <p>      high, medium, low
    --due <date>            Due date (YYYY-MM-DD)
    --tag <tags>            Tags (comma-separated)
    --depends <ids>         Dependency card ids (comma-separated)
    --subtask <text>        Subtask (repeatable; prefix "✓ " when done)
    --data <json>           Card fields as JSON (inline, @file or - for stdin)
  update <board> <card>   - Update card fields (same flags as create, plus
                            --title and --collapsed true|false; "none" clears)
  move <board> <card> <column> [position]
                          - Move a card (index, first, last, up, down; default last)
  delete <board> <card> --confirm
                          - Delete a card (removed from other cards' dependencies)
  batch <board> <json>    - Apply operations atomically (inline, @file or -)

Columns:
  column-add <board> <name> [--position n]
  column-rename <board> <column> <name>
  column-delete <board> <column>
  column-reorder <board> <column> [column...]
  next-steps <board> <step> [step...]

Configuration:
  config                  - Show effective settings
  config set-dir <path>   - Save the boards directory to .env
"""


# ---------------------------------------------------------------------------
# Global flag extraction (before argparse, so --format works after subcommand)
# ---------------------------------------------------------------------------


def _extract_global_flags(argv):
    """Extract global flags from argv regardless of position.

    Returns (format_str, boards_dir, quiet, verbose, remaining_argv).
    Handles --version directly.
    """
    fmt = "json"
    boards_dir = None
    quiet = False
    verbose = False
    remaining = []
    i = 0
    while i < len(argv):
        if argv[i] == "--version":
            print(f"taskboard {config.VERSION}")
            sys.exit(0)
        elif argv[i] in ("--quiet", "-q"):
            quiet = True
            i += 1
            continue
        elif argv[i] in ("--verbose", "-v"):
            verbose = True
            i += 1
            continue
        elif argv[i] == "--format" and i + 1 < len(argv):
            fmt = argv[i + 1]
            if fmt not in ("json", "table"):
                raise CliError(f"[ERROR] Invalid format '{fmt}'. Use: json, table")
            i += 2
            continue
        elif argv[i] == "--boards-dir" and i + 1 < len(argv):
            boards_dir = argv[i + 1]
            i += 2
            continue
        else:
            remaining.append(argv[i])
        i += 1
    if quiet and verbose:
        raise CliError("[ERROR] --quiet and --verbose are mutually exclusive.")
    return fmt, boards_dir, quiet, verbose, remaining


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


class _SubcommandParser(argparse.ArgumentParser):
    """Subparser that raises CliError instead of printing full help text."""

    def error(self, message):
        raise CliError(f"[ERROR] {message}")


def _positive_int(value):
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a positive integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return parsed


def _non_negative_int(value):
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a non-negative integer") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("must be a non-negative integer")
    return parsed


def _add_card_field_flags(p, *, for_update):
    if for_update:
        p.add_argument("--title")
        p.add_argument("--collapsed", choices=["true", "false"])
    p.add_argument("--content", "-c")
    p.add_argument("--priority", "-p")
    p.add_argument("--due")
    p.add_argument("--tag")
    p.add_argument("--depends")
    p.add_argument("--subtask", action="append")
    p.add_argument("--data")


def build_parser():
    parser = _SubcommandParser(
        prog="taskboard",
        description="CLI tool for managing kanban boards stored as JSON documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("--help", "-h", action="store_true", dest="show_help")
    sub = parser.add_subparsers(dest="command", parser_class=_SubcommandParser)

    # --- boards ---
    sub.add_parser("boards").set_defaults(func=cmd_boards)

    p = sub.add_parser("board")
    p.add_argument("board_id")
    p.add_argument("--view", choices=sorted(config.VALID_BOARD_FORMATS), default="full")
    p.add_argument("--column")
    p.set_defaults(func=cmd_board)

    p = sub.add_parser("new-board")
    p.add_argument("name")
    p.add_argument("--columns")
    p.set_defaults(func=cmd_new_board)

    p = sub.add_parser("delete-board")
    p.add_argument("board_id")
    p.add_argument("--confirm", action="store_true")
    p.set_defaults(func=cmd_delete_board)

    for name, func in (("stats", cmd_stats), ("validate", cmd_validate), ("backups", cmd_backups)):
        p = sub.add_parser(name)
        p.add_argument("board_id")
        p.set_defaults(func=func)

    p = sub.add_parser("import-board")
    p.add_argument("document")
    p.add_argument("--id")
    p.set_defaults(func=cmd_import_board)

    p = sub.add_parser("archive-board")
    p.add_argument("board_id")
    p.set_defaults(func=cmd_archive_board)

    sub.add_parser("archives").set_defaults(func=cmd_archives)

    p = sub.add_parser("restore-board")
    p.add_argument("archive_id")
    p.add_argument("--id")
    p.set_defaults(func=cmd_restore_board)

    # --- cards ---
    p = sub.add_parser("cards")
    p.add_argument("board_id")
    p.add_argument("--search", "-S")
    p.add_argument("--column")
    p.add_argument("--priority", "-p")  # comma-separated: high,medium
    p.add_argument("--tag")
    p.add_argument("--due-from", dest="due_from")
    p.add_argument("--due-to", dest="due_to")
    p.add_argument("--sort", choices=sorted(config.VALID_SORT_FIELDS))
    p.add_argument("--desc", action="store_true")
    p.add_argument("--limit", type=_positive_int)
    p.add_argument("--offset", type=_non_negative_int, default=0)
    p.set_defaults(func=cmd_cards)

    p = sub.add_parser("card")
    p.add_argument("board_id")
    p.add_argument("card_id")
    p.set_defaults(func=cmd_card)

    p = sub.add_parser("create")
    p.add_argument("board_id")
    p.add_argument("title", nargs="?")
    p.add_argument("--column")
    p.add_argument("--position")
    p.add_argument("--kind", choices=sorted(config.VALID_CARD_KINDS))
    _add_card_field_flags(p, for_update=False)
    p.set_defaults(func=cmd_create)

    p = sub.add_parser("update")
    p.add_argument("board_id")
    p.add_argument("card_id")
    _add_card_field_flags(p, for_update=True)
    p.set_defaults(func=cmd_update)

    p = sub.add_parser("move")
    p.add_argument("board_id")
    p.add_argument("card_id")
    p.add_argument("column_id")
    p.add_argument("position", nargs="?", default="last")
    p.set_defaults(func=cmd_move)

    p = sub.add_parser("delete")
    p.add_argument("board_id")
    p.add_argument("card_id")
    p.add_argument("--confirm", action="store_true")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("batch")
    p.add_argument("board_id")
    p.add_argument("operations")
    p.set_defaults(func=cmd_batch)

    # --- columns ---
    p = sub.add_parser("column-add")
    p.add_argument("board_id")
    p.add_argument("name")
    p.add_argument("--position", type=_non_negative_int)
    p.set_defaults(func=cmd_column_add)

    p = sub.add_parser("column-rename")
    p.add_argument("board_id")
    p.add_argument("column_id")
    p.add_argument("name")
    p.set_defaults(func=cmd_column_rename)

    p = sub.add_parser("column-delete")
    p.add_argument("board_id")
    p.add_argument("column_id")
    p.set_defaults(func=cmd_column_delete)

    p = sub.add_parser("column-reorder")
    p.add_argument("board_id")
    p.add_argument("column_ids", nargs="+")
    p.set_defaults(func=cmd_column_reorder)

    p = sub.add_parser("next-steps")
    p.add_argument("board_id")
    p.add_argument("steps", nargs="+")
    p.set_defaults(func=cmd_next_steps)

    # --- config ---
    p = sub.add_parser("config")
    p.add_argument("action", nargs="?", choices=["show", "set-dir"], default="show")
    p.add_argument("value", nargs="?")
    p.set_defaults(func=cmd_config)

    # --- version (bare word) ---
    sub.add_parser("version").set_defaults(func=None)

    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------


def _emit_cli_error(err, fmt):
    msg = str(err)
    if fmt == "json":
        error = {
            "type": getattr(err, "error_type", "error"),
            "message": msg,
            "exit_code": getattr(err, "exit_code", 1),
        }
        if getattr(err, "errors", None):
            error["errors"] = err.errors
        if getattr(err, "index", None) is not None:
            error["index"] = err.index
        payload = {
            "ok": False,
            "schema_version": config.CONTRACT_SCHEMA_VERSION,
            "error": error,
        }
        print(json.dumps(payload, ensure_ascii=False), file=sys.stderr)
        return
    print(msg, file=sys.stderr)


def main(argv=None):
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(HELP_TEXT)
        sys.exit(0)

    fmt = "json"
    try:
        # Extract global flags from anywhere in argv
        fmt, boards_dir, quiet, verbose, remaining_argv = _extract_global_flags(argv)
        config.RUNTIME_QUIET = quiet
        config.RUNTIME_VERBOSE = verbose
        if verbose:
            config.LOG_ENABLED = True

        if not remaining_argv:
            print(HELP_TEXT)
            sys.exit(0)

        parser = build_parser()
        ns = parser.parse_args(remaining_argv)
        ns.format = fmt  # inject global format flag
        ns.boards_dir = boards_dir

        if ns.show_help or not ns.command:
            print(HELP_TEXT)
            sys.exit(0)

        if ns.command == "version":
            print(f"taskboard {config.VERSION}")
            sys.exit(0)

        handler = getattr(ns, "func", None)
        if handler:
            handler(ns)
        else:
            raise CliError(f"[ERROR] Unknown command: {ns.command}")

    except CliError as e:
        _emit_cli_error(e, fmt)
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
