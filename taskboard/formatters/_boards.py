"""Board views (full / summary / compact / cards-only) and board tables."""

from taskboard import config
from taskboard.exceptions import CliError
from taskboard.formatters._table import _table, _trunc


def board_summary(board):
    """Board outline with per-column counts and overall progress."""
    ordered = board.ordered_columns()
    counts = {col.id: 0 for col in ordered}
    completed = 0
    for card in board.cards:
        counts[card.column_id] = counts.get(card.column_id, 0) + 1
    for col in ordered:
        if col.is_done:
            completed += counts[col.id]
    total = len(board.cards)
    return {
        "id": board.id,
        "projectName": board.project_name,
        "last_updated": board.last_updated,
        "columns": [{"id": c.id, "name": c.name, "cardCount": counts[c.id]} for c in ordered],
        "stats": {
            "totalCards": total,
            "completedCards": completed,
            "progressPercentage": round(completed / total * 100) if total else 0,
        },
    }


def _compact_card(card):
    out = {"id": card.id, "t": card.title, "col": card.column_id, "p": card.position}
    optional = (
        ("c", card.content),
        ("coll", card.collapsed),
        ("sub", card.subtasks),
        ("tag", card.tags),
        ("dep", card.dependencies),
        ("pri", card.priority),
        ("due", card.due_date),
        ("ca", card.created_at),
        ("ua", card.updated_at),
        ("comp", card.completed_at),
    )
    for key, value in optional:
        if value:
            out[key] = value
    return out


def board_compact(board):
    """Abbreviated-key view for token-constrained consumers."""
    return {
        "id": board.id,
        "name": board.project_name,
        "up": board.last_updated,
        "cols": [{"id": c.id, "n": c.name} for c in board.ordered_columns()],
        "cards": [_compact_card(c) for c in _ordered_cards(board)],
    }


def _ordered_cards(board, column_id=None):
    cards = []
    for col in board.ordered_columns():
        if column_id is None or col.id == column_id:
            cards.extend(board.cards_in_column(col.id))
    return cards


def board_cards_only(board, column_id=None):
    if column_id is not None:
        board.require_column(column_id)
    return {"cards": [c.to_dict() for c in _ordered_cards(board, column_id)]}


def format_board(board, fmt="full", column_id=None):
    """Render *board* as the requested view dict."""
    if fmt not in config.VALID_BOARD_FORMATS:
        raise CliError(
            f"[ERROR] Invalid board format '{fmt}'. "
            f"Valid: {', '.join(sorted(config.VALID_BOARD_FORMATS))}"
        )
    if fmt == "summary":
        return board_summary(board)
    if fmt == "compact":
        return board_compact(board)
    if fmt == "cards-only":
        return board_cards_only(board, column_id)
    return board.to_dict()


def format_boards_table(rows):
    """Format list_boards() output as a table."""
    return _table(
        [("ID", 38), ("Updated", 26), ("Name", None)],
        [(r["id"], r.get("last_updated") or "-", r["name"]) for r in rows],
        f"Total: {len(rows)} boards",
    )


def format_archives_table(rows):
    """Format list_archives() output as a table."""
    return _table(
        [("Archive", 50), ("Archived", 26), ("Name", None)],
        [(r["id"], r.get("archivedAt") or "-", r["name"]) for r in rows],
        f"Total: {len(rows)} archived boards",
    )


def format_board_table(board_dict):
    """Kanban-style listing of a full board document: one section per column."""
    columns = sorted(
        enumerate(board_dict.get("columns", [])),
        key=lambda item: (item[1].get("position", item[0]), item[0]),
    )
    cards = board_dict.get("cards", [])
    lines = [f"{board_dict.get('projectName', '')} ({board_dict.get('id', '')})", ""]
    for _, col in columns:
        in_col = sorted(
            (c for c in cards if c.get("columnId") == col["id"]),
            key=lambda c: c.get("position", 0),
        )
        lines.append(f"{col['name']} ({len(in_col)})  [{col['id']}]")
        if not in_col:
            lines.append("  - none")
        for card in in_col:
            pri = card.get("priority") or "-"
            lines.append(f"  {card.get('position', 0):>3}. [{pri:<6}] {_trunc(card['title'], 60)}  {card['id']}")
        lines.append("")
    steps = board_dict.get("next-steps") or []
    if steps:
        lines.append("Next steps:")
        lines.extend(f"  - {s}" for s in steps)
    return "\n".join(lines).rstrip()


def format_summary_table(summary):
    lines = [f"{summary['projectName']} ({summary['id']})"]
    lines.append(f"Last updated: {summary.get('last_updated') or '-'}")
    stats = summary["stats"]
    lines.append(
        f"Progress: {stats['completedCards']}/{stats['totalCards']} "
        f"({stats['progressPercentage']}%)"
    )
    lines.append("")
    lines.append(
        _table(
            [("Column", None), ("Cards", 6), ("ID", None)],
            [(c["name"], c["cardCount"], c["id"]) for c in summary["columns"]],
        )
    )
    return "\n".join(lines)


def format_stats_table(stats):
    lines = [f"Total cards: {stats['total_cards']}", ""]
    lines.append("By column:")
    for name, count in stats["by_column"].items():
        lines.append(f"  {name:<24} {count}")
    lines.append("")
    lines.append("By priority:")
    for name, count in sorted(stats["by_priority"].items()):
        lines.append(f"  {name:<24} {count}")
    lines.append("")
    lines.append(f"Overdue: {stats['overdue']}")
    lines.append(f"Completion: {stats['completion_rate']}%")
    return "\n".join(lines)


def format_integrity_table(report):
    if report["valid"]:
        return "Board is valid: no issues found."
    lines = [f"{len(report['issues'])} issue(s):"]
    lines.extend(f"  - {issue}" for issue in report["issues"])
    return "\n".join(lines)
