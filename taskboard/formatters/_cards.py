"""Card-level table and detail formatters."""

from taskboard import config
from taskboard.formatters._table import _sanitize_str, _table, _trunc


def format_cards_table(result):
    """Format search_cards() output as a table."""
    cards = result.get("cards", [])
    rows = []
    for c in cards:
        rows.append(
            (
                c["id"],
                c.get("priority") or "-",
                c.get("due_date") or "-",
                c.get("position", 0),
                _trunc(c.get("title", ""), 60),
            )
        )
    footer = f"Showing {len(cards)} of {result.get('total_count', len(cards))} cards"
    if result.get("has_more"):
        footer += f" (more after offset {result['offset'] + len(cards)})"
    return _table(
        [("ID", 38), ("Pri", 7), ("Due", 11), ("Pos", 4), ("Title", None)],
        rows,
        footer,
    )


def format_card_detail(card):
    """Format a single card as readable text."""
    lines = [f"Card: {card['id']}", f"  Title:    {_sanitize_str(card.get('title', ''))}"]
    column = card.get("column_name") or card.get("columnId")
    lines.append(f"  Column:   {column} (position {card.get('position', 0)})")
    if card.get("priority"):
        lines.append(f"  Priority: {card['priority']}")
    if card.get("due_date"):
        lines.append(f"  Due:      {card['due_date']}")
    if card.get("tags"):
        lines.append(f"  Tags:     {', '.join(card['tags'])}")
    if card.get("dependencies"):
        lines.append(f"  Depends:  {', '.join(card['dependencies'])}")
    lines.append(f"  Created:  {card.get('created_at') or '-'}")
    lines.append(f"  Updated:  {card.get('updated_at') or '-'}")
    if card.get("completed_at"):
        lines.append(f"  Done:     {card['completed_at']}")
    if card.get("blocked_at"):
        lines.append(f"  Blocked:  {card['blocked_at']}")
    subtasks = card.get("subtasks") or []
    if subtasks:
        done = sum(1 for s in subtasks if s.startswith(config.COMPLETED_PREFIX))
        lines.append(f"  Subtasks ({done}/{len(subtasks)}):")
        for s in subtasks:
            if s.startswith(config.COMPLETED_PREFIX):
                lines.append(f"    [x] {_sanitize_str(s[len(config.COMPLETED_PREFIX):])}")
            else:
                lines.append(f"    [ ] {_sanitize_str(s)}")
    if card.get("content"):
        lines.append("")
        lines.append(_sanitize_str(card["content"]))
    return "\n".join(lines)


def format_batch_table(result):
    """One line per applied batch operation."""
    rows = [
        (i, r["type"], r.get("cardId", "-"), r.get("position", "-"), r.get("reference", ""))
        for i, r in enumerate(result.get("results", []), 1)
    ]
    footer = f"Applied {len(rows)} operation(s)"
    for warning in result.get("warnings", []):
        footer += f"\n[WARN] {warning}"
    return _table(
        [("#", 4), ("Type", 7), ("Card", 38), ("Pos", 4), ("Ref", None)],
        rows,
        footer,
    )
