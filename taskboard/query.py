"""
Read-side queries over a board: filtered card search, statistics, and the
integrity check.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date

from taskboard import config
from taskboard._utils import _parse_date, _parse_multi_value
from taskboard.cards import validate_card
from taskboard.exceptions import CliError


def _non_negative_int(value, name):
    if isinstance(value, bool):
        raise CliError(f"[ERROR] {name} must be a non-negative integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise CliError(f"[ERROR] {name} must be a non-negative integer") from None
    if number < 0:
        raise CliError(f"[ERROR] {name} must be a non-negative integer")
    return number


@dataclass(frozen=True)
class CardQuery:
    """Search filters. Every filter is optional; all given filters must match."""

    text: str | None = None
    column_id: str | None = None
    priorities: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    due_from: date | None = None
    due_to: date | None = None
    sort: str | None = None
    descending: bool = False
    limit: int | None = None
    offset: int = 0

    @classmethod
    def from_kwargs(
        cls,
        *,
        text=None,
        column_id=None,
        priority=None,
        tags=None,
        due_from=None,
        due_to=None,
        sort=None,
        order="asc",
        limit=None,
        offset=0,
    ):
        if sort is not None and sort not in config.VALID_SORT_FIELDS:
            raise CliError(
                f"[ERROR] Invalid sort field '{sort}'. "
                f"Valid: {', '.join(sorted(config.VALID_SORT_FIELDS))}"
            )
        if order not in ("asc", "desc"):
            raise CliError(f"[ERROR] Invalid order '{order}'. Use asc or desc.")
        if limit is not None:
            limit = _non_negative_int(limit, "limit")
        offset = 0 if offset is None else _non_negative_int(offset, "offset")
        start = _parse_date(due_from, "due_from") if due_from else None
        end = _parse_date(due_to, "due_to") if due_to else None
        if start and end and start > end:
            raise CliError("[ERROR] due_from must not be after due_to")
        return cls(
            text=text.strip().lower() if text and text.strip() else None,
            column_id=column_id or None,
            priorities=tuple(_parse_multi_value(priority, config.VALID_PRIORITIES, "priority"))
            if priority
            else (),
            tags=tuple(_parse_multi_value(tags, None, "tag")) if tags else (),
            due_from=start,
            due_to=end,
            sort=sort,
            descending=order == "desc",
            limit=limit,
            offset=offset,
        )

    def matches(self, card):
        if self.column_id and card.column_id != self.column_id:
            return False
        if self.priorities and card.priority not in self.priorities:
            return False
        if self.tags and not set(self.tags) & set(card.tags or []):
            return False
        if self.due_from or self.due_to:
            due = _due(card)
            if due is None:
                return False
            if self.due_from and due < self.due_from:
                return False
            if self.due_to and due > self.due_to:
                return False
        if self.text:
            haystack = f"{card.title}\n{card.content or ''}".lower()
            if self.text not in haystack:
                return False
        return True


def _due(card):
    """Parsed due date, or None when missing or malformed."""
    if not card.due_date:
        return None
    try:
        return _parse_date(card.due_date, "due_date")
    except CliError:
        return None


def _sort_key(field, column_order):
    def natural(card):
        return (column_order.get(card.column_id, len(column_order)), card.position)

    if field in (None, "position"):
        return natural
    if field == "title":
        return lambda c: (c.title.lower(), natural(c))
    if field == "priority":
        return lambda c: (config.PRIORITY_RANK.get(c.priority, len(config.PRIORITY_RANK)), natural(c))
    if field == "created":
        return lambda c: (c.created_at or "", natural(c))
    if field == "updated":
        return lambda c: (c.updated_at or "", natural(c))
    # due: cards without a due date sort last
    return lambda c: (c.due_date is None, c.due_date or "", natural(c))


def search_cards(board, query=None):
    """Filter, sort and page the board's cards. Returns a CardListResult."""
    query = query or CardQuery()
    column_order = board.column_order()
    found = [c for c in board.cards if query.matches(c)]
    found.sort(key=_sort_key(query.sort, column_order), reverse=query.descending)
    if query.sort == "due" and query.descending:
        # undated cards stay last in either direction
        found = [c for c in found if c.due_date] + [c for c in found if not c.due_date]
    total = len(found)
    end = None if query.limit is None else query.offset + query.limit
    page = found[query.offset:end]
    return {
        "cards": [c.to_dict() for c in page],
        "total_count": total,
        "has_more": end is not None and end < total,
        "limit": query.limit,
        "offset": query.offset,
    }


def board_stats(board, today=None):
    """Counts per column and priority, overdue cards, and completion rate."""
    today = today or date.today()
    names = {c.id: c.name for c in board.columns}
    by_column = {col.name: 0 for col in board.ordered_columns()}
    by_priority = Counter()
    overdue = 0
    completed = 0
    for card in board.cards:
        name = names.get(card.column_id, card.column_id)
        by_column[name] = by_column.get(name, 0) + 1
        by_priority[card.priority or "none"] += 1
        column = board.get_column(card.column_id)
        done = column is not None and column.is_done
        if done:
            completed += 1
        elif (_due(card) or today) < today:
            overdue += 1
    total = len(board.cards)
    return {
        "total_cards": total,
        "by_column": by_column,
        "by_priority": dict(by_priority),
        "overdue": overdue,
        "completion_rate": round(completed / total * 100, 1) if total else 0.0,
    }


def check_integrity(board):
    """Report structural problems; an empty issue list means the board is sound."""
    issues = []
    column_ids = [c.id for c in board.columns]
    for cid, count in Counter(column_ids).items():
        if count > 1:
            issues.append(f"Duplicate column id '{cid}'")
    known_columns = set(column_ids)

    card_ids = [c.id for c in board.cards]
    for cid, count in Counter(card_ids).items():
        if count > 1:
            issues.append(f"Duplicate card id '{cid}'")
    known_cards = set(card_ids)

    for card in board.cards:
        report = validate_card(card)
        for err in report["errors"]:
            issues.append(f"Card '{card.id}': {err}")
        if card.column_id not in known_columns:
            issues.append(f"Card '{card.id}' references missing column '{card.column_id}'")
        for dep in card.dependencies or []:
            if dep not in known_cards:
                issues.append(f"Card '{card.id}' depends on missing card '{dep}'")

    for column in board.columns:
        positions = sorted(c.position for c in board.cards if c.column_id == column.id)
        if positions != list(range(len(positions))):
            issues.append(
                f"Column '{column.name}' positions are not dense 0..{len(positions) - 1}: {positions}"
            )
    return {"valid": not issues, "issues": issues}
