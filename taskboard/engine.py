"""
Card mutation engine: create, update, move, delete, atomic batches, and
column maintenance.

Every public ``apply_*`` function works on a private deep copy of the board
and returns an Outcome carrying the new board. The caller's board is never
touched, so a failure leaves it exactly as it was.
"""

import uuid
from dataclasses import dataclass, field, replace

from taskboard import config
from taskboard._utils import next_timestamp
from taskboard.cards import create_card, infer_kind
from taskboard.exceptions import (
    BatchError,
    BoardReferenceError,
    CliError,
    ValidationError,
)
from taskboard.models import (
    CardFields,
    CardPatch,
    Column,
    CreateOp,
    DeleteOp,
    MoveOp,
    UpdateOp,
    parse_operation,
    parse_position,
)

REF_PREFIX = "$ref:"


@dataclass
class Outcome:
    """Result of a mutation: the new board plus a wire-ready summary."""

    board: object
    result: dict
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Lifecycle timestamps
# ---------------------------------------------------------------------------


def _enter_column(card, old_column, new_column, stamp):
    """Stamp or clear completed_at/blocked_at when a card changes column."""
    was_done = old_column is not None and old_column.is_done
    was_blocked = old_column is not None and old_column.is_blocked
    if new_column.is_done and not was_done:
        card.completed_at = stamp
    elif was_done and not new_column.is_done:
        card.completed_at = None
    if new_column.is_blocked and not was_blocked:
        card.blocked_at = stamp
    elif was_blocked and not new_column.is_blocked:
        card.blocked_at = None


# ---------------------------------------------------------------------------
# In-place primitives (operate on an already-copied board)
# ---------------------------------------------------------------------------


def _do_create(board, op):
    column = board.require_column(op.column_id) if op.column_id else board.first_column()
    if len(board.cards) >= config.MAX_CARDS:
        raise ValidationError(
            f"[ERROR] Board already holds the maximum of {config.MAX_CARDS} cards",
            ["card limit reached"],
        )
    siblings = board.cards_in_column(column.id)
    position = op.position
    if position is None or position == "last":
        index = len(siblings)
    elif position == "first":
        index = 0
    elif isinstance(position, int):
        index = min(position, len(siblings))
    else:
        raise ValidationError(
            f"[ERROR] position '{position}' needs an existing card", ["position"]
        )

    fields = op.fields
    title = fields.title or f"{config.DEFAULT_CARD_TITLE} {len(board.cards) + 1}"
    card = create_card(
        op.kind or infer_kind(fields), title, column.id, index, content=fields.content or ""
    )
    # Template defaults first, then whatever the caller supplied.
    for key in ("subtasks", "tags", "dependencies", "priority", "due_date"):
        value = getattr(fields, key)
        if value is not None:
            setattr(card, key, list(value) if isinstance(value, list) else value)
    card.collapsed = fields.collapsed
    while card.id in board.card_ids():
        card.id = str(uuid.uuid4())

    siblings.insert(index, card)
    board.cards.append(card)
    board.normalize_column(column.id, siblings)
    _enter_column(card, None, column, card.created_at)
    return {
        "type": "create",
        "cardId": card.id,
        "columnId": column.id,
        "position": card.position,
    }


def _do_update(board, op):
    card = board.require_card(op.card_id)
    changed = op.patch.apply(card)
    card.updated_at = next_timestamp(card.updated_at)
    return {"type": "update", "cardId": card.id, "changed": changed}


def _do_move(board, op):
    card = board.require_card(op.card_id)
    target = board.require_column(op.column_id)
    source = board.get_column(card.column_id)
    same_column = card.column_id == target.id
    position = op.position
    if position is None:
        raise ValidationError(
            "[ERROR] position is required for 'move' operation", ["position is required"]
        )

    if position in ("up", "down"):
        if not same_column:
            raise ValidationError(
                f"[ERROR] position '{position}' only applies within the card's own column",
                ["position"],
            )
        current = [c.id for c in board.cards_in_column(target.id)].index(card.id)

    remaining = [c for c in board.cards_in_column(target.id) if c.id != card.id]
    if position == "first":
        index = 0
    elif position == "last":
        index = len(remaining)
    elif position == "up":
        index = max(0, current - 1)
    elif position == "down":
        index = min(len(remaining), current + 1)
    else:
        index = min(position, len(remaining))

    if not same_column:
        old_column_id = card.column_id
        card.column_id = target.id
        board.normalize_column(old_column_id)
    remaining.insert(index, card)
    board.normalize_column(target.id, remaining)

    card.updated_at = next_timestamp(card.updated_at)
    if not same_column:
        _enter_column(card, source, target, card.updated_at)
    return {
        "type": "move",
        "cardId": card.id,
        "columnId": target.id,
        "position": card.position,
    }


def _do_delete(board, op):
    card = board.require_card(op.card_id)
    board.cards = [c for c in board.cards if c.id != card.id]
    board.normalize_column(card.column_id)
    stripped = []
    for other in board.cards:
        if other.dependencies and card.id in other.dependencies:
            other.dependencies = [d for d in other.dependencies if d != card.id]
            other.updated_at = next_timestamp(other.updated_at)
            stripped.append(other.id)
    result = {"type": "delete", "cardId": card.id, "columnId": card.column_id}
    if stripped:
        result["strippedFrom"] = stripped
    return result


_HANDLERS = {
    "create": _do_create,
    "update": _do_update,
    "move": _do_move,
    "delete": _do_delete,
}


def dependency_warnings(board, card_ids=None):
    """Warn about dependencies that point at cards not on the board."""
    known = board.card_ids()
    warnings = []
    for card in board.cards:
        if card_ids is not None and card.id not in card_ids:
            continue
        for dep in card.dependencies or []:
            if dep not in known:
                warnings.append(f"Card '{card.id}' depends on unknown card '{dep}'")
    return warnings


def _touched(result):
    return {result["cardId"]} if result.get("type") in ("create", "update") else set()


# ---------------------------------------------------------------------------
# Public single-operation API
# ---------------------------------------------------------------------------


def apply_operation(board, op):
    """Apply one operation descriptor (or wire dict) to a copy of *board*."""
    op = parse_operation(op)
    new_board = board.copy()
    result = _HANDLERS[op.type](new_board, op)
    return Outcome(new_board, result, dependency_warnings(new_board, _touched(result)))


def apply_create(board, *, column_id=None, fields=None, position=None, kind=None):
    if not isinstance(fields, CardFields):
        fields = CardFields.from_value(fields)
    op = CreateOp(
        fields=fields,
        column_id=column_id or fields.column_id,
        position=parse_position(position if position is not None else fields.position, allow_relative=False),
        kind=kind,
    )
    return apply_operation(board, op)


def apply_update(board, card_id, patch):
    if not isinstance(patch, CardPatch):
        patch = CardPatch.from_value(patch)
    return apply_operation(board, UpdateOp(card_id=card_id, patch=patch))


def apply_move(board, card_id, column_id, position):
    return apply_operation(
        board, MoveOp(card_id=card_id, column_id=column_id, position=parse_position(position))
    )


def apply_delete(board, card_id):
    return apply_operation(board, DeleteOp(card_id=card_id))


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


def _resolve_ref(value, references):
    if isinstance(value, str) and value.startswith(REF_PREFIX):
        name = value[len(REF_PREFIX):]
        if name not in references:
            raise BoardReferenceError(
                "reference",
                name,
                f"[ERROR] Reference '{name}' was not created earlier in this batch",
            )
        return references[name]
    return value


def _resolve_refs(op, references):
    """Swap a $ref:<name> cardId for the id created earlier in the batch.

    Dependencies are left alone here; they may name cards created later and
    are resolved by _resolve_dependency_refs once every operation has run.
    """
    if isinstance(op, CreateOp):
        return op
    return replace(op, card_id=_resolve_ref(op.card_id, references))


def _dependency_refs(op):
    """True when *op* writes dependencies that contain $ref: placeholders."""
    if isinstance(op, CreateOp):
        deps = op.fields.dependencies
    elif isinstance(op, UpdateOp):
        deps = op.patch.fields.get("dependencies")
    else:
        return False
    return any(isinstance(d, str) and d.startswith(REF_PREFIX) for d in deps or [])


def _resolve_dependency_refs(board, pending, references, deleted):
    """Replace dependency placeholders on the cards in *pending*.

    *pending* maps card id to the (index, type) of the operation that last
    wrote placeholders into it, so an undefined name is reported there.
    Names resolving to cards deleted in the batch are dropped.
    """
    for card in board.cards:
        if card.id not in pending or not card.dependencies:
            continue
        index, op_type = pending[card.id]
        resolved = []
        for dep in card.dependencies:
            if isinstance(dep, str) and dep.startswith(REF_PREFIX):
                name = dep[len(REF_PREFIX):]
                if name not in references:
                    cause = BoardReferenceError(
                        "reference",
                        name,
                        f"[ERROR] Reference '{name}' is not created by any operation in this batch",
                    )
                    raise BatchError(index + 1, op_type, cause) from cause
                dep = references[name]
            if dep not in deleted and dep not in resolved:
                resolved.append(dep)
        card.dependencies = resolved


def apply_batch(board, operations):
    """Apply *operations* in order, all or nothing.

    Raises BatchError naming the first failing operation; the input board
    is untouched in that case.
    """
    if not isinstance(operations, list) or not operations:
        raise ValidationError("[ERROR] operations must be a non-empty list", ["operations"])
    if len(operations) > config.MAX_BATCH_OPERATIONS:
        raise ValidationError(
            f"[ERROR] Too many operations ({len(operations)}). "
            f"Maximum is {config.MAX_BATCH_OPERATIONS} per batch.",
            ["operations"],
        )

    working = board.copy()
    references = {}
    results = []
    touched = set()
    pending = {}
    deleted = set()
    for index, raw in enumerate(operations):
        op_type = raw.get("type", "?") if isinstance(raw, dict) else getattr(raw, "type", "?")
        try:
            op = _resolve_refs(parse_operation(raw), references)
            if isinstance(op, CreateOp) and op.reference in references:
                raise ValidationError(
                    f"[ERROR] Reference '{op.reference}' is already used in this batch",
                    ["reference"],
                )
            result = _HANDLERS[op.type](working, op)
        except CliError as e:
            raise BatchError(index + 1, op_type, e) from e
        if isinstance(op, CreateOp) and op.reference:
            references[op.reference] = result["cardId"]
            result["reference"] = op.reference
        if _dependency_refs(op):
            pending[result["cardId"]] = (index, op.type)
        elif op.type == "delete":
            deleted.add(result["cardId"])
            pending.pop(result["cardId"], None)
        touched |= _touched(result)
        results.append(result)

    _resolve_dependency_refs(working, pending, references, deleted)
    batch_result = {"results": results}
    if references:
        batch_result["referenceMap"] = references
    return Outcome(working, batch_result, dependency_warnings(working, touched))


# ---------------------------------------------------------------------------
# Columns and next steps
# ---------------------------------------------------------------------------


def _reindex_columns(board, ordered):
    board.columns = list(ordered)
    if any(c.position is not None for c in board.columns):
        for i, col in enumerate(board.columns):
            col.position = i


def _check_column_name(name, board, exclude_id=None):
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("[ERROR] Column name must be a non-empty string", ["name"])
    name = name.strip()
    for col in board.columns:
        if col.id != exclude_id and col.name.strip().lower() == name.lower():
            raise ValidationError(f"[ERROR] Column '{name}' already exists", ["name"])
    return name


def add_column(board, name, position=None):
    new_board = board.copy()
    name = _check_column_name(name, new_board)
    if len(new_board.columns) >= config.MAX_COLUMNS:
        raise ValidationError(
            f"[ERROR] Board already has the maximum of {config.MAX_COLUMNS} columns",
            ["column limit reached"],
        )
    ordered = new_board.ordered_columns()
    position = parse_position(position, allow_relative=False)
    if position is None or position == "last":
        index = len(ordered)
    elif position == "first":
        index = 0
    else:
        index = min(position, len(ordered))
    column = Column(id=str(uuid.uuid4()), name=name)
    ordered.insert(index, column)
    _reindex_columns(new_board, ordered)
    return Outcome(new_board, {"type": "add_column", "columnId": column.id, "name": name, "index": index})


def rename_column(board, column_id, name):
    new_board = board.copy()
    column = new_board.require_column(column_id)
    column.name = _check_column_name(name, new_board, exclude_id=column_id)
    return Outcome(new_board, {"type": "rename_column", "columnId": column_id, "name": column.name})


def delete_column(board, column_id):
    new_board = board.copy()
    new_board.require_column(column_id)
    count = len(new_board.cards_in_column(column_id))
    if count:
        raise ValidationError(
            f"[ERROR] Column '{column_id}' still holds {count} card(s); move or delete them first",
            ["column not empty"],
        )
    if len(new_board.columns) == 1:
        raise ValidationError("[ERROR] Cannot delete the last column", ["last column"])
    _reindex_columns(new_board, [c for c in new_board.ordered_columns() if c.id != column_id])
    return Outcome(new_board, {"type": "delete_column", "columnId": column_id})


def reorder_columns(board, column_ids):
    new_board = board.copy()
    if not isinstance(column_ids, list):
        raise ValidationError("[ERROR] column order must be a list of column ids", ["columnIds"])
    existing = [c.id for c in new_board.ordered_columns()]
    if sorted(column_ids) != sorted(existing):
        raise ValidationError(
            "[ERROR] Column order must list every existing column id exactly once",
            ["columnIds"],
        )
    by_id = {c.id: c for c in new_board.columns}
    _reindex_columns(new_board, [by_id[cid] for cid in column_ids])
    return Outcome(new_board, {"type": "reorder_columns", "columnIds": list(column_ids)})


def set_next_steps(board, steps):
    new_board = board.copy()
    if not isinstance(steps, list) or not all(isinstance(s, str) for s in steps):
        raise ValidationError("[ERROR] next steps must be a list of strings", ["next-steps"])
    new_board.next_steps = [s.strip() for s in steps if s.strip()]
    return Outcome(new_board, {"type": "set_next_steps", "count": len(new_board.next_steps)})
