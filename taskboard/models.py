"""
Typed models for the board document, card patches, and mutation operations.

A board is loaded wholesale from its JSON document, mutated in memory, and
written back wholesale. Field names on the wire are kept exactly as stored
(``columnId``, ``projectName``, ``next-steps``...); unknown keys are carried
through untouched in ``extra`` so documents written by the UI survive a
round trip.
"""

import copy
import json
from dataclasses import dataclass, field

from taskboard import config
from taskboard._utils import _parse_date
from taskboard.exceptions import BoardReferenceError, CliError, ValidationError

# ---------------------------------------------------------------------------
# Card
# ---------------------------------------------------------------------------

_CARD_KEYS = (
    "id",
    "title",
    "content",
    "columnId",
    "position",
    "collapsed",
    "subtasks",
    "tags",
    "dependencies",
    "priority",
    "due_date",
    "created_at",
    "updated_at",
    "completed_at",
    "blocked_at",
)


@dataclass
class Card:
    """One work item. ``position`` is its index within its column."""

    id: str
    title: str
    column_id: str
    position: int = 0
    content: str | None = None
    collapsed: bool = False
    subtasks: list[str] | None = None
    tags: list[str] | None = None
    dependencies: list[str] | None = None
    priority: str | None = None
    due_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    completed_at: str | None = None
    blocked_at: str | None = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError(
                f"[ERROR] Invalid card: expected object, got {type(data).__name__}.",
                ["card must be an object"],
            )
        errors = []
        for key in ("id", "title", "columnId"):
            if not isinstance(data.get(key), str):
                errors.append(f"{key} must be a string")
        if errors:
            raise ValidationError(
                f"[ERROR] Invalid card {data.get('id')!r}: {'; '.join(errors)}", errors
            )
        position = data.get("position", 0)
        if isinstance(position, bool) or not isinstance(position, (int, float)):
            position = 0
        return cls(
            id=data["id"],
            title=data["title"],
            column_id=data["columnId"],
            position=int(position),
            content=data.get("content"),
            collapsed=bool(data.get("collapsed", False)),
            subtasks=_copy_list(data.get("subtasks")),
            tags=_copy_list(data.get("tags")),
            dependencies=_copy_list(data.get("dependencies")),
            priority=data.get("priority") or None,
            due_date=data.get("due_date") or None,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            completed_at=data.get("completed_at") or None,
            blocked_at=data.get("blocked_at") or None,
            extra={k: copy.deepcopy(v) for k, v in data.items() if k not in _CARD_KEYS},
        )

    def to_dict(self):
        out = {"id": self.id, "title": self.title}
        if self.content is not None:
            out["content"] = self.content
        out["columnId"] = self.column_id
        out["position"] = self.position
        out["collapsed"] = self.collapsed
        for key in ("subtasks", "tags", "dependencies"):
            value = getattr(self, key)
            if value is not None:
                out[key] = list(value)
        for key in ("priority", "due_date", "created_at", "updated_at", "completed_at", "blocked_at"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        out.update(copy.deepcopy(self.extra))
        return out

    def subtask_progress(self):
        """Return (done, total) for subtasks; done ones carry the completed prefix."""
        subtasks = self.subtasks or []
        done = sum(1 for s in subtasks if s.startswith(config.COMPLETED_PREFIX))
        return done, len(subtasks)


def _copy_list(value):
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


# ---------------------------------------------------------------------------
# Column and Board
# ---------------------------------------------------------------------------


@dataclass
class Column:
    id: str
    name: str
    position: int | None = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            raise ValidationError("[ERROR] Invalid column: id must be a string", ["column id"])
        position = data.get("position")
        if isinstance(position, bool) or not isinstance(position, (int, float)):
            position = None
        return cls(
            id=data["id"],
            name=str(data.get("name", "")),
            position=None if position is None else int(position),
            extra={
                k: copy.deepcopy(v)
                for k, v in data.items()
                if k not in ("id", "name", "position")
            },
        )

    def to_dict(self):
        out = {"id": self.id, "name": self.name}
        if self.position is not None:
            out["position"] = self.position
        out.update(copy.deepcopy(self.extra))
        return out

    @property
    def is_done(self):
        return self.name.strip().lower() in config.DONE_COLUMN_NAMES

    @property
    def is_blocked(self):
        return self.name.strip().lower() in config.BLOCKED_COLUMN_NAMES


_BOARD_KEYS = ("projectName", "id", "columns", "cards", "next-steps", "last_updated")


@dataclass
class Board:
    """In-memory board document: ordered columns plus a flat card list."""

    id: str
    project_name: str
    columns: list[Column] = field(default_factory=list)
    cards: list[Card] = field(default_factory=list)
    next_steps: list[str] | None = None
    last_updated: str | None = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data, board_id=None):
        if not isinstance(data, dict):
            raise ValidationError(
                f"[ERROR] Invalid board document: expected object, got {type(data).__name__}.",
                ["board must be an object"],
            )
        columns = data.get("columns", [])
        cards = data.get("cards", [])
        if not isinstance(columns, list):
            raise ValidationError("[ERROR] Invalid board document: columns must be a list", ["columns"])
        if not isinstance(cards, list):
            raise ValidationError("[ERROR] Invalid board document: cards must be a list", ["cards"])
        next_steps = data.get("next-steps")
        return cls(
            id=str(data.get("id") or board_id or ""),
            project_name=str(data.get("projectName", "")),
            columns=[Column.from_dict(c) for c in columns],
            cards=[Card.from_dict(c) for c in cards],
            next_steps=list(next_steps) if isinstance(next_steps, list) else None,
            last_updated=data.get("last_updated"),
            extra={k: copy.deepcopy(v) for k, v in data.items() if k not in _BOARD_KEYS},
        )

    def to_dict(self):
        out = {
            "projectName": self.project_name,
            "id": self.id,
            "columns": [c.to_dict() for c in self.columns],
            "cards": [c.to_dict() for c in self.cards],
        }
        if self.next_steps is not None:
            out["next-steps"] = list(self.next_steps)
        if self.last_updated is not None:
            out["last_updated"] = self.last_updated
        out.update(copy.deepcopy(self.extra))
        return out

    def copy(self):
        return copy.deepcopy(self)

    # --- columns ---

    def ordered_columns(self):
        """Columns in left-to-right order (explicit position first, then sequence)."""
        indexed = list(enumerate(self.columns))
        indexed.sort(key=lambda item: (item[1].position if item[1].position is not None else item[0], item[0]))
        return [col for _, col in indexed]

    def column_order(self):
        """Map column id -> display index."""
        return {col.id: i for i, col in enumerate(self.ordered_columns())}

    def get_column(self, column_id):
        for col in self.columns:
            if col.id == column_id:
                return col
        return None

    def require_column(self, column_id):
        col = self.get_column(column_id)
        if col is None:
            raise BoardReferenceError("column", column_id)
        return col

    def first_column(self):
        ordered = self.ordered_columns()
        if not ordered:
            raise ValidationError("[ERROR] Board has no columns", ["board has no columns"])
        return ordered[0]

    # --- cards ---

    def get_card(self, card_id):
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def require_card(self, card_id):
        card = self.get_card(card_id)
        if card is None:
            raise BoardReferenceError("card", card_id)
        return card

    def card_ids(self):
        return {c.id for c in self.cards}

    def cards_in_column(self, column_id):
        """Cards of a column in their current relative order."""
        indexed = [(i, c) for i, c in enumerate(self.cards) if c.column_id == column_id]
        indexed.sort(key=lambda item: (item[1].position, item[0]))
        return [c for _, c in indexed]

    def normalize_column(self, column_id, ordered=None):
        """Reassign dense positions 0..n-1 to a column's cards.

        *ordered* overrides the walk order (used after an insert).
        """
        cards = ordered if ordered is not None else self.cards_in_column(column_id)
        for i, card in enumerate(cards):
            card.position = i
        return cards


# ---------------------------------------------------------------------------
# Card payloads
# ---------------------------------------------------------------------------

MUTABLE_CARD_FIELDS = (
    "title",
    "content",
    "collapsed",
    "subtasks",
    "tags",
    "dependencies",
    "priority",
    "due_date",
)
_IMMUTABLE_FIELDS = {"id", "created_at"}
_MOVE_FIELDS = {"columnId", "position"}
_MANAGED_FIELDS = {"updated_at", "completed_at", "blocked_at"}
_CLEARABLE_FIELDS = {"content", "priority", "due_date", "subtasks", "tags", "dependencies"}


def parse_payload(value, context):
    """Accept a dict or a JSON object string (tool-call arguments arrive as either)."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValidationError(
                f"[ERROR] Invalid JSON in {context}: {e.msg}", [f"{context} is not valid JSON"]
            ) from e
    if not isinstance(value, dict):
        raise ValidationError(
            f"[ERROR] Invalid {context}: expected object, got {type(value).__name__}.",
            [f"{context} must be an object"],
        )
    return value


def _check_field(name, value, errors):
    """Type-check one mutable card field value, appending violations to *errors*."""
    if value is None:
        if name not in _CLEARABLE_FIELDS:
            errors.append(f"{name} cannot be null")
        return
    if name == "title":
        if not isinstance(value, str) or not value.strip():
            errors.append("title must be a non-empty string")
    elif name == "content":
        if not isinstance(value, str):
            errors.append("content must be a string")
    elif name == "collapsed":
        if not isinstance(value, bool):
            errors.append("collapsed must be a boolean")
    elif name in ("subtasks", "tags", "dependencies"):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            errors.append(f"{name} must be a list of strings")
    elif name == "priority":
        if value not in config.VALID_PRIORITIES:
            errors.append(f"priority must be one of {', '.join(sorted(config.VALID_PRIORITIES))}")
    elif name == "due_date":
        if not isinstance(value, str):
            errors.append("due_date must be a YYYY-MM-DD string")
        else:
            try:
                _parse_date(value, "due_date")
            except CliError:
                errors.append("due_date must be a YYYY-MM-DD string")


def _dedupe(values):
    seen = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


@dataclass(frozen=True)
class CardPatch:
    """Partial update: only the provided mutable fields change."""

    fields: dict

    @classmethod
    def from_value(cls, value, context="cardData"):
        data = parse_payload(value, context)
        errors = []
        for key in data:
            if key in _IMMUTABLE_FIELDS:
                errors.append(f"{key} is immutable")
            elif key in _MOVE_FIELDS:
                errors.append(f"{key} cannot be changed by update; use move")
            elif key in _MANAGED_FIELDS:
                errors.append(f"{key} is managed by the board")
            elif key not in MUTABLE_CARD_FIELDS:
                errors.append(f"unknown field: {key}")
            else:
                _check_field(key, data[key], errors)
        if not data:
            errors.append("no fields to update")
        if errors:
            raise ValidationError(f"[ERROR] Invalid {context}: {'; '.join(errors)}", errors)
        return cls(fields=dict(data))

    def apply(self, card):
        """Overlay the patch onto *card* in place. Returns the names that changed."""
        changed = []
        for key in MUTABLE_CARD_FIELDS:
            if key not in self.fields:
                continue
            value = self.fields[key]
            if key in ("subtasks", "tags", "dependencies") and value is not None:
                value = list(value)
                if key != "subtasks":
                    value = _dedupe(value)
            if key == "title":
                value = value.strip()
            if getattr(card, key) != value:
                setattr(card, key, value)
                changed.append(key)
        return changed


@dataclass(frozen=True)
class CardFields:
    """Validated field values for a new card (everything but id/timestamps)."""

    title: str | None = None
    content: str | None = None
    collapsed: bool = False
    subtasks: list[str] | None = None
    tags: list[str] | None = None
    dependencies: list[str] | None = None
    priority: str | None = None
    due_date: str | None = None
    column_id: str | None = None
    position: object = None

    @classmethod
    def from_value(cls, value, context="cardData"):
        if value is None:
            return cls()
        data = parse_payload(value, context)
        errors = []
        kwargs = {}
        for key, val in data.items():
            if key in ("id", "created_at", "updated_at", "completed_at", "blocked_at"):
                # Server-generated on create; caller-supplied values are dropped.
                continue
            if key == "columnId":
                if not isinstance(val, str):
                    errors.append("columnId must be a string")
                kwargs["column_id"] = val
            elif key == "position":
                kwargs["position"] = val
            elif key in MUTABLE_CARD_FIELDS:
                if not (key == "title" and val is None):
                    _check_field(key, val, errors)
                kwargs[key] = val
            else:
                errors.append(f"unknown field: {key}")
        if errors:
            raise ValidationError(f"[ERROR] Invalid {context}: {'; '.join(errors)}", errors)
        for key in ("tags", "dependencies"):
            if kwargs.get(key) is not None:
                kwargs[key] = _dedupe(kwargs[key])
        if kwargs.get("title") is not None:
            kwargs["title"] = kwargs["title"].strip()
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def parse_position(value, *, allow_relative=True):
    """Normalize a position: non-negative int or one of first/last/up/down."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("[ERROR] position must be an integer or keyword", ["position"])
    if isinstance(value, str):
        text = value.strip().lower()
        if text.lstrip("-").isdigit():
            value = int(text)
        elif text in config.POSITION_KEYWORDS:
            if text in ("up", "down") and not allow_relative:
                raise ValidationError(
                    f"[ERROR] position '{text}' needs an existing card", ["position"]
                )
            return text
        else:
            valid = ", ".join(sorted(config.POSITION_KEYWORDS))
            raise ValidationError(
                f"[ERROR] Invalid position '{value}'. Use an index or one of: {valid}",
                ["position"],
            )
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError("[ERROR] position must be an integer or keyword", ["position"])
    if value < 0:
        raise ValidationError("[ERROR] position must be non-negative", ["position"])
    return value


@dataclass(frozen=True)
class CreateOp:
    fields: CardFields = field(default_factory=CardFields)
    column_id: str | None = None
    position: object = None
    kind: str | None = None
    reference: str | None = None

    type = "create"


@dataclass(frozen=True)
class UpdateOp:
    card_id: str
    patch: CardPatch

    type = "update"


@dataclass(frozen=True)
class MoveOp:
    card_id: str
    column_id: str
    position: object

    type = "move"


@dataclass(frozen=True)
class DeleteOp:
    card_id: str

    type = "delete"


OPERATION_TYPES = ("create", "update", "move", "delete")


def _require_str(data, key, op_type):
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationError(
            f"[ERROR] {key} is required for '{op_type}' operation", [f"{key} is required"]
        )
    return value


def parse_operation(data):
    """Build an operation descriptor from a wire dict ({"type": ..., ...})."""
    if isinstance(data, (CreateOp, UpdateOp, MoveOp, DeleteOp)):
        return data
    data = parse_payload(data, "operation")
    op_type = data.get("type")
    if op_type not in OPERATION_TYPES:
        raise ValidationError(
            f"[ERROR] Unknown operation type {op_type!r}. Valid: {', '.join(OPERATION_TYPES)}",
            ["type"],
        )
    if op_type == "create":
        fields = CardFields.from_value(data.get("cardData"))
        kind = data.get("kind")
        if kind is not None and kind not in config.VALID_CARD_KINDS:
            raise ValidationError(
                f"[ERROR] Invalid card kind '{kind}'. "
                f"Valid: {', '.join(sorted(config.VALID_CARD_KINDS))}",
                ["kind"],
            )
        reference = data.get("reference")
        if reference is not None and (not isinstance(reference, str) or not reference):
            raise ValidationError("[ERROR] reference must be a non-empty string", ["reference"])
        column_id = data.get("columnId") or fields.column_id
        position = data.get("position")
        if position is None:
            position = fields.position
        return CreateOp(
            fields=fields,
            column_id=column_id,
            position=parse_position(position, allow_relative=False),
            kind=kind,
            reference=reference,
        )
    card_id = _require_str(data, "cardId", op_type)
    if op_type == "update":
        if data.get("cardData") is None:
            raise ValidationError(
                "[ERROR] cardData is required for 'update' operation", ["cardData is required"]
            )
        return UpdateOp(card_id=card_id, patch=CardPatch.from_value(data["cardData"]))
    if op_type == "move":
        column_id = _require_str(data, "columnId", op_type)
        if data.get("position") is None:
            raise ValidationError(
                "[ERROR] position is required for 'move' operation", ["position is required"]
            )
        return MoveOp(card_id=card_id, column_id=column_id, position=parse_position(data["position"]))
    return DeleteOp(card_id=card_id)
