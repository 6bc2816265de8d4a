"""
Card factory and validator.

Three templates of increasing richness (basic, task, feature) produce a
fully populated Card with a fresh id and matching timestamps. The validator
checks a raw card record and reports every violation it finds.
"""

import uuid

from taskboard import config
from taskboard._utils import _parse_date, _parse_iso_timestamp, now_iso
from taskboard.exceptions import CliError, ValidationError
from taskboard.models import Card


def new_card_id():
    return str(uuid.uuid4())


def _base(title, column_id, position, content):
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("[ERROR] Card title must be a non-empty string", ["title"])
    if not isinstance(column_id, str) or not column_id:
        raise ValidationError("[ERROR] columnId is required", ["columnId"])
    stamp = now_iso()
    return Card(
        id=new_card_id(),
        title=title.strip(),
        column_id=column_id,
        position=position,
        content=content or "",
        collapsed=False,
        created_at=stamp,
        updated_at=stamp,
    )


def create_basic_card(title, column_id, position=0, content=""):
    """Minimal card: title, content, column and position."""
    return _base(title, column_id, position, content)


def create_task_card(title, column_id, position=0, content="", subtasks=None, priority="medium"):
    """Basic card plus subtasks and a priority (medium unless given)."""
    card = _base(title, column_id, position, content)
    card.subtasks = list(subtasks or [])
    card.priority = priority or "medium"
    return card


def create_feature_card(
    title,
    column_id,
    position=0,
    content="",
    subtasks=None,
    tags=None,
    dependencies=None,
    priority="medium",
    due_date=None,
):
    """Task card plus tags, dependencies and an optional due date."""
    card = create_task_card(title, column_id, position, content, subtasks, priority)
    card.tags = list(tags or [])
    card.dependencies = list(dependencies or [])
    card.due_date = due_date
    return card


_FACTORIES = {
    "basic": create_basic_card,
    "task": create_task_card,
    "feature": create_feature_card,
}


def infer_kind(fields):
    """Pick the smallest template that can hold the given CardFields."""
    if fields.tags or fields.dependencies or fields.due_date:
        return "feature"
    if fields.subtasks is not None or fields.priority is not None:
        return "task"
    return "basic"


def create_card(kind, title, column_id, position=0, **fields):
    """Dispatch to the factory for *kind*."""
    factory = _FACTORIES.get(kind)
    if factory is None:
        raise ValidationError(
            f"[ERROR] Invalid card kind '{kind}'. Valid: {', '.join(sorted(_FACTORIES))}",
            ["kind"],
        )
    return factory(title, column_id, position, **fields)


def validate_card(card):
    """Check a card record (dict or Card). Returns {"valid": bool, "errors": [...]}."""
    if isinstance(card, Card):
        card = card.to_dict()
    if not isinstance(card, dict):
        return {"valid": False, "errors": ["card must be an object"]}

    errors = []
    for key in ("id", "title", "columnId"):
        value = card.get(key)
        if not isinstance(value, str) or not value:
            errors.append(f"{key} must be a non-empty string")

    position = card.get("position")
    if isinstance(position, bool) or not isinstance(position, int):
        errors.append("position must be an integer")
    elif position < 0:
        errors.append("position must be non-negative")

    if "content" in card and not isinstance(card["content"], str):
        errors.append("content must be a string")
    if "collapsed" in card and not isinstance(card["collapsed"], bool):
        errors.append("collapsed must be a boolean")
    for key in ("subtasks", "tags", "dependencies"):
        if key in card:
            value = card[key]
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                errors.append(f"{key} must be a list of strings")
    if card.get("priority") is not None and card["priority"] not in config.VALID_PRIORITIES:
        errors.append(
            f"priority must be one of {', '.join(sorted(config.VALID_PRIORITIES))}"
        )
    if card.get("due_date") is not None:
        try:
            _parse_date(card["due_date"], "due_date")
        except CliError:
            errors.append("due_date must be a YYYY-MM-DD string")

    created = _parse_iso_timestamp(card.get("created_at"))
    updated = _parse_iso_timestamp(card.get("updated_at"))
    if created is None:
        errors.append("created_at must be an ISO timestamp")
    if updated is None:
        errors.append("updated_at must be an ISO timestamp")
    if created is not None and updated is not None and updated < created:
        errors.append("updated_at is earlier than created_at")
    for key in ("completed_at", "blocked_at"):
        if card.get(key) is not None and _parse_iso_timestamp(card[key]) is None:
            errors.append(f"{key} must be an ISO timestamp")

    return {"valid": not errors, "errors": errors}
