"""Tests for cards.py: card factory templates and the validator."""

import pytest

from taskboard.cards import (
    create_basic_card,
    create_card,
    create_feature_card,
    create_task_card,
    infer_kind,
    validate_card,
)
from taskboard.exceptions import ValidationError
from taskboard.models import CardFields


class TestFactory:
    def test_basic_card_fields(self, clock):
        card = create_basic_card("Write docs", "todo", 2, content="Body")
        assert card.title == "Write docs"
        assert card.column_id == "todo"
        assert card.position == 2
        assert card.content == "Body"
        assert card.collapsed is False
        assert card.created_at == card.updated_at == "2025-03-01T12:00:00.000Z"
        assert card.subtasks is None
        assert card.priority is None

    def test_ids_are_unique(self):
        ids = {create_basic_card("x", "todo").id for _ in range(50)}
        assert len(ids) == 50

    def test_task_card_defaults(self):
        card = create_task_card("Task", "todo")
        assert card.subtasks == []
        assert card.priority == "medium"

    def test_feature_card_fields(self):
        card = create_feature_card(
            "Feature", "todo", tags=["ui"], dependencies=["x"], priority="high", due_date="2025-05-01"
        )
        assert card.tags == ["ui"]
        assert card.dependencies == ["x"]
        assert card.priority == "high"
        assert card.due_date == "2025-05-01"
        assert card.subtasks == []

    def test_title_is_required(self):
        with pytest.raises(ValidationError):
            create_basic_card("   ", "todo")

    def test_column_is_required(self):
        with pytest.raises(ValidationError):
            create_basic_card("ok", "")

    def test_create_card_dispatch(self):
        assert create_card("task", "t", "todo").priority == "medium"
        assert create_card("basic", "t", "todo").priority is None

    def test_create_card_unknown_kind(self):
        with pytest.raises(ValidationError, match="Invalid card kind"):
            create_card("epic", "t", "todo")

    def test_factory_output_validates(self):
        for kind in ("basic", "task", "feature"):
            assert validate_card(create_card(kind, "t", "todo")) == {"valid": True, "errors": []}


class TestInferKind:
    def test_plain_fields_are_basic(self):
        assert infer_kind(CardFields(title="x")) == "basic"

    def test_priority_makes_task(self):
        assert infer_kind(CardFields(priority="low")) == "task"

    def test_tags_make_feature(self):
        assert infer_kind(CardFields(tags=["a"])) == "feature"


class TestValidator:
    def _card(self, **overrides):
        card = {
            "id": "c1",
            "title": "T",
            "columnId": "todo",
            "position": 0,
            "collapsed": False,
            "created_at": "2025-01-01T00:00:00.000Z",
            "updated_at": "2025-01-01T00:00:00.000Z",
        }
        card.update(overrides)
        return card

    def test_valid_card(self):
        assert validate_card(self._card()) == {"valid": True, "errors": []}

    def test_reports_every_violation(self):
        report = validate_card(self._card(title="", position=-1, priority="urgent"))
        assert report["valid"] is False
        assert report["errors"] == [
            "title must be a non-empty string",
            "position must be non-negative",
            "priority must be one of high, low, medium",
        ]

    def test_position_must_be_int(self):
        assert "position must be an integer" in validate_card(self._card(position="1"))["errors"]
        assert "position must be an integer" in validate_card(self._card(position=True))["errors"]

    def test_lists_must_hold_strings(self):
        report = validate_card(self._card(tags=["a", 3], subtasks="x"))
        assert "tags must be a list of strings" in report["errors"]
        assert "subtasks must be a list of strings" in report["errors"]

    def test_bad_due_date(self):
        assert "due_date must be a YYYY-MM-DD string" in validate_card(self._card(due_date="soon"))["errors"]

    def test_updated_before_created(self):
        report = validate_card(self._card(updated_at="2024-12-31T00:00:00.000Z"))
        assert report["errors"] == ["updated_at is earlier than created_at"]

    def test_missing_timestamps(self):
        card = self._card()
        del card["created_at"]
        assert "created_at must be an ISO timestamp" in validate_card(card)["errors"]

    def test_non_dict(self):
        assert validate_card(["not", "a", "card"]) == {"valid": False, "errors": ["card must be an object"]}
