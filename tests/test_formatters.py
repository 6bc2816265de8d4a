"""Tests for formatters: board views, tables, and output dispatchers."""

import json

import pytest
from conftest import make_card

from taskboard import config
from taskboard.exceptions import BoardReferenceError, CliError
from taskboard.formatters import (
    _sanitize_str,
    _table,
    _trunc,
    board_cards_only,
    board_compact,
    board_summary,
    format_batch_table,
    format_board,
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

# ---------------------------------------------------------------------------
# _trunc / _sanitize_str
# ---------------------------------------------------------------------------


class TestTrunc:
    def test_short_string_unchanged(self):
        assert _trunc("hello", 10) == "hello"

    def test_truncates_with_ellipsis(self):
        result = _trunc("hello world", 6)
        assert result == "hello…"
        assert len(result) == 6

    def test_none(self):
        assert _trunc(None, 10) == ""


class TestSanitizeStr:
    def test_strips_ansi_and_controls(self):
        assert _sanitize_str("\x1b[31mred\x1b[0m\x07!") == "red!"

    def test_keeps_newlines_and_tabs(self):
        assert _sanitize_str("a\n\tb") == "a\n\tb"


# ---------------------------------------------------------------------------
# _table
# ---------------------------------------------------------------------------


class TestTable:
    def test_basic_table(self):
        result = _table([("Name", 10), ("Value", None)], [("Alice", "100"), ("Bob", None)])
        lines = result.split("\n")
        assert lines[0] == "Name       Value"
        assert lines[1].startswith("---")
        assert lines[2] == "Alice      100"
        assert lines[3] == "Bob        -"

    def test_auto_width(self):
        result = _table([("A", None), ("B", None)], [("longer", 1)])
        assert result.split("\n")[0] == "A      B"

    def test_footer(self):
        result = _table([("A", 5)], [("1",)], footer="Total: 1")
        assert result.endswith("\n\nTotal: 1")


# ---------------------------------------------------------------------------
# Board views
# ---------------------------------------------------------------------------


class TestBoardViews:
    def test_summary(self, board):
        board.cards.append(make_card("e", "done", 0))
        summary = board_summary(board)
        assert summary["projectName"] == "Demo"
        assert [c["cardCount"] for c in summary["columns"]] == [3, 1, 0, 1]
        assert summary["stats"] == {"totalCards": 5, "completedCards": 1, "progressPercentage": 20}

    def test_summary_empty_board(self, board):
        board.cards = []
        assert board_summary(board)["stats"]["progressPercentage"] == 0

    def test_compact(self, board):
        board.get_card("a").due_date = "2025-04-01"
        compact = board_compact(board)
        assert compact["name"] == "Demo"
        assert compact["cols"][0] == {"id": "todo", "n": "To Do"}
        first = compact["cards"][0]
        assert first["id"] == "a"
        assert first["t"] == "Card a"
        assert first["col"] == "todo"
        assert first["due"] == "2025-04-01"
        assert "coll" not in first
        assert compact["cards"][3]["pri"] == "high"

    def test_cards_only_in_board_order(self, board):
        board.get_card("a").position = 9
        ids = [c["id"] for c in board_cards_only(board)["cards"]]
        assert ids == ["b", "c", "a", "d"]

    def test_cards_only_single_column(self, board):
        assert [c["id"] for c in board_cards_only(board, "doing")["cards"]] == ["d"]

    def test_cards_only_unknown_column(self, board):
        with pytest.raises(BoardReferenceError):
            board_cards_only(board, "nope")

    def test_format_dispatch(self, board):
        assert format_board(board) == board.to_dict()
        assert "stats" in format_board(board, "summary")
        with pytest.raises(CliError, match="Invalid board format"):
            format_board(board, "yaml")


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


class TestTables:
    def test_boards_table(self):
        text = format_boards_table([{"id": "demo", "name": "Demo", "last_updated": ""}])
        assert "demo" in text
        assert "Total: 1 boards" in text

    def test_board_table(self, board):
        board.next_steps = ["ship"]
        text = format_board_table(board.to_dict())
        assert text.startswith("Demo (demo)")
        assert "To Do (3)  [todo]" in text
        assert "Blocked (0)  [blocked]" in text
        assert "[high  ] Card d  d" in text
        assert text.endswith("  - ship")

    def test_summary_table(self, board):
        text = format_summary_table(board_summary(board))
        assert "Progress: 0/4 (0%)" in text
        assert "In Progress" in text

    def test_stats_table(self):
        text = format_stats_table(
            {
                "total_cards": 2,
                "by_column": {"To Do": 2},
                "by_priority": {"none": 2},
                "overdue": 1,
                "completion_rate": 0.0,
            }
        )
        assert "Total cards: 2" in text
        assert "Overdue: 1" in text
        assert "Completion: 0.0%" in text

    def test_integrity_table(self):
        assert format_integrity_table({"valid": True, "issues": []}) == "Board is valid: no issues found."
        text = format_integrity_table({"valid": False, "issues": ["x", "y"]})
        assert text.splitlines() == ["2 issue(s):", "  - x", "  - y"]

    def test_cards_table_paging_footer(self):
        result = {
            "cards": [{"id": "a", "title": "A", "position": 0}],
            "total_count": 3,
            "has_more": True,
            "offset": 0,
        }
        text = format_cards_table(result)
        assert "Showing 1 of 3 cards (more after offset 1)" in text

    def test_card_detail(self):
        text = format_card_detail(
            {
                "id": "a",
                "title": "Ship \x1b[31mit",
                "columnId": "todo",
                "column_name": "To Do",
                "position": 2,
                "tags": ["ui"],
                "subtasks": [config.COMPLETED_PREFIX + "one", "two"],
                "content": "Body",
            }
        )
        assert "Title:    Ship it" in text
        assert "Column:   To Do (position 2)" in text
        assert "Subtasks (1/2):" in text
        assert "[x] one" in text
        assert "[ ] two" in text
        assert text.endswith("Body")

    def test_batch_table(self):
        text = format_batch_table(
            {
                "results": [{"type": "create", "cardId": "x", "position": 0, "reference": "p"}],
                "warnings": ["Card 'x' depends on unknown card 'y'"],
            }
        )
        assert "Applied 1 operation(s)" in text
        assert "[WARN] Card 'x' depends on unknown card 'y'" in text


# ---------------------------------------------------------------------------
# Output dispatchers
# ---------------------------------------------------------------------------


class TestOutput:
    def test_json_default(self, capsys):
        output({"a": 1})
        assert json.loads(capsys.readouterr().out) == {"a": 1}

    def test_table_uses_formatter(self, capsys):
        output({"a": 1}, lambda d: "TABLE", "table")
        assert capsys.readouterr().out == "TABLE\n"

    def test_mutation_response(self, capsys):
        mutation_response(
            "Created",
            {"ok": True, "cardId": "x", "columnId": "todo", "position": 0, "warnings": ["careful"]},
        )
        out = capsys.readouterr().out
        lines = out.splitlines()
        assert lines[0] == "OK: Created card x in todo at position 0"
        assert lines[1] == "[WARN] careful"
        assert json.loads("\n".join(lines[2:]))["cardId"] == "x"

    def test_mutation_response_table_has_no_json(self, capsys):
        mutation_response("Added column", {"ok": True, "columnId": "c9"}, "table")
        assert capsys.readouterr().out == "OK: Added column c9\n"

    def test_mutation_response_quiet(self, capsys, monkeypatch):
        monkeypatch.setattr(config, "RUNTIME_QUIET", True)
        mutation_response("Created", {"ok": True, "cardId": "x"})
        assert json.loads(capsys.readouterr().out) == {"ok": True, "cardId": "x"}
