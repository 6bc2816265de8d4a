"""Tests for TaskboardClient: the public programmatic API surface.
Runs against a real store in a temp dir. Asserts on returned dicts and on
what ends up on disk, not stdout.
"""

import json

import pytest

from taskboard.client import TaskboardClient
from taskboard.exceptions import (
    BatchError,
    BoardNotFoundError,
    BoardReferenceError,
    CliError,
    ValidationError,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def client(board, tmp_path):
    c = TaskboardClient(boards_dir=str(tmp_path / "boards"))
    c.store.save("demo", board)
    return c


def _on_disk(client, board_id="demo"):
    with open(client.store.path_for(board_id), encoding="utf-8") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Boards
# ---------------------------------------------------------------------------


class TestBoards:
    def test_list_boards(self, client):
        assert client.list_boards() == [
            {"id": "demo", "name": "Demo", "last_updated": client.store.load("demo").last_updated}
        ]

    def test_create_and_delete(self, client):
        created = client.create_board("Site", columns=["Backlog", "Done"])
        assert created["ok"] is True
        board_id = created["board_id"]
        assert [c["name"] for c in created["board"]["columns"]] == ["Backlog", "Done"]
        deleted = client.delete_board(board_id)
        assert deleted["ok"] is True
        assert deleted["backup"]
        with pytest.raises(BoardNotFoundError):
            client.get_board(board_id)

    def test_archive_and_restore(self, client):
        archived = client.archive_board("demo")
        assert archived["archive"]["boardId"] == "demo"
        assert client.list_boards() == []
        assert [a["id"] for a in client.list_archives()] == [archived["archive"]["id"]]
        restored = client.restore_board(archived["archive"]["id"])
        assert restored["board_id"] == "demo"
        assert restored["board"]["projectName"] == "Demo"
        assert client.list_archives() == []

    def test_import_from_json_text(self, client):
        document = json.dumps(client.get_board("demo"))
        imported = client.import_board(document, board_id="copy")
        assert imported["board_id"] == "copy"
        assert len(client.get_board("copy")["cards"]) == 4

    def test_import_rejects_non_object(self, client):
        with pytest.raises(ValidationError, match="expected object"):
            client.import_board("[1, 2]")

    def test_get_board_formats(self, client):
        assert client.get_board("demo")["projectName"] == "Demo"
        assert client.get_board("demo", format="summary")["stats"]["totalCards"] == 4
        assert len(client.get_board("demo", format="cards-only", column_id="todo")["cards"]) == 3

    def test_get_board_bad_format(self, client):
        with pytest.raises(CliError):
            client.get_board("demo", format="xml")

    def test_stats_and_validate(self, client):
        assert client.board_stats("demo")["total_cards"] == 4
        assert client.validate_board("demo") == {"board_id": "demo", "valid": True, "issues": []}

    def test_missing_board(self, client):
        with pytest.raises(BoardNotFoundError):
            client.board_stats("ghost")


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


class TestCardReads:
    def test_get_card_adds_column_name(self, client):
        card = client.get_card("demo", "d")
        assert card["column_name"] == "In Progress"
        assert card["tags"] == ["api"]

    def test_get_card_missing(self, client):
        with pytest.raises(BoardReferenceError):
            client.get_card("demo", "zzz")

    def test_search_cards(self, client):
        result = client.search_cards("demo", priority="high")
        assert [c["id"] for c in result["cards"]] == ["d"]

    def test_search_unknown_column(self, client):
        with pytest.raises(BoardReferenceError):
            client.search_cards("demo", column_id="nope")


class TestCardMutations:
    def test_create_persists(self, client):
        result = client.create_card("demo", column_id="doing", card_data={"title": "New"}, position="first")
        assert result["ok"] is True
        assert result["type"] == "create"
        assert result["position"] == 0
        assert result["card"]["title"] == "New"
        on_disk = _on_disk(client)
        assert any(c["id"] == result["cardId"] for c in on_disk["cards"])
        assert {c["id"]: c["position"] for c in on_disk["cards"] if c["columnId"] == "doing"} == {
            result["cardId"]: 0,
            "d": 1,
        }

    def test_create_defaults_to_first_column(self, client):
        result = client.create_card("demo", card_data='{"title": "X"}')
        assert result["columnId"] == "todo"
        assert result["position"] == 3

    def test_update_reports_changed_fields(self, client):
        result = client.update_card("demo", "a", {"title": "Renamed", "priority": "low"})
        assert result["changed"] == ["title", "priority"]
        assert result["card"]["title"] == "Renamed"

    def test_failed_update_does_not_touch_disk(self, client):
        before = _on_disk(client)
        with pytest.raises(ValidationError):
            client.update_card("demo", "a", {"columnId": "done"})
        assert _on_disk(client) == before
        assert client.list_backups("demo") == []

    def test_move_to_done_stamps_completion(self, client):
        result = client.move_card("demo", "a", "done", "last")
        assert result["columnId"] == "done"
        assert result["card"]["completed_at"]
        on_disk = _on_disk(client)
        assert [c["position"] for c in on_disk["cards"] if c["columnId"] == "todo"] == [0, 1]

    def test_move_without_position_leaves_board(self, client):
        before = _on_disk(client)
        with pytest.raises(ValidationError, match="position is required"):
            client.move_card("demo", "a", "done", None)
        assert _on_disk(client) == before

    def test_delete_has_no_card_and_strips_dependencies(self, client):
        client.update_card("demo", "d", {"dependencies": ["a"]})
        result = client.delete_card("demo", "a")
        assert "card" not in result
        assert result["strippedFrom"] == ["d"]
        assert client.get_card("demo", "d")["dependencies"] == []

    def test_mutation_writes_backup(self, client):
        client.update_card("demo", "a", {"content": "x"})
        backups = client.list_backups("demo")
        assert len(backups) == 1
        assert backups[0].endswith("_update_card.json")

    def test_dependency_warning(self, client):
        result = client.update_card("demo", "a", {"dependencies": ["ghost"]})
        assert result["warnings"] == ["Card 'a' depends on unknown card 'ghost'"]


class TestBatch:
    def test_batch_with_references(self, client):
        result = client.batch_cards(
            "demo",
            [
                {"type": "create", "columnId": "todo", "cardData": {"title": "Parent"}, "reference": "p"},
                {"type": "create", "columnId": "todo", "cardData": {"title": "Child", "dependencies": ["$ref:p"]}},
                {"type": "move", "cardId": "$ref:p", "columnId": "doing", "position": "first"},
            ],
        )
        parent_id = result["referenceMap"]["p"]
        assert [r["type"] for r in result["results"]] == ["create", "create", "move"]
        child_id = result["results"][1]["cardId"]
        child = client.get_card("demo", child_id)
        assert child["dependencies"] == [parent_id]
        assert client.get_card("demo", parent_id)["columnId"] == "doing"
        assert "warnings" not in result

    def test_batch_is_all_or_nothing(self, client):
        before = _on_disk(client)
        with pytest.raises(BatchError) as exc:
            client.batch_cards(
                "demo",
                [
                    {"type": "update", "cardId": "a", "cardData": {"title": "Changed"}},
                    {"type": "delete", "cardId": "missing"},
                ],
            )
        assert exc.value.index == 2
        assert exc.value.op_type == "delete"
        assert _on_disk(client) == before


class TestColumns:
    def test_add_rename_reorder_delete(self, client):
        added = client.add_column("demo", "Review", position=2)
        column_id = added["columnId"]
        assert [c["name"] for c in _on_disk(client)["columns"]][2] == "Review"
        client.rename_column("demo", column_id, "QA")
        ids = [c["id"] for c in _on_disk(client)["columns"]]
        client.reorder_columns("demo", list(reversed(ids)))
        assert [c["id"] for c in _on_disk(client)["columns"]] == list(reversed(ids))
        client.delete_column("demo", column_id)
        assert column_id not in [c["id"] for c in _on_disk(client)["columns"]]

    def test_delete_non_empty_column(self, client):
        with pytest.raises(ValidationError, match="still holds 3 card"):
            client.delete_column("demo", "todo")

    def test_set_next_steps(self, client):
        result = client.set_next_steps("demo", ["  ship  ", "", "review"])
        assert result["count"] == 2
        assert _on_disk(client)["next-steps"] == ["ship", "review"]
