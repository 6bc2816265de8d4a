"""
File-backed board storage: one JSON document per board under the boards
directory, written atomically, with rotating pre-change backups, an
archive area for retired boards, and import of external documents.
"""

import json
import os
import re
import shutil
import tempfile
import uuid

from taskboard import config
from taskboard._utils import log_event, now_iso
from taskboard.config import StoreConfig
from taskboard.exceptions import (
    BoardNotFoundError,
    BoardReferenceError,
    SetupError,
    StorageError,
    ValidationError,
)
from taskboard.models import Board, Column

_BOARD_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")
_RESERVED_FILES = {"config.json"}
_ARCHIVE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,199}$")


def validate_board_id(board_id):
    """Reject ids that could escape the boards directory."""
    if not isinstance(board_id, str) or not _BOARD_ID_RE.match(board_id):
        raise ValidationError(
            f"[ERROR] Invalid board id {board_id!r}. "
            "Use letters, digits, '-' or '_' (max 128 characters).",
            ["board_id"],
        )
    return board_id


def _write_json_atomic(path, data):
    directory = os.path.dirname(path)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".board_tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        raise


def _file_stamp(iso):
    """Filesystem-safe form of an ISO timestamp."""
    return iso.replace(":", "-").replace(".", "-")


def _unique_path(directory, head, tail=""):
    """``<head><tail>.json`` in *directory*, with -001, -002... after *head* when taken."""
    path = os.path.join(directory, f"{head}{tail}.json")
    suffix = 1
    while os.path.exists(path):
        path = os.path.join(directory, f"{head}-{suffix:03d}{tail}.json")
        suffix += 1
    return path


def _archive_row(archive_id, data):
    return {
        "id": archive_id,
        "boardId": str(data.get("id") or ""),
        "name": str(data.get("projectName") or data.get("id") or archive_id),
        "archivedAt": data.get("archivedAt") or "",
    }


class BoardStore:
    """Load and persist board documents in ``settings.boards_dir``."""

    def __init__(self, settings=None):
        self.settings = settings or StoreConfig.from_env()

    @property
    def boards_dir(self):
        return self.settings.boards_dir

    def ensure_dir(self):
        try:
            os.makedirs(self.boards_dir, exist_ok=True)
        except OSError as e:
            raise SetupError(
                f"[ERROR] Cannot create boards directory {self.boards_dir}: {e}"
            ) from e

    def path_for(self, board_id):
        return os.path.join(self.boards_dir, f"{validate_board_id(board_id)}.json")

    def exists(self, board_id):
        return os.path.isfile(self.path_for(board_id))

    # --- reading ---

    def load_raw(self, board_id):
        path = self.path_for(board_id)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise BoardNotFoundError(board_id) from e
        except json.JSONDecodeError as e:
            raise StorageError(
                f"[ERROR] Board '{board_id}' is not valid JSON (line {e.lineno}): {e.msg}"
            ) from e
        except OSError as e:
            raise StorageError(f"[ERROR] Cannot read board '{board_id}': {e}") from e
        return data

    def load(self, board_id):
        board = Board.from_dict(self.load_raw(board_id), board_id=board_id)
        log_event("board.load", board_id=board_id, cards=len(board.cards))
        return board

    def list_boards(self):
        """Summaries of every readable board, sorted by name."""
        if not os.path.isdir(self.boards_dir):
            return []
        rows = []
        for filename in os.listdir(self.boards_dir):
            if (
                not filename.endswith(".json")
                or filename.startswith(("_", "."))
                or filename in _RESERVED_FILES
            ):
                continue
            path = os.path.join(self.boards_dir, filename)
            try:
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError):
                # unreadable documents are left out of the listing
                continue
            if not isinstance(data, dict):
                continue
            board_id = filename[: -len(".json")]
            rows.append(
                {
                    "id": str(data.get("id") or board_id),
                    "name": str(data.get("projectName") or board_id),
                    "last_updated": data.get("last_updated") or "",
                }
            )
        rows.sort(key=lambda r: (r["name"].lower(), r["id"]))
        return rows

    # --- writing ---

    def save(self, board_id, board, *, backup_label=None):
        """Write *board* as ``<board_id>.json``; optionally back up the previous file first."""
        path = self.path_for(board_id)
        self.ensure_dir()
        if backup_label and os.path.isfile(path):
            self.backup(board_id, backup_label)
        board.id = board.id or board_id
        board.last_updated = now_iso()
        try:
            _write_json_atomic(path, board.to_dict())
        except OSError as e:
            raise StorageError(f"[ERROR] Cannot write board '{board_id}': {e}") from e
        log_event("board.save", board_id=board_id, cards=len(board.cards), backup=backup_label)
        return board

    def create_board(self, name, columns=None, board_id=None):
        """Create and persist a new board with fresh ids. Returns the Board."""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("[ERROR] Board name must be a non-empty string", ["name"])
        names = list(columns) if columns else list(config.DEFAULT_COLUMNS)
        names = [n.strip() for n in names if isinstance(n, str) and n.strip()]
        if not names:
            raise ValidationError("[ERROR] A board needs at least one column", ["columns"])
        if len(names) > config.MAX_COLUMNS:
            raise ValidationError(
                f"[ERROR] Too many columns ({len(names)}). Maximum is {config.MAX_COLUMNS}.",
                ["columns"],
            )
        if len({n.lower() for n in names}) != len(names):
            raise ValidationError("[ERROR] Column names must be unique", ["columns"])
        board_id = board_id or str(uuid.uuid4())
        if self.exists(board_id):
            raise ValidationError(f"[ERROR] Board '{board_id}' already exists", ["board_id"])
        board = Board(
            id=board_id,
            project_name=name.strip(),
            columns=[Column(id=str(uuid.uuid4()), name=n) for n in names],
            cards=[],
            next_steps=[],
            extra={"isDragging": False, "scrollToColumn": None},
        )
        self.save(board_id, board)
        log_event("board.create", board_id=board_id, columns=len(names))
        return board

    def import_board(self, document, board_id=None):
        """Persist an externally produced board document as a new board.

        The document keeps its own id unless that id is unusable or taken, in
        which case a fresh one is generated. Missing or duplicate card ids
        are regenerated and positions re-derived per column. An explicit
        *board_id* that already exists is an error.
        """
        board = Board.from_dict(document)
        if not board.columns:
            raise ValidationError("[ERROR] A board needs at least one column", ["columns"])
        if len(board.columns) > config.MAX_COLUMNS:
            raise ValidationError(
                f"[ERROR] Too many columns ({len(board.columns)}). Maximum is {config.MAX_COLUMNS}.",
                ["columns"],
            )
        column_ids = [c.id for c in board.columns]
        if len(set(column_ids)) != len(column_ids):
            raise ValidationError("[ERROR] Column ids must be unique", ["columns"])
        if len(board.cards) > config.MAX_CARDS:
            raise ValidationError(
                f"[ERROR] Too many cards ({len(board.cards)}). Maximum is {config.MAX_CARDS}.",
                ["cards"],
            )
        orphans = sorted({c.column_id for c in board.cards} - set(column_ids))
        if orphans:
            errors = [f"unknown column: {cid}" for cid in orphans]
            raise ValidationError(f"[ERROR] Invalid board document: {'; '.join(errors)}", errors)

        if board_id is not None:
            if self.exists(board_id):
                raise ValidationError(f"[ERROR] Board '{board_id}' already exists", ["board_id"])
        elif board.id and _BOARD_ID_RE.match(board.id) and not self.exists(board.id):
            board_id = board.id
        else:
            board_id = str(uuid.uuid4())
        board.id = board_id

        seen = set()
        renamed = 0
        for card in board.cards:
            if not card.id or card.id in seen:
                card.id = str(uuid.uuid4())
                renamed += 1
            seen.add(card.id)
        for column_id in column_ids:
            board.normalize_column(column_id)
        if board.next_steps is None:
            board.next_steps = []

        self.save(board_id, board)
        log_event("board.import", board_id=board_id, cards=len(board.cards), renamed=renamed)
        return board

    def delete_board(self, board_id):
        path = self.path_for(board_id)
        if not os.path.isfile(path):
            raise BoardNotFoundError(board_id)
        backup_path = self.backup(board_id, "pre_deletion")
        try:
            os.remove(path)
        except OSError as e:
            raise StorageError(f"[ERROR] Cannot delete board '{board_id}': {e}") from e
        log_event("board.delete", board_id=board_id)
        return backup_path

    # --- archives ---

    def archive_board(self, board_id):
        """Move a board out of the live listing into the archives dir.

        Returns the archive row (id, boardId, name, archivedAt).
        """
        data = self.load_raw(board_id)
        if not isinstance(data, dict):
            raise StorageError(f"[ERROR] Board '{board_id}' is not a board document")
        data["id"] = data.get("id") or board_id
        data["archivedAt"] = now_iso()
        try:
            os.makedirs(self.settings.archives_dir, exist_ok=True)
            target = _unique_path(
                self.settings.archives_dir, f"{board_id}_{_file_stamp(data['archivedAt'])}"
            )
            _write_json_atomic(target, data)
            os.remove(self.path_for(board_id))
        except OSError as e:
            raise StorageError(f"[ERROR] Cannot archive board '{board_id}': {e}") from e
        row = _archive_row(os.path.basename(target)[: -len(".json")], data)
        log_event("board.archive", board_id=board_id, archive_id=row["id"])
        return row

    def list_archives(self):
        """Archive rows, newest first."""
        directory = self.settings.archives_dir
        if not os.path.isdir(directory):
            return []
        rows = []
        for filename in os.listdir(directory):
            if not filename.endswith(".json") or filename.startswith("."):
                continue
            try:
                with open(os.path.join(directory, filename), encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError):
                continue
            if isinstance(data, dict):
                rows.append(_archive_row(filename[: -len(".json")], data))
        rows.sort(key=lambda r: (r["archivedAt"], r["id"]), reverse=True)
        return rows

    def _archive_path(self, archive_id):
        if not isinstance(archive_id, str) or not _ARCHIVE_ID_RE.match(archive_id):
            raise ValidationError(f"[ERROR] Invalid archive id {archive_id!r}", ["archive_id"])
        return os.path.join(self.settings.archives_dir, f"{archive_id}.json")

    def restore_board(self, archive_id, board_id=None):
        """Bring an archived board back into the live listing and drop the archive.

        Restores under *board_id*, else the archived board's own id; when
        that id has been reused meanwhile a fresh one is generated.
        """
        path = self._archive_path(archive_id)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise BoardReferenceError(
                "archive", archive_id, f"[ERROR] Archive '{archive_id}' not found"
            ) from e
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"[ERROR] Cannot read archive '{archive_id}': {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"[ERROR] Archive '{archive_id}' is not a board document")
        data.pop("archivedAt", None)

        if board_id is not None:
            if self.exists(board_id):
                raise ValidationError(f"[ERROR] Board '{board_id}' already exists", ["board_id"])
        else:
            original = str(data.get("id") or "")
            if _BOARD_ID_RE.match(original) and not self.exists(original):
                board_id = original
            else:
                board_id = str(uuid.uuid4())
        board = Board.from_dict(data)
        board.id = board_id
        self.save(board_id, board)
        try:
            os.remove(path)
        except OSError as e:
            log_event("board.archive.remove_error", archive_id=archive_id, detail=str(e))
        log_event("board.restore", board_id=board_id, archive_id=archive_id)
        return board

    # --- backups ---

    def backup(self, board_id, label):
        """Copy the current document into the backups dir. Returns the path (or None)."""
        if not self.settings.backups_enabled or self.settings.max_backups <= 0:
            return None
        source = self.path_for(board_id)
        if not os.path.isfile(source):
            return None
        label = re.sub(r"[^A-Za-z0-9_-]", "_", label or "backup")
        try:
            os.makedirs(self.settings.backups_dir, exist_ok=True)
            target = _unique_path(
                self.settings.backups_dir, f"{board_id}_{_file_stamp(now_iso())}", f"_{label}"
            )
            shutil.copyfile(source, target)
        except OSError as e:
            raise StorageError(f"[ERROR] Cannot back up board '{board_id}': {e}") from e
        log_event("board.backup", board_id=board_id, label=label)
        self._rotate_backups(board_id)
        return target

    def list_backups(self, board_id):
        """Backup file paths for *board_id*, oldest first."""
        validate_board_id(board_id)
        directory = self.settings.backups_dir
        if not os.path.isdir(directory):
            return []
        prefix = f"{board_id}_"
        names = [
            n
            for n in os.listdir(directory)
            if n.startswith(prefix) and n[len(prefix):][:1].isdigit() and n.endswith(".json")
        ]
        # order by the stamp segment so "<stamp>-001" follows "<stamp>"
        names.sort(key=lambda n: (n[len(prefix):].split("_", 1)[0], n))
        return [os.path.join(directory, n) for n in names]

    def _rotate_backups(self, board_id):
        backups = self.list_backups(board_id)
        excess = len(backups) - self.settings.max_backups
        for path in backups[: max(0, excess)]:
            try:
                os.remove(path)
            except OSError as e:
                log_event("board.backup.rotate_error", board_id=board_id, path=path, detail=str(e))
