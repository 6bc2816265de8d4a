"""taskboard: kanban boards as JSON documents, with a CLI and an MCP server."""

from taskboard.client import TaskboardClient
from taskboard.config import VERSION, StoreConfig
from taskboard.engine import (
    Outcome,
    apply_batch,
    apply_create,
    apply_delete,
    apply_move,
    apply_operation,
    apply_update,
)
from taskboard.exceptions import (
    BatchError,
    BoardNotFoundError,
    BoardReferenceError,
    CliError,
    SetupError,
    StorageError,
    ValidationError,
)
from taskboard.models import Board, Card, CardPatch, Column
from taskboard.store import BoardStore
from taskboard.types import (
    BatchResult,
    BoardRow,
    BoardStats,
    CardDict,
    CardListResult,
    IntegrityReport,
    MutationResult,
)

__all__ = [
    "VERSION",
    "TaskboardClient",
    "BoardStore",
    "StoreConfig",
    "Board",
    "Card",
    "CardPatch",
    "Column",
    "Outcome",
    "apply_batch",
    "apply_create",
    "apply_delete",
    "apply_move",
    "apply_operation",
    "apply_update",
    "BatchError",
    "BoardNotFoundError",
    "BoardReferenceError",
    "CliError",
    "SetupError",
    "StorageError",
    "ValidationError",
    "BatchResult",
    "BoardRow",
    "BoardStats",
    "CardDict",
    "CardListResult",
    "IntegrityReport",
    "MutationResult",
]
