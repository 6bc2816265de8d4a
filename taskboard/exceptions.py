"""
taskboard exception hierarchy.

All custom exceptions live here to avoid circular imports.
"""


class CliError(Exception):
    """Exit code 1: validation, not-found, storage, parse errors."""

    exit_code = 1
    error_type = "error"


class SetupError(CliError):
    """Exit code 2: boards directory unusable, bad configuration."""

    exit_code = 2
    error_type = "setup"


class ValidationError(CliError):
    """Malformed card or operation data. Never partially applied."""

    error_type = "validation"

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class BoardReferenceError(CliError):
    """An operation names a column or card that does not exist on the board."""

    error_type = "reference"

    def __init__(self, kind, ref_id, message=None):
        super().__init__(message or f"[ERROR] {kind.capitalize()} '{ref_id}' not found")
        self.kind = kind
        self.ref_id = ref_id


class BoardNotFoundError(CliError):
    """No board document exists for the requested id."""

    error_type = "not_found"

    def __init__(self, board_id):
        super().__init__(f"[ERROR] Board '{board_id}' not found")
        self.board_id = board_id


class StorageError(CliError):
    """Reading or writing a board document failed."""

    error_type = "storage"


class BatchError(CliError):
    """A batch aborted on its first failing operation; nothing was applied."""

    def __init__(self, index, op_type, cause):
        detail = str(cause).removeprefix("[ERROR] ")
        super().__init__(f"[ERROR] Batch aborted at operation {index} ({op_type}): {detail}")
        self.index = index
        self.op_type = op_type
        self.cause = cause
        self.errors = list(getattr(cause, "errors", []))

    @property
    def error_type(self):
        return getattr(self.cause, "error_type", "error")
