"""
taskboard shared configuration, constants, and module-level state.
Standalone module: no imports from other project files.
"""

import os
import tempfile
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# .env path and helpers
# ---------------------------------------------------------------------------

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_PACKAGE_DIR)

ENV_PATH = os.path.join(_PROJECT_ROOT, ".env")

_KNOWN_KEYS = (
    "TASKBOARD_BOARDS_DIR",
    "TASKBOARD_BACKUPS",
    "TASKBOARD_MAX_BACKUPS",
    "TASKBOARD_LOG",
    "TASKBOARD_LOG_SAMPLE_RATE",
    "TASKBOARD_MCP_RESPONSE_MODE",
)


def load_env():
    """Read KEY=VALUE pairs from .env, falling back to os.environ for known keys."""
    env = {}
    if os.path.exists(ENV_PATH):
        with open(ENV_PATH, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, val = line.split("=", 1)
                    env[key.strip()] = val.strip()
    for key in _KNOWN_KEYS:
        if key not in env and os.environ.get(key):
            env[key] = os.environ[key]
    return env


def save_env_value(key, value):
    """Update or add a key in the .env file (atomic write-then-rename)."""
    lines = []
    found = False
    if os.path.exists(ENV_PATH):
        with open(ENV_PATH, encoding="utf-8") as f:
            lines = f.readlines()
    for i, line in enumerate(lines):
        if line.strip().startswith(f"{key}="):
            lines[i] = f"{key}={value}\n"
            found = True
            break
    if not found:
        lines.append(f"{key}={value}\n")
    env_dir = os.path.dirname(ENV_PATH) or "."
    fd, tmp_path = tempfile.mkstemp(dir=env_dir, prefix=".env_tmp_")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.writelines(lines)
        os.replace(tmp_path, ENV_PATH)
    except Exception:
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        raise


def _env_bool(key, default=False):
    """Parse common boolean env formats."""
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(key, default):
    """Parse integer env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key, default):
    """Parse float env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION = "0.3.0"
CONTRACT_SCHEMA_VERSION = "1.0"

VALID_PRIORITIES = {"high", "medium", "low"}
PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}
VALID_CARD_KINDS = {"basic", "task", "feature"}
VALID_SORT_FIELDS = {"position", "title", "priority", "created", "updated", "due"}
VALID_BOARD_FORMATS = {"full", "summary", "compact", "cards-only"}
POSITION_KEYWORDS = {"first", "last", "up", "down"}

DONE_COLUMN_NAMES = {"done"}
BLOCKED_COLUMN_NAMES = {"blocked"}
DEFAULT_COLUMNS = ("To Do", "In Progress", "Blocked", "Done")
DEFAULT_CARD_TITLE = "New Card"
COMPLETED_PREFIX = "✓ "

MAX_BATCH_OPERATIONS = 100
MAX_COLUMNS = 20
MAX_CARDS = 1000

# ---------------------------------------------------------------------------
# Module-level state (loaded from .env)
# ---------------------------------------------------------------------------

env = load_env()

BOARDS_DIR = env.get("TASKBOARD_BOARDS_DIR") or os.path.join(_PROJECT_ROOT, "boards")
BACKUPS_ENABLED = _env_bool("TASKBOARD_BACKUPS", True)
MAX_BACKUPS = max(0, _env_int("TASKBOARD_MAX_BACKUPS", 10))
LOG_ENABLED = _env_bool("TASKBOARD_LOG", False)
LOG_SAMPLE_RATE = min(1.0, max(0.0, _env_float("TASKBOARD_LOG_SAMPLE_RATE", 1.0)))
MCP_RESPONSE_MODE = env.get("TASKBOARD_MCP_RESPONSE_MODE", "legacy").strip().lower()
if MCP_RESPONSE_MODE not in {"legacy", "envelope"}:
    MCP_RESPONSE_MODE = "legacy"

# Set by cli.main() from global flags
RUNTIME_QUIET = False
RUNTIME_VERBOSE = False


@dataclass(frozen=True)
class StoreConfig:
    """Filesystem settings handed to BoardStore at construction time."""

    boards_dir: str
    backups_enabled: bool = True
    max_backups: int = 10

    @property
    def backups_dir(self):
        return os.path.join(self.boards_dir, "backups")

    @property
    def archives_dir(self):
        return os.path.join(self.boards_dir, "archives")

    @classmethod
    def from_env(cls, boards_dir=None):
        """Build a StoreConfig from the loaded module settings."""
        return cls(
            boards_dir=boards_dir or BOARDS_DIR,
            backups_enabled=BACKUPS_ENABLED,
            max_backups=MAX_BACKUPS,
        )
