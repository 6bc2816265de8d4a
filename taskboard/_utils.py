"""
Shared pure-utility functions for taskboard.

Timestamp helpers, small parsers, and the structured stderr event log.
Used across cards.py, engine.py, query.py, store.py and client.py.
"""

import json
import random
import sys
from datetime import datetime, timedelta, timezone

from taskboard import config
from taskboard.exceptions import CliError


def _now():
    return datetime.now(timezone.utc)


def format_timestamp(dt):
    """Render a datetime as ISO-8601 UTC with milliseconds and a Z suffix."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso():
    return format_timestamp(_now())


def next_timestamp(previous=None):
    """Return a timestamp strictly later than *previous* (ISO string or None).

    Millisecond resolution means two mutations can land in the same tick;
    in that case the result is bumped one millisecond past *previous*.
    """
    current = _now()
    prev = _parse_iso_timestamp(previous)
    if prev is not None and current <= prev:
        current = prev + timedelta(milliseconds=1)
    return format_timestamp(current)


def _parse_iso_timestamp(ts):
    """Parse an ISO timestamp into an aware datetime. Returns None if unparseable."""
    if not ts or not isinstance(ts, str):
        return None
    try:
        parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_date(date_str, field="date"):
    """Parse a YYYY-MM-DD (or full ISO) string into a date. Raises CliError on bad format."""
    try:
        return datetime.strptime(date_str[:10], "%Y-%m-%d").date()
    except (ValueError, TypeError) as e:
        raise CliError(f"[ERROR] Invalid {field} '{date_str}'. Use YYYY-MM-DD format.") from e


def _parse_multi_value(raw, valid_set, field_name):
    """Parse a comma-separated filter string (or list) and validate each value."""
    if isinstance(raw, str):
        values = [v.strip() for v in raw.split(",") if v.strip()]
    else:
        values = [str(v).strip() for v in raw if str(v).strip()]
    if valid_set is not None:
        for v in values:
            if v not in valid_set:
                raise CliError(
                    f"[ERROR] Invalid {field_name} '{v}'. Valid: {', '.join(sorted(valid_set))}"
                )
    return values


def log_event(event, **fields):
    """Emit one structured log line to stderr when logging is enabled."""
    if not config.LOG_ENABLED:
        return
    if config.LOG_SAMPLE_RATE < 1.0 and random.random() > config.LOG_SAMPLE_RATE:
        return
    fields["event"] = event
    fields["ts"] = now_iso()
    print("[TASKBOARD] " + json.dumps(fields, ensure_ascii=False, sort_keys=True), file=sys.stderr)
