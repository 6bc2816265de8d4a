"""Low-level table rendering helpers (stdlib only)."""

import re

_CONTROL_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]|[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def _trunc(s, maxlen):
    """Truncate string with ellipsis indicator."""
    if not s:
        return ""
    return s[: maxlen - 1] + "…" if len(s) > maxlen else s


def _sanitize_str(s):
    """Strip ANSI escape sequences and control chars from terminal output.
    Preserves newlines (\\n) and tabs (\\t)."""
    if not s:
        return s
    return _CONTROL_RE.sub("", str(s))


def _cell(val):
    if val is None:
        return "-"
    return _sanitize_str(val) if isinstance(val, str) else str(val)


def _table(columns, rows, footer=None):
    """Build a formatted table string.

    columns: list of (name, width) tuples; a width of None sizes the column
    to its widest cell. The last column is never padded.
    rows: list of tuples matching columns.
    footer: optional footer line.
    """
    cells = [[_cell(v) for v in row] for row in rows]
    widths = []
    for i, (name, width) in enumerate(columns):
        if width is None:
            width = max([len(name)] + [len(r[i]) for r in cells])
        widths.append(width)

    def _line(values):
        parts = []
        for i, val in enumerate(values):
            parts.append(val if i == len(values) - 1 else f"{val:<{widths[i]}}")
        return " ".join(parts).rstrip()

    header = _line([name for name, _ in columns])
    lines = [header, "-" * max(len(header), 60)]
    lines.extend(_line(r) for r in cells)
    if footer:
        lines.append(f"\n{footer}")
    return "\n".join(lines)
