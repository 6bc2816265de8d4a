"""Output formatting package for taskboard.

Re-exports all public names so consumers can do:
    from taskboard.formatters import format_cards_table
"""

from taskboard.formatters._boards import (
    board_cards_only,
    board_compact,
    board_summary,
    format_archives_table,
    format_board,
    format_board_table,
    format_boards_table,
    format_integrity_table,
    format_stats_table,
    format_summary_table,
)
from taskboard.formatters._cards import (
    format_batch_table,
    format_card_detail,
    format_cards_table,
)
from taskboard.formatters._core import (
    mutation_response,
    output,
    pretty_print,
)
from taskboard.formatters._table import (
    _CONTROL_RE,
    _sanitize_str,
    _table,
    _trunc,
)

__all__ = [
    "_CONTROL_RE",
    "_sanitize_str",
    "_table",
    "_trunc",
    "board_cards_only",
    "board_compact",
    "board_summary",
    "format_archives_table",
    "format_batch_table",
    "format_board",
    "format_board_table",
    "format_boards_table",
    "format_card_detail",
    "format_cards_table",
    "format_integrity_table",
    "format_stats_table",
    "format_summary_table",
    "mutation_response",
    "output",
    "pretty_print",
]
