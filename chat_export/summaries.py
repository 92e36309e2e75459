"""
Long-format summaries of a ChatTable for plots and reports.

Multi-valued columns (Emoji, Smilies, Media, URL, ...) hold a list per
message. explode() turns them into one row per value; frequency() counts
values over a filtered slice of the chat.
"""

import logging
from collections import Counter
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Tuple

from chat_export.models import COLUMN_GETTERS, SYSTEM_SENDER, ChatTable, MessageRecord

logger = logging.getLogger(__name__)

EXPLODABLE_COLUMNS = ("Emoji", "EmojiDescriptions", "Smilies", "Media", "URL", "TokVec")
NAME_COLUMNS = ("Sender", "Anonymous")


def _check_columns(table: ChatTable, column: str, names_col: str) -> None:
    if column not in EXPLODABLE_COLUMNS:
        raise ValueError(f"column must be one of {', '.join(EXPLODABLE_COLUMNS)}; got {column!r}")
    if names_col not in NAME_COLUMNS:
        raise ValueError(f"names_col must be Sender or Anonymous; got {names_col!r}")
    if names_col not in table.columns:
        raise ValueError(f"{names_col} is not a column of this table")


def media_type(file_name: str) -> str:
    """
    File type of a media file name, from its extension.

    Examples:
        >>> media_type("IMG-20210201-WA0001.JPG")
        'jpg'
    """
    suffix = PurePosixPath(file_name).suffix
    return suffix[1:].lower() if suffix else file_name


def explode(table: ChatTable, column: str, names_col: str = "Sender") -> List[Dict[str, Any]]:
    """
    One row per value of a multi-valued column.

    Args:
        table: Parsed chat.
        column: One of EXPLODABLE_COLUMNS.
        names_col: 'Sender' or 'Anonymous'.

    Returns:
        Rows {"DateTime", names_col, column} in table order.
    """
    _check_columns(table, column, names_col)
    getter = COLUMN_GETTERS[column]
    name_getter = COLUMN_GETTERS[names_col]
    return [
        {"DateTime": record.timestamp, names_col: name_getter(record), column: value}
        for record in table
        for value in getter(record)
    ]


def _selected(
    records: Iterable[MessageRecord],
    names: Optional[Iterable[str]],
    names_col: str,
    exclude_system: bool,
    start: Optional[datetime],
    end: Optional[datetime],
) -> Iterable[MessageRecord]:
    wanted = set(names) if names is not None else None
    name_getter = COLUMN_GETTERS[names_col]
    for record in records:
        if exclude_system and record.is_system:
            continue
        if wanted is not None and name_getter(record) not in wanted:
            continue
        if start is not None and (record.timestamp is None or record.timestamp < start):
            continue
        if end is not None and (record.timestamp is None or record.timestamp > end):
            continue
        yield record


def frequency(
    table: ChatTable,
    column: str,
    min_occur: int = 1,
    names: Optional[Iterable[str]] = None,
    names_col: str = "Sender",
    exclude_system: bool = False,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    use_type: bool = False,
) -> List[Tuple[str, int]]:
    """
    Count the values of a multi-valued column.

    Args:
        table: Parsed chat.
        column: One of EXPLODABLE_COLUMNS.
        min_occur: Drop values seen fewer times than this.
        names: Only count messages of these participants (None = everyone).
        names_col: Column the names refer to, 'Sender' or 'Anonymous'.
        exclude_system: Skip messages of the system sender.
        start: Only messages at or after this time.
        end: Only messages at or before this time.
        use_type: For Media, count file types instead of file names.

    Returns:
        (value, count) pairs, most frequent first; ties keep first appearance.
    """
    _check_columns(table, column, names_col)
    if min_occur < 1:
        raise ValueError("min_occur must be at least 1")
    if names is not None:
        names = list(names)
        unknown = set(names) - {COLUMN_GETTERS[names_col](r) for r in table}
        if unknown:
            raise ValueError(f"Unknown names: {', '.join(sorted(unknown))}")

    getter = COLUMN_GETTERS[column]
    counts: Counter = Counter()
    for record in _selected(table, names, names_col, exclude_system, start, end):
        values = getter(record)
        if use_type and column == "Media":
            values = [media_type(value) for value in values]
        counts.update(values)

    result = [(value, count) for value, count in counts.most_common() if count >= min_occur]
    if not result:
        logger.warning(f"No {column} values left after filtering")
    return result


def message_counts(table: ChatTable, names_col: str = "Sender") -> List[Tuple[str, int]]:
    """Messages per participant, system messages excluded, most active first."""
    if names_col not in table.columns:
        raise ValueError(f"{names_col} is not a column of this table")
    getter = COLUMN_GETTERS[names_col]
    counts = Counter(getter(r) for r in table if r.sender != SYSTEM_SENDER)
    return counts.most_common()
