"""
Record classification: turn one message block into timestamp, sender and body.

Block anatomy:
    android:  01.02.21, 14:30 - Alice: Hi there
    ios:      [01.02.21, 14:30:12] Alice: Hi there

The header (timestamp plus delimiter) is matched with the platform grammar.
The remainder is classified in this order:

    1. The whole remainder is a system event ("Bob left"): sender is the
       system sentinel, there is no message body.
    2. Otherwise split on the first ": " into candidate sender and body.
       A candidate sender that is itself a system event is moved to the
       system event and the body is kept as residual text.
       A known group title followed by a system event is a system event.
    3. A candidate without a body that still ends in ":" comes from
       self-deleting media; the stray delimiter is stripped.

Splitting on ": " rather than ":" keeps participant names that contain a
colon intact.

Group titles:
    iOS writes group events as "<group title>: <event>", which looks like a
    message sent by the group. collect_group_titles() finds the titles in a
    first pass over the blocks (from the start message, group creation and
    renames) and classify_block() only accepts the prefixed form for those
    titles, so a participant's "Alice: I left" stays a message.

Date order:
    Dotted dates (01.02.21) are day-first. Slashed dates (1/2/21) follow
    ParseConfig.slash_date_order, month-first by default. Two-digit years
    are in the 2000s.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from re import Match
from typing import AbstractSet, List, Optional, Set

from chat_export.errors import MalformedTimestampError
from chat_export.indicators import IndicatorSet, PlatformGrammar
from chat_export.models import SYSTEM_SENDER, SystemEvent

SENDER_SEPARATOR = ": "

# Events that only the app writes after a group title.
TITLE_EVENT_KINDS = (
    "start_message",
    "start_message_group",
    "group_create_self",
    "group_create_other",
    "group_rename_self",
    "group_rename_other",
)
# Events that name a group; the quoted name is the new title.
NAMING_EVENT_KINDS = (
    "group_create_self",
    "group_create_other",
    "group_rename_self",
    "group_rename_other",
)
QUOTED_TITLE_PATTERN = re.compile("[\"\u201c\u201e]([^\"\u201c\u201d\u201e]+)[\"\u201c\u201d]\\.?$")


@dataclass
class ClassifiedBlock:
    """Timestamp, sender and body of a message block."""

    timestamp: datetime
    sender: str
    raw_message: Optional[str]
    system_event: Optional[SystemEvent] = None


def _parse_date(date_str: str, slash_date_order: str):
    separator = "." if "." in date_str else "/"
    first, second, year_str = date_str.split(separator)
    if separator == "/" and slash_date_order == "mdy":
        month, day = int(first), int(second)
    else:
        day, month = int(first), int(second)

    year = int(year_str)
    if len(year_str) == 2:
        year += 2000
    return year, month, day


def _parse_time(time_str: str, ampm: Optional[str]):
    parts = [int(p) for p in time_str.split(":")]
    hour, minute = parts[0], parts[1]
    second = parts[2] if len(parts) > 2 else 0

    if ampm:
        if not 1 <= hour <= 12:
            raise ValueError(f"hour {hour} is not valid with AM/PM")
        if ampm.upper() == "A":
            hour = 0 if hour == 12 else hour
        else:
            hour = 12 if hour == 12 else hour + 12
    return hour, minute, second


def parse_timestamp(header: Match[str], slash_date_order: str = "mdy") -> datetime:
    """
    Build a datetime from a matched platform header.

    Args:
        header: Match of PlatformGrammar.header (groups date, time, ampm).
        slash_date_order: 'mdy' or 'dmy' for slashed dates.

    Returns:
        Naive datetime in the exporting phone's local time.

    Raises:
        ValueError: if the fields do not form a valid date and time.
    """
    groups = header.groupdict()
    year, month, day = _parse_date(groups["date"], slash_date_order)
    hour, minute, second = _parse_time(groups["time"], groups.get("ampm"))
    return datetime(year, month, day, hour, minute, second)


def collect_group_titles(
    blocks: List[str],
    grammar: PlatformGrammar,
    indicators: IndicatorSet,
) -> Set[str]:
    """
    Find the group titles written in front of system events.

    A title is taken from "<title>: <event>" when the event is one the app
    writes after a title (start message, group creation or rename), and
    from the quoted name of a creation or rename event.
    """
    titles: Set[str] = set()
    for block in blocks:
        header = grammar.header.match(block)
        if header is None:
            continue
        remainder = block[header.end():].strip()

        candidate, separator, body = remainder.partition(SENDER_SEPARATOR)
        if separator and indicators.match_system_event(body.strip()) in TITLE_EVENT_KINDS:
            titles.add(candidate.strip())

        if indicators.match_system_event(remainder) in NAMING_EVENT_KINDS:
            quoted = QUOTED_TITLE_PATTERN.search(remainder)
            if quoted:
                titles.add(quoted.group(1).strip())
    titles.discard("")
    return titles


def classify_block(
    block: str,
    grammar: PlatformGrammar,
    indicators: IndicatorSet,
    media_omitted_placeholder: str,
    slash_date_order: str = "mdy",
    group_titles: AbstractSet[str] = frozenset(),
) -> ClassifiedBlock:
    """
    Classify a single message block.

    Args:
        block: One segmented message block.
        grammar: Timestamp grammar of the resolved platform.
        indicators: Indicator set of the resolved language and platform.
        media_omitted_placeholder: Replacement for "media omitted" indicators.
        slash_date_order: 'mdy' or 'dmy'.
        group_titles: Titles that may prefix a system event.

    Returns:
        ClassifiedBlock.

    Raises:
        MalformedTimestampError: if the header does not match or is not a
            valid date/time.
    """
    header = grammar.header.match(block)
    if header is None:
        raise MalformedTimestampError(block, f"no {grammar.platform} header")
    try:
        timestamp = parse_timestamp(header, slash_date_order)
    except ValueError as e:
        raise MalformedTimestampError(block, str(e)) from e

    remainder = block[header.end():].strip()

    kind = indicators.match_system_event(remainder)
    if kind is not None:
        return ClassifiedBlock(timestamp, SYSTEM_SENDER, None, SystemEvent(kind, remainder))

    candidate, separator, body = remainder.partition(SENDER_SEPARATOR)
    sender = candidate.strip()
    raw_message: Optional[str] = body if separator and body.strip() else None

    kind = indicators.match_system_event(sender)
    if kind is not None:
        residual = _replace_omitted_media(raw_message, indicators, media_omitted_placeholder)
        return ClassifiedBlock(timestamp, SYSTEM_SENDER, residual, SystemEvent(kind, sender))

    if raw_message is not None and sender in group_titles:
        event_text = raw_message.strip()
        kind = indicators.match_system_event(event_text)
        if kind is not None:
            return ClassifiedBlock(timestamp, SYSTEM_SENDER, None, SystemEvent(kind, event_text))

    if raw_message is None and sender.endswith(":"):
        sender = sender.rstrip(":").strip()

    raw_message = _replace_omitted_media(raw_message, indicators, media_omitted_placeholder)
    return ClassifiedBlock(timestamp, sender, raw_message)


def _replace_omitted_media(
    raw_message: Optional[str],
    indicators: IndicatorSet,
    placeholder: str,
) -> Optional[str]:
    if raw_message is None:
        return None
    return indicators.media_omitted.sub(placeholder, raw_message)
