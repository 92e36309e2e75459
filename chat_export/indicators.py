"""
Indicator table: the locale-specific patterns that drive parsing.

Every structural string a chat export contains depends on the exporting
phone's platform and language: the timestamp at the start of each message,
the "file attached" marker, the wording of system events. These patterns
live in a data file (data/indicators.json) and are compiled once into an
IndicatorTable that is passed by reference into the detector, classifier
and extractors. Supporting another language is a new data row, not code.

Table layout:
    platforms.<platform>.message_start   lookahead matching a message start
    platforms.<platform>.header          timestamp grammar incl. delimiter
    platforms.<platform>.group_prefix    events may carry a group-title prefix
    languages.<language>.<platform>.*    body indicators + system events

The compiled table is read-only after loading and safe to share across
threads.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from pathlib import Path
from re import Pattern
from typing import Dict, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

DEFAULT_TABLE_RESOURCE = "indicators.json"

BODY_INDICATORS = (
    "attached_file",
    "media_omitted",
    "sent_location",
    "live_location",
    "missed_voice_call",
    "missed_video_call",
)

# Order matters: the first kind whose pattern matches wins, so the
# "self" variants come before the generic "other" variants.
SYSTEM_EVENT_KINDS = (
    "start_message",
    "start_message_group",
    "group_create_self",
    "group_create_other",
    "group_rename_self",
    "group_pic_change",
    "group_rename_other",
    "user_remove_self",
    "user_add_self",
    "user_left",
    "user_remove_other",
    "user_add_other",
    "group_pic_change_other",
    "user_number_change_known",
    "user_number_change_unknown",
    "deleted_message",
    "safety_number_change",
    "group_call_started",
    "group_video_call_started",
)


@dataclass(frozen=True)
class PlatformGrammar:
    """Timestamp grammar for one platform."""

    platform: str
    message_start: Pattern[str]
    header: Pattern[str]
    # events may be written as "<group title>: <event>"
    group_prefix: bool = False


@dataclass(frozen=True)
class IndicatorSet:
    """Compiled indicators for one (language, platform) combination."""

    language: str
    platform: str
    attached_file: Pattern[str]
    media_omitted: Pattern[str]
    sent_location: Pattern[str]
    live_location: Pattern[str]
    missed_voice_call: Pattern[str]
    missed_video_call: Pattern[str]
    system_events: Dict[str, Pattern[str]] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.language, self.platform)

    def match_system_event(self, text: str) -> Optional[str]:
        """
        Return the kind of the first system-event pattern matching all of text.

        Args:
            text: Candidate text (a message remainder or a candidate sender).

        Returns:
            The system event kind, or None if no pattern matches.
        """
        for kind in SYSTEM_EVENT_KINDS:
            pattern = self.system_events.get(kind)
            if pattern is not None and pattern.fullmatch(text):
                return kind
        return None

    def body_patterns(self) -> Iterator[Pattern[str]]:
        """Indicators that can appear anywhere inside a message body."""
        for name in BODY_INDICATORS:
            yield getattr(self, name)


@dataclass(frozen=True)
class IndicatorTable:
    """All platform grammars and indicator sets of a loaded table."""

    platforms: Dict[str, PlatformGrammar]
    indicator_sets: Dict[Tuple[str, str], IndicatorSet]

    @property
    def languages(self) -> Tuple[str, ...]:
        seen: List[str] = []
        for language, _platform in self.indicator_sets:
            if language not in seen:
                seen.append(language)
        return tuple(seen)

    def grammar(self, platform: str) -> PlatformGrammar:
        return self.platforms[platform]

    def get(self, language: str, platform: str) -> IndicatorSet:
        try:
            return self.indicator_sets[(language, platform)]
        except KeyError:
            raise KeyError(f"No indicators for language={language!r} platform={platform!r}")


def _compile(value: str, where: str) -> Pattern[str]:
    try:
        return re.compile(value)
    except re.error as e:
        raise ValueError(f"Invalid pattern at {where}: {e}") from e


def _build_indicator_set(language: str, platform: str, row: dict) -> IndicatorSet:
    where = f"languages.{language}.{platform}"
    missing = [name for name in BODY_INDICATORS if name not in row]
    if missing:
        raise ValueError(f"{where} is missing indicators: {', '.join(missing)}")

    system_rows = row.get("system_events", {})
    unknown = sorted(set(system_rows) - set(SYSTEM_EVENT_KINDS))
    if unknown:
        raise ValueError(f"{where} has unknown system events: {', '.join(unknown)}")

    compiled = {name: _compile(row[name], f"{where}.{name}") for name in BODY_INDICATORS}
    if "file" not in compiled["attached_file"].groupindex:
        raise ValueError(f"{where}.attached_file needs a (?P<file>...) group")

    return IndicatorSet(
        language=language,
        platform=platform,
        system_events={
            kind: _compile(pattern, f"{where}.system_events.{kind}")
            for kind, pattern in system_rows.items()
        },
        **compiled,
    )


def parse_indicator_table(data: dict) -> IndicatorTable:
    """
    Compile a decoded indicator table.

    Args:
        data: Decoded JSON document (see module docstring for layout).

    Returns:
        Compiled IndicatorTable.

    Raises:
        ValueError: if the document is incomplete or contains invalid patterns.
    """
    platforms: Dict[str, PlatformGrammar] = {}
    for platform, row in data.get("platforms", {}).items():
        header = _compile(row["header"], f"platforms.{platform}.header")
        if "date" not in header.groupindex or "time" not in header.groupindex:
            raise ValueError(f"platforms.{platform}.header needs date and time groups")
        platforms[platform] = PlatformGrammar(
            platform=platform,
            message_start=re.compile(row["message_start"], re.MULTILINE),
            header=header,
            group_prefix=bool(row.get("group_prefix", False)),
        )

    indicator_sets: Dict[Tuple[str, str], IndicatorSet] = {}
    for language, per_platform in data.get("languages", {}).items():
        for platform, row in per_platform.items():
            if platform not in platforms:
                raise ValueError(f"languages.{language}.{platform}: unknown platform")
            indicator_sets[(language, platform)] = _build_indicator_set(language, platform, row)

    if not platforms or not indicator_sets:
        raise ValueError("Indicator table defines no platforms or languages")

    return IndicatorTable(platforms=platforms, indicator_sets=indicator_sets)


@lru_cache(maxsize=1)
def _default_table() -> IndicatorTable:
    text = resources.files("chat_export.data").joinpath(DEFAULT_TABLE_RESOURCE).read_text(
        encoding="utf-8"
    )
    table = parse_indicator_table(json.loads(text))
    logger.debug(f"Loaded default indicator table: {len(table.indicator_sets)} combinations")
    return table


def load_indicator_table(path: Optional[Union[str, Path]] = None) -> IndicatorTable:
    """
    Load an indicator table.

    Args:
        path: Optional path to a JSON table. Defaults to the bundled table.

    Returns:
        Compiled IndicatorTable.
    """
    if path is None:
        return _default_table()

    table = parse_indicator_table(json.loads(Path(path).read_text(encoding="utf-8")))
    logger.info(f"Loaded indicator table from {path}: languages={', '.join(table.languages)}")
    return table
