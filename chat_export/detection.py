"""
Format detection: decide which platform and language produced an export.

Both decisions are made by counting evidence in a bounded prefix of the
text (see ParseConfig.detection_sample_size) and never guess: a tie or a
lack of evidence raises AmbiguousFormatError / AmbiguousLanguageError and
the caller has to retry with an explicit value.

Platform evidence:
    Number of message-start timestamps in the platform's own format.
    Android lines start with "DATE, TIME -", iOS lines with "[DATE, TIME]".

Language evidence:
    Number of (line, indicator) hits for every (language, platform) row of
    the indicator table, e.g. "<Media omitted>" anywhere in a message or
    "You added Bob" as a whole line after the timestamp.
"""

import logging
from typing import Dict, List, Optional, Tuple

from chat_export.config import PLATFORMS
from chat_export.errors import (
    AmbiguousFormatError,
    AmbiguousLanguageError,
    UnsupportedLanguageError,
    UnsupportedPlatformError,
)
from chat_export.indicators import IndicatorTable

logger = logging.getLogger(__name__)


def sample_text(text: str, size: int) -> str:
    """Return the prefix of text used for detection."""
    return text[:size] if len(text) > size else text


def count_platform_stamps(sample: str, table: IndicatorTable) -> Dict[str, int]:
    """
    Count message-start timestamps for every platform of the table.

    Args:
        sample: Text excerpt.
        table: Indicator table with the platform grammars.

    Returns:
        Mapping platform -> number of non-overlapping matches.
    """
    return {
        platform: sum(1 for _ in grammar.message_start.finditer(sample))
        for platform, grammar in table.platforms.items()
    }


def detect_platform(sample: str, hint: str, table: IndicatorTable) -> str:
    """
    Resolve the platform of an export.

    Args:
        sample: Text excerpt.
        hint: 'auto', 'android' or 'ios'.
        table: Indicator table.

    Returns:
        'android' or 'ios'.

    Raises:
        UnsupportedPlatformError: if hint is not a known value.
        AmbiguousFormatError: if hint is 'auto' and the counts are equal.
    """
    if hint != "auto":
        if hint not in PLATFORMS or hint not in table.platforms:
            raise UnsupportedPlatformError(hint)
        return hint

    counts = count_platform_stamps(sample, table)
    android_count = counts.get("android", 0)
    ios_count = counts.get("ios", 0)

    if android_count == ios_count:
        raise AmbiguousFormatError(android_count, ios_count)

    platform = "android" if android_count > ios_count else "ios"
    logger.info(
        f"Detected platform: {platform} (android={android_count}, ios={ios_count})"
    )
    return platform


def count_language_evidence(sample: str, table: IndicatorTable) -> Dict[Tuple[str, str], int]:
    """
    Count indicator hits for every (language, platform) combination.

    Only lines that start with a header of the row's platform are scored,
    and the header is stripped first. A system event counts when it is the
    whole remainder, so "Alice: I left my keys" is not taken for "Bob left".
    Body indicators such as "<Media omitted>" are searched for anywhere in
    the remainder. Each line counts at most once per pattern, so a long line
    with repeated wording does not outweigh many short system messages.

    Args:
        sample: Text excerpt.
        table: Indicator table.

    Returns:
        Mapping (language, platform) -> number of hits.
    """
    lines = [line for line in sample.split("\n") if line.strip()]
    remainders: Dict[str, List[str]] = {}
    for platform, grammar in table.platforms.items():
        remainders[platform] = []
        for line in lines:
            header = grammar.header.match(line)
            if header is not None:
                remainders[platform].append(line[header.end():].strip())

    counts: Dict[Tuple[str, str], int] = {}
    for key, indicators in table.indicator_sets.items():
        hits = 0
        for remainder in remainders.get(indicators.platform, []):
            hits += sum(1 for pattern in indicators.body_patterns() if pattern.search(remainder))
            if indicators.match_system_event(remainder) is not None:
                hits += 1
        counts[key] = hits
    return counts


def detect_language(
    sample: str,
    hint: str,
    table: IndicatorTable,
    platform: Optional[str] = None,
) -> str:
    """
    Resolve the export language.

    Args:
        sample: Text excerpt.
        hint: 'auto' or a language of the table.
        table: Indicator table.
        platform: Resolved platform, used only for logging.

    Returns:
        The language name.

    Raises:
        UnsupportedLanguageError: if hint is not a language of the table.
        AmbiguousLanguageError: if hint is 'auto' and the best evidence is zero
            or shared by more than one language.
    """
    if hint != "auto":
        if hint not in table.languages:
            raise UnsupportedLanguageError(hint, table.languages)
        return hint

    counts = count_language_evidence(sample, table)
    best = max(counts.values(), default=0)
    if best == 0:
        raise AmbiguousLanguageError(counts)

    leaders = {language for (language, _), count in counts.items() if count == best}
    if len(leaders) != 1:
        raise AmbiguousLanguageError(counts)

    language = leaders.pop()
    logger.info(f"Detected language: {language} (platform={platform}, hits={best})")
    return language
