"""
Lookup resources for the emoji and smiley extractors.

Emoji dictionary:
    Mapping glyph -> description. The default is built from the emoji
    package's EMOJI_DATA, using the English CLDR short name without colons
    and underscores (":grinning_face:" -> "grinning face"). A custom
    dictionary can be loaded from a two-column CSV file (glyph,description).

Smiley dictionary:
    Set of emoticon strings. The default ships with the package as
    data/smilies.txt, one emoticon per line.

Both defaults are built once per process and are read-only afterwards, so
they can be shared between worker threads.
"""

import csv
import logging
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Union

import emoji

logger = logging.getLogger(__name__)

DEFAULT_SMILEY_RESOURCE = "smilies.txt"


def describe_emoji(name: str) -> str:
    """
    Turn a CLDR short name into a plain description.

    Examples:
        >>> describe_emoji(":grinning_face:")
        'grinning face'
    """
    return name.strip(":").replace("_", " ").strip()


@lru_cache(maxsize=1)
def _emoji_data_dictionary() -> Dict[str, str]:
    dictionary = {
        glyph: describe_emoji(data["en"])
        for glyph, data in emoji.EMOJI_DATA.items()
        if data.get("en")
    }
    logger.debug(f"Built emoji dictionary with {len(dictionary)} glyphs")
    return dictionary


def default_emoji_dictionary() -> Dict[str, str]:
    """Return a copy of the default glyph -> description mapping."""
    return dict(_emoji_data_dictionary())


def load_emoji_dictionary(path: Union[str, Path]) -> Dict[str, str]:
    """
    Load an emoji dictionary from a CSV file.

    The file has one glyph and its description per row. A header row
    starting with "glyph" is skipped. Rows with fewer than two columns are
    ignored.

    Args:
        path: Path to the CSV file (UTF-8).

    Returns:
        Mapping glyph -> description.
    """
    dictionary: Dict[str, str] = {}
    with open(path, newline="", encoding="utf-8") as f:
        for row in csv.reader(f):
            if len(row) < 2 or not row[0]:
                continue
            if row[0].strip().lower() == "glyph":
                continue
            dictionary[row[0].strip()] = row[1].strip()
    logger.info(f"Loaded {len(dictionary)} emoji from {path}")
    return dictionary


def _parse_smiley_lines(lines: Iterable[str]) -> FrozenSet[str]:
    return frozenset(line.strip() for line in lines if line.strip())


@lru_cache(maxsize=1)
def default_smiley_dictionary() -> FrozenSet[str]:
    """Emoticons shipped with the package."""
    text = resources.files("chat_export.data").joinpath(DEFAULT_SMILEY_RESOURCE).read_text(
        encoding="utf-8"
    )
    return _parse_smiley_lines(text.splitlines())


def load_smiley_dictionary(path: Union[str, Path]) -> FrozenSet[str]:
    """Load a smiley dictionary with one emoticon per line."""
    smilies = _parse_smiley_lines(Path(path).read_text(encoding="utf-8").splitlines())
    logger.info(f"Loaded {len(smilies)} smilies from {path}")
    return smilies
