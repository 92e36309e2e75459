"""
Field extractors: structured sub-fields pulled out of a message body.

Every extractor is a pure function of the raw message text and a read-only
resource (indicator set, emoji dictionary, smiley dictionary). They can run
in any order and on any thread; only the flattener depends on the others,
because the flat text must not contain anything they extracted.

Extractors:
    extract_urls       http(s)/ftp/www links, optionally reduced to domains
    extract_media      file names of attached-file indicators
    extract_location   static pin or live-location share, first one wins
    extract_emoji      (glyph, description) pairs, one per emoji grapheme
    extract_smilies    emoticons via a builtin grammar or a dictionary
    flatten_message    text with all of the above and punctuation removed
    tokenize           word tokens of the flat text

Design Decisions:
    1. A dictionary miss is never an error; it just yields no value
    2. Removed spans are replaced by a space so neighbouring words do not merge
    3. Smileys are looked for after URLs are gone, so "http://" never
       counts as the emoticon ":/"
    4. A token is a run of letters with optional inner apostrophes. This is
       not Unicode word segmentation: scripts written without spaces
       (Chinese, Japanese, Thai) give one token per unbroken run
"""

import re
import unicodedata
from dataclasses import dataclass, replace
from typing import AbstractSet, List, Mapping, Optional, Tuple

import emoji

from chat_export.config import ParseConfig
from chat_export.indicators import IndicatorSet
from chat_export.models import Location, MessageRecord

URL_PATTERN = re.compile(r"(?:(?:https?|ftp)://|www\.)[^\s<>\"]+", re.IGNORECASE)
SCHEME_PATTERN = re.compile(r"^[a-z]+://", re.IGNORECASE)
COORDINATES_PATTERN = re.compile(r"[?&]q=(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?)")

# Western emoticons bounded by whitespace: eyes, optional nose, mouth; the
# reversed form; hearts; and a few eastern faces.
BUILTIN_SMILEY_PATTERN = re.compile(
    r"(?<!\S)(?:"
    r">?[:;=][-'^o]?[)(\]\[DPpOo03/\\|*@]+"
    r"|[8xXB][-'^o]?[)(\]\[DPp]+"
    r"|[)(\]\[][-'^o]?[:;=]"
    r"|</?3"
    r"|\^[_.]?\^"
    r"|-_-"
    r"|[oO][._][oO]"
    r")(?!\S)"
)

NON_WORD_PATTERN = re.compile(r"[^\w\s']|[\d_]")
STRAY_APOSTROPHE_PATTERN = re.compile(r"(?<![^\W\d_])'|'(?![^\W\d_])")
WHITESPACE_PATTERN = re.compile(r"\s+")
TOKEN_PATTERN = re.compile(r"[^\W\d_]+(?:'[^\W\d_]+)*")

# Code points that belong to the grapheme before them.
COMBINING_CATEGORIES = ("Mn", "Mc", "Me")
JOINERS = ("\u200d", "\ufe0f", "\ufe0e")


@dataclass(frozen=True)
class ExtractionResources:
    """Read-only lookup resources shared by all extractor calls of one parse."""

    indicators: IndicatorSet
    emoji_dictionary: Mapping[str, str]
    smiley_dictionary: AbstractSet[str]


def extract_urls(text: Optional[str], url_mode: str = "full") -> List[str]:
    """
    Find all links in a message.

    Args:
        text: Message text.
        url_mode: 'full' returns links as written; 'domain' reduces each to
            scheme://host/ and drops links that cannot be reduced.

    Returns:
        Links in order of appearance.
    """
    if not text:
        return []
    urls = URL_PATTERN.findall(text)
    if url_mode != "domain":
        return urls
    domains = [reduce_to_domain(url) for url in urls]
    return [domain for domain in domains if domain is not None]


def reduce_to_domain(url: str) -> Optional[str]:
    """
    Reduce a link to its scheme and host.

    A link with a scheme keeps its first three "/"-delimited segments
    ("http:/" + "/" + "example.com/"). A www-link keeps its first segment.

    Examples:
        >>> reduce_to_domain("http://example.com/page")
        'http://example.com/'
        >>> reduce_to_domain("https://example.com")
        'https://example.com/'
        >>> reduce_to_domain("www.example.com/a/b")
        'www.example.com/'
        >>> reduce_to_domain("http://") is None
        True
    """
    parts = [part for part in re.split(r"(?<=/)", url) if part]
    needed = 3 if SCHEME_PATTERN.match(url) else 1
    if len(parts) < needed:
        return None

    domain = "".join(parts[:needed])
    if domain.endswith("//"):
        return None
    if not domain.endswith("/"):
        domain += "/"
    return domain


def extract_media(text: Optional[str], indicators: IndicatorSet) -> List[str]:
    """File names of all attached-file indicators in a message."""
    if not text:
        return []
    return [match.group("file").strip() for match in indicators.attached_file.finditer(text)]


def extract_location(text: Optional[str], indicators: IndicatorSet) -> Optional[Location]:
    """
    Find a shared location.

    Static and live locations are mutually exclusive; if a message somehow
    contains both, the one that appears first wins.

    Returns:
        Location, or None if the message shares no location.
    """
    if not text:
        return None

    found = []
    static = indicators.sent_location.search(text)
    if static:
        found.append((static.start(), "static", static.group(0)))
    live = indicators.live_location.search(text)
    if live:
        found.append((live.start(), "live", live.group(0)))
    if not found:
        return None

    _, kind, matched = min(found)
    coordinates = COORDINATES_PATTERN.search(matched)
    if coordinates:
        return Location(kind, matched, float(coordinates.group(1)), float(coordinates.group(2)))
    return Location(kind, matched)


def _extends_previous(char: str) -> bool:
    return unicodedata.category(char) in COMBINING_CATEGORIES or char in JOINERS


def split_graphemes(text: str) -> List[str]:
    """
    Split text into user-perceived characters.

    Emoji sequences (ZWJ families, skin tones, flags, keycaps) come back as
    one item. Outside of emoji, combining marks, variation selectors and
    joiners stay with the character before them, so a decomposed "e" plus
    acute accent is one item. Other multi-code-point clusters, such as
    conjoining Hangul jamo or Indic conjuncts, are still split into code
    points.
    """
    graphemes: List[str] = []
    for token in emoji.analyze(text, non_emoji=True, join_emoji=True):
        if graphemes and isinstance(token.value, str) and _extends_previous(token.chars):
            graphemes[-1] += token.chars
        else:
            graphemes.append(token.chars)
    return graphemes


def extract_emoji(text: Optional[str], dictionary: Mapping[str, str]) -> List[Tuple[str, str]]:
    """
    Match every grapheme of a message against an emoji dictionary.

    Args:
        text: Message text.
        dictionary: Mapping glyph -> description.

    Returns:
        (glyph, description) pairs in order of appearance, duplicates kept.
    """
    if not text:
        return []
    return [
        (grapheme, dictionary[grapheme])
        for grapheme in split_graphemes(text)
        if grapheme in dictionary
    ]


def extract_smilies(
    text: Optional[str],
    strategy: str,
    dictionary: AbstractSet[str] = frozenset(),
) -> List[str]:
    """
    Find emoticons in a message.

    Args:
        text: Text to search, normally the output of pre_flatten.
        strategy: 'builtin' uses BUILTIN_SMILEY_PATTERN; 'dictionary' keeps
            whitespace-separated tokens contained in dictionary.
        dictionary: Emoticon set for the dictionary strategy.

    Returns:
        Emoticons in order of appearance.
    """
    if not text:
        return []
    if strategy == "builtin":
        return BUILTIN_SMILEY_PATTERN.findall(text)
    if strategy == "dictionary":
        return [token for token in text.split() if token in dictionary]
    raise ValueError(f"Unknown smiley strategy: {strategy!r}")


def _remove_placeholder(text: str, placeholder: str) -> str:
    # A placeholder at the end of a stripped message has lost its padding.
    text = text.replace(placeholder, " ")
    bare = placeholder.strip()
    if not bare:
        return text
    return re.sub(r"(?<!\S)" + re.escape(bare) + r"(?!\S)", " ", text)


def pre_flatten(text: Optional[str], indicators: IndicatorSet, config: ParseConfig) -> Optional[str]:
    """
    Remove placeholders and indicator spans from a message.

    Removal order: newline placeholders, media-omitted placeholders and
    indicators, attached-file spans, location spans, missed-call spans,
    URLs. Punctuation is still present afterwards.
    """
    if text is None:
        return None

    text = _remove_placeholder(text, config.newline_placeholder)
    if config.media_omitted_placeholder:
        text = _remove_placeholder(text, config.media_omitted_placeholder)
    text = indicators.media_omitted.sub(" ", text)
    text = indicators.attached_file.sub(" ", text)
    text = indicators.sent_location.sub(" ", text)
    text = indicators.live_location.sub(" ", text)
    text = indicators.missed_voice_call.sub(" ", text)
    text = indicators.missed_video_call.sub(" ", text)
    return URL_PATTERN.sub(" ", text)


def flatten_message(
    pre_flat: Optional[str],
    emoji_glyphs: List[str],
    smilies: List[str],
) -> Optional[str]:
    """
    Finish flattening: remove emoji and emoticons, then everything that is
    not a letter or an in-word apostrophe.

    Returns:
        The flat text, or None if nothing is left.
    """
    if pre_flat is None:
        return None

    text = pre_flat
    for glyph in emoji_glyphs:
        text = text.replace(glyph, " ")
    if smilies:
        remove = set(smilies)
        text = " ".join(token for token in text.split() if token not in remove)

    text = NON_WORD_PATTERN.sub(" ", text)
    text = STRAY_APOSTROPHE_PATTERN.sub(" ", text)
    text = WHITESPACE_PATTERN.sub(" ", text).strip()
    return text or None


def tokenize(flat: Optional[str]) -> List[str]:
    """Word tokens of a flat message; case is preserved."""
    if not flat:
        return []
    return TOKEN_PATTERN.findall(flat)


def apply_extractors(
    record: MessageRecord,
    resources: ExtractionResources,
    config: ParseConfig,
) -> MessageRecord:
    """
    Run all extractors over one record.

    Args:
        record: Classified record (timestamp, sender, raw_message set).
        resources: Indicator set and dictionaries.
        config: Parse options (url_mode, smiley_strategy, placeholders).

    Returns:
        A new record with every extracted field filled in.
    """
    text = record.raw_message
    if text is None:
        return replace(record, flat_message=None, tokens=[])

    indicators = resources.indicators
    emoji_pairs = extract_emoji(text, resources.emoji_dictionary)
    pre_flat = pre_flatten(text, indicators, config)
    smilies = extract_smilies(pre_flat, config.smiley_strategy, resources.smiley_dictionary)
    flat = flatten_message(pre_flat, [glyph for glyph, _ in emoji_pairs], smilies)

    return replace(
        record,
        urls=extract_urls(text, config.url_mode),
        media=extract_media(text, indicators),
        location=extract_location(text, indicators),
        emoji=emoji_pairs,
        smilies=smilies,
        flat_message=flat,
        tokens=tokenize(flat),
    )
