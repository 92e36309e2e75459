"""
Text normalization applied to a raw export before detection and parsing.

Exports picked up from different phones carry invisible characters that
break anchored patterns: left-to-right marks in front of system messages and
attachments, a byte-order mark at the start of the file, and (newer iOS
builds) a narrow no-break space between the time and AM/PM.

Examples:
    >>> normalize_chat_text("\\ufeff01.02.21, 14:30 - Alice: Hi\\r\\n")
    '01.02.21, 14:30 - Alice: Hi\\n'
    >>> normalize_chat_text("[1/2/21, 2:30:00\\u202fPM] Bob: \\u200eimage omitted")
    '[1/2/21, 2:30:00 PM] Bob: image omitted'
"""

import re

INVISIBLE_MARKS_PATTERN = re.compile("[\u200e\ufeff]")
NARROW_SPACES_PATTERN = re.compile("[\u202f\u00a0]")
LINE_BREAK_PATTERN = re.compile(r"\r\n?")


def normalize_newlines(text: str) -> str:
    """Convert Windows and old Mac line endings to \\n."""
    return LINE_BREAK_PATTERN.sub("\n", text)


def normalize_chat_text(text: str) -> str:
    """
    Normalize a raw chat export.

    Args:
        text: Raw export text.

    Returns:
        Text with \\n line endings, without LRM/BOM marks, and with
        narrow no-break spaces turned into plain spaces.
    """
    if not text:
        return ""

    text = normalize_newlines(text)
    text = INVISIBLE_MARKS_PATTERN.sub("", text)
    return NARROW_SPACES_PATTERN.sub(" ", text)
