"""
Line segmentation: split an export into one text block per message.

A message starts wherever the platform's timestamp lookahead matches at
the beginning of a line. Everything up to the next start belongs to the
previous message, including line breaks, which are replaced by a
placeholder so each block is a single line.

The line break that terminates a block is not part of it, which makes
segmentation reversible:

    join_segments(segment_messages(text, ...).blocks, ...)
        == text[len(preamble):] without its final line break

Text before the first timestamp (e.g. a truncated first message) is kept
aside as the preamble and not parsed.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from chat_export.indicators import PlatformGrammar

logger = logging.getLogger(__name__)


@dataclass
class Segmentation:
    """Result of segmenting one export."""

    blocks: List[str] = field(default_factory=list)
    preamble: str = ""

    def __len__(self) -> int:
        return len(self.blocks)


def find_message_starts(text: str, grammar: PlatformGrammar) -> List[int]:
    """Offsets of all message starts in text."""
    return [match.start() for match in grammar.message_start.finditer(text)]


def segment_messages(text: str, grammar: PlatformGrammar, newline_placeholder: str) -> Segmentation:
    """
    Split normalized export text into per-message blocks.

    Args:
        text: Export text with \\n line endings.
        grammar: Timestamp grammar of the resolved platform.
        newline_placeholder: Replacement for line breaks inside a message.

    Returns:
        Segmentation with blocks in document order. No message start yields
        an empty segmentation, not an error.
    """
    starts = find_message_starts(text, grammar)
    if not starts:
        logger.warning(f"No {grammar.platform} message timestamps found in text")
        return Segmentation(blocks=[], preamble=text)

    preamble = text[: starts[0]]
    if preamble:
        logger.debug(f"Discarding {len(preamble)} characters before the first message")

    ends = starts[1:] + [len(text)]
    blocks = []
    for start, end in zip(starts, ends):
        chunk = text[start:end]
        if chunk.endswith("\n"):
            chunk = chunk[:-1]
        blocks.append(chunk.replace("\n", newline_placeholder))

    logger.info(f"Segmented {len(blocks)} messages ({grammar.platform} format)")
    return Segmentation(blocks=blocks, preamble=preamble)


def join_segments(blocks: List[str], newline_placeholder: str) -> str:
    """Inverse of segment_messages: restore line breaks and rejoin blocks."""
    return "\n".join(block.replace(newline_placeholder, "\n") for block in blocks)
