"""
Chat Export Parser - turns exported chat transcripts into structured tables.

This package provides functionality to:
- Detect the platform and language of an export
- Split it into messages and classify senders and system events
- Extract URLs, media, locations, emoji, emoticons and word tokens
- Filter, anonymize and order the result
"""

__version__ = "0.1.0"

from chat_export.config import ParseConfig
from chat_export.errors import ChatParseError
from chat_export.models import ChatTable, MessageRecord
from chat_export.pipeline import ParseResult, parse_chat, parse_chat_file

__all__ = [
    "ParseConfig",
    "ChatParseError",
    "ChatTable",
    "MessageRecord",
    "ParseResult",
    "parse_chat",
    "parse_chat_file",
]
