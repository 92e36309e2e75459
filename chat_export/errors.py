"""
Error taxonomy for chat export parsing.

Fatal conditions are raised as ChatParseError subclasses and abort the whole
parse. Per-record problems are never raised; they are collected as
DiagnosticIssue entries on the parse result (see pipeline.ParseDiagnostics).

Stages:
    configuration: an option is outside its closed enumeration
    detection: platform or language could not be decided from the text
"""

from typing import Dict, Tuple


class ChatParseError(Exception):
    """Base class for errors that abort a parse."""

    stage = "parse"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {
            "error": type(self).__name__,
            "stage": self.stage,
            "message": self.message,
        }


class AmbiguousFormatError(ChatParseError):
    """Platform detection found equal evidence for android and ios."""

    stage = "detection"

    def __init__(self, android_count: int, ios_count: int):
        self.android_count = android_count
        self.ios_count = ios_count
        super().__init__(
            f"Could not detect platform: {android_count} android and {ios_count} ios "
            "timestamps found. Pass platform='android' or platform='ios'."
        )


class AmbiguousLanguageError(ChatParseError):
    """Language detection found no evidence or a tie between languages."""

    stage = "detection"

    def __init__(self, counts: Dict[Tuple[str, str], int]):
        self.counts = dict(counts)
        rendered = ", ".join(
            f"{language}/{platform}={count}" for (language, platform), count in sorted(counts.items())
        )
        super().__init__(
            f"Could not detect export language ({rendered}). Pass an explicit language."
        )


class UnsupportedPlatformError(ChatParseError):
    """Platform value outside the supported enumeration."""

    stage = "configuration"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Unsupported platform {value!r}; expected 'auto', 'android' or 'ios'")


class UnsupportedLanguageError(ChatParseError):
    """Language value not present in the indicator table."""

    stage = "configuration"

    def __init__(self, value: str, supported: Tuple[str, ...] = ()):
        self.value = value
        self.supported = supported
        options = ", ".join(repr(s) for s in ("auto",) + tuple(supported))
        super().__init__(f"Unsupported language {value!r}; expected one of {options}")


class MalformedTimestampError(ValueError):
    """
    A message block whose timestamp does not fit the platform grammar.

    Not fatal: the pipeline drops the block and records a diagnostic.
    """

    def __init__(self, block: str, reason: str):
        self.block = block
        self.reason = reason
        super().__init__(f"Malformed timestamp ({reason}): {block[:40]!r}")
