"""
Configuration for chat export parsing.

ParseConfig is the complete set of options a parse accepts. It is an
immutable value passed explicitly into every stage, so two parses never
share option state.

Options:
    platform: 'auto', 'android' or 'ios'
    language: 'auto' or a language present in the indicator table
    smiley_strategy: 'builtin' (emoticon grammar) or 'dictionary' (lookup set)
    url_mode: 'full' keeps URLs, 'domain' reduces them to scheme://host/
    anon_mode: 'off', 'replace' (pseudonyms only) or 'add' (Anonymous column)
    order: 'none', 'time', 'original' or 'both'
    newline_placeholder: replaces line breaks inside a message
    media_omitted_placeholder: replaces "media omitted" indicators
    consent_text: keep only senders who posted this exact message
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Iterable, Mapping, Optional

from chat_export.errors import UnsupportedLanguageError, UnsupportedPlatformError

PLATFORMS = ("android", "ios")
SMILEY_STRATEGIES = ("builtin", "dictionary")
URL_MODES = ("full", "domain")
ANON_MODES = ("off", "replace", "add")
ORDERS = ("none", "time", "original", "both")
SLASH_DATE_ORDERS = ("mdy", "dmy")

DEFAULT_NEWLINE_PLACEHOLDER = " start_newline "
DEFAULT_MEDIA_OMITTED_PLACEHOLDER = " media_omitted "
DEFAULT_DETECTION_SAMPLE_SIZE = 10_000
DEFAULT_DROP_THRESHOLD = 10


def _check_choice(name: str, value: str, choices: Iterable[str]) -> None:
    choices = tuple(choices)
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}; got {value!r}")


@dataclass(frozen=True)
class ParseConfig:
    """Options for a single parse invocation."""

    platform: str = "auto"
    language: str = "auto"
    smiley_strategy: str = "dictionary"
    url_mode: str = "domain"
    anon_mode: str = "add"
    order: str = "both"
    newline_placeholder: str = DEFAULT_NEWLINE_PLACEHOLDER
    media_omitted_placeholder: str = DEFAULT_MEDIA_OMITTED_PLACEHOLDER
    consent_text: Optional[str] = None
    slash_date_order: str = "mdy"
    detection_sample_size: int = DEFAULT_DETECTION_SAMPLE_SIZE
    workers: int = 1
    drop_threshold: int = DEFAULT_DROP_THRESHOLD

    def __post_init__(self) -> None:
        if self.platform != "auto" and self.platform not in PLATFORMS:
            raise UnsupportedPlatformError(self.platform)
        _check_choice("smiley_strategy", self.smiley_strategy, SMILEY_STRATEGIES)
        _check_choice("url_mode", self.url_mode, URL_MODES)
        _check_choice("anon_mode", self.anon_mode, ANON_MODES)
        _check_choice("order", self.order, ORDERS)
        _check_choice("slash_date_order", self.slash_date_order, SLASH_DATE_ORDERS)
        if not self.newline_placeholder:
            raise ValueError("newline_placeholder must be a non-empty string")
        if self.detection_sample_size < 1:
            raise ValueError("detection_sample_size must be positive")
        if self.workers < 1:
            raise ValueError("workers must be at least 1")
        if self.drop_threshold < 0:
            raise ValueError("drop_threshold must not be negative")

    def validate_language(self, supported: Iterable[str]) -> None:
        """
        Check the language option against the languages of an indicator table.

        Raises:
            UnsupportedLanguageError: if the language is neither 'auto' nor supported.
        """
        supported = tuple(supported)
        if self.language != "auto" and self.language not in supported:
            raise UnsupportedLanguageError(self.language, supported)

    @property
    def anonymize(self) -> bool:
        return self.anon_mode != "off"

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "ParseConfig":
        """Build a config from a mapping, ignoring keys that are not options."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in options.items() if k in known and v is not None})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
