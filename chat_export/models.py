"""
Data model for parsed chats.

A ChatTable is a homogeneous, ordered list of MessageRecord objects, one per
parsed message. Multi-valued fields (URLs, media, emoji, smileys, tokens)
are explicit lists on the record; a tabular view keyed by column names is a
projection built on demand (ChatTable.rows / ChatTable.to_json_rows).

Columns, in projection order:
    DateTime, Anonymous*, Sender, Message, Flat, TokVec, URL, Media,
    Location, Emoji, EmojiDescriptions, Smilies, SystemMessage, TokCount,
    TimeOrder*, DisplayOrder*

Columns marked * only exist when the anonymization / ordering options ask
for them.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

SYSTEM_SENDER = "system"

BASE_COLUMNS = (
    "DateTime",
    "Sender",
    "Message",
    "Flat",
    "TokVec",
    "URL",
    "Media",
    "Location",
    "Emoji",
    "EmojiDescriptions",
    "Smilies",
    "SystemMessage",
    "TokCount",
)


@dataclass(frozen=True)
class Location:
    """A shared location: a static pin or a live-location share."""

    kind: str  # 'static' or 'live'
    text: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True)
class SystemEvent:
    """A message generated by the messaging app itself."""

    kind: str  # name of the matching system-event pattern
    text: str


@dataclass
class MessageRecord:
    """One parsed message."""

    timestamp: Optional[datetime]
    sender: Optional[str]
    raw_message: Optional[str] = None
    flat_message: Optional[str] = None
    tokens: List[str] = field(default_factory=list)
    urls: List[str] = field(default_factory=list)
    media: List[str] = field(default_factory=list)
    location: Optional[Location] = None
    emoji: List[Tuple[str, str]] = field(default_factory=list)
    smilies: List[str] = field(default_factory=list)
    system_event: Optional[SystemEvent] = None
    anonymous: Optional[str] = None
    time_order: Optional[int] = None
    display_order: Optional[int] = None
    # position of the source block in the export, 0-based
    index: int = 0

    @property
    def token_count(self) -> int:
        return len(self.tokens)

    @property
    def is_system(self) -> bool:
        return self.sender == SYSTEM_SENDER

    @property
    def emoji_glyphs(self) -> List[str]:
        return [glyph for glyph, _ in self.emoji]

    @property
    def emoji_descriptions(self) -> List[str]:
        return [description for _, description in self.emoji]


COLUMN_GETTERS: Dict[str, Callable[[MessageRecord], Any]] = {
    "DateTime": lambda r: r.timestamp,
    "Anonymous": lambda r: r.anonymous,
    "Sender": lambda r: r.sender,
    "Message": lambda r: r.raw_message,
    "Flat": lambda r: r.flat_message,
    "TokVec": lambda r: list(r.tokens),
    "URL": lambda r: list(r.urls),
    "Media": lambda r: list(r.media),
    "Location": lambda r: r.location,
    "Emoji": lambda r: r.emoji_glyphs,
    "EmojiDescriptions": lambda r: r.emoji_descriptions,
    "Smilies": lambda r: list(r.smilies),
    "SystemMessage": lambda r: r.system_event.text if r.system_event else None,
    "TokCount": lambda r: r.token_count,
    "TimeOrder": lambda r: r.time_order,
    "DisplayOrder": lambda r: r.display_order,
}


def table_columns(anon_mode: str = "off", order: str = "none") -> Tuple[str, ...]:
    """
    Columns present in a table built with the given options.

    Args:
        anon_mode: 'off', 'replace' or 'add'; only 'add' adds Anonymous.
        order: 'none', 'time', 'original' or 'both'.

    Returns:
        Column names in projection order.
    """
    columns = ["DateTime"]
    if anon_mode == "add":
        columns.append("Anonymous")
    columns.extend(BASE_COLUMNS[1:])
    if order == "both":
        columns.append("TimeOrder")
    if order in ("original", "both"):
        columns.append("DisplayOrder")
    return tuple(columns)


def is_absent(value: Any) -> bool:
    """True for None and empty sequences (a missing cell)."""
    if value is None:
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    return False


def project_row(record: MessageRecord, columns: Sequence[str]) -> Dict[str, Any]:
    """Project a record to a row keyed by column name."""
    return {name: COLUMN_GETTERS[name](record) for name in columns}


def count_absent(record: MessageRecord, columns: Sequence[str]) -> int:
    """Number of absent cells of a record over the given columns."""
    return sum(1 for value in project_row(record, columns).values() if is_absent(value))


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Location):
        return asdict(value)
    return value


@dataclass
class ChatTable:
    """Ordered collection of parsed messages plus its column layout."""

    records: List[MessageRecord] = field(default_factory=list)
    columns: Tuple[str, ...] = field(default_factory=table_columns)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[MessageRecord]:
        return iter(self.records)

    def __getitem__(self, index: int) -> MessageRecord:
        return self.records[index]

    @property
    def empty(self) -> bool:
        return not self.records

    def senders(self, include_system: bool = True) -> List[str]:
        """Distinct senders in order of first appearance."""
        seen: Dict[str, None] = {}
        for record in self.records:
            if record.sender is None:
                continue
            if not include_system and record.sender == SYSTEM_SENDER:
                continue
            seen.setdefault(record.sender, None)
        return list(seen)

    def rows(self) -> List[Dict[str, Any]]:
        """Rows keyed by column name, values as Python objects."""
        return [project_row(record, self.columns) for record in self.records]

    def to_json_rows(self) -> List[Dict[str, Any]]:
        """Rows with JSON-serializable values (ISO timestamps, location dicts)."""
        return [
            {name: _json_value(value) for name, value in row.items()} for row in self.rows()
        ]
