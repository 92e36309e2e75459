"""
Parse pipeline orchestration.

This module turns the text of one chat export into a ChatTable. It wires
the stages together and collects per-record problems into diagnostics.

Pipeline Steps:
    1. Normalize line endings and invisible marks
    2. Detect platform and language from a bounded prefix (or take the
       explicit options)
    3. Segment the text into one block per message
    4. Classify each block into timestamp, sender and body; blocks with a
       malformed timestamp are dropped and recorded
    5. Run the field extractors on every record (optionally on a thread
       pool; document order is kept)
    6. Consent filter, anonymization, ordering
    7. Prune artifact rows

Failure Policy:
    Detection ambiguity and unsupported options raise ChatParseError and no
    table is returned. Everything below that level is recovered locally:
    the record is dropped and a DiagnosticIssue says why. A parse that ends
    with zero rows is not an error; it is flagged as empty_result.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import AbstractSet, Any, Dict, List, Mapping, Optional, Union

from chat_export.classifier import classify_block, collect_group_titles
from chat_export.config import ParseConfig
from chat_export.detection import detect_language, detect_platform, sample_text
from chat_export.dictionaries import default_emoji_dictionary, default_smiley_dictionary
from chat_export.errors import MalformedTimestampError
from chat_export.extractors import ExtractionResources, apply_extractors
from chat_export.indicators import IndicatorTable, load_indicator_table
from chat_export.models import ChatTable, MessageRecord, table_columns
from chat_export.normalizers import normalize_chat_text
from chat_export.postprocess import anonymize, apply_ordering, filter_by_consent, prune
from chat_export.segmenter import segment_messages

logger = logging.getLogger(__name__)

MALFORMED_TIMESTAMP = "malformed_timestamp"
PRUNED = "pruned"
EMPTY_RESULT = "empty_result"


@dataclass
class DiagnosticIssue:
    """A record-level problem that did not abort the parse."""

    kind: str  # 'malformed_timestamp', 'pruned' or 'empty_result'
    index: Optional[int]  # block index, None for whole-parse issues
    detail: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "index": self.index, "detail": self.detail}


@dataclass
class ParseDiagnostics:
    """Counts and issues collected during one parse."""

    segments: int = 0
    preamble_chars: int = 0
    issues: List[DiagnosticIssue] = field(default_factory=list)

    def add(self, kind: str, index: Optional[int], detail: str) -> None:
        self.issues.append(DiagnosticIssue(kind, index, detail))

    def count(self, kind: str) -> int:
        return sum(1 for issue in self.issues if issue.kind == kind)

    @property
    def malformed(self) -> int:
        return self.count(MALFORMED_TIMESTAMP)

    @property
    def pruned(self) -> int:
        return self.count(PRUNED)

    @property
    def empty_result(self) -> bool:
        return self.count(EMPTY_RESULT) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "segments": self.segments,
            "preamble_chars": self.preamble_chars,
            "malformed": self.malformed,
            "pruned": self.pruned,
            "empty_result": self.empty_result,
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass
class ParseResult:
    """Result of parsing one chat export."""

    table: ChatTable
    diagnostics: ParseDiagnostics
    platform: str
    language: str
    anonymization_map: Dict[str, str] = field(default_factory=dict)
    duration_seconds: float = 0.0

    def __str__(self) -> str:
        status = "EMPTY" if self.diagnostics.empty_result else "OK"
        return (
            f"Parse {status} ({self.platform}/{self.language})\n"
            f"  Segments: {self.diagnostics.segments}, "
            f"preamble {self.diagnostics.preamble_chars} chars\n"
            f"  Messages: {len(self.table)} kept, {self.diagnostics.malformed} malformed, "
            f"{self.diagnostics.pruned} pruned\n"
            f"  Participants: {len(self.table.senders(include_system=False))}\n"
            f"  Duration: {self.duration_seconds:.2f}s"
        )


def _classify_blocks(
    blocks: List[str],
    table: IndicatorTable,
    platform: str,
    language: str,
    config: ParseConfig,
    diagnostics: ParseDiagnostics,
) -> List[MessageRecord]:
    grammar = table.grammar(platform)
    indicators = table.get(language, platform)
    titles = collect_group_titles(blocks, grammar, indicators) if grammar.group_prefix else frozenset()
    records = []
    for index, block in enumerate(blocks):
        try:
            classified = classify_block(
                block,
                grammar,
                indicators,
                config.media_omitted_placeholder,
                config.slash_date_order,
                titles,
            )
        except MalformedTimestampError as e:
            logger.debug(f"Dropping block {index}: {e}")
            diagnostics.add(MALFORMED_TIMESTAMP, index, e.reason)
            continue
        records.append(
            MessageRecord(
                timestamp=classified.timestamp,
                sender=classified.sender,
                raw_message=classified.raw_message,
                system_event=classified.system_event,
                index=index,
            )
        )
    return records


def _extract_all(
    records: List[MessageRecord],
    resources: ExtractionResources,
    config: ParseConfig,
) -> List[MessageRecord]:
    if config.workers <= 1 or len(records) < 2:
        return [apply_extractors(record, resources, config) for record in records]

    # Executor.map yields results in input order.
    with ThreadPoolExecutor(max_workers=config.workers) as pool:
        return list(pool.map(lambda record: apply_extractors(record, resources, config), records))


def parse_chat(
    text: str,
    config: Optional[ParseConfig] = None,
    table: Optional[IndicatorTable] = None,
    emoji_dictionary: Optional[Mapping[str, str]] = None,
    smiley_dictionary: Optional[AbstractSet[str]] = None,
) -> ParseResult:
    """
    Parse the text of a chat export.

    Args:
        text: Whole export as a string.
        config: Parse options; defaults to ParseConfig().
        table: Indicator table; defaults to the bundled table.
        emoji_dictionary: Glyph -> description; defaults to the emoji package data.
        smiley_dictionary: Emoticon set; defaults to the bundled list.

    Returns:
        ParseResult with the table and diagnostics.

    Raises:
        AmbiguousFormatError: platform could not be detected.
        AmbiguousLanguageError: language could not be detected.
        UnsupportedPlatformError, UnsupportedLanguageError: bad options.
    """
    start_time = datetime.now()
    config = config or ParseConfig()
    table = table or load_indicator_table()
    config.validate_language(table.languages)

    diagnostics = ParseDiagnostics()

    # Step 1: Normalize
    text = normalize_chat_text(text)

    # Step 2: Detect
    sample = sample_text(text, config.detection_sample_size)
    platform = detect_platform(sample, config.platform, table)
    language = detect_language(sample, config.language, table, platform=platform)

    # Step 3: Segment
    segmentation = segment_messages(text, table.grammar(platform), config.newline_placeholder)
    diagnostics.segments = len(segmentation)
    diagnostics.preamble_chars = len(segmentation.preamble)

    # Step 4: Classify
    records = _classify_blocks(segmentation.blocks, table, platform, language, config, diagnostics)
    if diagnostics.malformed:
        logger.info(f"Dropped {diagnostics.malformed} blocks with malformed timestamps")

    # Step 5: Extract
    resources = ExtractionResources(
        indicators=table.get(language, platform),
        emoji_dictionary=emoji_dictionary if emoji_dictionary is not None else default_emoji_dictionary(),
        smiley_dictionary=smiley_dictionary if smiley_dictionary is not None else default_smiley_dictionary(),
    )
    records = _extract_all(records, resources, config)
    logger.info(f"Extracted fields from {len(records)} messages")

    # Step 6: Consent, anonymization, ordering
    records = filter_by_consent(records, config.consent_text)
    records, anonymization_map = anonymize(records, config.anon_mode)
    records = apply_ordering(records, config.order)

    # Step 7: Prune
    columns = table_columns(config.anon_mode, config.order)
    records, dropped = prune(records, columns, config.drop_threshold)
    for record in dropped:
        diagnostics.add(PRUNED, record.index, f"more than {config.drop_threshold} empty fields")
    if dropped:
        logger.info(f"Pruned {len(dropped)} artifact rows")

    if not records:
        logger.warning("Parse produced no messages")
        diagnostics.add(EMPTY_RESULT, None, "no messages survived parsing")

    duration = (datetime.now() - start_time).total_seconds()
    result = ParseResult(
        table=ChatTable(records=records, columns=columns),
        diagnostics=diagnostics,
        platform=platform,
        language=language,
        anonymization_map=anonymization_map,
        duration_seconds=duration,
    )
    logger.info(f"Parsed {len(records)} messages in {duration:.2f}s")
    return result


def parse_chat_file(
    path: Union[str, Path],
    config: Optional[ParseConfig] = None,
    **kwargs: Any,
) -> ParseResult:
    """
    Read an exported _chat.txt file and parse it.

    Args:
        path: Path to the export (UTF-8, with or without BOM).
        config: Parse options.
        **kwargs: Passed on to parse_chat (table, dictionaries).

    Returns:
        ParseResult.
    """
    path = Path(path)
    logger.info(f"Parsing {path}")
    text = path.read_text(encoding="utf-8-sig")
    return parse_chat(text, config=config, **kwargs)
