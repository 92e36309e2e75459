"""
Post-processing of a parsed chat: consent filter, anonymization, ordering
and pruning.

Each step takes the record list produced by the previous one and returns a
new list; records are replaced, never modified in place. The pipeline runs
the steps in this order:

    filter_by_consent -> anonymize -> apply_ordering -> prune

Anonymization:
    Every distinct non-system sender gets a pseudonym Person_<k>, k counting
    from 1 in order of first appearance. Real names mentioned in system
    event text are substituted in one simultaneous pass (longest name
    first, so "Ann" never eats into "Anna"), and phone-number senders that
    appear as "+Person_k" are tidied to "Person_k".

    Known limitation: a participant who never sends a message only appears
    in system event text and keeps their real name there.
"""

import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from chat_export.models import SYSTEM_SENDER, MessageRecord, count_absent

logger = logging.getLogger(__name__)

PSEUDONYM_PREFIX = "Person_"
PHONE_PSEUDONYM_PATTERN = re.compile(r"\+(" + PSEUDONYM_PREFIX + r"\d+)")


def filter_by_consent(records: Sequence[MessageRecord], consent_text: Optional[str]) -> List[MessageRecord]:
    """
    Keep only the messages of participants who posted the consent text.

    A participant consents by sending a message that equals consent_text
    exactly, at least once. System messages are always kept.

    Args:
        records: Parsed records.
        consent_text: Literal consent message, or None to keep everything.

    Returns:
        Filtered records in their original order.
    """
    if consent_text is None:
        return list(records)

    consenting = {r.sender for r in records if r.raw_message == consent_text}
    consenting.add(SYSTEM_SENDER)
    kept = [r for r in records if r.sender in consenting]
    logger.info(
        f"Consent filter kept {len(kept)}/{len(records)} messages "
        f"from {len(consenting) - 1} consenting participants"
    )
    return kept


def build_anonymization_map(records: Sequence[MessageRecord]) -> Dict[str, str]:
    """
    Assign a pseudonym to every non-system sender.

    Returns:
        Mapping real sender -> Person_<k>, in order of first appearance.
    """
    mapping: Dict[str, str] = {}
    for record in records:
        sender = record.sender
        if sender is None or sender == SYSTEM_SENDER or sender in mapping:
            continue
        mapping[sender] = f"{PSEUDONYM_PREFIX}{len(mapping) + 1}"
    return mapping


def substitute_names(text: str, mapping: Dict[str, str]) -> str:
    """
    Replace every real name in text by its pseudonym in a single pass.

    Examples:
        >>> substitute_names("Anna added Ann", {"Ann": "Person_1", "Anna": "Person_2"})
        'Person_2 added Person_1'
    """
    if not mapping or not text:
        return text
    names = sorted(mapping, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(name) for name in names))
    text = pattern.sub(lambda m: mapping[m.group(0)], text)
    return PHONE_PSEUDONYM_PATTERN.sub(r"\1", text)


def anonymize(
    records: Sequence[MessageRecord],
    anon_mode: str,
    mapping: Optional[Dict[str, str]] = None,
) -> Tuple[List[MessageRecord], Dict[str, str]]:
    """
    Pseudonymize senders and names in system event text.

    Args:
        records: Records, already consent-filtered.
        anon_mode: 'off' (unchanged), 'replace' (sender becomes the
            pseudonym) or 'add' (sender kept, pseudonym in `anonymous`).
        mapping: Precomputed anonymization map; built from records if None.

    Returns:
        (records, mapping). The mapping is empty when anon_mode is 'off'.
    """
    if anon_mode == "off":
        return list(records), {}
    if anon_mode not in ("replace", "add"):
        raise ValueError(f"Unknown anonymization mode: {anon_mode!r}")

    if mapping is None:
        mapping = build_anonymization_map(records)

    result = []
    for record in records:
        pseudonym = mapping.get(record.sender, record.sender) if record.sender else None
        event = record.system_event
        if event is not None:
            event = replace(event, text=substitute_names(event.text, mapping))

        if anon_mode == "replace":
            result.append(replace(record, sender=pseudonym, system_event=event))
        else:
            result.append(replace(record, anonymous=pseudonym, system_event=event))

    logger.info(f"Anonymized {len(mapping)} participants ({anon_mode})")
    return result, mapping


def _timestamp_key(record: MessageRecord) -> Tuple[bool, datetime]:
    return (record.timestamp is None, record.timestamp or datetime.min)


def apply_ordering(records: Sequence[MessageRecord], order: str) -> List[MessageRecord]:
    """
    Apply an ordering option.

    Args:
        records: Records in document order.
        order: 'none' leaves them as they are; 'time' sorts by timestamp
            (stable); 'original' attaches display_order 1..N; 'both'
            attaches display_order and time_order, the 1-based rank of
            each record by timestamp, without reordering.

    Returns:
        New list of records.
    """
    if order == "none":
        return list(records)
    if order == "time":
        return sorted(records, key=_timestamp_key)
    if order not in ("original", "both"):
        raise ValueError(f"Unknown order: {order!r}")

    ranks: Dict[int, int] = {}
    if order == "both":
        by_time = sorted(range(len(records)), key=lambda i: _timestamp_key(records[i]))
        ranks = {position: rank for rank, position in enumerate(by_time, start=1)}

    return [
        replace(
            record,
            display_order=i + 1,
            time_order=ranks.get(i) if order == "both" else record.time_order,
        )
        for i, record in enumerate(records)
    ]


def prune(
    records: Sequence[MessageRecord],
    columns: Sequence[str],
    threshold: int,
) -> Tuple[List[MessageRecord], List[MessageRecord]]:
    """
    Drop records with more than threshold absent cells.

    Such rows are segmentation artifacts, not messages.

    Args:
        records: Records to check.
        columns: Columns present in the output table.
        threshold: Maximum number of absent cells a record may have.

    Returns:
        (kept, dropped), both in input order.
    """
    kept: List[MessageRecord] = []
    dropped: List[MessageRecord] = []
    for record in records:
        if count_absent(record, columns) > threshold:
            logger.debug(f"Pruning record {record.index}: too many empty fields")
            dropped.append(record)
        else:
            kept.append(record)
    return kept, dropped
