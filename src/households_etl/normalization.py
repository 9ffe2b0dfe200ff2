from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import phonenumbers
from email_validator import EmailNotValidError, validate_email

from .field_mapping import FieldMapping, detect_field_mappings
from .models import CorrelationId, PersonCandidate, RawRow

logger = logging.getLogger(__name__)

IdentityKey = Tuple[Optional[str], Optional[str], Optional[str], Optional[str]]


def clean_value(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


def extract_field(row: RawRow, header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    return clean_value(row.get(header))


def _later_headers(rows: Sequence[RawRow]) -> List[str]:
    first_keys = set(rows[0])
    headers: Dict[str, None] = {}
    for row in rows[1:]:
        for key in row:
            if key not in first_keys:
                headers.setdefault(key, None)
    return list(headers)


def detect_row_mapping(rows: Sequence[RawRow]) -> FieldMapping:
    """Map logical fields from the first row's headers.

    Keys that only later rows carry may fill a field the first row leaves
    unmapped; they never displace one of the first row's columns.
    """
    mapping = detect_field_mappings(list(rows[0]))
    if not mapping.unmapped_fields():
        return mapping
    later = _later_headers(rows)
    if not later:
        return mapping
    return mapping.fill_missing(detect_field_mappings(later))


def default_correlation_id(index: int) -> CorrelationId:
    return CorrelationId(f"person_{index}")


def normalize_row(
    row: RawRow, mapping: FieldMapping, correlation_id: CorrelationId
) -> Optional[PersonCandidate]:
    first_name = extract_field(row, mapping.first_name)
    last_name = extract_field(row, mapping.last_name)
    if not (first_name or last_name):
        return None
    return PersonCandidate(
        correlation_id=correlation_id,
        first_name=first_name,
        last_name=last_name,
        email=extract_field(row, mapping.email),
        mobile=extract_field(row, mapping.mobile) or extract_field(row, mapping.phone),
        original_row=dict(row),
    )


def normalize_rows(
    rows: Sequence[RawRow],
    mapping: Optional[FieldMapping] = None,
    id_factory: Callable[[int], CorrelationId] = default_correlation_id,
) -> List[PersonCandidate]:
    if not rows:
        return []
    mapping = mapping or detect_row_mapping(rows)

    candidates: List[PersonCandidate] = []
    dropped = 0
    for index, row in enumerate(rows):
        candidate = normalize_row(row, mapping, id_factory(index))
        if candidate is None:
            dropped += 1
            continue
        candidates.append(candidate)

    if dropped:
        logger.debug("Dropped %d row(s) without a usable name", dropped)
    logger.info("Normalized %d row(s) to %d people", len(rows), len(candidates))
    return candidates


def name_key(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return re.sub(r"\s+", " ", value.strip()).lower() or None


def email_key(value: Optional[str]) -> Optional[str]:
    candidate = clean_value(value)
    if candidate is None:
        return None
    try:
        normalized = validate_email(candidate, check_deliverability=False).normalized
    except EmailNotValidError:
        logger.debug("Email %s did not validate; comparing raw value", candidate)
        normalized = candidate.replace(" ", "")
    return normalized.lower()


def phone_key(value: Optional[str], default_country: str = "US") -> Optional[str]:
    candidate = clean_value(value)
    if candidate is None:
        return None
    try:
        region = None if candidate.startswith("+") else default_country
        parsed = phonenumbers.parse(candidate, region)
        return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
    except phonenumbers.NumberParseException:
        logger.debug("phonenumbers.parse failed for %s", candidate)
    digits = re.sub(r"\D", "", candidate)
    return digits or candidate.lower()


def identity_key(candidate: PersonCandidate, default_country: str = "US") -> IdentityKey:
    return (
        name_key(candidate.first_name),
        name_key(candidate.last_name),
        email_key(candidate.email),
        phone_key(candidate.mobile, default_country),
    )
