from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

_SEP = r"[\s_\-]?"

# Checked in order; the first spelling that fully matches a header wins.
FIELD_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "first_name": (
        "first",
        "given",
        "forename",
        f"first{_SEP}name",
        f"given{_SEP}name",
    ),
    "last_name": (
        "last",
        "family",
        "surname",
        f"last{_SEP}name",
        f"family{_SEP}name",
    ),
    "email": (
        "email",
        f"e{_SEP}mail",
        f"e?mail{_SEP}address",
    ),
    "mobile": (
        "mobile",
        "cell",
        f"mobile{_SEP}(?:number|phone)",
        f"cell{_SEP}(?:number|phone)",
    ),
    "phone": (
        "phone",
        "tel",
        "telephone",
        f"phone{_SEP}number",
    ),
}

_COMPILED: Dict[str, Tuple[Pattern[str], ...]] = {
    field_name: tuple(re.compile(rf"^(?:{pattern})$", re.IGNORECASE) for pattern in patterns)
    for field_name, patterns in FIELD_SYNONYMS.items()
}


@dataclass(frozen=True)
class FieldMapping:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "mobile": self.mobile,
            "phone": self.phone,
        }

    def unmapped_fields(self) -> List[str]:
        return [name for name, header in self.to_dict().items() if header is None]

    def fill_missing(self, other: "FieldMapping") -> "FieldMapping":
        """Take ``other``'s header only for fields this mapping leaves unmapped."""
        values = self.to_dict()
        for name, header in other.to_dict().items():
            if values[name] is None:
                values[name] = header
        return FieldMapping(**values)


def _match_header(field_name: str, headers: List[str], claimed: set[str]) -> Optional[str]:
    for pattern in _COMPILED[field_name]:
        for header in headers:
            if header in claimed:
                continue
            if pattern.match(header.strip()):
                return header
    return None


def detect_field_mappings(headers: Iterable[str]) -> FieldMapping:
    """Resolve the source header for each logical field.

    Unmatched fields map to ``None``; a header is claimed by at most one field.
    """
    header_list = [str(header) for header in headers]
    claimed: set[str] = set()
    resolved: Dict[str, Optional[str]] = {}
    for field_name in FIELD_SYNONYMS:
        header = _match_header(field_name, header_list, claimed)
        if header is not None:
            claimed.add(header)
        resolved[field_name] = header

    mapping = FieldMapping(**resolved)
    logger.info("Detected field mappings: %s", mapping.to_dict())
    return mapping
