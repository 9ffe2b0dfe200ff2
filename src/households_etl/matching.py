"""Fuzzy household/person label matching.

``names_match`` favours recall: when in doubt it reports a match, so callers
flag a household as already imported rather than silently creating a
duplicate. Treat a positive result as "needs a look", not as proof.
Given names match on a shared prefix, so "Jon" matches "Jonathan"; the
"and" joiner of directory labels is not a given name.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Sequence, Tuple

from .family_names import is_valid_family_name_format, parse_family_name
from .models import HouseholdCandidate

logger = logging.getLogger(__name__)

_APOSTROPHES = re.compile(r"['‘’`]")
_DASHES = re.compile(r"[-–—]")
_PUNCTUATION = re.compile(r"[.;:!?()\"]")
_WHITESPACE = re.compile(r"\s+")
_JOINERS = {"and"}


def _normalize(text: str, keep_commas: bool) -> str:
    value = (text or "").lower()
    value = _APOSTROPHES.sub("", value)
    value = _DASHES.sub(" ", value)
    value = _PUNCTUATION.sub("", value)
    if not keep_commas:
        value = value.replace(",", "")
    return _WHITESPACE.sub(" ", value).strip()


def normalize_name(text: str) -> str:
    return _normalize(text, keep_commas=False)


def surname_token(normalized: str) -> str:
    return normalized.split(",", 1)[0].strip()


def _given_tokens(normalized: str, surname: str) -> List[str]:
    rest = normalized.replace(surname, "", 1).replace(",", "").strip()
    return [word for word in rest.split(" ") if len(word) > 1 and word not in _JOINERS]


def label_parts(label: str) -> Tuple[str, List[str]]:
    """Surname and given-name tokens of a label, both normalized.

    Directory labels ("Smith, John and Jane") are split with
    ``parse_family_name``; anything else takes the text before the first comma
    as the surname. The "and" joiner is never a given name.
    """
    if is_valid_family_name_format(label):
        surname, given_names = parse_family_name(label)
        tokens = [
            word
            for name in given_names
            for word in normalize_name(name).split(" ")
            if len(word) > 1 and word not in _JOINERS
        ]
        return normalize_name(surname), tokens
    normalized = _normalize(label, keep_commas=True)
    surname = surname_token(normalized)
    return surname, _given_tokens(normalized, surname)


def _tokens_overlap(left: Sequence[str], right: Sequence[str]) -> bool:
    for w1 in left:
        for w2 in right:
            if w1 == w2 or w1.startswith(w2) or w2.startswith(w1):
                return True
    return False


def names_match(label_a: str, label_b: str) -> bool:
    """Return True when two labels plausibly name the same household or person."""
    n1 = normalize_name(label_a)
    n2 = normalize_name(label_b)
    if not n1 or not n2:
        return False
    if n1 == n2:
        return True
    if n1 in n2 or n2 in n1:
        return True

    surname1, given1 = label_parts(label_a)
    surname2, given2 = label_parts(label_b)
    if surname1 and surname1 == surname2:
        return _tokens_overlap(given1, given2)
    return False


def is_already_imported(label: str, existing_labels: Iterable[str]) -> bool:
    return any(names_match(label, existing) for existing in existing_labels)


def mark_already_imported(
    households: Sequence[HouseholdCandidate], existing_labels: Iterable[str]
) -> List[HouseholdCandidate]:
    labels = [label for label in existing_labels if label]
    marked = [
        household.replace(already_imported=is_already_imported(household.suggested_name, labels))
        for household in households
    ]
    flagged = sum(1 for household in marked if household.already_imported)
    if flagged:
        logger.info("%d of %d household(s) look already imported", flagged, len(marked))
    return marked
