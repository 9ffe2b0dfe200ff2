"""Directory-style family names such as ``"Smith, John and Jane"``."""

from __future__ import annotations

import re
from collections import Counter
from typing import List, Sequence, Tuple

from .models import PersonCandidate


def _join_given_names(names: Sequence[str]) -> str:
    if len(names) == 1:
        return names[0]
    return f"{', '.join(names[:-1])} and {names[-1]}"


def _named(people: Sequence[PersonCandidate]) -> List[PersonCandidate]:
    return [person for person in people if person.first_name and person.last_name]


def format_family_name(people: Sequence[PersonCandidate]) -> str:
    """Format ``"SURNAME, A"``, ``"SURNAME, A and B"`` or ``"SURNAME, A, B and C"``.

    People without both names are skipped; the surname comes from the first
    remaining person. Returns an empty string when nobody qualifies.
    """
    valid = _named(people)
    if not valid:
        return ""
    surname = valid[0].last_name or ""
    return f"{surname}, {_join_given_names([person.first_name or '' for person in valid])}"


def parse_family_name(family_name: str) -> Tuple[str, List[str]]:
    parts = (family_name or "").split(", ")
    if len(parts) < 2:
        return "", []
    surname = parts[0]
    names = ", ".join(parts[1:])
    first_names = [name.strip() for name in re.split(r" and |, ", names) if name.strip()]
    return surname, first_names


def is_valid_family_name_format(family_name: str) -> bool:
    if not family_name or ", " not in family_name:
        return False
    parts = family_name.split(", ")
    return len(parts) >= 2 and bool(parts[0].strip()) and bool(parts[1].strip())


def suggest_family_name(people: Sequence[PersonCandidate]) -> str:
    """Directory name built from the most common surname in ``people``.

    Ties go to the surname seen first.
    """
    counts = Counter(
        person.last_name.strip() for person in people if person.last_name and person.last_name.strip()
    )
    if not counts:
        return ""
    surname = counts.most_common(1)[0][0]
    members = [
        person
        for person in people
        if person.last_name and person.last_name.strip() == surname and person.first_name
    ]
    return format_family_name(members)
