from __future__ import annotations

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence

from .config_loader import PipelineConfig, check_household_thresholds
from .family_names import suggest_family_name
from .models import (
    Confidence,
    CorrelationId,
    HouseholdCandidate,
    HouseholdRole,
    PersonCandidate,
)
from .normalization import IdentityKey, identity_key

logger = logging.getLogger(__name__)

UNKNOWN_KEY = "unknown"
UNKNOWN_SURNAME = "Unknown"


@dataclass(frozen=True)
class HouseholdSettings:
    low_min_members: int = 7
    medium_min_members: int = 5
    label_style: str = "family"
    default_phone_country: str = "US"

    def __post_init__(self) -> None:
        check_household_thresholds(self.low_min_members, self.medium_min_members)

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "HouseholdSettings":
        return cls(
            low_min_members=config.households.low_min_members,
            medium_min_members=config.households.medium_min_members,
            label_style=config.households.label_style,
            default_phone_country=config.normalization.default_phone_country,
        )


def default_household_id(index: int) -> CorrelationId:
    return CorrelationId(f"household_{index}")


def household_key(candidate: PersonCandidate) -> str:
    if not candidate.last_name:
        return UNKNOWN_KEY
    return re.sub(r"\s+", " ", candidate.last_name.strip()).lower() or UNKNOWN_KEY


def group_by_last_name(
    candidates: Sequence[PersonCandidate],
) -> "OrderedDict[str, List[PersonCandidate]]":
    groups: "OrderedDict[str, List[PersonCandidate]]" = OrderedDict()
    for candidate in candidates:
        groups.setdefault(household_key(candidate), []).append(candidate)
    return groups


def remove_duplicates(
    members: Sequence[PersonCandidate], default_country: str = "US"
) -> List[PersonCandidate]:
    """Collapse members whose identity tuples are equal.

    Single greedy pass: a later duplicate replaces the kept member (in the
    kept member's position) only when it has strictly more contact fields.
    """
    kept: "OrderedDict[IdentityKey, PersonCandidate]" = OrderedDict()
    for member in members:
        key = identity_key(member, default_country)
        existing = kept.get(key)
        if existing is None:
            kept[key] = member
        elif member.contact_field_count > existing.contact_field_count:
            kept[key] = member
    removed = len(members) - len(kept)
    if removed:
        logger.debug("Removed %d duplicate member(s)", removed)
    return list(kept.values())


def assign_main_contacts(members: Sequence[PersonCandidate]) -> List[PersonCandidate]:
    """Return members with roles set, contactable members first.

    The first two members with an email or mobile become main contacts 1 and
    2 in input order; everyone else has no role.
    """
    with_contact = [member for member in members if member.has_contact]
    without_contact = [member for member in members if not member.has_contact]

    assigned: List[PersonCandidate] = []
    for position, member in enumerate(with_contact):
        if position == 0:
            role = HouseholdRole.MAIN_CONTACT_1
        elif position == 1:
            role = HouseholdRole.MAIN_CONTACT_2
        else:
            role = HouseholdRole.NONE
        assigned.append(member.with_role(role))
    assigned.extend(member.with_role(HouseholdRole.NONE) for member in without_contact)
    return assigned


def generate_household_label(members: Sequence[PersonCandidate]) -> str:
    main_1 = next((member for member in members if member.is_main_contact_1), None)
    main_2 = next((member for member in members if member.is_main_contact_2), None)

    if main_1 is not None and main_2 is not None:
        surname_1 = main_1.last_name or UNKNOWN_SURNAME
        surname_2 = main_2.last_name or UNKNOWN_SURNAME
        # Exact comparison: within one case-insensitive bucket this yields
        # labels such as "Smith & SMITH" when spellings differ only in case.
        if surname_1 == surname_2:
            return f"{surname_1} Family"
        return f"{surname_1} & {surname_2}"
    if main_1 is not None:
        return f"{main_1.last_name or UNKNOWN_SURNAME} Family"
    surname = (members[0].last_name if members else None) or UNKNOWN_SURNAME
    return f"{surname} Family"


def score_confidence(
    members: Sequence[PersonCandidate], settings: HouseholdSettings = HouseholdSettings()
) -> Confidence:
    count = len(members)
    if count >= settings.low_min_members:
        return Confidence.LOW
    if count >= settings.medium_min_members:
        return Confidence.MEDIUM
    if not any(member.has_contact for member in members):
        return Confidence.MEDIUM
    return Confidence.HIGH


def sort_by_confidence(households: Sequence[HouseholdCandidate]) -> List[HouseholdCandidate]:
    return sorted(households, key=lambda household: household.confidence.review_rank)


def _label_for(members: Sequence[PersonCandidate], settings: HouseholdSettings) -> str:
    if settings.label_style == "directory":
        directory_name = suggest_family_name(members)
        if directory_name:
            return directory_name
    return generate_household_label(members)


def build_household(
    household_id: CorrelationId,
    members: Sequence[PersonCandidate],
    settings: HouseholdSettings = HouseholdSettings(),
) -> HouseholdCandidate:
    unique_members = remove_duplicates(members, settings.default_phone_country)
    with_roles = assign_main_contacts(unique_members)
    return HouseholdCandidate(
        id=household_id,
        suggested_name=_label_for(with_roles, settings),
        members=with_roles,
        confidence=score_confidence(with_roles, settings),
    )


def build_households(
    candidates: Sequence[PersonCandidate],
    settings: HouseholdSettings = HouseholdSettings(),
    id_factory: Callable[[int], CorrelationId] = default_household_id,
) -> List[HouseholdCandidate]:
    groups = group_by_last_name(candidates)
    households = [
        build_household(id_factory(index), members, settings)
        for index, members in enumerate(groups.values())
    ]
    ordered = sort_by_confidence(households)
    counts: Dict[str, int] = {level.value: 0 for level in Confidence}
    for household in ordered:
        counts[household.confidence.value] += 1
    logger.info(
        "Built %d household(s) from %d people: %s", len(ordered), len(candidates), counts
    )
    return ordered
