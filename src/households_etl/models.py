from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, NewType, Optional, Sequence

# Run-scoped and durable identifiers live in separate spaces and are never mixed.
CorrelationId = NewType("CorrelationId", str)
DurableId = NewType("DurableId", int)

RawRow = Dict[str, str]


class HouseholdRole(str, Enum):
    NONE = "none"
    MAIN_CONTACT_1 = "main_contact_1"
    MAIN_CONTACT_2 = "main_contact_2"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def review_rank(self) -> int:
        return _REVIEW_RANK[self]


_REVIEW_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _role_from_flags(main_contact_1: Any, main_contact_2: Any) -> HouseholdRole:
    if bool(main_contact_1):
        return HouseholdRole.MAIN_CONTACT_1
    if bool(main_contact_2):
        return HouseholdRole.MAIN_CONTACT_2
    return HouseholdRole.NONE


@dataclass(frozen=True)
class PersonCandidate:
    correlation_id: CorrelationId
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    role: HouseholdRole = HouseholdRole.NONE
    original_row: RawRow = field(default_factory=dict, compare=False)

    @property
    def is_main_contact_1(self) -> bool:
        return self.role is HouseholdRole.MAIN_CONTACT_1

    @property
    def is_main_contact_2(self) -> bool:
        return self.role is HouseholdRole.MAIN_CONTACT_2

    @property
    def contact_field_count(self) -> int:
        return sum(1 for value in (self.email, self.mobile) if value)

    @property
    def has_contact(self) -> bool:
        return self.contact_field_count > 0

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def with_role(self, role: HouseholdRole) -> "PersonCandidate":
        return replace(self, role=role)

    @classmethod
    def from_mapping(cls, payload: Dict[str, Any]) -> "PersonCandidate":
        return cls(
            correlation_id=CorrelationId(str(payload.get("correlationId", "") or "")),
            first_name=_optional_str(payload.get("firstName")),
            last_name=_optional_str(payload.get("lastName")),
            email=_optional_str(payload.get("email")),
            mobile=_optional_str(payload.get("mobile")),
            role=_role_from_flags(payload.get("isMainContact1"), payload.get("isMainContact2")),
            original_row=dict(payload.get("originalRow", {}) or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlationId": self.correlation_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "mobile": self.mobile,
            "isMainContact1": self.is_main_contact_1,
            "isMainContact2": self.is_main_contact_2,
            "originalRow": dict(self.original_row),
        }


@dataclass(frozen=True)
class HouseholdCandidate:
    id: CorrelationId
    suggested_name: str
    members: List[PersonCandidate]
    confidence: Confidence
    reviewed: bool = False
    confirmed: bool = False
    already_imported: bool = False

    @staticmethod
    def _ensure_member_list(values: Sequence[Any]) -> List[PersonCandidate]:
        return [
            value if isinstance(value, PersonCandidate) else PersonCandidate.from_mapping(value)
            for value in values
        ]

    @classmethod
    def from_mapping(cls, payload: Dict[str, Any]) -> "HouseholdCandidate":
        confidence = str(payload.get("confidence", "") or Confidence.MEDIUM.value).lower()
        return cls(
            id=CorrelationId(str(payload.get("id", "") or "")),
            suggested_name=str(payload.get("suggestedName", "") or "").strip(),
            members=cls._ensure_member_list(payload.get("members", []) or []),
            confidence=Confidence(confidence),
            reviewed=bool(payload.get("reviewed", False)),
            confirmed=bool(payload.get("confirmed", False)),
            already_imported=bool(payload.get("alreadyImported", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "suggestedName": self.suggested_name,
            "members": [member.to_dict() for member in self.members],
            "confidence": self.confidence.value,
            "reviewed": self.reviewed,
            "confirmed": self.confirmed,
            "alreadyImported": self.already_imported,
        }

    def replace(self, **changes: Any) -> "HouseholdCandidate":
        return replace(self, **changes)


@dataclass(frozen=True)
class InferenceStats:
    total_people: int = 0
    total_families: int = 0
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0
    already_imported: int = 0

    @classmethod
    def from_households(
        cls, households: Sequence[HouseholdCandidate], total_people: int
    ) -> "InferenceStats":
        def count(level: Confidence) -> int:
            return sum(1 for household in households if household.confidence is level)

        return cls(
            total_people=total_people,
            total_families=len(households),
            high_confidence=count(Confidence.HIGH),
            medium_confidence=count(Confidence.MEDIUM),
            low_confidence=count(Confidence.LOW),
            already_imported=sum(1 for household in households if household.already_imported),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalPeople": self.total_people,
            "totalFamilies": self.total_families,
            "highConfidence": self.high_confidence,
            "mediumConfidence": self.medium_confidence,
            "lowConfidence": self.low_confidence,
            "alreadyImported": self.already_imported,
        }


@dataclass(frozen=True)
class InferenceResult:
    families: List[HouseholdCandidate]
    stats: InferenceStats
    assign_to: Optional[str] = None

    @classmethod
    def empty(cls, assign_to: Optional[str] = None) -> "InferenceResult":
        return cls(families=[], stats=InferenceStats(), assign_to=assign_to)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "families": [household.to_dict() for household in self.families],
            "stats": self.stats.to_dict(),
        }
        if self.assign_to is not None:
            payload["assignTo"] = self.assign_to
        return payload


@dataclass(frozen=True)
class ImportedRef:
    id: DurableId
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class ImportResult:
    families: List[ImportedRef] = field(default_factory=list)
    individuals: List[ImportedRef] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": {
                "families": [ref.to_dict() for ref in self.families],
                "individuals": [ref.to_dict() for ref in self.individuals],
            }
        }
