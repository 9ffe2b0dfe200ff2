from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from .config_loader import PipelineConfig, default_config
from .households import HouseholdSettings, build_households
from .matching import mark_already_imported
from .models import InferenceResult, InferenceStats, RawRow
from .normalization import normalize_rows
from .parsing import parse_text, read_upload_rows

logger = logging.getLogger(__name__)

REVIEW_COLUMNS = [
    "household_id",
    "suggested_name",
    "confidence",
    "already_imported",
    "correlation_id",
    "first_name",
    "last_name",
    "email",
    "mobile",
    "is_main_contact_1",
    "is_main_contact_2",
]


def process_rows(
    rows: Sequence[RawRow],
    config: Optional[PipelineConfig] = None,
    existing_labels: Optional[Iterable[str]] = None,
    assign_to: Optional[str] = None,
) -> InferenceResult:
    """Infer households from parsed rows.

    Deterministic for a given input: the same rows always produce the same
    households, labels, roles and ordering.
    """
    config = config or default_config()
    people = normalize_rows(rows)
    if not people:
        logger.info("No usable people found in %d row(s)", len(rows))
        return InferenceResult.empty(assign_to=assign_to)

    households = build_households(people, HouseholdSettings.from_config(config))
    if existing_labels is not None:
        households = mark_already_imported(households, existing_labels)

    stats = InferenceStats.from_households(households, total_people=len(people))
    logger.info("Household inference complete: %s", stats.to_dict())
    return InferenceResult(families=households, stats=stats, assign_to=assign_to)


def process_text(
    text: Optional[str],
    config: Optional[PipelineConfig] = None,
    existing_labels: Optional[Iterable[str]] = None,
    assign_to: Optional[str] = None,
) -> InferenceResult:
    return process_rows(parse_text(text), config, existing_labels, assign_to)


def process_upload(
    data: bytes,
    content_type: Optional[str],
    filename: Optional[str] = None,
    config: Optional[PipelineConfig] = None,
    existing_labels: Optional[Iterable[str]] = None,
    assign_to: Optional[str] = None,
) -> InferenceResult:
    """Validate and parse an uploaded file, then infer households.

    Raises ``UnsupportedUploadError`` for non-tabular uploads.
    """
    config = config or default_config()
    rows = read_upload_rows(data, content_type, filename, config.ingestion)
    return process_rows(rows, config, existing_labels, assign_to)


def review_frame(result: InferenceResult) -> pd.DataFrame:
    """One row per member, for spreadsheet review."""
    records: List[dict] = []
    for household in result.families:
        for member in household.members:
            records.append(
                {
                    "household_id": household.id,
                    "suggested_name": household.suggested_name,
                    "confidence": household.confidence.value,
                    "already_imported": household.already_imported,
                    "correlation_id": member.correlation_id,
                    "first_name": member.first_name or "",
                    "last_name": member.last_name or "",
                    "email": member.email or "",
                    "mobile": member.mobile or "",
                    "is_main_contact_1": member.is_main_contact_1,
                    "is_main_contact_2": member.is_main_contact_2,
                }
            )
    return pd.DataFrame(records, columns=REVIEW_COLUMNS)
