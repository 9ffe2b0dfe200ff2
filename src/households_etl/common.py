from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from .config_loader import PipelineConfig, load_pipeline_config
from .households import HouseholdSettings, build_households
from .matching import mark_already_imported, names_match, normalize_name
from .models import (
    Confidence,
    CorrelationId,
    DurableId,
    HouseholdCandidate,
    HouseholdRole,
    InferenceResult,
    InferenceStats,
    PersonCandidate,
)
from .normalization import normalize_rows
from .parsing import UnsupportedUploadError, parse_bytes, parse_text

__all__ = [
    "Confidence",
    "CorrelationId",
    "DurableId",
    "HouseholdCandidate",
    "HouseholdRole",
    "HouseholdSettings",
    "InferenceResult",
    "InferenceStats",
    "PersonCandidate",
    "PipelineConfig",
    "UnsupportedUploadError",
    "build_households",
    "load_config",
    "load_existing_labels",
    "load_json",
    "mark_already_imported",
    "names_match",
    "normalize_name",
    "normalize_rows",
    "parse_bytes",
    "parse_text",
    "warn_missing",
    "write_json",
]


logger = logging.getLogger(__name__)


def load_config(args: Any) -> PipelineConfig:
    return load_pipeline_config(args)


def warn_missing(path: Optional[str], label: str) -> bool:
    if not path or not os.path.exists(path):
        logger.warning("%s path missing: %s", label, path)
        return True
    return False


def load_existing_labels(path: Optional[str]) -> Optional[List[str]]:
    """Read one existing household label per line; ``None`` when no file is given."""
    if not path:
        return None
    if warn_missing(path, "existing labels file"):
        return None
    with open(path, "r", encoding="utf-8") as handle:
        return [line.strip() for line in handle if line.strip()]


def load_json(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def write_json(path: str, payload: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, indent=2)
        handle.write("\n")
