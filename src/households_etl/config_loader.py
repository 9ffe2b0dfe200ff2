from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # type: ignore[import-untyped]

DEFAULT_CONTENT_TYPES = [
    "text/csv",
    "text/plain",
    "text/tab-separated-values",
    "application/csv",
    "application/vnd.ms-excel",
]
DEFAULT_EXTENSIONS = [".csv", ".tsv", ".txt"]
DEFAULT_DATABASE_URL = "sqlite+pysqlite:///households.db"

# Households this large are always low confidence; thresholds may only tighten it.
MAX_LOW_MIN_MEMBERS = 7


def check_household_thresholds(low_min_members: int, medium_min_members: int) -> None:
    if low_min_members < 1 or low_min_members > MAX_LOW_MIN_MEMBERS:
        raise ValueError(
            f"households.low_min_members must be between 1 and {MAX_LOW_MIN_MEMBERS} "
            f"(got {low_min_members})"
        )
    if medium_min_members > low_min_members:
        raise ValueError(
            "households.medium_min_members must not exceed households.low_min_members "
            f"({medium_min_members} > {low_min_members})"
        )


@dataclass
class OutputsConfig:
    dir: Path


@dataclass
class IngestionConfig:
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_content_types: list[str] = field(default_factory=lambda: list(DEFAULT_CONTENT_TYPES))
    allowed_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    encoding: str = "utf-8"


@dataclass
class NormalizationConfig:
    default_phone_country: str = "US"


@dataclass
class HouseholdsConfig:
    low_min_members: int = 7
    medium_min_members: int = 5
    label_style: str = "family"


@dataclass
class DatabaseConfig:
    url: str = DEFAULT_DATABASE_URL


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    sql_echo: bool = False


@dataclass
class PipelineConfig:
    inputs: Dict[str, Optional[str]]
    outputs: OutputsConfig
    ingestion: IngestionConfig
    normalization: NormalizationConfig
    households: HouseholdsConfig
    database: DatabaseConfig
    logging: LoggingConfig


def _load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_pipeline_config(args: argparse.Namespace) -> PipelineConfig:
    config_data = _load_yaml(getattr(args, "config", None))
    inputs = config_data.get("inputs", {}) or {}
    outputs_cfg = config_data.get("outputs", {}) or {}
    ingestion_cfg = config_data.get("ingestion", {}) or {}
    normalization_cfg = config_data.get("normalization", {}) or {}
    households_cfg = config_data.get("households", {}) or {}
    database_cfg = config_data.get("database", {}) or {}
    logging_cfg = config_data.get("logging", {}) or {}

    outputs_dir = Path(getattr(args, "out_dir", None) or outputs_cfg.get("dir") or os.getcwd())
    outputs = OutputsConfig(dir=outputs_dir)

    ingestion = IngestionConfig(
        max_upload_bytes=int(
            getattr(args, "max_upload_bytes", None)
            or ingestion_cfg.get("max_upload_bytes", 10 * 1024 * 1024)
        ),
        allowed_content_types=[
            value.lower()
            for value in ingestion_cfg.get("allowed_content_types", DEFAULT_CONTENT_TYPES)
        ],
        allowed_extensions=[
            value.lower() for value in ingestion_cfg.get("allowed_extensions", DEFAULT_EXTENSIONS)
        ],
        encoding=getattr(args, "encoding", None) or ingestion_cfg.get("encoding", "utf-8"),
    )

    normalization = NormalizationConfig(
        default_phone_country=getattr(args, "default_phone_country", None)
        or normalization_cfg.get("default_phone_country", "US"),
    )

    households = HouseholdsConfig(
        low_min_members=int(
            getattr(args, "low_min_members", None) or households_cfg.get("low_min_members", 7)
        ),
        medium_min_members=int(
            getattr(args, "medium_min_members", None)
            or households_cfg.get("medium_min_members", 5)
        ),
        label_style=(
            getattr(args, "label_style", None) or households_cfg.get("label_style", "family")
        ).lower(),
    )
    check_household_thresholds(households.low_min_members, households.medium_min_members)
    if households.label_style not in {"family", "directory"}:
        raise ValueError(f"Unsupported households.label_style: {households.label_style!r}")

    database = DatabaseConfig(
        url=getattr(args, "database_url", None)
        or os.getenv("HOUSEHOLDS_ETL_DATABASE_URL")
        or database_cfg.get("url")
        or DEFAULT_DATABASE_URL,
    )

    arg_level = getattr(args, "log_level", None)
    effective_level = (arg_level or logging_cfg.get("level") or "WARNING").upper()
    logging_config = LoggingConfig(
        level=effective_level,
        sql_echo=bool(getattr(args, "sql_echo", False) or logging_cfg.get("sql_echo", False)),
    )

    resolved_inputs = {
        "input": getattr(args, "input", None) or inputs.get("input"),
        "text_file": getattr(args, "text_file", None) or inputs.get("text_file"),
        "existing_labels": getattr(args, "existing_labels", None)
        or inputs.get("existing_labels"),
        "review_json": getattr(args, "review_json", None) or inputs.get("review_json"),
    }

    return PipelineConfig(
        inputs=resolved_inputs,
        outputs=outputs,
        ingestion=ingestion,
        normalization=normalization,
        households=households,
        database=database,
        logging=logging_config,
    )


def default_config() -> PipelineConfig:
    return load_pipeline_config(argparse.Namespace())
