from __future__ import annotations

import argparse
import csv
import logging
import mimetypes
from typing import Optional, Tuple

from .common import load_config, load_existing_labels, warn_missing, write_json
from .config_loader import PipelineConfig
from .logging_utils import configure_logging
from .models import InferenceResult
from .pipeline import process_text, process_upload, review_frame

logger = logging.getLogger(__name__)


def _guess_content_type(path: str, explicit: Optional[str]) -> Optional[str]:
    if explicit:
        return explicit
    guessed, _ = mimetypes.guess_type(path)
    return guessed


def build(args: argparse.Namespace, config: Optional[PipelineConfig] = None) -> InferenceResult:
    config = config or load_config(args)
    existing_labels = load_existing_labels(config.inputs.get("existing_labels"))
    assign_to = getattr(args, "assign_to", None)

    upload_path = config.inputs.get("input")
    text_path = config.inputs.get("text_file")
    if upload_path:
        if warn_missing(upload_path, "input file"):
            return InferenceResult.empty(assign_to=assign_to)
        with open(upload_path, "rb") as handle:
            data = handle.read()
        return process_upload(
            data,
            _guess_content_type(upload_path, getattr(args, "content_type", None)),
            filename=upload_path,
            config=config,
            existing_labels=existing_labels,
            assign_to=assign_to,
        )
    if text_path:
        if warn_missing(text_path, "pasted text file"):
            return InferenceResult.empty(assign_to=assign_to)
        with open(text_path, "r", encoding=config.ingestion.encoding, errors="replace") as handle:
            text = handle.read()
        return process_text(
            text, config=config, existing_labels=existing_labels, assign_to=assign_to
        )

    logger.warning("No input given; nothing to process")
    return InferenceResult.empty(assign_to=assign_to)


def _write_outputs(result: InferenceResult, config: PipelineConfig) -> Tuple[str, str]:
    out_dir = config.outputs.dir
    out_dir.mkdir(parents=True, exist_ok=True)
    json_path = out_dir / "households_review.json"
    csv_path = out_dir / "households_review.csv"
    write_json(str(json_path), result.to_dict())
    review_frame(result).to_csv(str(csv_path), index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)
    return str(json_path), str(csv_path)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Infer households from a tabular people extract for review."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--input", type=str, default=None, help="Uploaded tabular file.")
    source.add_argument("--text-file", type=str, default=None, help="File holding pasted text.")
    parser.add_argument("--content-type", type=str, default=None)
    parser.add_argument("--existing-labels", type=str, default=None)
    parser.add_argument("--assign-to", type=str, default=None, help="Passed through untouched.")
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--default-phone-country", type=str, default=None)
    parser.add_argument("--label-style", choices=["family", "directory"], default=None)
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args()

    config = load_config(args)
    configure_logging(config, level_override=args.log_level)
    result = build(args, config=config)
    json_path, csv_path = _write_outputs(result, config)

    print(result.stats.to_dict())
    logger.info("Saved: %s", json_path)
    logger.info("Saved: %s", csv_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
