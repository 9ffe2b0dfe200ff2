from __future__ import annotations

import argparse
import json
import logging
from typing import Any, Dict, Optional

from .common import load_config, load_json
from .config_loader import PipelineConfig
from .logging_utils import configure_logging
from .store import ImportCommitter, commit_review_payload, open_committer

logger = logging.getLogger(__name__)


def build(
    args: argparse.Namespace,
    config: Optional[PipelineConfig] = None,
    committer: Optional[ImportCommitter] = None,
) -> Dict[str, Any]:
    config = config or load_config(args)
    review_path = config.inputs.get("review_json")
    if not review_path:
        raise ValueError("--review-json is required")
    payload = load_json(review_path)
    committer = committer or open_committer(config.database.url)
    return commit_review_payload(
        payload, committer, confirmed_only=bool(getattr(args, "confirmed_only", False))
    )


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Commit reviewed households as family and person records."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--review-json", type=str, default=None)
    parser.add_argument("--database-url", type=str, default=None)
    parser.add_argument(
        "--confirmed-only",
        action="store_true",
        help="Only commit households the reviewer marked as confirmed.",
    )
    parser.add_argument("--sql-echo", action="store_true", help="Log SQL statements at INFO.")
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args()

    config = load_config(args)
    configure_logging(config, level_override=args.log_level)
    summary = build(args, config=config)

    imported = summary["imported"]
    logger.info(
        "Imported %d families and %d individuals",
        len(imported["families"]),
        len(imported["individuals"]),
    )
    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
