"""Run the weekly warning pass for one week.

Meant to be triggered externally (cron, CI job, an operator):

    python scripts/generate_warnings.py --week-start 2024-02-05 --threshold 2
"""
from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.chapel_attendance.chapel_attendance.container import build_container
from src.chapel_attendance.chapel_attendance.core.exceptions import DomainError, is_retryable
from src.chapel_attendance.chapel_attendance.main import configure_logging

logger = logging.getLogger("generate_warnings")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate weekly absence warnings.")
    parser.add_argument("--week-start", required=True, help="YYYY-MM-DD, normally a Monday")
    parser.add_argument("--threshold", type=int, default=None, help="absences needed for a warning (1-10)")
    parser.add_argument("--actor", default=None, help="admin id recorded in the audit trail")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        storage_root=str(getattr(settings, "STORAGE_ROOT", REPO_ROOT / "var" / "uploads")),
        warning_threshold=int(getattr(settings, "WARNING_THRESHOLD", 2)),
    )
    threshold = args.threshold if args.threshold is not None else container.warning_threshold

    try:
        result = container.warning_generator.generate(args.week_start, threshold, actor_id=args.actor)
    except DomainError as e:
        logger.error("Warning generation failed (%s): %s", e.code, e)
        # 75 (EX_TEMPFAIL) lets a scheduler tell retryable failures apart.
        return 75 if is_retryable(e) else 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
