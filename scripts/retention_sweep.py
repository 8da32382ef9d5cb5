#!/usr/bin/env python
from __future__ import annotations

import argparse
import json

from hrdesk.db import SessionLocal
from hrdesk.logging_utils import setup_json_logging
from hrdesk.services.retention import run_retention_sweep
from hrdesk.settings import get_settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delete attendance entries older than the retention window.")
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Override ATTENDANCE_RETENTION_DAYS for this run.",
    )
    return parser.parse_args()


def run(days: int | None = None) -> dict:
    settings = get_settings()
    setup_json_logging(settings.log_level, service=settings.app_name)
    db = SessionLocal()
    try:
        return run_retention_sweep(db, retention_days=days).to_dict()
    finally:
        db.close()


if __name__ == "__main__":
    args = parse_args()
    print(json.dumps(run(args.days), ensure_ascii=False, indent=2))
