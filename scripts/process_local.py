#!/usr/bin/env python3
"""
Run the employee feed against a local workbook with env loaded from Azure Key Vault (or .env).
Usage: python scripts/process_local.py <workbook.xlsx> [--name NAME]

Example:
  python scripts/process_local.py ./samples/employees.xlsx
"""
import argparse
import logging
import sys
from pathlib import Path

_scripts = Path(__file__).resolve().parent
_root = _scripts.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from feed import db
from feed.config import FeedSettings
from feed.processor import process_employee_feed
from scripts.keyvault_loader import load_env


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile an employee workbook into the users database")
    parser.add_argument("workbook", type=Path, help="Path to the .xlsx file")
    parser.add_argument("--name", help="Name reported in logs (defaults to the file name)")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)
    if not args.workbook.is_file():
        parser.error(f"workbook not found: {args.workbook}")

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    load_env()
    settings = FeedSettings.from_env()
    engine = db.build_engine(settings.database_url, timeout=settings.sql_timeout)
    db.set_engine(engine)
    try:
        with open(args.workbook, "rb") as f:
            summary = process_employee_feed(f, args.name or args.workbook.name, engine=engine, settings=settings)
    except Exception:
        return 1
    finally:
        engine.dispose()

    print(summary if summary is not None else "Skipped: missing required employee columns")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
