"""
Command-line entry point: import a cadastral/measurement batch into the local database.

    python -m tankgauge_app.main batch.txt [--strict] [--db PATH]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

if __name__ == "__main__":
    # Allow running as `python tankgauge_app/main.py` from the project root
    project_root = Path(__file__).resolve().parents[1]
    if project_root.exists():
        sys.path.insert(0, str(project_root))

from tankgauge_app.config.settings import Settings, init_logging  # noqa: E402
from tankgauge_app.repositories.database import init_database  # noqa: E402
from tankgauge_app.repositories.history_repository import SqlHistoryRepository  # noqa: E402
from tankgauge_app.repositories.vessel_repository import VesselRepository  # noqa: E402
from tankgauge_app.services.bulk_import import BulkImporter, ImportAbortedError, ImportSummary  # noqa: E402
from tankgauge_app.services.measurement_history import MeasurementHistoryService  # noqa: E402
from tankgauge_app.services.record_parser import BatchParseError  # noqa: E402

_LOG = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tankgauge",
        description="Import vessels, tanks, calibration points and measurements from a batch file.",
    )
    parser.add_argument("file", type=Path, help="Batch text file (BALSA/TANQUE/CALIBRACAO/MEDICAO records)")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Stop at the first invalid BALSA/TANQUE/CALIBRACAO record",
    )
    parser.add_argument("--db", type=Path, default=None, help="SQLite database path")
    parser.add_argument("--encoding", default="utf-8", help="Batch file encoding (default: utf-8)")
    return parser


def _print_summary(summary: ImportSummary) -> None:
    print(summary.describe())
    for warning in summary.warnings:
        print(f"  warning: {warning}")
    for error in summary.errors:
        print(f"  error: {error}")


def main(argv: List[str] | None = None) -> int:
    """Run one import; returns the process exit code."""
    args = _build_parser().parse_args(argv)

    settings = Settings.default(db_path=args.db)
    init_logging(settings)
    session_factory = init_database(settings.db_path)

    try:
        text = args.file.read_text(encoding=args.encoding)
    except OSError as exc:
        _LOG.error("Cannot read %s: %s", args.file, exc)
        print(f"Cannot read {args.file}: {exc}", file=sys.stderr)
        return 2

    db = session_factory()
    try:
        vessels = VesselRepository(db)
        store = vessels.load_store()
        history = MeasurementHistoryService(
            SqlHistoryRepository(db, prefix=settings.history_key_prefix)
        )
        importer = BulkImporter(history=history, strict=args.strict)
        try:
            result = importer.import_text(store, text)
        except BatchParseError as exc:
            print(f"Import failed: {exc}", file=sys.stderr)
            return 1
        except ImportAbortedError as exc:
            print(f"Import aborted: {exc}", file=sys.stderr)
            if exc.result is not None:
                vessels.save_store(exc.result.store)
                _print_summary(exc.result.summary)
            return 1

        vessels.save_store(result.store)
        _print_summary(result.summary)
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
