"""Batch entry points for cron-style callers

    python -m agency_billing.cli generate-month --agency-id <uuid> [--month YYYY-MM]
    python -m agency_billing.cli mark-overdue --agency-id <uuid> [--as-of YYYY-MM-DD]
"""

import argparse
import sys
import uuid
from datetime import date
from typing import List, Optional

from agency_billing.config import settings
from agency_billing.infrastructure.database.repositories import PaymentRepository
from agency_billing.infrastructure.database.session import SessionLocal, unit_of_work
from agency_billing.infrastructure.observability.logging import setup_logging
from agency_billing.infrastructure.observability.metrics import overdue_counter
from agency_billing.services.generation import generate_payments_for_month


def _month(value: str) -> tuple[int, int]:
    try:
        year, month = (int(part) for part in value.split("-"))
        date(year, month, 1)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {value!r}")
    return year, month


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="agency-billing")
    sub = p.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate-month", help="create this month's payments from active schedules")
    gen.add_argument("--agency-id", type=uuid.UUID, required=True)
    gen.add_argument("--month", type=_month, default=None, help="YYYY-MM (default: current month)")

    overdue = sub.add_parser("mark-overdue", help="move past-due pending payments to overdue")
    overdue.add_argument("--agency-id", type=uuid.UUID, required=True)
    overdue.add_argument("--as-of", type=date.fromisoformat, default=None)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.log_level)

    db = SessionLocal()
    try:
        if args.command == "generate-month":
            today = date.today()
            year, month = args.month or (today.year, today.month)
            stats = generate_payments_for_month(db, args.agency_id, year, month)
            print(
                {
                    "ok": stats.errors == 0,
                    "month": f"{year:04d}-{month:02d}",
                    "schedules_processed": stats.schedules_processed,
                    "payments_created": stats.payments_created,
                    "payments_skipped": stats.payments_skipped,
                    "errors": stats.errors,
                }
            )
            return 1 if stats.errors else 0

        as_of = args.as_of or date.today()
        with unit_of_work(db):
            updated = PaymentRepository(db).mark_overdue(args.agency_id, as_of)
        overdue_counter.inc(updated)
        print({"ok": True, "as_of": as_of.isoformat(), "updated": updated})
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
