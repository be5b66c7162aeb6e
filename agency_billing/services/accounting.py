"""Accounting Aggregator - read-only rollups over the ledger"""

import uuid

from sqlalchemy.orm import Session

from agency_billing.domain.ledger import summarize
from agency_billing.domain.models import AccountingSummary
from agency_billing.infrastructure.database.repositories import TransactionRepository


def get_accounting_summary(db: Session, agency_id: uuid.UUID) -> AccountingSummary:
    """Recompute agency totals from the current ledger (no caching)"""
    return summarize(TransactionRepository(db).summary_rows(agency_id))
