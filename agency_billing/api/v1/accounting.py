"""GET /v1/accounting/summary - ledger totals for dashboards"""

import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agency_billing.api.dependencies import get_agency_id
from agency_billing.api.v1.schemas import AccountingSummaryResponse
from agency_billing.infrastructure.database.session import get_db
from agency_billing.services.accounting import get_accounting_summary

router = APIRouter()


@router.get("/accounting/summary", response_model=AccountingSummaryResponse)
def accounting_summary(
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    """
    Totals by direction, plus pending/posted/reconciled subtotals.

    Returns:
        Net amounts (fees already excluded), recomputed on every call
    """
    return AccountingSummaryResponse(**asdict(get_accounting_summary(db, agency_id)))
