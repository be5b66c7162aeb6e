"""/v1/transactions - financial ledger entries"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from agency_billing.api.dependencies import get_agency_id
from agency_billing.api.v1.schemas import (
    TransactionCreateRequest,
    TransactionListResponse,
    TransactionResponse,
    TransactionUpdateRequest,
)
from agency_billing.config import settings
from agency_billing.domain.exceptions import NotFoundError
from agency_billing.domain.models import (
    Direction,
    LedgerCategory,
    NewTransaction,
    TransactionFilters,
    TransactionStatus,
    TransactionUpdate,
)
from agency_billing.domain.validation import validate_new_transaction, validate_transaction_update
from agency_billing.infrastructure.database.repositories import TransactionRepository
from agency_billing.infrastructure.database.session import get_db, unit_of_work
from agency_billing.infrastructure.observability.metrics import ledger_mutation_counter

router = APIRouter()


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def create_transaction(
    body: TransactionCreateRequest,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    """Record a manual ledger entry (no linked payment)"""
    data = validate_new_transaction(NewTransaction(**body.model_dump()), settings.default_currency)
    with unit_of_work(db):
        txn = TransactionRepository(db).create_transaction(agency_id, data)
    ledger_mutation_counter.labels(action="create").inc()
    return txn


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    direction: Optional[Direction] = Query(None),
    category: Optional[LedgerCategory] = Query(None),
    status: Optional[TransactionStatus] = Query(None),
    owner_id: Optional[uuid.UUID] = Query(None),
    contract_id: Optional[uuid.UUID] = Query(None),
    unit_id: Optional[uuid.UUID] = Query(None),
    condominium_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    search: Optional[str] = Query(None, description="Matches payer name or payment reference"),
    sort_by: str = Query("due_date"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    filters = TransactionFilters(
        direction=direction,
        category=category,
        status=status,
        owner_id=owner_id,
        contract_id=contract_id,
        unit_id=unit_id,
        condominium_id=condominium_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    items, total = TransactionRepository(db).list_transactions(agency_id, filters)
    return TransactionListResponse(
        items=[TransactionResponse.model_validate(t) for t in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: uuid.UUID,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    txn = TransactionRepository(db).get_transaction(agency_id, transaction_id)
    if txn is None:
        raise NotFoundError("transaction", transaction_id)
    return txn


@router.patch("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: uuid.UUID,
    body: TransactionUpdateRequest,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    update = validate_transaction_update(TransactionUpdate(**body.model_dump(exclude_unset=True)))
    with unit_of_work(db):
        txn = TransactionRepository(db).update_transaction(agency_id, transaction_id, update)
    ledger_mutation_counter.labels(action="update").inc()
    return txn


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: uuid.UUID,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        TransactionRepository(db).delete_transaction(agency_id, transaction_id)
    ledger_mutation_counter.labels(action="delete").inc()
    return Response(status_code=204)
