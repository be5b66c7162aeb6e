"""/v1/payments - dated obligations, confirmation and generation"""

import logging
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from agency_billing.api.dependencies import get_agency_id, get_events_client, get_request_id
from agency_billing.api.v1.schemas import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    MarkOverdueRequest,
    MarkOverdueResponse,
    PaymentCreateRequest,
    PaymentResponse,
    PaymentUpdateRequest,
    ReminderSentRequest,
    TransactionResponse,
)
from agency_billing.config import settings
from agency_billing.domain.exceptions import NotFoundError
from agency_billing.domain.models import ConfirmationData, NewPayment, PaymentStatus, PaymentUpdate, ServiceType
from agency_billing.domain.validation import validate_new_payment, validate_payment_update
from agency_billing.infrastructure.clients.events import PAYMENT_CONFIRMED, PAYMENT_GENERATED, EventsClient
from agency_billing.infrastructure.database.models import Payment
from agency_billing.infrastructure.database.repositories import PaymentRepository
from agency_billing.infrastructure.database.session import get_db, unit_of_work
from agency_billing.infrastructure.observability.metrics import overdue_counter
from agency_billing.services.confirmation import confirm_and_advance, update_payment
from agency_billing.services.generation import generate_next_payment

logger = logging.getLogger(__name__)

router = APIRouter()


def _generated_event(agency_id: uuid.UUID, payment: Payment) -> dict:
    return {
        "event": PAYMENT_GENERATED,
        "agency_id": str(agency_id),
        "payment_id": str(payment.id),
        "contract_id": str(payment.contract_id),
        "due_date": payment.due_date.isoformat(),
        "amount": str(payment.amount),
        "currency": payment.currency,
    }


@router.post("/payments", response_model=PaymentResponse, status_code=201)
def create_payment(
    body: PaymentCreateRequest,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    data = validate_new_payment(NewPayment(**body.model_dump()), settings.default_currency)
    with unit_of_work(db):
        payment = PaymentRepository(db).create_payment(agency_id, data)
    return payment


@router.get("/payments", response_model=List[PaymentResponse])
def list_payments(
    status: Optional[PaymentStatus] = Query(None),
    service_type: Optional[ServiceType] = Query(None),
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    return PaymentRepository(db).list_by_agency(agency_id, status=status, service_type=service_type)


@router.get("/payments/upcoming", response_model=List[PaymentResponse])
def list_upcoming_payments(
    days: Optional[int] = Query(None, ge=0, le=366, description="Horizon in days from today"),
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    horizon = settings.upcoming_horizon_days if days is None else days
    return PaymentRepository(db).list_upcoming(agency_id, horizon)


@router.post("/payments/mark-overdue", response_model=MarkOverdueResponse)
def mark_overdue(
    body: MarkOverdueRequest,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    as_of = body.as_of or date.today()
    with unit_of_work(db):
        updated = PaymentRepository(db).mark_overdue(agency_id, as_of)
    overdue_counter.inc(updated)
    return MarkOverdueResponse(as_of=as_of, updated=updated)


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: uuid.UUID,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    payment = PaymentRepository(db).get_payment(agency_id, payment_id)
    if payment is None:
        raise NotFoundError("payment", payment_id)
    return payment


@router.get("/contracts/{contract_id}/payments", response_model=List[PaymentResponse])
def list_contract_payments(
    contract_id: uuid.UUID,
    status: Optional[PaymentStatus] = Query(None),
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    return PaymentRepository(db).list_by_contract(agency_id, contract_id, status=status)


@router.patch("/payments/{payment_id}", response_model=PaymentResponse)
def patch_payment(
    payment_id: uuid.UUID,
    body: PaymentUpdateRequest,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    update = validate_payment_update(PaymentUpdate(**body.model_dump(exclude_unset=True)))
    return update_payment(db, agency_id, payment_id, update)


@router.delete("/payments/{payment_id}", status_code=204)
def delete_payment(
    payment_id: uuid.UUID,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        PaymentRepository(db).delete_payment(agency_id, payment_id)
    return Response(status_code=204)


@router.post("/payments/{payment_id}/confirm", response_model=ConfirmPaymentResponse)
def confirm_payment(
    payment_id: uuid.UUID,
    body: ConfirmPaymentRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
    events_client: EventsClient = Depends(get_events_client),
):
    """
    Mark a payment as paid and post its ledger entry.

    Flow:
    1. Payment + ledger entry change in one transaction
    2. Next payment of the schedule is generated (failure only logs)
    3. Events are sent to the webhook after the response
    """
    request_id = get_request_id(request)
    result = confirm_and_advance(db, agency_id, payment_id, ConfirmationData(**body.model_dump()))
    logger.info(
        "Payment confirmed",
        extra={"request_id": request_id, "payment_id": str(payment_id), "agency_id": str(agency_id)},
    )

    if events_client.enabled:
        background_tasks.add_task(
            events_client.send_event,
            {
                "event": PAYMENT_CONFIRMED,
                "agency_id": str(agency_id),
                "payment_id": str(result.payment.id),
                "transaction_id": str(result.transaction.id),
                "paid_date": result.payment.paid_date.isoformat(),
                "amount": str(result.payment.amount),
                "currency": result.payment.currency,
            },
        )
        if result.next_payment is not None:
            background_tasks.add_task(events_client.send_event, _generated_event(agency_id, result.next_payment))

    return ConfirmPaymentResponse(
        payment=PaymentResponse.model_validate(result.payment),
        transaction=TransactionResponse.model_validate(result.transaction),
        ledger_entry_created=result.created,
        next_payment=(
            PaymentResponse.model_validate(result.next_payment) if result.next_payment is not None else None
        ),
    )


@router.post("/payments/{payment_id}/generate-next", response_model=Optional[PaymentResponse])
def generate_next(
    payment_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
    events_client: EventsClient = Depends(get_events_client),
):
    """Returns the generated payment, or null when nothing was generated"""
    payment = generate_next_payment(db, agency_id, payment_id)
    if payment is not None and events_client.enabled:
        background_tasks.add_task(events_client.send_event, _generated_event(agency_id, payment))
    return payment


@router.post("/payments/{payment_id}/reminder-sent", response_model=PaymentResponse)
def mark_reminder_sent(
    payment_id: uuid.UUID,
    body: Optional[ReminderSentRequest] = None,
    agency_id: uuid.UUID = Depends(get_agency_id),
    db: Session = Depends(get_db),
):
    sent_at = body.sent_at if body is not None else None
    with unit_of_work(db):
        payment = PaymentRepository(db).mark_reminder_sent(agency_id, payment_id, sent_at)
    return payment
