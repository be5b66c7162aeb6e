"""Payment Confirmation Coordinator

Marks a payment as paid and creates (or refreshes) its ledger entry inside
one database transaction. Either both rows change or neither does.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from agency_billing.domain.exceptions import DomainException, InvalidStateTransitionError
from agency_billing.domain.ledger import check_payment_status, ledger_category_for
from agency_billing.domain.models import (
    ConfirmationData,
    Direction,
    NewTransaction,
    PaymentStatus,
    PaymentUpdate,
    TransactionStatus,
)
from agency_billing.infrastructure.database.models import FinancialTransaction, Payment
from agency_billing.infrastructure.database.repositories import (
    ContractDirectory,
    PaymentRepository,
    TransactionRepository,
)
from agency_billing.infrastructure.database.session import unit_of_work
from agency_billing.infrastructure.observability.logging import log_confirmation
from agency_billing.infrastructure.observability.metrics import record_confirmation, record_generation
from agency_billing.services.generation import generate_next_payment

logger = logging.getLogger(__name__)

PAYER_ROLE = "tenant"
PAYEE_ROLE = "owner"


@dataclass
class ConfirmationResult:
    payment: Payment
    transaction: FinancialTransaction
    created: bool
    next_payment: Optional[Payment] = None


def confirm_payment(
    db: Session,
    agency_id: uuid.UUID,
    payment_id: uuid.UUID,
    data: ConfirmationData,
) -> ConfirmationResult:
    """
    Record that a payment was paid.

    Flow (single transaction):
    1. Lock and load the payment
    2. Resolve contract -> unit -> active owner (a missing owner is fine)
    3. Map the service type to a ledger category
    4. Stamp the payment as paid, keeping stored details not resupplied
    5. Upsert the ledger entry keyed by payment id
    Retrying the call is safe: step 5 updates instead of inserting twice.

    Raises:
        NotFoundError: payment does not exist in the agency
        InvalidStateTransitionError: payment was cancelled
        TransactionFailureError: store failure, everything rolled back
    """
    start_time = time.time()
    payments = PaymentRepository(db)
    ledger = TransactionRepository(db)
    directory = ContractDirectory(db)

    try:
        with unit_of_work(db):
            payment = payments.require_payment(agency_id, payment_id, for_update=True)
            check_payment_status(payment.status, PaymentStatus.PAID.value)

            contract = directory.get_contract(agency_id, payment.contract_id)
            unit = None
            if contract is not None and contract.unit_id is not None:
                unit = directory.get_unit(agency_id, contract.unit_id)
            owner = directory.get_active_owner(agency_id, unit.id) if unit is not None else None
            if contract is None:
                logger.warning("Payment %s has no contract in agency %s", payment_id, agency_id)

            category = ledger_category_for(payment.service_type)

            payment.status = PaymentStatus.PAID.value
            payment.paid_date = data.paid_date
            payment.paid_by = data.paid_by
            if data.confirmed_by is not None:
                payment.confirmed_by = data.confirmed_by
            if data.confirmed_at is not None or data.confirmed_by is not None:
                payment.confirmed_at = data.confirmed_at or datetime.now(timezone.utc)
            payment.payment_method = data.payment_method or payment.payment_method
            payment.payment_reference = data.payment_reference or payment.payment_reference
            payment.payment_proof_url = data.payment_proof_url or payment.payment_proof_url
            payment.notes = data.notes or payment.notes
            db.flush()

            transaction, created = ledger.upsert_for_payment(
                agency_id,
                payment.id,
                on_create=NewTransaction(
                    direction=Direction.INFLOW,
                    category=category,
                    status=TransactionStatus.POSTED,
                    gross_amount=payment.amount,
                    fees=0,
                    net_amount=payment.amount,
                    currency=payment.currency,
                    due_date=payment.due_date,
                    performed_date=data.paid_date,
                    payer_role=PAYER_ROLE,
                    payee_role=PAYEE_ROLE,
                    payer_name=data.paid_by,
                    payee_name=owner.owner_name if owner is not None else None,
                    contract_id=payment.contract_id,
                    unit_id=unit.id if unit is not None else None,
                    owner_id=owner.id if owner is not None else None,
                    condominium_id=unit.condominium_id if unit is not None else None,
                    payment_method=payment.payment_method,
                    payment_reference=payment.payment_reference,
                    payment_proof_url=payment.payment_proof_url,
                    notes=payment.notes,
                    created_by=data.confirmed_by or data.paid_by,
                ),
                on_update={
                    "status": TransactionStatus.POSTED,
                    "performed_date": data.paid_date,
                    "payer_name": data.paid_by,
                    "payment_method": payment.payment_method,
                    "payment_reference": payment.payment_reference,
                    "payment_proof_url": payment.payment_proof_url,
                    "notes": payment.notes,
                },
                schedule_id=payment.schedule_id,
            )
    except DomainException:
        record_confirmation("failed")
        raise

    outcome = "created" if created else "updated"
    record_confirmation(outcome)
    log_confirmation(
        str(agency_id),
        str(payment_id),
        str(transaction.id),
        outcome,
        (time.time() - start_time) * 1000,
    )
    return ConfirmationResult(payment=payment, transaction=transaction, created=created)


def confirm_and_advance(
    db: Session,
    agency_id: uuid.UUID,
    payment_id: uuid.UUID,
    data: ConfirmationData,
) -> ConfirmationResult:
    """Confirm, then try to generate the next scheduled payment (best effort)"""
    result = confirm_payment(db, agency_id, payment_id, data)
    if result.payment.schedule_id is None:
        return result

    try:
        result.next_payment = generate_next_payment(db, agency_id, payment_id)
    except DomainException as e:
        record_generation("failed")
        logger.warning(
            "Next payment generation failed after confirmation",
            extra={"agency_id": str(agency_id), "payment_id": str(payment_id), "error": str(e)},
        )
    return result


def update_payment(
    db: Session, agency_id: uuid.UUID, payment_id: uuid.UUID, update: PaymentUpdate
) -> Payment:
    """
    Edit a payment; a paid payment's ledger entry follows the new amount,
    currency and category. Reconciled entries are frozen.
    """
    payments = PaymentRepository(db)
    ledger = TransactionRepository(db)
    with unit_of_work(db):
        payment = payments.update_payment(agency_id, payment_id, update)
        changes = update.changes()
        affects_ledger = {"amount", "currency", "service_type"} & changes.keys()
        if payment.status == PaymentStatus.PAID.value and affects_ledger:
            transaction = ledger.get_by_payment(agency_id, payment.id)
            if transaction is not None:
                if transaction.status == TransactionStatus.RECONCILED.value:
                    raise InvalidStateTransitionError(
                        "transaction", transaction.status, TransactionStatus.POSTED.value
                    )
                transaction.gross_amount = payment.amount
                transaction.net_amount = payment.amount - transaction.fees
                transaction.currency = payment.currency
                transaction.category = ledger_category_for(payment.service_type).value
                db.flush()
    return payment
