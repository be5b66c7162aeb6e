"""Payment Generator - derives the next payment of a schedule, idempotently"""

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from agency_billing.domain.exceptions import DomainException
from agency_billing.domain.models import GenerationStats, ServiceType
from agency_billing.domain.recurrence import due_date_in_month, next_due_date, within_contract
from agency_billing.infrastructure.database.models import Payment, PaymentSchedule, RentalContract
from agency_billing.infrastructure.database.repositories import (
    ContractDirectory,
    PaymentRepository,
    ScheduleRepository,
)
from agency_billing.infrastructure.database.session import unit_of_work
from agency_billing.infrastructure.observability.logging import log_generation
from agency_billing.infrastructure.observability.metrics import record_generation

logger = logging.getLogger(__name__)

ACTIVE_CONTRACT = "active"


def _auto_note(service_type: str) -> str:
    try:
        label = ServiceType(service_type).value
    except ValueError:
        label = service_type
    return f"Auto-generated from payment schedule ({label})"


def _skip(agency_id: uuid.UUID, source: Optional[Payment], reason: str) -> None:
    record_generation("skipped")
    log_generation(str(agency_id), str(source.id) if source else None, "skipped", reason)


def _create_scheduled_payment(
    payments: PaymentRepository,
    agency_id: uuid.UUID,
    schedule: PaymentSchedule,
    due_date: date,
) -> Optional[Payment]:
    """Insert the schedule's payment for `due_date`; None when it already exists"""
    return payments.insert_if_absent(
        agency_id,
        contract_id=schedule.contract_id,
        schedule_id=schedule.id,
        service_type=schedule.service_type,
        amount=schedule.amount,
        currency=schedule.currency,
        due_date=due_date,
        notes=_auto_note(schedule.service_type),
    )


def _active_contract(
    directory: ContractDirectory, agency_id: uuid.UUID, contract_id: uuid.UUID
) -> Optional[RentalContract]:
    contract = directory.get_contract(agency_id, contract_id)
    if contract is None or contract.status != ACTIVE_CONTRACT:
        return None
    return contract


def generate_next_payment(db: Session, agency_id: uuid.UUID, payment_id: uuid.UUID) -> Optional[Payment]:
    """
    Create the payment that follows `payment_id` in its schedule.

    Returns None, without error, when the payment is ad hoc, the schedule
    is missing or inactive, the contract is not active, the next due date
    falls after the contract end, or the next payment already exists.
    Calling it repeatedly (or concurrently) for the same payment creates
    at most one new row.

    Raises:
        NotFoundError: payment does not exist in the agency
        TransactionFailureError: the store rejected the write
    """
    payments = PaymentRepository(db)
    with unit_of_work(db):
        source = payments.require_payment(agency_id, payment_id)
        if source.schedule_id is None:
            _skip(agency_id, source, "ad_hoc_payment")
            return None

        schedule = ScheduleRepository(db).get_schedule(agency_id, source.schedule_id)
        if schedule is None or not schedule.is_active:
            _skip(agency_id, source, "schedule_inactive")
            return None

        contract = _active_contract(ContractDirectory(db), agency_id, schedule.contract_id)
        if contract is None:
            _skip(agency_id, source, "contract_inactive")
            return None

        candidate = next_due_date(source.due_date, schedule.day_of_month)
        if not within_contract(candidate, contract.end_date):
            _skip(agency_id, source, "past_contract_end")
            return None

        if payments.find_by_key(agency_id, schedule.contract_id, schedule.id, candidate) is not None:
            _skip(agency_id, source, "already_generated")
            return None

        created = _create_scheduled_payment(payments, agency_id, schedule, candidate)
        if created is None:
            # Lost the race to a concurrent generator
            _skip(agency_id, source, "already_generated")
            return None

    record_generation("generated")
    log_generation(
        str(agency_id),
        str(source.id),
        "generated",
        "next_in_series",
        next_payment_id=str(created.id),
        due_date=created.due_date.isoformat(),
    )
    return created


def generate_payments_for_month(db: Session, agency_id: uuid.UUID, year: int, month: int) -> GenerationStats:
    """
    Batch job: create this month's payment for every active schedule.

    Each schedule commits on its own; a failing schedule is counted in
    `errors` and the batch carries on.
    """
    stats = GenerationStats()
    directory = ContractDirectory(db)
    payments = PaymentRepository(db)
    schedules = ScheduleRepository(db).list_by_agency(agency_id, is_active=True)
    logger.info("Generating payments for %04d-%02d: %d active schedules", year, month, len(schedules))

    for schedule in schedules:
        stats.schedules_processed += 1
        schedule_id = schedule.id
        try:
            with unit_of_work(db):
                contract = _active_contract(directory, agency_id, schedule.contract_id)
                due_date = due_date_in_month(year, month, schedule.day_of_month)
                if (
                    contract is None
                    or not within_contract(due_date, contract.end_date)
                    or (contract.start_date is not None and due_date < contract.start_date)
                ):
                    stats.payments_skipped += 1
                    continue

                created = _create_scheduled_payment(payments, agency_id, schedule, due_date)
                if created is None:
                    stats.payments_skipped += 1
                    continue
                stats.payments_created += 1
                record_generation("generated")
        except DomainException as e:
            stats.errors += 1
            record_generation("failed")
            logger.error("Error processing schedule %s: %s", schedule_id, e)

    logger.info(
        "Monthly generation finished",
        extra={
            "agency_id": str(agency_id),
            "period": f"{year:04d}-{month:02d}",
            "schedules_processed": stats.schedules_processed,
            "payments_created": stats.payments_created,
            "payments_skipped": stats.payments_skipped,
            "errors": stats.errors,
        },
    )
    return stats
