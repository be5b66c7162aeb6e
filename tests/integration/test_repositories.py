"""Integration tests for schedule, payment and ledger stores"""

import uuid
import pytest
from datetime import date
from decimal import Decimal
from agency_billing.domain.exceptions import (
    DuplicateObligationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from agency_billing.domain.models import (
    Direction,
    LedgerCategory,
    NewPayment,
    NewSchedule,
    NewTransaction,
    PaymentStatus,
    PaymentUpdate,
    ServiceType,
    TransactionFilters,
    TransactionStatus,
    TransactionUpdate,
)
from agency_billing.domain.validation import validate_new_transaction
from agency_billing.infrastructure.database.repositories import (
    PaymentRepository,
    ScheduleRepository,
    TransactionRepository,
)
from agency_billing.services.accounting import get_accounting_summary


def _entry(db, agency_id, **overrides):
    values = {
        "direction": Direction.INFLOW,
        "category": LedgerCategory.RENT_INCOME,
        "gross_amount": Decimal("100.00"),
    }
    values.update(overrides)
    data = validate_new_transaction(NewTransaction(**values), "MXN")
    txn = TransactionRepository(db).create_transaction(agency_id, data)
    db.commit()
    return txn


# --- Schedules ---


def test_create_schedule_for_foreign_contract_is_rejected(db, make_contract):
    contract = make_contract()

    with pytest.raises(ValidationError):
        ScheduleRepository(db).create_schedule(
            uuid.uuid4(),
            NewSchedule(
                contract_id=contract.id,
                service_type=ServiceType.RENT,
                amount=Decimal("10"),
                day_of_month=1,
                currency="MXN",
            ),
        )


def test_toggle_and_list_schedules(db, agency_id, make_contract, make_schedule):
    contract = make_contract()
    schedule = make_schedule(contract)
    make_schedule(contract, day_of_month=10)
    repo = ScheduleRepository(db)

    toggled = repo.toggle_active(agency_id, schedule.id)
    db.commit()

    assert toggled.is_active is False
    assert len(repo.list_by_agency(agency_id, is_active=True)) == 1
    assert len(repo.list_by_agency(agency_id, is_active=False)) == 1
    assert len(repo.list_by_contract(agency_id, contract.id)) == 2
    assert repo.list_by_contract(uuid.uuid4(), contract.id) == []


def test_delete_missing_schedule(db, agency_id):
    with pytest.raises(NotFoundError):
        ScheduleRepository(db).delete_schedule(agency_id, uuid.uuid4())


# --- Payments ---


def test_duplicate_scheduled_payment_is_rejected(db, agency_id, make_contract, make_schedule, make_payment):
    contract = make_contract()
    schedule = make_schedule(contract)
    make_payment(contract, date(2025, 1, 31), schedule=schedule)

    with pytest.raises(DuplicateObligationError):
        make_payment(contract, date(2025, 1, 31), schedule=schedule)


def test_ad_hoc_payments_may_share_a_due_date(db, agency_id, make_contract, make_payment):
    contract = make_contract()
    make_payment(contract, date(2025, 1, 15))
    make_payment(contract, date(2025, 1, 15))

    assert len(PaymentRepository(db).list_by_contract(agency_id, contract.id)) == 2


def test_payment_with_schedule_of_other_contract_is_rejected(db, agency_id, make_contract, make_schedule):
    contract = make_contract()
    other = make_contract()
    schedule = make_schedule(other)

    with pytest.raises(ValidationError):
        PaymentRepository(db).create_payment(
            agency_id,
            NewPayment(
                contract_id=contract.id,
                service_type=ServiceType.RENT,
                amount=Decimal("10"),
                due_date=date(2025, 1, 1),
                currency="MXN",
                schedule_id=schedule.id,
            ),
        )


def test_payments_are_isolated_by_agency(db, agency_id, make_contract, make_payment):
    contract = make_contract()
    payment = make_payment(contract, date(2025, 1, 31))
    repo = PaymentRepository(db)

    assert repo.get_payment(uuid.uuid4(), payment.id) is None
    assert repo.list_by_agency(uuid.uuid4()) == []
    with pytest.raises(NotFoundError):
        repo.delete_payment(uuid.uuid4(), payment.id)


def test_list_upcoming_window(db, agency_id, make_contract, make_payment):
    contract = make_contract()
    make_payment(contract, date(2025, 3, 1))
    included = [make_payment(contract, date(2025, 3, 2)), make_payment(contract, date(2025, 3, 9))]
    make_payment(contract, date(2025, 3, 10))
    cancelled = make_payment(contract, date(2025, 3, 5))
    repo = PaymentRepository(db)
    repo.update_payment(agency_id, cancelled.id, PaymentUpdate(status=PaymentStatus.CANCELLED))
    db.commit()

    upcoming = repo.list_upcoming(agency_id, 7, today=date(2025, 3, 2))

    assert [p.id for p in upcoming] == [p.id for p in included]


def test_mark_overdue_only_touches_past_due_pending(db, agency_id, make_contract, make_payment):
    contract = make_contract()
    late = make_payment(contract, date(2025, 1, 5))
    on_time = make_payment(contract, date(2025, 1, 10))
    cancelled = make_payment(contract, date(2025, 1, 1))
    repo = PaymentRepository(db)
    repo.update_payment(agency_id, cancelled.id, PaymentUpdate(status=PaymentStatus.CANCELLED))
    db.commit()

    updated = repo.mark_overdue(agency_id, date(2025, 1, 10))
    db.commit()

    assert updated == 1
    assert repo.get_payment(agency_id, late.id).status == "overdue"
    assert repo.get_payment(agency_id, on_time.id).status == "pending"
    assert repo.get_payment(agency_id, cancelled.id).status == "cancelled"


def test_update_cannot_mark_paid(db, agency_id, make_contract, make_payment):
    contract = make_contract()
    payment = make_payment(contract, date(2025, 1, 31))

    with pytest.raises(InvalidStateTransitionError):
        PaymentRepository(db).update_payment(agency_id, payment.id, PaymentUpdate(status=PaymentStatus.PAID))


def test_delete_rules(db, agency_id, make_contract, make_payment):
    contract = make_contract()
    pending = make_payment(contract, date(2025, 1, 10))
    overdue = make_payment(contract, date(2025, 1, 5))
    repo = PaymentRepository(db)
    repo.update_payment(agency_id, overdue.id, PaymentUpdate(status=PaymentStatus.OVERDUE))
    db.commit()

    repo.delete_payment(agency_id, pending.id)
    db.commit()
    assert repo.get_payment(agency_id, pending.id) is None

    with pytest.raises(InvalidStateTransitionError):
        repo.delete_payment(agency_id, overdue.id)


def test_mark_reminder_sent(db, agency_id, make_contract, make_payment):
    contract = make_contract()
    payment = make_payment(contract, date(2025, 1, 31))

    updated = PaymentRepository(db).mark_reminder_sent(agency_id, payment.id)

    assert updated.reminder_sent_at is not None


# --- Ledger ---


def test_manual_transaction_net_amount(db, agency_id):
    txn = _entry(
        db,
        agency_id,
        direction=Direction.OUTFLOW,
        category=LedgerCategory.OWNER_PAYOUT,
        gross_amount=Decimal("5000.00"),
        fees=Decimal("12.50"),
    )

    assert txn.net_amount == Decimal("4987.50")
    assert txn.status == "pending"
    assert txn.payment_id is None


def test_transaction_status_is_monotonic(db, agency_id):
    txn = _entry(db, agency_id)
    repo = TransactionRepository(db)

    repo.update_transaction(agency_id, txn.id, TransactionUpdate(status=TransactionStatus.RECONCILED))
    db.commit()
    assert txn.reconciled_at is not None

    with pytest.raises(InvalidStateTransitionError):
        repo.update_transaction(agency_id, txn.id, TransactionUpdate(status=TransactionStatus.PENDING))


def test_update_transaction_recomputes_net(db, agency_id):
    txn = _entry(db, agency_id, gross_amount=Decimal("200.00"), fees=Decimal("10.00"))

    updated = TransactionRepository(db).update_transaction(
        agency_id, txn.id, TransactionUpdate(fees=Decimal("25.00"))
    )

    assert updated.net_amount == Decimal("175.00")


def test_only_pending_transactions_can_be_deleted(db, agency_id):
    pending = _entry(db, agency_id)
    posted = _entry(db, agency_id, status=TransactionStatus.POSTED)
    repo = TransactionRepository(db)

    repo.delete_transaction(agency_id, pending.id)
    db.commit()
    assert repo.get_transaction(agency_id, pending.id) is None

    with pytest.raises(InvalidStateTransitionError):
        repo.delete_transaction(agency_id, posted.id)


def test_list_transactions_filters(db, agency_id):
    _entry(db, agency_id, payer_name="Maria Lopez", performed_date=date(2025, 1, 10), payment_reference="REF-77")
    _entry(db, agency_id, payer_name="Juan Perez", due_date=date(2025, 2, 10))
    _entry(
        db,
        agency_id,
        direction=Direction.OUTFLOW,
        category=LedgerCategory.MAINTENANCE_EXPENSE,
        performed_date=date(2025, 3, 10),
    )
    _entry(db, uuid.uuid4(), payer_name="Maria Lopez")
    repo = TransactionRepository(db)

    items, total = repo.list_transactions(agency_id, TransactionFilters(direction=Direction.INFLOW))
    assert total == 2

    items, total = repo.list_transactions(agency_id, TransactionFilters(search="ref-77"))
    assert [t.payer_name for t in items] == ["Maria Lopez"]

    items, total = repo.list_transactions(agency_id, TransactionFilters(search="perez"))
    assert total == 1

    items, total = repo.list_transactions(
        agency_id, TransactionFilters(date_from=date(2025, 2, 1), date_to=date(2025, 2, 28))
    )
    assert [t.payer_name for t in items] == ["Juan Perez"]

    items, total = repo.list_transactions(
        agency_id, TransactionFilters(sort_by="performed_date", sort_order="asc", limit=1, offset=0)
    )
    assert total == 3
    assert len(items) == 1


def test_list_transactions_rejects_unknown_sort(db, agency_id):
    with pytest.raises(ValidationError):
        TransactionRepository(db).list_transactions(agency_id, TransactionFilters(sort_by="payer_name"))


def test_transactions_are_isolated_by_agency(db, agency_id):
    txn = _entry(db, agency_id)
    other_agency = uuid.uuid4()
    repo = TransactionRepository(db)

    assert repo.get_transaction(other_agency, txn.id) is None
    items, total = repo.list_transactions(other_agency, TransactionFilters())
    assert total == 0
    assert get_accounting_summary(db, other_agency).transaction_count == 0


def test_accounting_summary(db, agency_id):
    _entry(db, agency_id, gross_amount=Decimal("1000.00"), status=TransactionStatus.POSTED)
    _entry(db, agency_id, gross_amount=Decimal("200.00"))
    _entry(
        db,
        agency_id,
        direction=Direction.OUTFLOW,
        category=LedgerCategory.OWNER_PAYOUT,
        gross_amount=Decimal("300.00"),
        fees=Decimal("5.00"),
        status=TransactionStatus.RECONCILED,
    )
    _entry(db, uuid.uuid4(), gross_amount=Decimal("999.00"))

    summary = get_accounting_summary(db, agency_id)

    assert summary.total_inflow == Decimal("1200.00")
    assert summary.total_outflow == Decimal("295.00")
    assert summary.net_balance == Decimal("905.00")
    assert summary.posted_inflow == Decimal("1000.00")
    assert summary.pending_inflow == Decimal("200.00")
    assert summary.reconciled_outflow == Decimal("295.00")
    assert summary.transaction_count == 3


def test_update_due_date_collision_is_duplicate(db, agency_id, make_contract, make_schedule, make_payment):
    contract = make_contract()
    schedule = make_schedule(contract)
    make_payment(contract, date(2025, 1, 31), schedule=schedule)
    february = make_payment(contract, date(2025, 2, 28), schedule=schedule)

    with pytest.raises(DuplicateObligationError):
        PaymentRepository(db).update_payment(agency_id, february.id, PaymentUpdate(due_date=date(2025, 1, 31)))


def test_update_ad_hoc_due_date_may_share_a_date(db, agency_id, make_contract, make_payment):
    contract = make_contract()
    make_payment(contract, date(2025, 1, 15))
    other = make_payment(contract, date(2025, 1, 20))

    updated = PaymentRepository(db).update_payment(agency_id, other.id, PaymentUpdate(due_date=date(2025, 1, 15)))

    assert updated.due_date == date(2025, 1, 15)


def test_update_transaction_rejects_inconsistent_net(db, agency_id):
    txn = _entry(db, agency_id, gross_amount=Decimal("100.00"), fees=Decimal("10.00"))

    with pytest.raises(ValidationError, match="net_amount"):
        TransactionRepository(db).update_transaction(
            agency_id, txn.id, TransactionUpdate(net_amount=Decimal("500.00"))
        )


def test_upsert_for_payment_reports_creation(db, agency_id, make_contract, make_payment):
    contract = make_contract()
    payment = make_payment(contract, date(2025, 1, 31))
    repo = TransactionRepository(db)
    on_create = validate_new_transaction(
        NewTransaction(
            direction=Direction.INFLOW,
            category=LedgerCategory.RENT_INCOME,
            gross_amount=Decimal("1000.00"),
            status=TransactionStatus.POSTED,
        ),
        "MXN",
    )

    first, created = repo.upsert_for_payment(agency_id, payment.id, on_create, {"payment_reference": "A"})
    second, created_again = repo.upsert_for_payment(agency_id, payment.id, on_create, {"payment_reference": "B"})

    assert created is True
    assert created_again is False
    assert second.id == first.id
    assert second.payment_reference == "B"
