"""Data access layer for schedules, payments and ledger entries

Every method takes the agency id first; rows outside the agency are
treated exactly like missing rows.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import asc, desc, func, insert, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agency_billing.domain.exceptions import (
    DuplicateObligationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from agency_billing.domain.ledger import (
    DELETABLE_PAYMENT_STATUSES,
    check_payment_status,
    check_transaction_status,
)
from agency_billing.domain.models import (
    NewPayment,
    NewSchedule,
    NewTransaction,
    PaymentStatus,
    PaymentUpdate,
    ScheduleUpdate,
    TransactionFilters,
    TransactionStatus,
    TransactionUpdate,
)
from agency_billing.domain.validation import check_net_amount
from agency_billing.infrastructure.database.models import (
    FinancialTransaction,
    Payment,
    PaymentSchedule,
    RentalContract,
    RentalUnit,
    UnitOwner,
)
from agency_billing.utils.date_utils import date_window

logger = logging.getLogger(__name__)

OBLIGATION_KEY = ["contract_id", "schedule_id", "due_date"]


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _apply(row: Any, changes: Dict[str, Any]) -> None:
    for key, value in changes.items():
        setattr(row, key, _enum_value(value))


class ContractDirectory:
    """Read-only lookups against the contract and unit/owner collaborators"""

    def __init__(self, db: Session):
        self.db = db

    def get_contract(self, agency_id: uuid.UUID, contract_id: uuid.UUID) -> Optional[RentalContract]:
        return (
            self.db.query(RentalContract)
            .filter(RentalContract.agency_id == agency_id, RentalContract.id == contract_id)
            .first()
        )

    def get_unit(self, agency_id: uuid.UUID, unit_id: uuid.UUID) -> Optional[RentalUnit]:
        return (
            self.db.query(RentalUnit)
            .filter(RentalUnit.agency_id == agency_id, RentalUnit.id == unit_id)
            .first()
        )

    def get_active_owner(self, agency_id: uuid.UUID, unit_id: uuid.UUID) -> Optional[UnitOwner]:
        return (
            self.db.query(UnitOwner)
            .filter(
                UnitOwner.agency_id == agency_id,
                UnitOwner.unit_id == unit_id,
                UnitOwner.is_active.is_(True),
            )
            .first()
        )

    def require_contract(self, agency_id: uuid.UUID, contract_id: uuid.UUID) -> RentalContract:
        """Contract reference used by a write; unknown ids are a validation error"""
        contract = self.get_contract(agency_id, contract_id)
        if contract is None:
            raise ValidationError(f"contract {contract_id} does not exist for this agency")
        return contract


class ScheduleRepository:
    """Repository for recurring payment schedules"""

    def __init__(self, db: Session):
        self.db = db

    def create_schedule(self, agency_id: uuid.UUID, data: NewSchedule) -> PaymentSchedule:
        ContractDirectory(self.db).require_contract(agency_id, data.contract_id)
        schedule = PaymentSchedule(
            agency_id=agency_id,
            contract_id=data.contract_id,
            service_type=_enum_value(data.service_type),
            amount=data.amount,
            currency=data.currency,
            day_of_month=data.day_of_month,
            is_active=data.is_active,
            notes=data.notes,
        )
        self.db.add(schedule)
        self.db.flush()
        return schedule

    def get_schedule(self, agency_id: uuid.UUID, schedule_id: uuid.UUID) -> Optional[PaymentSchedule]:
        return (
            self.db.query(PaymentSchedule)
            .filter(PaymentSchedule.agency_id == agency_id, PaymentSchedule.id == schedule_id)
            .first()
        )

    def require_schedule(self, agency_id: uuid.UUID, schedule_id: uuid.UUID) -> PaymentSchedule:
        schedule = self.get_schedule(agency_id, schedule_id)
        if schedule is None:
            raise NotFoundError("payment schedule", schedule_id)
        return schedule

    def list_by_contract(self, agency_id: uuid.UUID, contract_id: uuid.UUID) -> List[PaymentSchedule]:
        return (
            self.db.query(PaymentSchedule)
            .filter(PaymentSchedule.agency_id == agency_id, PaymentSchedule.contract_id == contract_id)
            .order_by(PaymentSchedule.created_at)
            .all()
        )

    def list_by_agency(self, agency_id: uuid.UUID, is_active: Optional[bool] = None) -> List[PaymentSchedule]:
        query = self.db.query(PaymentSchedule).filter(PaymentSchedule.agency_id == agency_id)
        if is_active is not None:
            query = query.filter(PaymentSchedule.is_active.is_(is_active))
        return query.order_by(PaymentSchedule.created_at).all()

    def update_schedule(
        self, agency_id: uuid.UUID, schedule_id: uuid.UUID, update: ScheduleUpdate
    ) -> PaymentSchedule:
        schedule = self.require_schedule(agency_id, schedule_id)
        _apply(schedule, update.changes())
        self.db.flush()
        return schedule

    def toggle_active(self, agency_id: uuid.UUID, schedule_id: uuid.UUID) -> PaymentSchedule:
        schedule = self.require_schedule(agency_id, schedule_id)
        schedule.is_active = not schedule.is_active
        self.db.flush()
        return schedule

    def delete_schedule(self, agency_id: uuid.UUID, schedule_id: uuid.UUID) -> None:
        schedule = self.require_schedule(agency_id, schedule_id)
        # Generated payments stay and become ad hoc
        (
            self.db.query(Payment)
            .filter(Payment.agency_id == agency_id, Payment.schedule_id == schedule.id)
            .update({Payment.schedule_id: None}, synchronize_session=False)
        )
        self.db.delete(schedule)
        self.db.flush()


class PaymentRepository:
    """Repository for dated payment obligations"""

    def __init__(self, db: Session):
        self.db = db

    def create_payment(self, agency_id: uuid.UUID, data: NewPayment) -> Payment:
        """
        Create a payment, ad hoc or tied to a schedule.

        Raises:
            ValidationError: contract or schedule does not belong to the agency
            DuplicateObligationError: (contract, schedule, due date) already exists
        """
        ContractDirectory(self.db).require_contract(agency_id, data.contract_id)
        if data.schedule_id is not None:
            schedule = ScheduleRepository(self.db).get_schedule(agency_id, data.schedule_id)
            if schedule is None or schedule.contract_id != data.contract_id:
                raise ValidationError(f"schedule {data.schedule_id} does not belong to this contract")

        payment = self.insert_if_absent(
            agency_id,
            contract_id=data.contract_id,
            schedule_id=data.schedule_id,
            service_type=_enum_value(data.service_type),
            amount=data.amount,
            currency=data.currency,
            due_date=data.due_date,
            notes=data.notes,
        )
        if payment is None:
            raise DuplicateObligationError(
                f"payment for contract {data.contract_id} schedule {data.schedule_id} "
                f"due {data.due_date.isoformat()} already exists"
            )
        return payment

    def insert_if_absent(self, agency_id: uuid.UUID, **values: Any) -> Optional[Payment]:
        """
        Insert a pending payment unless its obligation key already exists.

        The unique constraint decides, not a prior read, so concurrent
        callers racing on the same key produce exactly one row. Returns
        None when the row already existed.
        """
        payment_id = uuid.uuid4()
        row = {
            "id": payment_id,
            "agency_id": agency_id,
            "status": PaymentStatus.PENDING.value,
            **values,
        }
        if not self._insert_ignoring_conflict(row):
            return None
        return self.get_payment(agency_id, payment_id)

    def _insert_ignoring_conflict(self, row: Dict[str, Any]) -> bool:
        table = Payment.__table__
        dialect = self.db.get_bind().dialect.name

        if dialect == "postgresql":
            stmt = postgresql.insert(table).values(**row).on_conflict_do_nothing(
                constraint="uq_payment_obligation"
            )
        elif dialect == "sqlite":
            stmt = sqlite.insert(table).values(**row).on_conflict_do_nothing(index_elements=OBLIGATION_KEY)
        else:
            try:
                with self.db.begin_nested():
                    self.db.execute(insert(table).values(**row))
                return True
            except IntegrityError:
                logger.debug("Obligation key conflict on %s", dialect)
                return False

        result = self.db.execute(stmt)
        return result.rowcount == 1

    def find_by_key(
        self,
        agency_id: uuid.UUID,
        contract_id: uuid.UUID,
        schedule_id: Optional[uuid.UUID],
        due_date: date,
    ) -> Optional[Payment]:
        return (
            self.db.query(Payment)
            .filter(
                Payment.agency_id == agency_id,
                Payment.contract_id == contract_id,
                Payment.schedule_id == schedule_id,
                Payment.due_date == due_date,
            )
            .first()
        )

    def get_payment(
        self, agency_id: uuid.UUID, payment_id: uuid.UUID, for_update: bool = False
    ) -> Optional[Payment]:
        query = self.db.query(Payment).filter(Payment.agency_id == agency_id, Payment.id == payment_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def require_payment(
        self, agency_id: uuid.UUID, payment_id: uuid.UUID, for_update: bool = False
    ) -> Payment:
        payment = self.get_payment(agency_id, payment_id, for_update=for_update)
        if payment is None:
            raise NotFoundError("payment", payment_id)
        return payment

    def list_by_contract(
        self, agency_id: uuid.UUID, contract_id: uuid.UUID, status: Optional[PaymentStatus] = None
    ) -> List[Payment]:
        query = self.db.query(Payment).filter(
            Payment.agency_id == agency_id, Payment.contract_id == contract_id
        )
        if status is not None:
            query = query.filter(Payment.status == _enum_value(status))
        return query.order_by(Payment.due_date).all()

    def list_by_agency(
        self,
        agency_id: uuid.UUID,
        status: Optional[PaymentStatus] = None,
        service_type: Optional[str] = None,
    ) -> List[Payment]:
        query = self.db.query(Payment).filter(Payment.agency_id == agency_id)
        if status is not None:
            query = query.filter(Payment.status == _enum_value(status))
        if service_type is not None:
            query = query.filter(Payment.service_type == _enum_value(service_type))
        return query.order_by(Payment.due_date).all()

    def list_upcoming(self, agency_id: uuid.UUID, days: int, today: Optional[date] = None) -> List[Payment]:
        """Pending payments due within [today, today + days]"""
        start, end = date_window(today or date.today(), days)
        return (
            self.db.query(Payment)
            .filter(
                Payment.agency_id == agency_id,
                Payment.status == PaymentStatus.PENDING.value,
                Payment.due_date >= start,
                Payment.due_date <= end,
            )
            .order_by(Payment.due_date)
            .all()
        )

    def update_payment(self, agency_id: uuid.UUID, payment_id: uuid.UUID, update: PaymentUpdate) -> Payment:
        """
        Apply an update; paying goes through confirmation, never through here.

        Raises:
            DuplicateObligationError: the new due date collides with another
                payment of the same schedule
        """
        payment = self.require_payment(agency_id, payment_id)
        changes = update.changes()
        if "status" in changes:
            target = _enum_value(changes["status"])
            if target == PaymentStatus.PAID.value and payment.status != PaymentStatus.PAID.value:
                raise InvalidStateTransitionError("payment", payment.status, target)
            check_payment_status(payment.status, target)

        new_due = changes.get("due_date")
        if new_due is not None and payment.schedule_id is not None and new_due != payment.due_date:
            existing = self.find_by_key(agency_id, payment.contract_id, payment.schedule_id, new_due)
            if existing is not None and existing.id != payment.id:
                raise DuplicateObligationError(
                    f"payment for contract {payment.contract_id} schedule {payment.schedule_id} "
                    f"due {new_due.isoformat()} already exists"
                )

        _apply(payment, changes)
        try:
            self.db.flush()
        except IntegrityError as e:
            # Concurrent writer took the key between the check and the flush
            raise DuplicateObligationError(f"payment obligation key already exists: {new_due}") from e
        return payment

    def mark_overdue(self, agency_id: uuid.UUID, as_of: date) -> int:
        """Move pending payments due before `as_of` to overdue; returns rows changed"""
        return (
            self.db.query(Payment)
            .filter(
                Payment.agency_id == agency_id,
                Payment.status == PaymentStatus.PENDING.value,
                Payment.due_date < as_of,
            )
            .update({Payment.status: PaymentStatus.OVERDUE.value}, synchronize_session=False)
        )

    def delete_payment(self, agency_id: uuid.UUID, payment_id: uuid.UUID) -> None:
        payment = self.require_payment(agency_id, payment_id)
        if PaymentStatus(payment.status) not in DELETABLE_PAYMENT_STATUSES:
            raise InvalidStateTransitionError("payment", payment.status, "deleted")
        self.db.delete(payment)
        self.db.flush()

    def mark_reminder_sent(
        self, agency_id: uuid.UUID, payment_id: uuid.UUID, sent_at: Optional[datetime] = None
    ) -> Payment:
        payment = self.require_payment(agency_id, payment_id)
        payment.reminder_sent_at = sent_at or datetime.now(timezone.utc)
        self.db.flush()
        return payment


_SORTABLE_COLUMNS = {
    "due_date": FinancialTransaction.due_date,
    "performed_date": FinancialTransaction.performed_date,
    "gross_amount": FinancialTransaction.gross_amount,
    "net_amount": FinancialTransaction.net_amount,
    "created_at": FinancialTransaction.created_at,
}


class TransactionRepository:
    """Repository for ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def create_transaction(
        self,
        agency_id: uuid.UUID,
        data: NewTransaction,
        payment_id: Optional[uuid.UUID] = None,
        schedule_id: Optional[uuid.UUID] = None,
    ) -> FinancialTransaction:
        txn = FinancialTransaction(
            agency_id=agency_id,
            direction=_enum_value(data.direction),
            category=_enum_value(data.category),
            status=_enum_value(data.status),
            gross_amount=data.gross_amount,
            fees=data.fees,
            net_amount=data.net_amount,
            currency=data.currency,
            due_date=data.due_date,
            performed_date=data.performed_date,
            payer_role=data.payer_role,
            payee_role=data.payee_role,
            payer_name=data.payer_name,
            payee_name=data.payee_name,
            contract_id=data.contract_id,
            unit_id=data.unit_id,
            owner_id=data.owner_id,
            condominium_id=data.condominium_id,
            payment_id=payment_id,
            schedule_id=schedule_id,
            payment_method=data.payment_method,
            payment_reference=data.payment_reference,
            payment_proof_url=data.payment_proof_url,
            description=data.description,
            notes=data.notes,
            created_by=data.created_by,
        )
        if txn.status == TransactionStatus.RECONCILED.value:
            txn.reconciled_at = datetime.now(timezone.utc)
        self.db.add(txn)
        self.db.flush()
        return txn

    def get_transaction(self, agency_id: uuid.UUID, transaction_id: uuid.UUID) -> Optional[FinancialTransaction]:
        return (
            self.db.query(FinancialTransaction)
            .filter(FinancialTransaction.agency_id == agency_id, FinancialTransaction.id == transaction_id)
            .first()
        )

    def require_transaction(self, agency_id: uuid.UUID, transaction_id: uuid.UUID) -> FinancialTransaction:
        txn = self.get_transaction(agency_id, transaction_id)
        if txn is None:
            raise NotFoundError("transaction", transaction_id)
        return txn

    def get_by_payment(self, agency_id: uuid.UUID, payment_id: uuid.UUID) -> Optional[FinancialTransaction]:
        return (
            self.db.query(FinancialTransaction)
            .filter(FinancialTransaction.agency_id == agency_id, FinancialTransaction.payment_id == payment_id)
            .first()
        )

    def upsert_for_payment(
        self,
        agency_id: uuid.UUID,
        payment_id: uuid.UUID,
        on_create: NewTransaction,
        on_update: Dict[str, Any],
        schedule_id: Optional[uuid.UUID] = None,
    ) -> Tuple[FinancialTransaction, bool]:
        """
        Create the ledger entry of a payment, or update the one it already has.

        A reconciled entry keeps its status; only the confirmation details
        in `on_update` are refreshed. Returns the entry and whether it was created.
        """
        txn = self.get_by_payment(agency_id, payment_id)
        if txn is None:
            txn = self.create_transaction(agency_id, on_create, payment_id=payment_id, schedule_id=schedule_id)
            return txn, True

        changes = dict(on_update)
        target = _enum_value(changes.pop("status", txn.status))
        if TransactionStatus(txn.status) != TransactionStatus.RECONCILED:
            check_transaction_status(txn.status, target)
            txn.status = target
        _apply(txn, changes)
        self.db.flush()
        return txn, False

    def list_transactions(
        self, agency_id: uuid.UUID, filters: TransactionFilters
    ) -> Tuple[List[FinancialTransaction], int]:
        """Filtered, sorted page of ledger entries plus the unpaged total"""
        query = self.db.query(FinancialTransaction).filter(FinancialTransaction.agency_id == agency_id)

        exact = {
            FinancialTransaction.direction: filters.direction,
            FinancialTransaction.category: filters.category,
            FinancialTransaction.status: filters.status,
            FinancialTransaction.owner_id: filters.owner_id,
            FinancialTransaction.contract_id: filters.contract_id,
            FinancialTransaction.unit_id: filters.unit_id,
            FinancialTransaction.condominium_id: filters.condominium_id,
        }
        for column, value in exact.items():
            if value is not None:
                query = query.filter(column == _enum_value(value))

        effective_date = func.coalesce(FinancialTransaction.performed_date, FinancialTransaction.due_date)
        if filters.date_from is not None:
            query = query.filter(effective_date >= filters.date_from)
        if filters.date_to is not None:
            query = query.filter(effective_date <= filters.date_to)

        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            query = query.filter(
                or_(
                    FinancialTransaction.payer_name.ilike(pattern),
                    FinancialTransaction.payment_reference.ilike(pattern),
                )
            )

        total = query.count()

        column = _SORTABLE_COLUMNS.get(filters.sort_by)
        if column is None:
            raise ValidationError(f"cannot sort by {filters.sort_by!r}")
        direction = asc if filters.sort_order == "asc" else desc
        items = (
            query.order_by(direction(column), direction(FinancialTransaction.created_at))
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )
        return items, total

    def update_transaction(
        self, agency_id: uuid.UUID, transaction_id: uuid.UUID, update: TransactionUpdate
    ) -> FinancialTransaction:
        txn = self.require_transaction(agency_id, transaction_id)
        changes = update.changes()
        if "status" in changes:
            target = _enum_value(changes["status"])
            check_transaction_status(txn.status, target)
            if target == TransactionStatus.RECONCILED.value and txn.reconciled_at is None:
                txn.reconciled_at = datetime.now(timezone.utc)
        _apply(txn, changes)

        if ("gross_amount" in changes or "fees" in changes) and "net_amount" not in changes:
            txn.net_amount = txn.gross_amount - txn.fees
        if txn.fees > txn.gross_amount:
            raise ValidationError("fees cannot exceed gross_amount")
        check_net_amount(Decimal(txn.gross_amount), Decimal(txn.fees), Decimal(txn.net_amount))
        self.db.flush()
        return txn

    def delete_transaction(self, agency_id: uuid.UUID, transaction_id: uuid.UUID) -> None:
        txn = self.require_transaction(agency_id, transaction_id)
        if TransactionStatus(txn.status) != TransactionStatus.PENDING:
            raise InvalidStateTransitionError("transaction", txn.status, "deleted")
        self.db.delete(txn)
        self.db.flush()

    def summary_rows(self, agency_id: uuid.UUID) -> List[Tuple[str, str, Any]]:
        """(direction, status, net_amount) for every ledger entry of the agency"""
        return (
            self.db.query(
                FinancialTransaction.direction,
                FinancialTransaction.status,
                FinancialTransaction.net_amount,
            )
            .filter(FinancialTransaction.agency_id == agency_id)
            .all()
        )
