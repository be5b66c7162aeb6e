"""SQLAlchemy ORM models for schedules, payments and the ledger"""

import uuid
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

Money = Numeric(12, 2)


# --- Collaborator tables (owned by the contract and unit/owner services, read-only here) ---


class RentalUnit(Base):
    """Unit managed by an agency"""

    __tablename__ = "rental_unit"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agency_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    condominium_id = Column(UUID(as_uuid=True), nullable=True)
    unit_number = Column(Text, nullable=True)

    owners = relationship("UnitOwner", back_populates="unit")


class UnitOwner(Base):
    """Ownership record; at most one active owner per unit"""

    __tablename__ = "unit_owner"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agency_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    unit_id = Column(UUID(as_uuid=True), ForeignKey("rental_unit.id", ondelete="CASCADE"), nullable=False)
    owner_name = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    unit = relationship("RentalUnit", back_populates="owners")


class RentalContract(Base):
    """Rental contract; status and end date drive schedule generation"""

    __tablename__ = "rental_contract"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agency_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    unit_id = Column(UUID(as_uuid=True), ForeignKey("rental_unit.id"), nullable=True)
    tenant_name = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="active")
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    unit = relationship("RentalUnit")


# --- Billing tables ---


class PaymentSchedule(Base):
    """Recurring obligation definition tied to a contract"""

    __tablename__ = "payment_schedule"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agency_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    contract_id = Column(UUID(as_uuid=True), ForeignKey("rental_contract.id"), nullable=False, index=True)
    service_type = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    currency = Column(Text, nullable=False)
    day_of_month = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    payments = relationship("Payment", back_populates="schedule", passive_deletes=True)


class Payment(Base):
    """Single dated obligation; (contract, schedule, due date) is unique"""

    __tablename__ = "payment"
    __table_args__ = (
        UniqueConstraint("contract_id", "schedule_id", "due_date", name="uq_payment_obligation"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agency_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    contract_id = Column(UUID(as_uuid=True), ForeignKey("rental_contract.id"), nullable=False, index=True)
    schedule_id = Column(
        UUID(as_uuid=True), ForeignKey("payment_schedule.id", ondelete="SET NULL"), nullable=True
    )
    service_type = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    currency = Column(Text, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(Text, nullable=False, default="pending")
    paid_date = Column(Date, nullable=True)
    paid_by = Column(Text, nullable=True)
    confirmed_by = Column(Text, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    payment_method = Column(Text, nullable=True)
    payment_reference = Column(Text, nullable=True)
    payment_proof_url = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    schedule = relationship("PaymentSchedule", back_populates="payments")
    contract = relationship("RentalContract")


class FinancialTransaction(Base):
    """Ledger entry; at most one per payment"""

    __tablename__ = "financial_transaction"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agency_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    direction = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    gross_amount = Column(Money, nullable=False)
    fees = Column(Money, nullable=False, default=0)
    net_amount = Column(Money, nullable=False)
    currency = Column(Text, nullable=False)
    due_date = Column(Date, nullable=True)
    performed_date = Column(Date, nullable=True)
    payer_role = Column(Text, nullable=True)
    payee_role = Column(Text, nullable=True)
    payer_name = Column(Text, nullable=True)
    payee_name = Column(Text, nullable=True)
    contract_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    unit_id = Column(UUID(as_uuid=True), nullable=True)
    owner_id = Column(UUID(as_uuid=True), nullable=True)
    condominium_id = Column(UUID(as_uuid=True), nullable=True)
    payment_id = Column(
        UUID(as_uuid=True), ForeignKey("payment.id"), nullable=True, unique=True
    )
    schedule_id = Column(UUID(as_uuid=True), nullable=True)
    payment_method = Column(Text, nullable=True)
    payment_reference = Column(Text, nullable=True)
    payment_proof_url = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Text, nullable=True)
    reconciled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())
