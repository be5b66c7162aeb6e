"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from agency_billing.domain.models import (
    Direction,
    LedgerCategory,
    PaymentStatus,
    ServiceType,
    TransactionStatus,
)


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Schedules ---


class ScheduleCreateRequest(BaseModel):
    """Request body for POST /v1/payment-schedules"""

    contract_id: uuid.UUID
    service_type: ServiceType
    amount: Decimal
    day_of_month: int
    currency: Optional[str] = None
    is_active: bool = True
    notes: Optional[str] = None


class ScheduleUpdateRequest(BaseModel):
    """Request body for PATCH /v1/payment-schedules/{id}; omitted fields stay as they are"""

    service_type: Optional[ServiceType] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    day_of_month: Optional[int] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class ScheduleResponse(ORMModel):
    id: uuid.UUID
    agency_id: uuid.UUID
    contract_id: uuid.UUID
    service_type: str
    amount: Decimal
    currency: str
    day_of_month: int
    is_active: bool
    notes: Optional[str] = None


class GenerateMonthRequest(BaseModel):
    """Request body for POST /v1/payment-schedules/generate"""

    month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$", description="Target month, YYYY-MM")


class GenerationStatsResponse(BaseModel):
    month: str
    schedules_processed: int
    payments_created: int
    payments_skipped: int
    errors: int


# --- Payments ---


class PaymentCreateRequest(BaseModel):
    """Request body for POST /v1/payments"""

    contract_id: uuid.UUID
    service_type: ServiceType
    amount: Decimal
    due_date: date
    currency: Optional[str] = None
    schedule_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class PaymentUpdateRequest(BaseModel):
    """Request body for PATCH /v1/payments/{id}"""

    service_type: Optional[ServiceType] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    due_date: Optional[date] = None
    status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    notes: Optional[str] = None


class PaymentResponse(ORMModel):
    id: uuid.UUID
    agency_id: uuid.UUID
    contract_id: uuid.UUID
    schedule_id: Optional[uuid.UUID] = None
    service_type: str
    amount: Decimal
    currency: str
    due_date: date
    status: str
    paid_date: Optional[date] = None
    paid_by: Optional[str] = None
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    notes: Optional[str] = None
    reminder_sent_at: Optional[datetime] = None


class ConfirmPaymentRequest(BaseModel):
    """Request body for POST /v1/payments/{id}/confirm"""

    paid_by: str = Field(..., min_length=1)
    paid_date: date
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    notes: Optional[str] = None


class ReminderSentRequest(BaseModel):
    sent_at: Optional[datetime] = None


class MarkOverdueRequest(BaseModel):
    as_of: Optional[date] = None


class MarkOverdueResponse(BaseModel):
    as_of: date
    updated: int


# --- Ledger ---


class TransactionCreateRequest(BaseModel):
    """Request body for POST /v1/transactions (manual entry)"""

    direction: Direction
    category: LedgerCategory
    gross_amount: Decimal
    currency: Optional[str] = None
    fees: Decimal = Decimal("0")
    net_amount: Optional[Decimal] = None
    status: TransactionStatus = TransactionStatus.PENDING
    due_date: Optional[date] = None
    performed_date: Optional[date] = None
    payer_role: Optional[str] = None
    payee_role: Optional[str] = None
    payer_name: Optional[str] = None
    payee_name: Optional[str] = None
    contract_id: Optional[uuid.UUID] = None
    unit_id: Optional[uuid.UUID] = None
    owner_id: Optional[uuid.UUID] = None
    condominium_id: Optional[uuid.UUID] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None


class TransactionUpdateRequest(BaseModel):
    """Request body for PATCH /v1/transactions/{id}"""

    category: Optional[LedgerCategory] = None
    status: Optional[TransactionStatus] = None
    gross_amount: Optional[Decimal] = None
    fees: Optional[Decimal] = None
    net_amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    performed_date: Optional[date] = None
    payer_name: Optional[str] = None
    payee_name: Optional[str] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class TransactionResponse(ORMModel):
    id: uuid.UUID
    agency_id: uuid.UUID
    direction: str
    category: str
    status: str
    gross_amount: Decimal
    fees: Decimal
    net_amount: Decimal
    currency: str
    due_date: Optional[date] = None
    performed_date: Optional[date] = None
    payer_role: Optional[str] = None
    payee_role: Optional[str] = None
    payer_name: Optional[str] = None
    payee_name: Optional[str] = None
    contract_id: Optional[uuid.UUID] = None
    unit_id: Optional[uuid.UUID] = None
    owner_id: Optional[uuid.UUID] = None
    condominium_id: Optional[uuid.UUID] = None
    payment_id: Optional[uuid.UUID] = None
    schedule_id: Optional[uuid.UUID] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    reconciled_at: Optional[datetime] = None


class TransactionListResponse(BaseModel):
    items: List[TransactionResponse]
    total: int
    limit: int
    offset: int


class ConfirmPaymentResponse(BaseModel):
    """Response for POST /v1/payments/{id}/confirm"""

    payment: PaymentResponse
    transaction: TransactionResponse
    ledger_entry_created: bool
    next_payment: Optional[PaymentResponse] = None


# --- Accounting ---


class AccountingSummaryResponse(BaseModel):
    """Response for GET /v1/accounting/summary"""

    total_inflow: Decimal
    total_outflow: Decimal
    net_balance: Decimal
    pending_inflow: Decimal
    pending_outflow: Decimal
    posted_inflow: Decimal
    posted_outflow: Decimal
    reconciled_inflow: Decimal
    reconciled_outflow: Decimal
    transaction_count: int
