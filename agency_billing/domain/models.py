"""Domain models - pure Python enums and dataclasses for billing entities"""

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
import uuid


class ServiceType(str, Enum):
    RENT = "rent"
    ELECTRICITY = "electricity"
    WATER = "water"
    INTERNET = "internet"
    GAS = "gas"
    HOA = "hoa"
    MAINTENANCE = "maintenance"
    SPECIAL = "special"
    OTHER = "other"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Direction(str, Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    POSTED = "posted"
    RECONCILED = "reconciled"


class LedgerCategory(str, Enum):
    RENT_INCOME = "rent_income"
    SERVICE_ELECTRICITY = "service_electricity"
    SERVICE_WATER = "service_water"
    SERVICE_INTERNET = "service_internet"
    SERVICE_GAS = "service_gas"
    HOA_FEE = "hoa_fee"
    MAINTENANCE_CHARGE = "maintenance_charge"
    SERVICE_OTHER = "service_other"
    # Manual entries only
    OWNER_PAYOUT = "owner_payout"
    AGENCY_COMMISSION = "agency_commission"
    MAINTENANCE_EXPENSE = "maintenance_expense"
    OTHER_EXPENSE = "other_expense"


class _Changes:
    """Mixin for update structs: a field left as None is not being changed"""

    def changes(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class NewSchedule:
    """Recurring obligation definition to create"""

    contract_id: uuid.UUID
    service_type: ServiceType
    amount: Decimal
    day_of_month: int
    currency: Optional[str] = None
    is_active: bool = True
    notes: Optional[str] = None


@dataclass
class ScheduleUpdate(_Changes):
    service_type: Optional[ServiceType] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    day_of_month: Optional[int] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None


@dataclass
class NewPayment:
    """Ad hoc payment (or one derived from a schedule)"""

    contract_id: uuid.UUID
    service_type: ServiceType
    amount: Decimal
    due_date: date
    currency: Optional[str] = None
    schedule_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None


@dataclass
class PaymentUpdate(_Changes):
    service_type: Optional[ServiceType] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    due_date: Optional[date] = None
    status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class ConfirmationData:
    """Input of a payment confirmation"""

    paid_by: str
    paid_date: date
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class NewTransaction:
    """Manually recorded ledger entry"""

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


@dataclass
class TransactionUpdate(_Changes):
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


@dataclass
class TransactionFilters:
    """Ledger list filters; date range applies to the performed (or due) date"""

    direction: Optional[Direction] = None
    category: Optional[LedgerCategory] = None
    status: Optional[TransactionStatus] = None
    owner_id: Optional[uuid.UUID] = None
    contract_id: Optional[uuid.UUID] = None
    unit_id: Optional[uuid.UUID] = None
    condominium_id: Optional[uuid.UUID] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None
    sort_by: str = "due_date"
    sort_order: str = "desc"
    limit: int = 50
    offset: int = 0


@dataclass
class AccountingSummary:
    """Ledger totals for one agency, all amounts net of fees"""

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


@dataclass
class GenerationStats:
    """Outcome counters of a monthly batch generation"""

    schedules_processed: int = 0
    payments_created: int = 0
    payments_skipped: int = 0
    errors: int = 0
