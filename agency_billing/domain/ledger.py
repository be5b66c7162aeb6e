"""Ledger rules: category mapping, status machines and summary fold"""

from decimal import Decimal
from typing import Dict, Iterable, Tuple

from agency_billing.domain.exceptions import InvalidStateTransitionError
from agency_billing.domain.models import (
    AccountingSummary,
    Direction,
    LedgerCategory,
    PaymentStatus,
    ServiceType,
    TransactionStatus,
)

CENTS = Decimal("0.01")

LEDGER_CATEGORY_BY_SERVICE: Dict[ServiceType, LedgerCategory] = {
    ServiceType.RENT: LedgerCategory.RENT_INCOME,
    ServiceType.ELECTRICITY: LedgerCategory.SERVICE_ELECTRICITY,
    ServiceType.WATER: LedgerCategory.SERVICE_WATER,
    ServiceType.INTERNET: LedgerCategory.SERVICE_INTERNET,
    ServiceType.GAS: LedgerCategory.SERVICE_GAS,
    ServiceType.HOA: LedgerCategory.HOA_FEE,
    ServiceType.MAINTENANCE: LedgerCategory.MAINTENANCE_CHARGE,
    ServiceType.SPECIAL: LedgerCategory.SERVICE_OTHER,
    ServiceType.OTHER: LedgerCategory.SERVICE_OTHER,
}

_TRANSACTION_STATUS_RANK = {
    TransactionStatus.PENDING: 0,
    TransactionStatus.POSTED: 1,
    TransactionStatus.RECONCILED: 2,
}

# Allowed payment status moves; staying in place is always allowed
_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.OVERDUE, PaymentStatus.PAID, PaymentStatus.CANCELLED},
    PaymentStatus.OVERDUE: {PaymentStatus.PAID, PaymentStatus.CANCELLED},
    PaymentStatus.PAID: set(),
    PaymentStatus.CANCELLED: set(),
}

DELETABLE_PAYMENT_STATUSES = {PaymentStatus.PENDING, PaymentStatus.CANCELLED}


def ledger_category_for(service_type: str) -> LedgerCategory:
    """Map a payment service type to its ledger category (unknown -> service_other)"""
    try:
        return LEDGER_CATEGORY_BY_SERVICE[ServiceType(service_type)]
    except ValueError:
        return LedgerCategory.SERVICE_OTHER


def check_transaction_status(current: str, target: str) -> None:
    """Ledger status is monotonic: pending -> posted -> reconciled"""
    current_status = TransactionStatus(current)
    target_status = TransactionStatus(target)
    if _TRANSACTION_STATUS_RANK[target_status] < _TRANSACTION_STATUS_RANK[current_status]:
        raise InvalidStateTransitionError("transaction", current_status.value, target_status.value)


def check_payment_status(current: str, target: str) -> None:
    current_status = PaymentStatus(current)
    target_status = PaymentStatus(target)
    if current_status == target_status:
        return
    if target_status not in _PAYMENT_TRANSITIONS[current_status]:
        raise InvalidStateTransitionError("payment", current_status.value, target_status.value)


def summarize(rows: Iterable[Tuple[str, str, Decimal]]) -> AccountingSummary:
    """Fold one (direction, status, net_amount) row per ledger entry into agency totals"""
    totals = {
        (direction, status): Decimal("0")
        for direction in Direction
        for status in TransactionStatus
    }
    count = 0
    for direction, status, amount in rows:
        key = (Direction(direction), TransactionStatus(status))
        totals[key] += Decimal(str(amount or 0))
        count += 1

    def _sum(direction: Direction, status: TransactionStatus | None = None) -> Decimal:
        value = sum(
            (v for (d, s), v in totals.items() if d == direction and (status is None or s == status)),
            Decimal("0"),
        )
        return value.quantize(CENTS)

    total_inflow = _sum(Direction.INFLOW)
    total_outflow = _sum(Direction.OUTFLOW)
    return AccountingSummary(
        total_inflow=total_inflow,
        total_outflow=total_outflow,
        net_balance=(total_inflow - total_outflow).quantize(CENTS),
        pending_inflow=_sum(Direction.INFLOW, TransactionStatus.PENDING),
        pending_outflow=_sum(Direction.OUTFLOW, TransactionStatus.PENDING),
        posted_inflow=_sum(Direction.INFLOW, TransactionStatus.POSTED),
        posted_outflow=_sum(Direction.OUTFLOW, TransactionStatus.POSTED),
        reconciled_inflow=_sum(Direction.INFLOW, TransactionStatus.RECONCILED),
        reconciled_outflow=_sum(Direction.OUTFLOW, TransactionStatus.RECONCILED),
        transaction_count=count,
    )
