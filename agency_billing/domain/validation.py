"""Input validation applied before anything reaches the stores"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from agency_billing.domain.exceptions import ValidationError
from agency_billing.domain.models import (
    NewPayment,
    NewSchedule,
    NewTransaction,
    PaymentUpdate,
    ScheduleUpdate,
    TransactionUpdate,
)

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def validate_amount(name: str, value) -> Decimal:
    """Coerce to Decimal and require a finite, non-negative value"""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{name} must be a decimal number")
    if not amount.is_finite():
        raise ValidationError(f"{name} must be a decimal number")
    if amount < 0:
        raise ValidationError(f"{name} must be non-negative")
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"{name} must have at most 2 decimal places")
    return amount


def validate_day_of_month(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("day_of_month must be an integer")
    if not 1 <= value <= 31:
        raise ValidationError("day_of_month must be between 1 and 31")
    return value


def validate_currency(value: Optional[str], default: str) -> str:
    currency = (value or default).upper()
    if not _CURRENCY_RE.match(currency):
        raise ValidationError(f"currency must be a 3-letter ISO code, got {value!r}")
    return currency


def validate_new_schedule(data: NewSchedule, default_currency: str) -> NewSchedule:
    if data.contract_id is None:
        raise ValidationError("contract_id is required")
    data.amount = validate_amount("amount", data.amount)
    data.day_of_month = validate_day_of_month(data.day_of_month)
    data.currency = validate_currency(data.currency, default_currency)
    return data


def validate_schedule_update(update: ScheduleUpdate) -> ScheduleUpdate:
    if update.amount is not None:
        update.amount = validate_amount("amount", update.amount)
    if update.day_of_month is not None:
        update.day_of_month = validate_day_of_month(update.day_of_month)
    if update.currency is not None:
        update.currency = validate_currency(update.currency, update.currency)
    return update


def validate_new_payment(data: NewPayment, default_currency: str) -> NewPayment:
    if data.contract_id is None:
        raise ValidationError("contract_id is required")
    if data.due_date is None:
        raise ValidationError("due_date is required")
    data.amount = validate_amount("amount", data.amount)
    data.currency = validate_currency(data.currency, default_currency)
    return data


def validate_payment_update(update: PaymentUpdate) -> PaymentUpdate:
    if update.amount is not None:
        update.amount = validate_amount("amount", update.amount)
    if update.currency is not None:
        update.currency = validate_currency(update.currency, update.currency)
    return update


def check_net_amount(gross_amount: Decimal, fees: Decimal, net_amount: Decimal) -> None:
    """Net is always gross minus fees; the accounting totals rely on it"""
    if net_amount != gross_amount - fees:
        raise ValidationError(
            f"net_amount must equal gross_amount - fees ({gross_amount - fees}), got {net_amount}"
        )


def validate_new_transaction(data: NewTransaction, default_currency: str) -> NewTransaction:
    data.gross_amount = validate_amount("gross_amount", data.gross_amount)
    data.fees = validate_amount("fees", data.fees)
    if data.fees > data.gross_amount:
        raise ValidationError("fees cannot exceed gross_amount")
    if data.net_amount is None:
        data.net_amount = data.gross_amount - data.fees
    else:
        data.net_amount = validate_amount("net_amount", data.net_amount)
        check_net_amount(data.gross_amount, data.fees, data.net_amount)
    data.currency = validate_currency(data.currency, default_currency)
    return data


def validate_transaction_update(update: TransactionUpdate) -> TransactionUpdate:
    for name in ("gross_amount", "fees", "net_amount"):
        value = getattr(update, name)
        if value is not None:
            setattr(update, name, validate_amount(name, value))
    return update
