"""Unit tests for ledger category mapping, status machines and the summary fold"""

import pytest
from decimal import Decimal
from agency_billing.domain.exceptions import InvalidStateTransitionError
from agency_billing.domain.ledger import (
    check_payment_status,
    check_transaction_status,
    ledger_category_for,
    summarize,
)
from agency_billing.domain.models import LedgerCategory


@pytest.mark.parametrize(
    "service_type, category",
    [
        ("rent", LedgerCategory.RENT_INCOME),
        ("electricity", LedgerCategory.SERVICE_ELECTRICITY),
        ("water", LedgerCategory.SERVICE_WATER),
        ("internet", LedgerCategory.SERVICE_INTERNET),
        ("gas", LedgerCategory.SERVICE_GAS),
        ("hoa", LedgerCategory.HOA_FEE),
        ("maintenance", LedgerCategory.MAINTENANCE_CHARGE),
        ("special", LedgerCategory.SERVICE_OTHER),
        ("other", LedgerCategory.SERVICE_OTHER),
        ("parking", LedgerCategory.SERVICE_OTHER),
    ],
)
def test_ledger_category_for(service_type, category):
    assert ledger_category_for(service_type) == category


def test_transaction_status_moves_forward_only():
    check_transaction_status("pending", "posted")
    check_transaction_status("posted", "reconciled")
    check_transaction_status("pending", "reconciled")
    check_transaction_status("posted", "posted")

    with pytest.raises(InvalidStateTransitionError):
        check_transaction_status("reconciled", "pending")
    with pytest.raises(InvalidStateTransitionError):
        check_transaction_status("posted", "pending")


def test_payment_status_transitions():
    check_payment_status("pending", "paid")
    check_payment_status("overdue", "paid")
    check_payment_status("pending", "cancelled")
    # Re-confirming a paid payment stays in place
    check_payment_status("paid", "paid")

    with pytest.raises(InvalidStateTransitionError):
        check_payment_status("paid", "pending")
    with pytest.raises(InvalidStateTransitionError):
        check_payment_status("cancelled", "paid")
    with pytest.raises(InvalidStateTransitionError):
        check_payment_status("overdue", "pending")


def test_summarize_uses_net_amounts():
    rows = [
        ("inflow", "posted", Decimal("1000.00")),
        ("inflow", "pending", Decimal("250.50")),
        ("inflow", "reconciled", Decimal("99.50")),
        ("outflow", "posted", Decimal("300.00")),
        ("outflow", "pending", Decimal("20.00")),
    ]

    summary = summarize(rows)

    assert summary.total_inflow == Decimal("1350.00")
    assert summary.total_outflow == Decimal("320.00")
    assert summary.net_balance == Decimal("1030.00")
    assert summary.pending_inflow == Decimal("250.50")
    assert summary.posted_inflow == Decimal("1000.00")
    assert summary.reconciled_inflow == Decimal("99.50")
    assert summary.pending_outflow == Decimal("20.00")
    assert summary.posted_outflow == Decimal("300.00")
    assert summary.reconciled_outflow == Decimal("0.00")
    assert summary.transaction_count == 5


def test_summarize_empty_ledger():
    summary = summarize([])
    assert summary.total_inflow == Decimal("0.00")
    assert summary.net_balance == Decimal("0.00")
    assert summary.transaction_count == 0


def test_summarize_subtotals_add_up():
    rows = [("inflow", status, Decimal("10.10")) for status in ("pending", "posted", "reconciled")]
    summary = summarize(rows)
    assert summary.pending_inflow + summary.posted_inflow + summary.reconciled_inflow == summary.total_inflow
