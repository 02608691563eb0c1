# Overview: Service-layer operations for payments and installments on sales transactions.

"""
Payment / Installment Ledger

Two parallel append-only ledgers hang off a sales transaction:
- payments:     PMT numbers, any payment type, capped at the transaction total
- installments: PKR numbers, credit (K) transactions only, no ceiling

paid = sum(payments) + sum(installments). Every mutation locks the
transaction header first, writes the ledger row, then calls reconcile_status()
so status always matches paid vs total after the commit.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Payment, SalesTransaction, SalesTransactionInstallment
from ..validation import (
    NotFoundError,
    ValidationError,
    coerce_datetime,
    coerce_int,
    coerce_note,
    enforce_amount,
)
from .concurrency import run_with_retry
from .document_service import PREFIX_INSTALLMENT, PREFIX_PAYMENT, next_document_number
from .sales_transaction_service import (
    PAYMENT_TYPE_CREDIT,
    compute_paid_total,
    get_sales_transaction,
    reconcile_status,
)


class PaymentError(ValidationError):
    """Raised for payment operation errors."""


class PaymentLimitError(PaymentError):
    """Raised when a payment would take the paid total past the transaction total."""

    def __init__(self, remaining_amount: int, requested_amount: int):
        super().__init__(
            "Payment amount exceeds remaining balance",
            details={
                "remaining_amount": remaining_amount,
                "requested_amount": requested_amount,
            },
        )
        self.remaining_amount = remaining_amount
        self.requested_amount = requested_amount


class PaymentNotFoundError(NotFoundError):
    """Raised when a payment does not exist on the given transaction."""


class InstallmentNotFoundError(NotFoundError):
    """Raised when an installment does not exist on the given transaction."""


def _parse_entry(amount, entry_date, note, field_prefix: str):
    amount = coerce_int(amount, "amount")
    enforce_amount(amount, "amount", allow_zero=False)
    if entry_date in (None, ""):
        raise PaymentError(f"{field_prefix}_date is required")
    return amount, coerce_datetime(entry_date, f"{field_prefix}_date"), coerce_note(note)


def ledger_summary(transaction: SalesTransaction) -> dict:
    """Status and balance fields returned alongside every ledger response."""
    paid = compute_paid_total(transaction.id)
    return {
        "transaction_status": transaction.status,
        "total_paid": paid,
        "remaining_amount": max(transaction.total_amount - paid, 0),
    }


# =============================================================================
# PAYMENTS
# =============================================================================

def add_payment(transaction_id: int, *, payment_date, amount, note: str | None = None) -> tuple[Payment, dict]:
    """
    Record a payment against a sales transaction.

    Returns:
        (payment, summary) where summary holds transaction_status, total_paid
        and remaining_amount after the payment.

    Raises:
        PaymentLimitError: paid + amount would exceed total_amount
        SalesTransactionNotFoundError: no such transaction
    """
    amount, payment_dt, note = _parse_entry(amount, payment_date, note, "payment")

    def _op():
        transaction = get_sales_transaction(transaction_id, lock=True)

        paid = compute_paid_total(transaction.id)
        remaining = transaction.total_amount - paid
        if amount > remaining:
            raise PaymentLimitError(max(remaining, 0), amount)

        payment = Payment(
            sales_transaction_id=transaction.id,
            payment_no=next_document_number(PREFIX_PAYMENT),
            payment_date=payment_dt,
            amount=amount,
            note=note,
        )
        db.session.add(payment)
        db.session.flush()

        reconcile_status(transaction)
        summary = ledger_summary(transaction)
        db.session.commit()

        current_app.logger.info(
            "Payment %s of %s recorded on %s", payment.payment_no, amount, transaction.invoice_no
        )
        return payment, summary

    return run_with_retry(_op)


def delete_payment(transaction_id: int, payment_id: int) -> dict:
    """Remove a payment; 404 unless it belongs to the transaction. Returns the ledger summary."""
    def _op():
        transaction = get_sales_transaction(transaction_id, lock=True)
        payment = (
            db.session.query(Payment)
            .filter_by(id=payment_id, sales_transaction_id=transaction.id)
            .first()
        )
        if not payment:
            raise PaymentNotFoundError("Payment not found")

        payment_no = payment.payment_no
        db.session.delete(payment)
        db.session.flush()

        reconcile_status(transaction)
        summary = ledger_summary(transaction)
        db.session.commit()

        current_app.logger.info("Payment %s deleted from %s", payment_no, transaction.invoice_no)
        return summary

    return run_with_retry(_op)


def list_payments(transaction_id: int) -> tuple[list[Payment], dict]:
    transaction = get_sales_transaction(transaction_id)
    payments = (
        db.session.query(Payment)
        .filter_by(sales_transaction_id=transaction.id)
        .order_by(Payment.payment_date.asc(), Payment.id.asc())
        .all()
    )
    summary = ledger_summary(transaction)
    summary["total_amount"] = transaction.total_amount
    return payments, summary


# =============================================================================
# INSTALLMENTS
# =============================================================================

def add_installment(
    transaction_id: int, *, installment_date, amount, note: str | None = None
) -> tuple[SalesTransactionInstallment, dict]:
    """
    Record an installment on a credit transaction.

    No ceiling is enforced; paying past the total simply leaves the
    transaction paid-off.
    """
    amount, installment_dt, note = _parse_entry(amount, installment_date, note, "installment")

    def _op():
        transaction = get_sales_transaction(transaction_id, lock=True)
        if transaction.payment_type != PAYMENT_TYPE_CREDIT:
            raise PaymentError("Installments are only allowed for credit transactions")

        installment = SalesTransactionInstallment(
            transaction_id=transaction.id,
            installment_no=next_document_number(PREFIX_INSTALLMENT),
            installment_date=installment_dt,
            amount=amount,
            note=note,
        )
        db.session.add(installment)
        db.session.flush()

        reconcile_status(transaction)
        summary = ledger_summary(transaction)
        db.session.commit()

        current_app.logger.info(
            "Installment %s of %s recorded on %s",
            installment.installment_no, amount, transaction.invoice_no,
        )
        return installment, summary

    return run_with_retry(_op)


def delete_installment(transaction_id: int, installment_id: int) -> dict:
    def _op():
        transaction = get_sales_transaction(transaction_id, lock=True)
        installment = (
            db.session.query(SalesTransactionInstallment)
            .filter_by(id=installment_id, transaction_id=transaction.id)
            .first()
        )
        if not installment:
            raise InstallmentNotFoundError("Installment not found")

        installment_no = installment.installment_no
        db.session.delete(installment)
        db.session.flush()

        reconcile_status(transaction)
        summary = ledger_summary(transaction)
        db.session.commit()

        current_app.logger.info("Installment %s deleted from %s", installment_no, transaction.invoice_no)
        return summary

    return run_with_retry(_op)


def list_installments(transaction_id: int) -> tuple[list[SalesTransactionInstallment], dict]:
    transaction = get_sales_transaction(transaction_id)
    installments = (
        db.session.query(SalesTransactionInstallment)
        .filter_by(transaction_id=transaction.id)
        .order_by(SalesTransactionInstallment.installment_date.asc(), SalesTransactionInstallment.id.asc())
        .all()
    )
    summary = ledger_summary(transaction)
    summary["total_amount"] = transaction.total_amount
    return installments, summary
