# Overview: Service-layer operations for shipping costs attached to sales transactions.

"""
Shipping Cost Allocator

A shipping row adds its amount to the owning transaction's total_amount.
Updates apply the signed delta; deletes subtract the amount. The transaction
header is locked for every mutation so the total and the shipping rows move
together, and status is reconciled against the new total before the commit.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Shipping
from ..validation import NotFoundError, ValidationError, coerce_int, enforce_amount
from .concurrency import run_with_retry
from .sales_transaction_service import ensure_expedition, get_sales_transaction, reconcile_status


class ShippingError(ValidationError):
    """Raised for shipping validation errors."""


class ShippingNotFoundError(NotFoundError):
    """Raised when a shipping row does not exist on the given transaction."""


def _parse_amount(value) -> int:
    amount = coerce_int(value, "total_amount")
    enforce_amount(amount, "total_amount", allow_zero=True)
    return amount


def _normalize_tracking_no(value):
    if value is None:
        return None
    value = str(value).strip()
    if len(value) > 64:
        raise ShippingError("tracking_no exceeds max length 64")
    return value or None


def _get_shipping(transaction_id: int, shipping_id: int) -> Shipping:
    shipping = (
        db.session.query(Shipping)
        .filter_by(id=shipping_id, sales_transaction_id=transaction_id)
        .first()
    )
    if not shipping:
        raise ShippingNotFoundError("Shipping not found")
    return shipping


def add_shipping(transaction_id: int, *, expedition_id, total_amount, tracking_no=None) -> tuple[Shipping, int]:
    """
    Attach a shipping cost to a transaction.

    Returns:
        (shipping, updated_transaction_total)
    """
    if expedition_id in (None, ""):
        raise ShippingError("expedition_id is required")
    expedition_id = coerce_int(expedition_id, "expedition_id")
    amount = _parse_amount(total_amount)
    tracking_no = _normalize_tracking_no(tracking_no)

    def _op():
        transaction = get_sales_transaction(transaction_id, lock=True)
        ensure_expedition(expedition_id)

        shipping = Shipping(
            sales_transaction_id=transaction.id,
            expedition_id=expedition_id,
            tracking_no=tracking_no,
            total_amount=amount,
        )
        db.session.add(shipping)
        transaction.total_amount = transaction.total_amount + amount
        db.session.flush()
        reconcile_status(transaction)
        db.session.commit()

        current_app.logger.info(
            "Shipping %s added to %s, total now %s", amount, transaction.invoice_no, transaction.total_amount
        )
        return shipping, transaction.total_amount

    return run_with_retry(_op)


def update_shipping(transaction_id: int, shipping_id: int, changes: dict) -> tuple[Shipping, int]:
    """
    Partial update: expedition_id, tracking_no and total_amount are each optional.

    A changed amount shifts the transaction total by (new - old).
    """
    if not isinstance(changes, dict):
        raise ShippingError("Invalid request body")
    unknown = set(changes) - {"expedition_id", "tracking_no", "total_amount"}
    if unknown:
        raise ShippingError(f"Field not allowed: {sorted(unknown)[0]}")

    new_expedition_id = None
    if changes.get("expedition_id") not in (None, ""):
        new_expedition_id = coerce_int(changes["expedition_id"], "expedition_id")
    new_amount = None
    if changes.get("total_amount") is not None:
        new_amount = _parse_amount(changes["total_amount"])

    def _op():
        transaction = get_sales_transaction(transaction_id, lock=True)
        shipping = _get_shipping(transaction.id, shipping_id)

        if new_expedition_id is not None:
            ensure_expedition(new_expedition_id)
            shipping.expedition_id = new_expedition_id
        if "tracking_no" in changes:
            shipping.tracking_no = _normalize_tracking_no(changes["tracking_no"])
        if new_amount is not None and new_amount != shipping.total_amount:
            delta = new_amount - shipping.total_amount
            shipping.total_amount = new_amount
            transaction.total_amount = transaction.total_amount + delta
            reconcile_status(transaction)

        db.session.commit()
        return shipping, transaction.total_amount

    return run_with_retry(_op)


def delete_shipping(transaction_id: int, shipping_id: int) -> int:
    """Remove a shipping row and subtract its amount. Returns the updated transaction total."""
    def _op():
        transaction = get_sales_transaction(transaction_id, lock=True)
        shipping = _get_shipping(transaction.id, shipping_id)

        transaction.total_amount = transaction.total_amount - shipping.total_amount
        db.session.delete(shipping)
        db.session.flush()
        reconcile_status(transaction)
        db.session.commit()

        current_app.logger.info(
            "Shipping %s removed from %s, total now %s", shipping_id, transaction.invoice_no, transaction.total_amount
        )
        return transaction.total_amount

    return run_with_retry(_op)


def list_shippings(transaction_id: int) -> tuple[list[Shipping], int]:
    """Shipping rows of a transaction plus their summed cost."""
    transaction = get_sales_transaction(transaction_id)
    shippings = (
        db.session.query(Shipping)
        .filter_by(sales_transaction_id=transaction.id)
        .order_by(Shipping.id.asc())
        .all()
    )
    total_cost = db.session.query(
        func.coalesce(func.sum(Shipping.total_amount), 0)
    ).filter(Shipping.sales_transaction_id == transaction.id).scalar()
    return shippings, int(total_cost or 0)
