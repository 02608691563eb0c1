# Overview: Service-layer operations for purchase transactions; supplier orders and receiving.

"""
Purchase Transaction Service

LIFECYCLE:
0 = PENDING:   created, editable, stock untouched
1 = COMPLETED: goods received; stock increased by every item quantity
2 = CANCELLED: abandoned before receipt; stock untouched

Only PENDING -> COMPLETED touches stock, and it happens exactly once.
Deleting a COMPLETED purchase takes the received quantities back out of
stock, floored at zero for books that were sold in the meantime.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Book, PurchaseTransaction, PurchaseTransactionItem, Publisher
from ..validation import (
    NotFoundError,
    ValidationError,
    coerce_datetime,
    coerce_int,
    coerce_note,
    coerce_optional_int,
    enforce_amount,
    enforce_quantity,
)
from .concurrency import lock_for_update, run_with_retry
from .document_service import PREFIX_PURCHASE_INVOICE, next_document_number
from .stock_service import BookNotFoundError, increment_stock, restore_stock


STATUS_PENDING = 0
STATUS_COMPLETED = 1
STATUS_CANCELLED = 2
VALID_STATUSES = {STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED}


class PurchaseTransactionError(ValidationError):
    """Raised when purchase data fails validation."""


class PurchaseTransactionStateError(ValidationError):
    """Raised when an operation is invalid for the current purchase status."""


class PurchaseTransactionNotFoundError(NotFoundError):
    """Raised when a purchase transaction is not found."""


class SupplierNotFoundError(NotFoundError):
    """Raised when the referenced supplier (publisher) does not exist."""


def _ensure_supplier(supplier_id: int) -> Publisher:
    supplier = db.session.query(Publisher).filter_by(id=supplier_id).first()
    if not supplier:
        raise SupplierNotFoundError("Supplier not found")
    return supplier


def _parse_items(raw_items) -> list[tuple[int, int, int]]:
    """Validate purchase items into (book_id, quantity, price) tuples."""
    if not isinstance(raw_items, list) or not raw_items:
        raise PurchaseTransactionError("At least one item is required")

    parsed = []
    seen: set[int] = set()
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise PurchaseTransactionError("Each item must be an object with book_id, quantity and price")
        book_id = coerce_int(raw.get("book_id"), "book_id")
        quantity = coerce_int(raw.get("quantity"), "quantity")
        enforce_quantity(quantity)
        price = coerce_int(raw.get("price"), "price")
        enforce_amount(price, "price", allow_zero=True)
        if book_id in seen:
            raise PurchaseTransactionError(f"Duplicate book_id in request: {book_id}")
        seen.add(book_id)
        parsed.append((book_id, quantity, price))
    return parsed


def _build_items(parsed) -> tuple[list[PurchaseTransactionItem], int]:
    book_ids = {book_id for book_id, _, _ in parsed}
    found = {
        book_id
        for (book_id,) in db.session.query(Book.id).filter(Book.id.in_(book_ids)).all()
    }
    items = []
    total = 0
    for book_id, quantity, price in parsed:
        if book_id not in found:
            raise BookNotFoundError(book_id)
        subtotal = price * quantity
        total += subtotal
        items.append(PurchaseTransactionItem(
            book_id=book_id,
            quantity=quantity,
            price=price,
            subtotal=subtotal,
        ))
    return items, total


def _lock_books_for(items) -> dict[int, Book]:
    ids = sorted({item.book_id for item in items})
    if not ids:
        return {}
    books = lock_for_update(
        db.session.query(Book).filter(Book.id.in_(ids)).order_by(Book.id)
    ).all()
    return {book.id: book for book in books}


def get_purchase_transaction(purchase_id: int, *, lock: bool = False) -> PurchaseTransaction:
    query = db.session.query(PurchaseTransaction).filter_by(id=purchase_id)
    if lock:
        query = lock_for_update(query)
    purchase = query.first()
    if not purchase:
        raise PurchaseTransactionNotFoundError("Purchase transaction not found")
    return purchase


def create_purchase_transaction(
    *,
    supplier_id,
    purchase_date,
    items,
    note: str | None = None,
) -> PurchaseTransaction:
    """
    Create a pending purchase. Stock is not touched until completion.

    Raises:
        PurchaseTransactionError: invalid input
        SupplierNotFoundError / BookNotFoundError: unknown references
    """
    if supplier_id in (None, ""):
        raise PurchaseTransactionError("supplier_id is required")
    supplier_id = coerce_int(supplier_id, "supplier_id")
    if purchase_date in (None, ""):
        raise PurchaseTransactionError("purchase_date is required")
    purchase_dt = coerce_datetime(purchase_date, "purchase_date")
    parsed = _parse_items(items)
    note = coerce_note(note)

    def _op():
        _ensure_supplier(supplier_id)
        built, total = _build_items(parsed)

        purchase = PurchaseTransaction(
            supplier_id=supplier_id,
            purchase_date=purchase_dt,
            status=STATUS_PENDING,
            note=note,
            total_amount=total,
        )
        purchase.items.extend(built)
        purchase.invoice_no = next_document_number(PREFIX_PURCHASE_INVOICE)

        db.session.add(purchase)
        db.session.commit()

        current_app.logger.info(
            "Purchase %s created: %d items, total %s", purchase.invoice_no, len(built), total
        )
        return purchase

    return run_with_retry(_op)


def update_purchase_transaction(purchase_id: int, changes: dict) -> PurchaseTransaction:
    """
    Edit a pending purchase: supplier_id, purchase_date, note and items.

    items replaces every existing line (delete-all-then-recreate).
    """
    if not isinstance(changes, dict):
        raise PurchaseTransactionError("Invalid request body")
    unknown = set(changes) - {"supplier_id", "purchase_date", "note", "items"}
    if unknown:
        raise PurchaseTransactionError(f"Field not allowed: {sorted(unknown)[0]}")

    supplier_id = None
    if changes.get("supplier_id") not in (None, ""):
        supplier_id = coerce_int(changes["supplier_id"], "supplier_id")
    purchase_dt = None
    if changes.get("purchase_date") not in (None, ""):
        purchase_dt = coerce_datetime(changes["purchase_date"], "purchase_date")
    parsed = None
    if changes.get("items") is not None:
        parsed = _parse_items(changes["items"])
    note = coerce_note(changes.get("note"))

    def _op():
        purchase = get_purchase_transaction(purchase_id, lock=True)
        if purchase.status != STATUS_PENDING:
            raise PurchaseTransactionStateError("Only pending transactions can be updated")

        if supplier_id is not None:
            _ensure_supplier(supplier_id)
            purchase.supplier_id = supplier_id
        if purchase_dt is not None:
            purchase.purchase_date = purchase_dt
        if "note" in changes:
            purchase.note = note

        if parsed is not None:
            built, total = _build_items(parsed)
            purchase.items.clear()
            db.session.flush()
            purchase.items.extend(built)
            purchase.total_amount = total

        db.session.commit()
        return purchase

    return run_with_retry(_op)


def complete_purchase_transaction(purchase_id: int) -> PurchaseTransaction:
    """PENDING -> COMPLETED. Adds every item quantity to stock."""
    def _op():
        purchase = get_purchase_transaction(purchase_id, lock=True)
        if purchase.status != STATUS_PENDING:
            raise PurchaseTransactionStateError("Only pending transactions can be completed")

        books = _lock_books_for(purchase.items)
        for item in purchase.items:
            book = books.get(item.book_id)
            if book is None:
                raise BookNotFoundError(item.book_id)
            increment_stock(book, item.quantity)

        purchase.status = STATUS_COMPLETED
        db.session.commit()

        current_app.logger.info("Purchase %s completed, stock received", purchase.invoice_no)
        return purchase

    return run_with_retry(_op)


def cancel_purchase_transaction(purchase_id: int) -> PurchaseTransaction:
    """PENDING -> CANCELLED. No stock effect."""
    def _op():
        purchase = get_purchase_transaction(purchase_id, lock=True)
        if purchase.status != STATUS_PENDING:
            raise PurchaseTransactionStateError("Only pending transactions can be cancelled")

        purchase.status = STATUS_CANCELLED
        db.session.commit()

        current_app.logger.info("Purchase %s cancelled", purchase.invoice_no)
        return purchase

    return run_with_retry(_op)


def delete_purchase_transaction(purchase_id: int) -> str:
    """Delete a purchase in any status; reverses stock (clamped) when it was completed."""
    def _op():
        purchase = get_purchase_transaction(purchase_id, lock=True)
        invoice_no = purchase.invoice_no

        if purchase.status == STATUS_COMPLETED:
            books = _lock_books_for(purchase.items)
            for item in purchase.items:
                book = books.get(item.book_id)
                if book is not None:
                    restore_stock(book, item.quantity, clamp=True)

        db.session.delete(purchase)
        db.session.commit()

        current_app.logger.info("Purchase %s deleted", invoice_no)
        return invoice_no

    return run_with_retry(_op)


def set_receipt_image(purchase_id: int, receipt_image_url) -> PurchaseTransaction:
    """Attach the URL of an uploaded receipt image. Storage of the file itself happens elsewhere."""
    if not isinstance(receipt_image_url, str) or not receipt_image_url.strip():
        raise PurchaseTransactionError("receipt_image_url is required")
    url = receipt_image_url.strip()
    if len(url) > 512:
        raise PurchaseTransactionError("receipt_image_url exceeds max length 512")

    def _op():
        purchase = get_purchase_transaction(purchase_id, lock=True)
        purchase.receipt_image_url = url
        db.session.commit()
        return purchase

    return run_with_retry(_op)


def list_purchase_transactions(
    *,
    search: str | None = None,
    status=None,
    supplier_id=None,
    start_date: str | None = None,
    end_date: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[PurchaseTransaction], int]:
    """
    List purchases, newest purchase_date first.

    start_date / end_date are inclusive whole days.
    """
    status = coerce_optional_int(status, "status")
    supplier_id = coerce_optional_int(supplier_id, "supplier_id")
    query = db.session.query(PurchaseTransaction)

    if search:
        term = f"%{search.strip()}%"
        query = query.outerjoin(
            Publisher, Publisher.id == PurchaseTransaction.supplier_id
        ).filter(
            or_(
                PurchaseTransaction.invoice_no.ilike(term),
                Publisher.name.ilike(term),
            )
        )
    if status is not None:
        if status not in VALID_STATUSES:
            raise PurchaseTransactionError("status must be 0 (pending), 1 (completed) or 2 (cancelled)")
        query = query.filter(PurchaseTransaction.status == status)
    if supplier_id is not None:
        query = query.filter(PurchaseTransaction.supplier_id == supplier_id)
    if start_date:
        start_dt: datetime = coerce_datetime(start_date, "start_date")
        start_dt = start_dt.replace(hour=0, minute=0, second=0, microsecond=0)
        query = query.filter(PurchaseTransaction.purchase_date >= start_dt)
    if end_date:
        end_dt: datetime = coerce_datetime(end_date, "end_date")
        end_dt = end_dt.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)
        query = query.filter(PurchaseTransaction.purchase_date < end_dt)

    total = query.count()

    query = query.order_by(PurchaseTransaction.purchase_date.desc(), PurchaseTransaction.id.desc())
    if limit is not None:
        query = query.offset(max(offset, 0)).limit(limit)

    return query.all(), total
