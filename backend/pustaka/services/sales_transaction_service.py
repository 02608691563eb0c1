# Overview: Service-layer operations for sales transactions; items, stock effects and status.

"""
Sales Transaction Service

LIFECYCLE (status is payment progress, not a workflow):
0 = BOOKING:     nothing paid yet
1 = PAID_OFF:    payments + installments >= total_amount
2 = INSTALLMENT: 0 < payments + installments < total_amount

STOCK:
- create decrements stock for every item (all-or-nothing)
- update reconciles requested items against existing ones by book_id
- delete restores stock for every item before cascading

STATUS WRITERS:
- reconcile_status() derives status from the payment and installment ledgers.
  It runs after every ledger mutation and after item changes.
- update_sales_transaction() accepts an explicit status as a manual override.
  The override wins for that request only; the next ledger mutation
  reconciles the field back to the derived value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import (
    Book,
    Expedition,
    Payment,
    SalesAssociate,
    SalesTransaction,
    SalesTransactionInstallment,
    SalesTransactionItem,
    Shipping,
)
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    coerce_datetime,
    coerce_int,
    coerce_optional_int,
    enforce_quantity,
    validate_payload,
)
from .concurrency import lock_for_update, run_with_retry
from .document_service import PREFIX_SALES_INVOICE, next_document_number
from .stock_service import BookNotFoundError, decrement_stock, increment_stock


PAYMENT_TYPE_CASH = "T"
PAYMENT_TYPE_CREDIT = "K"
VALID_PAYMENT_TYPES = {PAYMENT_TYPE_CASH, PAYMENT_TYPE_CREDIT}

STATUS_BOOKING = 0
STATUS_PAID_OFF = 1
STATUS_INSTALLMENT = 2
VALID_STATUSES = {STATUS_BOOKING, STATUS_PAID_OFF, STATUS_INSTALLMENT}

UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "sales_associate_id",
        "expedition_id",
        "payment_type",
        "transaction_date",
        "due_date",
        "status",
    },
    extra_fields={"items"},
)


class SalesTransactionError(ValidationError):
    """Raised for sales transaction validation and business rule errors."""


class SalesTransactionNotFoundError(NotFoundError):
    """Raised when a sales transaction is not found."""


class SalesAssociateNotFoundError(NotFoundError):
    """Raised when the referenced sales associate does not exist."""


class ExpeditionNotFoundError(NotFoundError):
    """Raised when the referenced expedition (carrier) does not exist."""


# =============================================================================
# ITEM RECONCILIATION
# =============================================================================

@dataclass(frozen=True)
class ItemRequest:
    book_id: int
    quantity: int


@dataclass
class ItemChangePlan:
    """Result of diffing existing items against requested items by book_id."""
    inserts: list[ItemRequest] = field(default_factory=list)
    updates: list[tuple[SalesTransactionItem, ItemRequest]] = field(default_factory=list)
    deletes: list[SalesTransactionItem] = field(default_factory=list)

    @property
    def book_ids(self) -> set[int]:
        ids = {req.book_id for req in self.inserts}
        ids.update(item.book_id for item, _ in self.updates)
        ids.update(item.book_id for item in self.deletes)
        return ids


def parse_item_requests(raw_items) -> list[ItemRequest]:
    """
    Validate the "items" request field.

    Rejects an empty list, non-positive quantities and duplicate book ids
    before anything is read from or written to the database.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise SalesTransactionError("At least one item is required")

    requests: list[ItemRequest] = []
    seen: set[int] = set()
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise SalesTransactionError("Each item must be an object with book_id and quantity")
        book_id = coerce_int(raw.get("book_id"), "book_id")
        quantity = coerce_int(raw.get("quantity"), "quantity")
        enforce_quantity(quantity)
        if book_id in seen:
            raise SalesTransactionError(f"Duplicate book_id in request: {book_id}")
        seen.add(book_id)
        requests.append(ItemRequest(book_id=book_id, quantity=quantity))
    return requests


def plan_item_changes(
    existing: list[SalesTransactionItem],
    requested: list[ItemRequest],
) -> ItemChangePlan:
    """
    Diff two keyed collections.

    - book in both        -> update (quantity delta applied to stock)
    - book only requested -> insert
    - book only existing  -> delete
    """
    existing_by_book = {item.book_id: item for item in existing}
    requested_ids = {req.book_id for req in requested}

    plan = ItemChangePlan()
    for req in requested:
        item = existing_by_book.get(req.book_id)
        if item is None:
            plan.inserts.append(req)
        else:
            plan.updates.append((item, req))

    plan.deletes = [item for item in existing if item.book_id not in requested_ids]
    return plan


def _lock_books(book_ids) -> dict[int, Book]:
    """Lock books in ascending id order so concurrent writers cannot deadlock."""
    ids = sorted(set(book_ids))
    if not ids:
        return {}
    books = lock_for_update(
        db.session.query(Book).filter(Book.id.in_(ids)).order_by(Book.id)
    ).all()
    by_id = {book.id: book for book in books}
    for book_id in ids:
        if book_id not in by_id:
            raise BookNotFoundError(book_id)
    return by_id


# =============================================================================
# STATUS
# =============================================================================

def compute_paid_total(transaction_id: int) -> int:
    """Sum of payments plus sum of installments for a transaction."""
    paid_payments = db.session.query(
        func.coalesce(func.sum(Payment.amount), 0)
    ).filter(Payment.sales_transaction_id == transaction_id).scalar()

    paid_installments = db.session.query(
        func.coalesce(func.sum(SalesTransactionInstallment.amount), 0)
    ).filter(SalesTransactionInstallment.transaction_id == transaction_id).scalar()

    return int(paid_payments or 0) + int(paid_installments or 0)


def compute_shipping_total(transaction_id: int) -> int:
    total = db.session.query(
        func.coalesce(func.sum(Shipping.total_amount), 0)
    ).filter(Shipping.sales_transaction_id == transaction_id).scalar()
    return int(total or 0)


def derive_status(paid: int, total_amount: int) -> int:
    if paid > 0 and paid >= total_amount:
        return STATUS_PAID_OFF
    if paid > 0:
        return STATUS_INSTALLMENT
    return STATUS_BOOKING


def reconcile_status(transaction: SalesTransaction) -> int:
    """
    Rewrite transaction.status from the ledgers. The single derived writer.

    Caller holds the transaction row lock and commits.
    """
    paid = compute_paid_total(transaction.id)
    new_status = derive_status(paid, transaction.total_amount)
    if transaction.status != new_status:
        current_app.logger.info(
            "Sales transaction %s status %s -> %s (paid %s of %s)",
            transaction.invoice_no, transaction.status, new_status, paid, transaction.total_amount,
        )
    transaction.status = new_status
    return new_status


# =============================================================================
# LOOKUPS
# =============================================================================

def get_sales_transaction(transaction_id: int, *, lock: bool = False) -> SalesTransaction:
    query = db.session.query(SalesTransaction).filter_by(id=transaction_id)
    if lock:
        query = lock_for_update(query)
    transaction = query.first()
    if not transaction:
        raise SalesTransactionNotFoundError("Transaction not found")
    return transaction


def _ensure_sales_associate(sales_associate_id: int) -> SalesAssociate:
    associate = db.session.query(SalesAssociate).filter_by(id=sales_associate_id).first()
    if not associate:
        raise SalesAssociateNotFoundError("Sales associate not found")
    return associate


def ensure_expedition(expedition_id: int) -> Expedition:
    expedition = db.session.query(Expedition).filter_by(id=expedition_id).first()
    if not expedition:
        raise ExpeditionNotFoundError("Expedition not found")
    return expedition


def list_sales_transactions(
    *,
    search: str | None = None,
    status=None,
    payment_type: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[SalesTransaction], int]:
    """
    List sales transactions, newest first.

    search matches invoice number or sales associate name (case-insensitive).
    limit=None returns every row.
    """
    status = coerce_optional_int(status, "status")
    if status is not None and status not in VALID_STATUSES:
        raise SalesTransactionError("status must be 0 (booking), 1 (paid-off) or 2 (installment)")
    if payment_type and payment_type not in (PAYMENT_TYPE_CASH, PAYMENT_TYPE_CREDIT):
        raise SalesTransactionError("payment_type must be T or K")

    query = db.session.query(SalesTransaction)

    if search:
        term = f"%{search.strip()}%"
        query = query.outerjoin(
            SalesAssociate, SalesAssociate.id == SalesTransaction.sales_associate_id
        ).filter(
            or_(
                SalesTransaction.invoice_no.ilike(term),
                SalesAssociate.name.ilike(term),
            )
        )
    if status is not None:
        query = query.filter(SalesTransaction.status == status)
    if payment_type:
        query = query.filter(SalesTransaction.payment_type == payment_type)

    total = query.count()

    query = query.order_by(SalesTransaction.created_at.desc(), SalesTransaction.id.desc())
    if limit is not None:
        query = query.offset(max(offset, 0)).limit(limit)

    return query.all(), total


# =============================================================================
# CREATE
# =============================================================================

def _validate_payment_type(payment_type) -> str:
    if payment_type not in VALID_PAYMENT_TYPES:
        raise SalesTransactionError("payment_type must be either 'T' (cash) or 'K' (credit)")
    return payment_type


def create_sales_transaction(
    *,
    sales_associate_id,
    payment_type,
    transaction_date,
    items,
    due_date=None,
    expedition_id=None,
) -> SalesTransaction:
    """
    Create a sales transaction and take its items out of stock.

    All-or-nothing: a missing book or insufficient stock on any item aborts
    the whole operation with nothing persisted and no stock touched.

    Raises:
        SalesTransactionError: invalid input
        InsufficientStockError: an item asks for more than is in stock
        SalesAssociateNotFoundError / ExpeditionNotFoundError / BookNotFoundError
    """
    if sales_associate_id in (None, ""):
        raise SalesTransactionError("sales_associate_id is required")
    sales_associate_id = coerce_int(sales_associate_id, "sales_associate_id")
    requests = parse_item_requests(items)
    payment_type = _validate_payment_type(payment_type)

    if transaction_date in (None, ""):
        raise SalesTransactionError("transaction_date is required")
    transaction_dt: datetime = coerce_datetime(transaction_date, "transaction_date")

    due_dt = None
    if due_date not in (None, ""):
        due_dt = coerce_datetime(due_date, "due_date")
    if payment_type == PAYMENT_TYPE_CREDIT and due_dt is None:
        raise SalesTransactionError("due_date is required for credit payment")

    if expedition_id in ("", None):
        expedition_id = None
    else:
        expedition_id = coerce_int(expedition_id, "expedition_id")

    def _op():
        _ensure_sales_associate(sales_associate_id)
        if expedition_id is not None:
            ensure_expedition(expedition_id)

        books = _lock_books(req.book_id for req in requests)

        transaction = SalesTransaction(
            sales_associate_id=sales_associate_id,
            expedition_id=expedition_id,
            payment_type=payment_type,
            transaction_date=transaction_dt,
            due_date=due_dt,
            status=STATUS_BOOKING,
        )

        total = 0
        for req in requests:
            book = books[req.book_id]
            decrement_stock(book, req.quantity)
            subtotal = book.price * req.quantity
            total += subtotal
            transaction.items.append(SalesTransactionItem(
                book_id=book.id,
                quantity=req.quantity,
                price=book.price,
                subtotal=subtotal,
            ))

        transaction.total_amount = total
        transaction.invoice_no = next_document_number(PREFIX_SALES_INVOICE)

        db.session.add(transaction)
        db.session.commit()

        current_app.logger.info(
            "Sales transaction %s created: %d items, total %s",
            transaction.invoice_no, len(requests), total,
        )
        return transaction

    return run_with_retry(_op)


# =============================================================================
# UPDATE
# =============================================================================

def _apply_item_plan(transaction: SalesTransaction, plan: ItemChangePlan) -> None:
    books = _lock_books(plan.book_ids)

    for item in plan.deletes:
        increment_stock(books[item.book_id], item.quantity)
        transaction.items.remove(item)

    for item, req in plan.updates:
        book = books[item.book_id]
        delta = req.quantity - item.quantity
        if delta > 0:
            decrement_stock(book, delta)
        elif delta < 0:
            increment_stock(book, -delta)
        item.quantity = req.quantity
        item.price = book.price
        item.subtotal = book.price * req.quantity

    for req in plan.inserts:
        book = books[req.book_id]
        decrement_stock(book, req.quantity)
        transaction.items.append(SalesTransactionItem(
            book_id=book.id,
            quantity=req.quantity,
            price=book.price,
            subtotal=book.price * req.quantity,
        ))


def update_sales_transaction(transaction_id: int, changes: dict) -> SalesTransaction:
    """
    Partial update of a sales transaction.

    Accepts any subset of sales_associate_id, expedition_id ("" clears it),
    payment_type, transaction_date, due_date, status and items. items is a
    full replacement, reconciled against existing rows by book_id. When items
    change, total_amount = sum(item subtotals) + sum(shipping amounts).
    """
    if not isinstance(changes, dict):
        raise SalesTransactionError("Invalid request body")

    changes = dict(changes)
    if changes.get("expedition_id") == "":
        changes["expedition_id"] = None
    if changes.get("due_date") == "":
        changes["due_date"] = None

    patch = validate_payload(model=SalesTransaction, payload=changes, policy=UPDATE_POLICY, partial=True)

    if "payment_type" in patch:
        _validate_payment_type(patch["payment_type"])
    if "status" in patch and patch["status"] not in VALID_STATUSES:
        raise SalesTransactionError("status must be 0 (booking), 1 (paid-off) or 2 (installment)")

    requests = None
    if patch.get("items") is not None:
        requests = parse_item_requests(patch["items"])

    def _op():
        transaction = get_sales_transaction(transaction_id, lock=True)

        if "sales_associate_id" in patch:
            _ensure_sales_associate(patch["sales_associate_id"])
            transaction.sales_associate_id = patch["sales_associate_id"]

        if "expedition_id" in patch:
            if patch["expedition_id"] is not None:
                ensure_expedition(patch["expedition_id"])
            transaction.expedition_id = patch["expedition_id"]

        if "payment_type" in patch:
            transaction.payment_type = patch["payment_type"]
        if "transaction_date" in patch:
            transaction.transaction_date = patch["transaction_date"]
        if "due_date" in patch:
            transaction.due_date = patch["due_date"]

        if transaction.payment_type == PAYMENT_TYPE_CREDIT and transaction.due_date is None:
            raise SalesTransactionError("due_date is required for credit payment")

        if requests is not None:
            plan = plan_item_changes(list(transaction.items), requests)
            _apply_item_plan(transaction, plan)
            db.session.flush()

            items_total = sum(item.subtotal for item in transaction.items)
            transaction.total_amount = items_total + compute_shipping_total(transaction.id)

            if "status" not in patch:
                reconcile_status(transaction)

        if "status" in patch:
            current_app.logger.info(
                "Sales transaction %s status set manually: %s -> %s",
                transaction.invoice_no, transaction.status, patch["status"],
            )
            transaction.status = patch["status"]

        db.session.commit()
        return transaction

    return run_with_retry(_op)


# =============================================================================
# DELETE
# =============================================================================

def delete_sales_transaction(transaction_id: int) -> str:
    """
    Delete a sales transaction, returning its items to stock.

    Items, payments, installments and shippings are removed by cascade in the
    same transaction. Returns the deleted invoice number.
    """
    def _op():
        transaction = get_sales_transaction(transaction_id, lock=True)
        invoice_no = transaction.invoice_no

        books = _lock_books(item.book_id for item in transaction.items)
        for item in transaction.items:
            increment_stock(books[item.book_id], item.quantity)

        db.session.delete(transaction)
        db.session.commit()

        current_app.logger.info("Sales transaction %s deleted, stock restored", invoice_no)
        return invoice_no

    return run_with_retry(_op)
