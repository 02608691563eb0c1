# Overview: Service-layer operations for catalog stock; reads and adjusts Book.stock.

"""
Stock Ledger

Stock invariants (authoritative):
- Book.stock is an integer counter and is never negative (CHECK constraint + checks here).
- Every adjustment happens inside the caller's transaction; nothing here commits.
- Reads that drive a decision lock the book row (SELECT ... FOR UPDATE) so the
  check and the write see the same value.
- Sales decrement on create/update and restore on update/delete.
- Purchases increment on complete and decrement (clamped at 0) when a completed
  purchase is deleted.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Book
from ..validation import ValidationError, NotFoundError
from .concurrency import lock_for_update, run_with_retry


class BookNotFoundError(NotFoundError):
    """Raised when a referenced catalog item does not exist."""

    def __init__(self, book_id):
        super().__init__(f"Book with ID {book_id} not found")
        self.book_id = book_id


class InsufficientStockError(ValidationError):
    """Raised when a sale would take stock below zero."""

    def __init__(self, book: Book, requested: int):
        super().__init__(
            f"Insufficient stock for book {book.name}",
            details={
                "book_id": book.id,
                "available_stock": book.stock,
                "requested": requested,
            },
        )
        self.book_id = book.id
        self.available_stock = book.stock
        self.requested = requested


def get_book(book_id: int, *, lock: bool = False) -> Book:
    query = db.session.query(Book).filter_by(id=book_id)
    if lock:
        query = lock_for_update(query)
    book = query.first()
    if book is None:
        raise BookNotFoundError(book_id)
    return book


def get_stock(book_id: int) -> int:
    return get_book(book_id).stock


def decrement_stock(book: Book, quantity: int) -> Book:
    """Take quantity out of stock; fails rather than going negative."""
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than 0")
    if book.stock < quantity:
        raise InsufficientStockError(book, quantity)
    book.stock = book.stock - quantity
    return book


def increment_stock(book: Book, quantity: int) -> Book:
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than 0")
    book.stock = book.stock + quantity
    return book


def restore_stock(book: Book, quantity: int, *, clamp: bool = False) -> Book:
    """
    Remove previously added stock (reversal of a completed purchase).

    clamp=True floors the result at zero instead of failing, for books that
    were already sold after the purchase was received.
    """
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than 0")
    new_stock = book.stock - quantity
    if new_stock < 0:
        if not clamp:
            raise InsufficientStockError(book, quantity)
        current_app.logger.warning(
            "Stock for book %s clamped at 0 (had %s, reversing %s)",
            book.id, book.stock, quantity,
        )
        new_stock = 0
    book.stock = new_stock
    return book


def set_stock(book_id: int, value: int) -> Book:
    """Absolute stock write (catalog contract). Runs as its own transaction."""
    if value < 0:
        raise ValidationError("stock cannot be negative")

    def _op():
        book = get_book(book_id, lock=True)
        book.stock = value
        db.session.commit()
        return book

    return run_with_retry(_op)
