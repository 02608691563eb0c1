# Overview: Service-layer operations for document numbers; daily-scoped sequential identifiers.

from __future__ import annotations

import re
from datetime import date, datetime

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    DocumentSequence,
    SalesTransaction,
    PurchaseTransaction,
    Payment,
    SalesTransactionInstallment,
)
from .concurrency import RetryableConflict
from pustaka.time_utils import business_date


PREFIX_SALES_INVOICE = "INV"
PREFIX_PURCHASE_INVOICE = "PRC"
PREFIX_PAYMENT = "PMT"
PREFIX_INSTALLMENT = "PKR"

SEQUENCE_DIGITS = 8

# prefix -> column holding numbers of that kind
DOCUMENT_NUMBER_COLUMNS = {
    PREFIX_SALES_INVOICE: SalesTransaction.invoice_no,
    PREFIX_PURCHASE_INVOICE: PurchaseTransaction.invoice_no,
    PREFIX_PAYMENT: Payment.payment_no,
    PREFIX_INSTALLMENT: SalesTransactionInstallment.installment_no,
}

_NUMBER_RE = re.compile(r"^([A-Z]{3})(\d{8})(\d{8})$")


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


class DocumentSequenceConflict(RetryableConflict):
    """Another transaction created the (prefix, date) sequence row first."""


def format_document_number(prefix: str, on_date: date, sequence: int) -> str:
    return f"{prefix}{on_date.strftime('%Y%m%d')}{sequence:0{SEQUENCE_DIGITS}d}"


def parse_document_number(number: str) -> tuple[str, date, int]:
    """Split "INV2025010200000001" into ("INV", date(2025, 1, 2), 1)."""
    match = _NUMBER_RE.match(number or "")
    if not match:
        raise DocumentSequenceError(f"Malformed document number: {number!r}")
    prefix, day, seq = match.groups()
    try:
        on_date = datetime.strptime(day, "%Y%m%d").date()
    except ValueError:
        raise DocumentSequenceError(f"Malformed document number: {number!r}")
    return prefix, on_date, int(seq)


def max_existing_sequence(prefix: str, on_date: date) -> int:
    """
    Highest sequence already stored for prefix+date in the owning table, 0 if none.

    Numbers are fixed width, so the lexical MAX is also the numeric max.
    """
    column = DOCUMENT_NUMBER_COLUMNS.get(prefix)
    if column is None:
        return 0

    pattern = f"{prefix}{on_date.strftime('%Y%m%d')}%"
    max_number = db.session.query(func.max(column)).filter(column.like(pattern)).scalar()
    if not max_number:
        return 0

    seq = max_number[len(prefix) + 8:]
    try:
        return int(seq)
    except ValueError:
        return 0


def next_document_number(prefix: str, on_date: date | datetime | None = None) -> str:
    """
    Allocate the next PREFIX + YYYYMMDD + 8-digit number for the given day.

    Must be called inside the caller's transaction (it flushes, never commits).
    The (prefix, date) sequence row is incremented atomically; the first
    allocation of a day seeds the row from numbers already present in the
    owning table. If a concurrent transaction creates the same row first,
    DocumentSequenceConflict makes run_with_retry replay the whole operation.
    """
    if not prefix or not re.fullmatch(r"[A-Z]{3}", prefix):
        raise DocumentSequenceError("prefix must be exactly 3 uppercase letters")

    day = business_date(on_date)
    day_key = day.strftime("%Y%m%d")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.prefix == prefix,
            DocumentSequence.business_date == day_key,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(prefix=prefix, business_date=day_key)
            .scalar()
        )
        next_num = current - 1
    else:
        next_num = max_existing_sequence(prefix, day) + 1
        seq = DocumentSequence(prefix=prefix, business_date=day_key, next_number=next_num + 1)
        db.session.add(seq)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise DocumentSequenceConflict(
                f"Sequence {prefix}/{day_key} created concurrently"
            ) from exc

    if next_num >= 10 ** SEQUENCE_DIGITS:
        raise DocumentSequenceError(f"Sequence exhausted for {prefix}/{day_key}")

    return format_document_number(prefix, day, next_num)
