from __future__ import annotations

from ..extensions import db
from pustaka.time_utils import to_utc_z


class SalesTransaction(db.Model):
    """
    Sales document: a cash (T) or credit (K) sale to a sales associate.

    total_amount = sum(items.subtotal) + sum(shippings.total_amount).
    status: 0 = booking, 1 = paid-off, 2 = installment.
    """
    __tablename__ = "sales_transactions"
    __table_args__ = (
        db.CheckConstraint("payment_type IN ('T', 'K')", name="ck_sales_transactions_payment_type"),
        db.Index("ix_sales_transactions_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable document number (e.g., "INV2025010200000001")
    invoice_no = db.Column(db.String(32), nullable=False, unique=True)

    sales_associate_id = db.Column(db.Integer, db.ForeignKey("sales_associates.id"), nullable=False, index=True)
    # Default carrier; shipping costs themselves live in Shipping rows
    expedition_id = db.Column(db.Integer, db.ForeignKey("expeditions.id"), nullable=True, index=True)

    payment_type = db.Column(db.String(1), nullable=False, default="T")
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)

    total_amount = db.Column(db.BigInteger, nullable=False, default=0)
    status = db.Column(db.Integer, nullable=False, default=0, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    sales_associate = db.relationship("SalesAssociate", backref=db.backref("sales_transactions", lazy=True))
    expedition = db.relationship("Expedition")
    items = db.relationship(
        "SalesTransactionItem",
        backref="transaction",
        cascade="all, delete-orphan",
        order_by="SalesTransactionItem.id",
        lazy=True,
    )
    payments = db.relationship(
        "Payment",
        backref="transaction",
        cascade="all, delete-orphan",
        order_by="Payment.id",
        lazy=True,
    )
    installments = db.relationship(
        "SalesTransactionInstallment",
        backref="transaction",
        cascade="all, delete-orphan",
        order_by="SalesTransactionInstallment.id",
        lazy=True,
    )
    shippings = db.relationship(
        "Shipping",
        backref="transaction",
        cascade="all, delete-orphan",
        order_by="Shipping.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, *, include_children: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_no": self.invoice_no,
            "sales_associate_id": self.sales_associate_id,
            "sales_associate": self.sales_associate.to_dict() if self.sales_associate else None,
            "expedition_id": self.expedition_id,
            "payment_type": self.payment_type,
            "transaction_date": to_utc_z(self.transaction_date),
            "due_date": to_utc_z(self.due_date) if self.due_date else None,
            "total_amount": self.total_amount,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_children:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
            data["installments"] = [inst.to_dict() for inst in self.installments]
            data["shippings"] = [shipping.to_dict() for shipping in self.shippings]
        return data


class SalesTransactionItem(db.Model):
    """Line item; price is a snapshot of Book.price at the time of sale."""
    __tablename__ = "sales_transaction_items"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "book_id", name="uq_sales_items_transaction_book"),
        db.CheckConstraint("quantity > 0", name="ck_sales_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("sales_transactions.id"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.BigInteger, nullable=False)
    subtotal = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    book = db.relationship("Book")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "book_id": self.book_id,
            "book_name": self.book.name if self.book else None,
            "quantity": self.quantity,
            "price": self.price,
            "subtotal": self.subtotal,
            "created_at": to_utc_z(self.created_at),
        }


class Payment(db.Model):
    """
    Payment against a sales transaction.

    Append-only: payments are created or deleted, never edited.
    The sum of payments may not exceed the transaction total.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sales_transaction_id = db.Column(db.Integer, db.ForeignKey("sales_transactions.id"), nullable=False, index=True)

    # e.g. "PMT2025010200000001"
    payment_no = db.Column(db.String(32), nullable=False, unique=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    amount = db.Column(db.BigInteger, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sales_transaction_id": self.sales_transaction_id,
            "payment_no": self.payment_no,
            "payment_date": to_utc_z(self.payment_date),
            "amount": self.amount,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class SalesTransactionInstallment(db.Model):
    """Installment paid on a credit (K) sales transaction. Parallel ledger to Payment."""
    __tablename__ = "sales_transaction_installments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_installments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("sales_transactions.id"), nullable=False, index=True)

    # e.g. "PKR2025010200000001"
    installment_no = db.Column(db.String(32), nullable=False, unique=True)
    installment_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    amount = db.Column(db.BigInteger, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "installment_no": self.installment_no,
            "installment_date": to_utc_z(self.installment_date),
            "amount": self.amount,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class Shipping(db.Model):
    """Carrier cost attached to a sales transaction; counted in the transaction total."""
    __tablename__ = "shippings"
    __table_args__ = (
        db.CheckConstraint("total_amount >= 0", name="ck_shippings_amount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sales_transaction_id = db.Column(db.Integer, db.ForeignKey("sales_transactions.id"), nullable=False, index=True)
    expedition_id = db.Column(db.Integer, db.ForeignKey("expeditions.id"), nullable=False, index=True)

    tracking_no = db.Column(db.String(64), nullable=True)
    total_amount = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    expedition = db.relationship("Expedition")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sales_transaction_id": self.sales_transaction_id,
            "expedition_id": self.expedition_id,
            "expedition": self.expedition.to_dict() if self.expedition else None,
            "tracking_no": self.tracking_no,
            "total_amount": self.total_amount,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
