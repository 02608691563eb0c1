from __future__ import annotations

from ..extensions import db
from pustaka.time_utils import to_utc_z


class PurchaseTransaction(db.Model):
    """
    Purchase order from a supplier (publisher).

    LIFECYCLE:
    0 = pending   (stock untouched)
    1 = completed (stock increased by every item quantity, exactly once)
    2 = cancelled (stock untouched)
    """
    __tablename__ = "purchase_transactions"
    __table_args__ = (
        db.Index("ix_purchase_transactions_status_date", "status", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. "PRC2025010200000001"
    invoice_no = db.Column(db.String(32), nullable=False, unique=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("publishers.id"), nullable=False, index=True)

    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False)
    total_amount = db.Column(db.BigInteger, nullable=False, default=0)
    status = db.Column(db.Integer, nullable=False, default=0, index=True)

    receipt_image_url = db.Column(db.String(512), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Publisher", backref=db.backref("purchase_transactions", lazy=True))
    items = db.relationship(
        "PurchaseTransactionItem",
        backref="purchase_transaction",
        cascade="all, delete-orphan",
        order_by="PurchaseTransactionItem.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_no": self.invoice_no,
            "supplier_id": self.supplier_id,
            "supplier": self.supplier.to_dict() if self.supplier else None,
            "purchase_date": to_utc_z(self.purchase_date),
            "total_amount": self.total_amount,
            "status": self.status,
            "receipt_image_url": self.receipt_image_url,
            "note": self.note,
            "items": [item.to_dict() for item in self.items],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PurchaseTransactionItem(db.Model):
    __tablename__ = "purchase_transaction_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_items_quantity_positive"),
        db.CheckConstraint("price >= 0", name="ck_purchase_items_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_transaction_id = db.Column(
        db.Integer, db.ForeignKey("purchase_transactions.id"), nullable=False, index=True
    )
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Buying price agreed with the supplier, not Book.price
    price = db.Column(db.BigInteger, nullable=False)
    subtotal = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    book = db.relationship("Book")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_transaction_id": self.purchase_transaction_id,
            "book_id": self.book_id,
            "book_name": self.book.name if self.book else None,
            "quantity": self.quantity,
            "price": self.price,
            "subtotal": self.subtotal,
            "created_at": to_utc_z(self.created_at),
        }
