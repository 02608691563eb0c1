from __future__ import annotations

from ..extensions import db
from pustaka.time_utils import to_utc_z


class Book(db.Model):
    """
    Catalog item.

    The transaction engine only ever touches price (read) and stock (read/write).
    stock is a mutable counter guarded by a CHECK constraint and by version_id
    (optimistic locking: concurrent writers get StaleDataError and are retried).
    """
    __tablename__ = "books"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_books_stock_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_books_price_non_negative"),
        db.Index("ix_books_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    year = db.Column(db.String(16), nullable=True)
    author = db.Column(db.String(255), nullable=True)
    isbn = db.Column(db.String(32), nullable=True, unique=True)
    publisher_id = db.Column(db.Integer, db.ForeignKey("publishers.id"), nullable=True, index=True)

    # Selling price in rupiah
    price = db.Column(db.BigInteger, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    publisher = db.relationship("Publisher", backref=db.backref("books", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}


class Publisher(db.Model):
    """Publisher; also the supplier on purchase transactions."""
    __tablename__ = "publishers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }


class SalesAssociate(db.Model):
    """Reseller the sales transaction is booked against."""
    __tablename__ = "sales_associates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    # Preferred payment type: T (cash) or K (credit)
    payment_type = db.Column(db.String(1), nullable=False, default="T")
    discount = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "payment_type": self.payment_type,
            "discount": self.discount,
            "created_at": to_utc_z(self.created_at),
        }


class Expedition(db.Model):
    """Shipping carrier."""
    __tablename__ = "expeditions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    phone = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }
