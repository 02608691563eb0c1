"""
Pytest fixtures for Pustaka backend tests.

Provides test database setup, catalog/reference factories, and test client.
"""

import itertools

import pytest

from pustaka import create_app
from pustaka.extensions import db
from pustaka.models import Book, Expedition, Publisher, SalesAssociate
from pustaka.services import sales_transaction_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_book(db_session):
    """Factory: make_book(price=50000, stock=10) -> Book"""
    counter = itertools.count(1)

    def _make(*, price=50000, stock=10, name=None):
        n = next(counter)
        book = Book(
            name=name or f"Book {n}",
            year="2024",
            author="Author",
            isbn=f"97860200{n:05d}",
            price=price,
            stock=stock,
        )
        db_session.add(book)
        db_session.commit()
        return book

    return _make


@pytest.fixture(scope='function')
def associate(db_session):
    """Sales associate (reseller)."""
    assoc = SalesAssociate(name="Toko Buku Sinar", address="Bandung", phone="0221234", payment_type="T")
    db_session.add(assoc)
    db_session.commit()
    return assoc


@pytest.fixture(scope='function')
def supplier(db_session):
    """Publisher acting as supplier."""
    publisher = Publisher(name="Penerbit Cahaya", address="Jakarta", phone="0215678")
    db_session.add(publisher)
    db_session.commit()
    return publisher


@pytest.fixture(scope='function')
def expedition(db_session):
    carrier = Expedition(code="JNE", name="JNE Express", phone="0211111")
    db_session.add(carrier)
    db_session.commit()
    return carrier


@pytest.fixture(scope='function')
def make_sale(associate):
    """Factory: make_sale([(book, qty), ...], payment_type="T") -> SalesTransaction"""

    def _make(lines, *, payment_type="T", due_date=None):
        if payment_type == "K" and due_date is None:
            due_date = "2025-02-02"
        return sales_transaction_service.create_sales_transaction(
            sales_associate_id=associate.id,
            payment_type=payment_type,
            transaction_date="2025-01-02",
            due_date=due_date,
            items=[{"book_id": book.id, "quantity": qty} for book, qty in lines],
        )

    return _make
