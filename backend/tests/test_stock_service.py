# Overview: Pytest coverage for the stock ledger.

import pytest

from pustaka.services import stock_service
from pustaka.services.stock_service import BookNotFoundError, InsufficientStockError
from pustaka.validation import ValidationError


class TestStockLedger:
    def test_get_book_missing_raises_not_found(self, db_session):
        with pytest.raises(BookNotFoundError) as exc:
            stock_service.get_book(9999)
        assert str(exc.value) == "Book with ID 9999 not found"

    def test_get_stock(self, db_session, make_book):
        book = make_book(stock=12)
        assert stock_service.get_stock(book.id) == 12

    def test_decrement_within_stock(self, db_session, make_book):
        book = make_book(stock=10)
        stock_service.decrement_stock(book, 10)
        assert book.stock == 0

    def test_decrement_past_zero_carries_details(self, db_session, make_book):
        book = make_book(stock=2)
        with pytest.raises(InsufficientStockError) as exc:
            stock_service.decrement_stock(book, 3)

        assert exc.value.to_dict() == {
            "error": f"Insufficient stock for book {book.name}",
            "book_id": book.id,
            "available_stock": 2,
            "requested": 3,
        }
        assert book.stock == 2

    def test_increment(self, db_session, make_book):
        book = make_book(stock=1)
        stock_service.increment_stock(book, 4)
        assert book.stock == 5

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, db_session, make_book, quantity):
        book = make_book()
        with pytest.raises(ValidationError):
            stock_service.decrement_stock(book, quantity)
        with pytest.raises(ValidationError):
            stock_service.increment_stock(book, quantity)

    def test_restore_clamps_at_zero(self, db_session, make_book):
        book = make_book(stock=3)
        stock_service.restore_stock(book, 5, clamp=True)
        assert book.stock == 0

    def test_restore_without_clamp_fails(self, db_session, make_book):
        book = make_book(stock=3)
        with pytest.raises(InsufficientStockError):
            stock_service.restore_stock(book, 5)
        assert book.stock == 3

    def test_set_stock_commits_absolute_value(self, db_session, make_book):
        book = make_book(stock=3)
        stock_service.set_stock(book.id, 40)
        db_session.expire_all()
        assert stock_service.get_stock(book.id) == 40

    def test_set_stock_rejects_negative(self, db_session, make_book):
        book = make_book(stock=3)
        with pytest.raises(ValidationError):
            stock_service.set_stock(book.id, -1)
