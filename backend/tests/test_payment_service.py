# Overview: Pytest coverage for the payment and installment ledgers.

import pytest

from pustaka.models import Payment, SalesTransactionInstallment
from pustaka.services import payment_service
from pustaka.services.payment_service import (
    InstallmentNotFoundError,
    PaymentError,
    PaymentLimitError,
    PaymentNotFoundError,
)
from pustaka.services.sales_transaction_service import (
    STATUS_BOOKING,
    STATUS_INSTALLMENT,
    STATUS_PAID_OFF,
    SalesTransactionNotFoundError,
)
from pustaka.validation import ValidationError


class TestPayments:
    def test_full_payment_marks_paid_off(self, db_session, make_book, make_sale):
        book = make_book(price=50000, stock=10)
        txn = make_sale([(book, 3)])

        payment, summary = payment_service.add_payment(txn.id, payment_date="2025-01-03", amount=150000)

        assert payment.payment_no.startswith("PMT")
        assert summary == {
            "transaction_status": STATUS_PAID_OFF,
            "total_paid": 150000,
            "remaining_amount": 0,
        }

    def test_partial_payment_marks_installment(self, db_session, make_book, make_sale):
        book = make_book(price=50000, stock=10)
        txn = make_sale([(book, 2)])

        _, summary = payment_service.add_payment(txn.id, payment_date="2025-01-03", amount=40000)

        assert summary["transaction_status"] == STATUS_INSTALLMENT
        assert summary["remaining_amount"] == 60000

    def test_overpayment_rejected_without_persisting(self, db_session, make_book, make_sale):
        book = make_book(price=50000, stock=10)
        txn = make_sale([(book, 1)])
        payment_service.add_payment(txn.id, payment_date="2025-01-03", amount=30000)

        with pytest.raises(PaymentLimitError) as exc:
            payment_service.add_payment(txn.id, payment_date="2025-01-04", amount=30000)

        assert exc.value.to_dict() == {
            "error": "Payment amount exceeds remaining balance",
            "remaining_amount": 20000,
            "requested_amount": 30000,
        }
        assert db_session.query(Payment).count() == 1

    @pytest.mark.parametrize("amount", [0, -5, "abc", 10.5])
    def test_invalid_amount(self, db_session, make_book, make_sale, amount):
        book = make_book()
        txn = make_sale([(book, 1)])
        with pytest.raises(ValidationError):
            payment_service.add_payment(txn.id, payment_date="2025-01-03", amount=amount)

    @pytest.mark.parametrize("note", [{"x": 1}, ["a"], "n" * 256])
    def test_invalid_note_rejected(self, db_session, make_book, make_sale, note):
        book = make_book()
        txn = make_sale([(book, 1)])
        with pytest.raises(ValidationError, match="note"):
            payment_service.add_payment(txn.id, payment_date="2025-01-03", amount=100, note=note)
        with pytest.raises(ValidationError, match="note"):
            payment_service.add_installment(txn.id, installment_date="2025-01-03", amount=100, note=note)
        assert db_session.query(Payment).count() == 0
        assert db_session.query(SalesTransactionInstallment).count() == 0

    def test_payment_date_required(self, db_session, make_book, make_sale):
        book = make_book()
        txn = make_sale([(book, 1)])
        with pytest.raises(PaymentError, match="payment_date is required"):
            payment_service.add_payment(txn.id, payment_date=None, amount=100)

    def test_missing_transaction(self, db_session):
        with pytest.raises(SalesTransactionNotFoundError):
            payment_service.add_payment(9999, payment_date="2025-01-03", amount=100)

    def test_delete_payment_reverts_status(self, db_session, make_book, make_sale):
        book = make_book(price=1000, stock=10)
        txn = make_sale([(book, 1)])
        payment, _ = payment_service.add_payment(txn.id, payment_date="2025-01-03", amount=1000)

        summary = payment_service.delete_payment(txn.id, payment.id)

        assert summary["transaction_status"] == STATUS_BOOKING
        assert summary["total_paid"] == 0
        assert db_session.query(Payment).count() == 0

    def test_delete_payment_of_other_transaction(self, db_session, make_book, make_sale):
        book = make_book(price=1000, stock=10)
        first = make_sale([(book, 1)])
        second = make_sale([(book, 1)])
        payment, _ = payment_service.add_payment(first.id, payment_date="2025-01-03", amount=500)

        with pytest.raises(PaymentNotFoundError):
            payment_service.delete_payment(second.id, payment.id)
        assert db_session.query(Payment).count() == 1

    def test_list_payments_ordered_with_totals(self, db_session, make_book, make_sale):
        book = make_book(price=1000, stock=10)
        txn = make_sale([(book, 3)])
        later, _ = payment_service.add_payment(txn.id, payment_date="2025-01-05", amount=500)
        earlier, _ = payment_service.add_payment(txn.id, payment_date="2025-01-04", amount=700)

        payments, summary = payment_service.list_payments(txn.id)

        assert [p.id for p in payments] == [earlier.id, later.id]
        assert summary["total_amount"] == 3000
        assert summary["total_paid"] == 1200
        assert summary["remaining_amount"] == 1800


class TestInstallments:
    def test_cash_transaction_rejects_installments(self, db_session, make_book, make_sale):
        book = make_book()
        txn = make_sale([(book, 1)], payment_type="T")
        with pytest.raises(PaymentError, match="credit"):
            payment_service.add_installment(txn.id, installment_date="2025-01-03", amount=100)
        assert db_session.query(SalesTransactionInstallment).count() == 0

    def test_installments_drive_status(self, db_session, make_book, make_sale):
        book = make_book(price=1000, stock=10)
        txn = make_sale([(book, 2)], payment_type="K")

        installment, summary = payment_service.add_installment(
            txn.id, installment_date="2025-01-03", amount=500, note="first"
        )
        assert installment.installment_no.startswith("PKR")
        assert installment.note == "first"
        assert summary["transaction_status"] == STATUS_INSTALLMENT

        _, summary = payment_service.add_installment(txn.id, installment_date="2025-01-04", amount=1500)
        assert summary["transaction_status"] == STATUS_PAID_OFF
        assert summary["remaining_amount"] == 0

    def test_installments_have_no_ceiling(self, db_session, make_book, make_sale):
        book = make_book(price=1000, stock=10)
        txn = make_sale([(book, 1)], payment_type="K")

        _, summary = payment_service.add_installment(txn.id, installment_date="2025-01-03", amount=5000)

        assert summary["total_paid"] == 5000
        assert summary["transaction_status"] == STATUS_PAID_OFF

    def test_payment_ceiling_counts_installments(self, db_session, make_book, make_sale):
        book = make_book(price=50000, stock=10)
        txn = make_sale([(book, 3)], payment_type="K")
        payment_service.add_installment(txn.id, installment_date="2025-01-03", amount=100000)

        with pytest.raises(PaymentLimitError) as exc:
            payment_service.add_payment(txn.id, payment_date="2025-01-04", amount=60000)
        assert exc.value.remaining_amount == 50000

        _, summary = payment_service.add_payment(txn.id, payment_date="2025-01-04", amount=50000)
        assert summary["transaction_status"] == STATUS_PAID_OFF

    def test_delete_installment(self, db_session, make_book, make_sale):
        book = make_book(price=1000, stock=10)
        txn = make_sale([(book, 1)], payment_type="K")
        installment, _ = payment_service.add_installment(txn.id, installment_date="2025-01-03", amount=400)

        summary = payment_service.delete_installment(txn.id, installment.id)

        assert summary["transaction_status"] == STATUS_BOOKING
        with pytest.raises(InstallmentNotFoundError):
            payment_service.delete_installment(txn.id, installment.id)

    def test_list_installments(self, db_session, make_book, make_sale):
        book = make_book(price=1000, stock=10)
        txn = make_sale([(book, 2)], payment_type="K")
        payment_service.add_installment(txn.id, installment_date="2025-01-03", amount=400)
        payment_service.add_payment(txn.id, payment_date="2025-01-03", amount=100)

        installments, summary = payment_service.list_installments(txn.id)

        assert len(installments) == 1
        assert summary["total_paid"] == 500
        assert summary["remaining_amount"] == 1500
