# Overview: Pytest coverage for daily-scoped document numbering.

from datetime import date, datetime

import pytest

from pustaka.models import DocumentSequence, SalesTransaction
from pustaka.services.document_service import (
    DocumentSequenceError,
    format_document_number,
    next_document_number,
    parse_document_number,
)


class TestFormatting:
    def test_format_pads_sequence_to_eight_digits(self):
        assert format_document_number("INV", date(2025, 1, 2), 1) == "INV2025010200000001"

    def test_parse_round_trips_fields(self):
        assert parse_document_number("PKR2024123100000123") == ("PKR", date(2024, 12, 31), 123)

    @pytest.mark.parametrize("number", ["", "INV20250102", "inv2025010200000001", "INV2025133100000001"])
    def test_parse_rejects_malformed(self, number):
        with pytest.raises(DocumentSequenceError):
            parse_document_number(number)


class TestNextDocumentNumber:
    def test_first_number_of_day_is_one(self, db_session):
        assert next_document_number("INV", date(2025, 1, 2)) == "INV2025010200000001"

    def test_sequence_increments_within_day(self, db_session):
        day = date(2025, 1, 2)
        numbers = [next_document_number("PMT", day) for _ in range(3)]
        assert numbers == [
            "PMT2025010200000001",
            "PMT2025010200000002",
            "PMT2025010200000003",
        ]

    def test_prefixes_and_days_are_independent(self, db_session):
        next_document_number("INV", date(2025, 1, 2))
        next_document_number("INV", date(2025, 1, 2))

        assert next_document_number("PRC", date(2025, 1, 2)) == "PRC2025010200000001"
        assert next_document_number("INV", date(2025, 1, 3)) == "INV2025010300000001"

    def test_sequence_row_tracks_next_number(self, db_session):
        next_document_number("PKR", date(2025, 1, 2))
        next_document_number("PKR", date(2025, 1, 2))
        db_session.commit()

        row = db_session.query(DocumentSequence).filter_by(prefix="PKR", business_date="20250102").one()
        assert row.next_number == 3

    def test_seeds_from_existing_numbers(self, db_session, associate):
        """Numbers written before the sequence row existed are not reissued."""
        db_session.add(SalesTransaction(
            invoice_no="INV2025010200000041",
            sales_associate_id=associate.id,
            payment_type="T",
            transaction_date=datetime(2025, 1, 2),
            total_amount=0,
            status=0,
        ))
        db_session.commit()

        assert next_document_number("INV", date(2025, 1, 2)) == "INV2025010200000042"
        assert next_document_number("INV", date(2025, 1, 2)) == "INV2025010200000043"

    @pytest.mark.parametrize("prefix", ["", "IN", "INVX", "inv", "IN1"])
    def test_rejects_bad_prefix(self, db_session, prefix):
        with pytest.raises(DocumentSequenceError):
            next_document_number(prefix, date(2025, 1, 2))

    def test_defaults_to_today(self, db_session):
        number = next_document_number("INV")
        assert number.startswith("INV" + date.today().strftime("%Y%m%d"))
