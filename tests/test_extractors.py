"""Tests for extraction engines and routing."""

from datetime import date
from decimal import Decimal

import pytest

from receipt_ledger.errors import ExtractionFailureError, UnsupportedDocumentTypeError
from receipt_ledger.extractors import (
    BankStatementExtractor,
    ExtractorRouter,
    ReceiptExtractor,
    StaticTextBackend,
)
from receipt_ledger.extractors.backends import SAMPLE_RECEIPTS
from receipt_ledger.extractors.base import parse_amount
from receipt_ledger.schemas import DocumentType


class TestParseAmount:
    """Tests for comma-grouped amount parsing."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("93,500", Decimal("93500")),
            ("5,000,000.00", Decimal("5000000.00")),
            ("1,250.50", Decimal("1250.50")),
            ("", Decimal("0")),
            (None, Decimal("0")),
            ("abc", Decimal("0")),
        ],
    )
    def test_parse_amount(self, text, expected):
        assert parse_amount(text) == expected


class TestReceiptExtractor:
    """Tests for receipt heuristics."""

    @pytest.fixture
    def extractor(self):
        return ReceiptExtractor(StaticTextBackend())

    def test_starbucks_fields(self, extractor, starbucks_text):
        data = extractor.parse(starbucks_text)

        assert data.merchant.name == "STARBUCKS COFFEE"
        assert data.merchant.address == "Jl. Sudirman No. 123"
        assert data.merchant.phone == "Tel: (021) 123-4567"
        assert data.amount.total == Decimal("93500")
        assert data.amount.subtotal == Decimal("85000")
        assert data.amount.tax == Decimal("8500")
        assert data.amount.currency == "IDR"
        assert data.date.date == "2024-01-15"
        assert data.date.confidence == 0.9

    def test_subtotal_not_read_as_total(self, extractor):
        data = extractor.parse("SHOP\nSubtotal 85,000\n")
        assert data.amount.total == Decimal("0")
        assert data.amount.subtotal == Decimal("85000")
        assert data.amount.confidence == 0.3

    def test_starbucks_line_items(self, extractor, starbucks_text):
        items = extractor.parse(starbucks_text).items

        assert [item.description for item in items] == [
            "Americano Large",
            "Croissant",
            "Bottled Water",
        ]
        assert items[0].quantity == 1
        assert items[0].total_price == Decimal("45000")

    def test_quantity_splits_unit_price(self, extractor):
        items = extractor.parse(SAMPLE_RECEIPTS[2]).items

        assert items[0].description == "Paket Komplit"
        assert items[0].quantity == 2
        assert items[0].unit_price == Decimal("39000.00")
        assert items[0].total_price == Decimal("78000")

    def test_missing_date_defaults_to_today(self, extractor):
        data = extractor.parse("WARUNG\nTOTAL 10,000\n")

        assert data.date.date == date.today().isoformat()
        assert data.date.confidence == 0.3

    def test_iso_date(self, extractor):
        data = extractor.parse("SHOP\n2024-03-09\nTOTAL 10,000\n")
        assert data.date.date == "2024-03-09"

    def test_invalid_calendar_date_skipped(self, extractor):
        data = extractor.parse("SHOP\n31/02/2024\nTOTAL 10,000\n")
        assert data.date.confidence == 0.3

    def test_starbucks_overall_confidence(self, extractor, starbucks_text):
        """Merchant 0.8, date 0.9, amount 0.9, items 0.8 and full text quality."""
        data = extractor.parse(starbucks_text)
        assert extractor.score(data, starbucks_text) == pytest.approx(0.88)

    def test_empty_text_yields_empty_data(self, extractor):
        data = extractor.parse("   \n\n")

        assert data.is_empty()
        assert extractor.score(data, "") == 0.5

    def test_extract_records_metadata(self, starbucks_backend, jpeg_bytes):
        extractor = ReceiptExtractor(starbucks_backend)
        output = extractor.extract(jpeg_bytes, "image/jpeg", DocumentType.RECEIPT)

        assert output.raw_text.startswith("STARBUCKS COFFEE")
        assert output.metadata.engine == "receipt_heuristic/static"
        assert output.metadata.document_format == "image/jpeg"
        assert output.metadata.processing_time_ms >= 0

    def test_extract_empty_bytes(self, extractor):
        with pytest.raises(ExtractionFailureError):
            extractor.extract(b"", "image/jpeg")

    def test_custom_currency(self, starbucks_text):
        extractor = ReceiptExtractor(StaticTextBackend(), default_currency="USD")
        assert extractor.parse(starbucks_text).amount.currency == "USD"


class TestBankStatementExtractor:
    """Tests for the statement table parser."""

    @pytest.fixture
    def extractor(self):
        return BankStatementExtractor(StaticTextBackend())

    def test_header_fields(self, extractor, statement_text):
        info = extractor.parse(statement_text).bank_statement

        assert info.bank_name == "BANK CENTRAL ASIA"
        assert info.account_number == "1234567890"
        assert info.period.start_date == "2024-01-01"
        assert info.period.end_date == "2024-01-31"

    def test_rows_exclude_opening_and_closing_balance(self, extractor, statement_text):
        rows = extractor.parse(statement_text).bank_statement.transactions

        assert len(rows) == 11
        assert rows[0].date == "2024-01-02"
        assert rows[-1].date == "2024-01-28"
        assert all("SALDO" not in row.description for row in rows)

    def test_credit_row(self, extractor, statement_text):
        row = extractor.parse(statement_text).bank_statement.transactions[0]

        assert row.description == "TRF DARI 9876543210"
        assert row.type == "CREDIT"
        assert row.amount == Decimal("1000000.00")
        assert row.balance == Decimal("6000000.00")

    def test_debit_row(self, extractor, statement_text):
        row = extractor.parse(statement_text).bank_statement.transactions[1]

        assert row.description == "TARIK TUNAI ATM BCA"
        assert row.type == "DEBIT"
        assert row.amount == Decimal("-500000.00")

    def test_totals_match_statement_summary(self, extractor, statement_text):
        rows = extractor.parse(statement_text).bank_statement.transactions

        debits = sum(-row.amount for row in rows if row.type == "DEBIT")
        credits = sum(row.amount for row in rows if row.type == "CREDIT")
        assert debits == Decimal("4740000.00")
        assert credits == Decimal("9060000.00")

    def test_both_columns_filled(self, extractor):
        text = (
            "BANK MANDIRI\n"
            "TANGGAL KETERANGAN DEBET KREDIT SALDO\n"
            "04/02/2024 BIAYA ADMIN 0.00 15,000.00 100,000.00\n"
        )
        row = extractor.parse(text).bank_statement.transactions[0]

        assert row.type == "CREDIT"
        assert row.amount == Decimal("15000.00")

    def test_statement_confidence(self, extractor, statement_text):
        data = extractor.parse(statement_text)
        assert extractor.score(data, statement_text) == pytest.approx(1.0)

    def test_missing_period_defaults_to_current_month(self, extractor):
        data = extractor.parse("BANK BNI\nNo. Rekening: 42\n")
        today = date.today()

        assert data.bank_statement.period.start_date == today.replace(day=1).isoformat()
        assert data.bank_statement.transactions == []
        # 0.5 base + 0.2 account + 0.1 bank
        assert extractor.score(data, "BANK BNI\nNo. Rekening: 42\n") == pytest.approx(0.8)

    def test_page_count(self, extractor, statement_text):
        assert extractor.page_count(statement_text) == 1
        assert extractor.page_count("x" * 4001) == 3


class TestStaticTextBackend:
    """Tests for the deterministic fixture backend."""

    def test_same_bytes_same_text(self, jpeg_bytes):
        backend = StaticTextBackend()
        first = backend.recognize(jpeg_bytes, "image/jpeg", DocumentType.RECEIPT)
        second = backend.recognize(jpeg_bytes, "image/jpeg", DocumentType.RECEIPT)

        assert first == second
        assert first in SAMPLE_RECEIPTS

    def test_statement_text(self, pdf_bytes, statement_text):
        backend = StaticTextBackend()
        text = backend.recognize(pdf_bytes, "application/pdf", DocumentType.BANK_STATEMENT)
        assert text == statement_text

    def test_empty_bytes(self):
        with pytest.raises(ExtractionFailureError):
            StaticTextBackend().recognize(b"", "image/jpeg", DocumentType.RECEIPT)


class TestExtractorRouter:
    """Tests for engine selection."""

    def test_receipt_and_invoice_use_receipt_engine(self):
        router = ExtractorRouter()

        assert isinstance(router.select(DocumentType.RECEIPT), ReceiptExtractor)
        assert isinstance(router.select(DocumentType.INVOICE), ReceiptExtractor)

    def test_statement_engine(self):
        assert isinstance(
            ExtractorRouter().select(DocumentType.BANK_STATEMENT), BankStatementExtractor
        )

    def test_other_unsupported(self):
        with pytest.raises(UnsupportedDocumentTypeError):
            ExtractorRouter().select(DocumentType.OTHER)

    def test_extract_statement(self, pdf_bytes):
        output = ExtractorRouter().extract(pdf_bytes, "application/pdf", DocumentType.BANK_STATEMENT)

        assert output.extracted_data.bank_statement is not None
        assert output.metadata.engine == "bank_statement_heuristic/static"
        assert output.metadata.page_count == 1
