"""Tests for category inference and suggestion generation."""

import uuid
from decimal import Decimal

import pytest

from receipt_ledger.extractors import BankStatementExtractor, ReceiptExtractor, StaticTextBackend
from receipt_ledger.schemas import (
    Category,
    DocumentType,
    ExtractedData,
    OCRResult,
    SuggestionSource,
    Transaction,
    utc_timestamp,
)
from receipt_ledger.suggestions import (
    Categorizer,
    SuggestionGenerator,
    extract_merchant_from_description,
)

HOUSEHOLD_ID = "household-1"


def make_result(document_type: DocumentType, raw_text: str) -> OCRResult:
    extractor_cls = (
        BankStatementExtractor if document_type == DocumentType.BANK_STATEMENT else ReceiptExtractor
    )
    extractor = extractor_cls(StaticTextBackend())
    data = extractor.parse(raw_text)
    return OCRResult(
        id=str(uuid.uuid4()),
        document_id="doc-1",
        document_type=document_type,
        confidence=extractor.score(data, raw_text),
        extracted_data=data,
        raw_text=raw_text,
        processed_at=utc_timestamp(),
    )


def add_category(store, name: str) -> Category:
    category = Category(id=str(uuid.uuid4()), household_id=HOUSEHOLD_ID, name=name)
    store.create_category(category)
    return category


@pytest.fixture
def generator(store):
    return SuggestionGenerator(Categorizer(store))


class TestMerchantFromDescription:
    @pytest.mark.parametrize(
        "description, merchant",
        [
            ("BELANJA INDOMARET", "INDOMARET"),
            ("BAYAR LISTRIK PLN", "LISTRIK PLN"),
            ("TRANSFER KE 5555666677", "5555666677"),
            ("TRF DARI 9876543210", "9876543210"),
            ("GAJI BULANAN", None),
        ],
    )
    def test_prefixes(self, description, merchant):
        assert extract_merchant_from_description(description) == merchant


class TestCategorizer:
    """Tests for history-then-rules inference."""

    def test_rule_without_household_category(self, store):
        guess = Categorizer(store).for_merchant("STARBUCKS COFFEE", HOUSEHOLD_ID)

        assert guess.name == "Food & Dining"
        assert guess.id is None
        assert guess.source == "rule"

    def test_rule_resolves_household_category(self, store):
        category = add_category(store, "food & dining")
        guess = Categorizer(store).for_merchant("STARBUCKS COFFEE", HOUSEHOLD_ID)

        assert guess.id == category.id
        assert guess.name == "food & dining"

    def test_first_rule_wins(self, store):
        """A ride-hailing transfer matches the transport rule before the transfer rule."""
        guess = Categorizer(store).by_rules("TRANSFER KE GOJEK", HOUSEHOLD_ID)
        assert guess.name == "Transportation"

    def test_no_match(self, store):
        assert Categorizer(store).for_item("Croissant", HOUSEHOLD_ID) is None

    def test_history_beats_rules(self, store, account):
        category = add_category(store, "Coffee Treats")
        with store.unit_of_work() as conn:
            store.insert_transaction(
                conn,
                Transaction(
                    id=str(uuid.uuid4()),
                    household_id=HOUSEHOLD_ID,
                    account_id=account.id,
                    amount=Decimal("50000"),
                    currency="IDR",
                    description="Purchase at STARBUCKS COFFEE",
                    date="2024-01-01",
                    is_expense=True,
                    created_by="user-1",
                    created_at=utc_timestamp(),
                    merchant="STARBUCKS COFFEE",
                    category_id=category.id,
                ),
            )

        guess = Categorizer(store).for_merchant("STARBUCKS COFFEE", HOUSEHOLD_ID)

        assert guess.id == category.id
        assert guess.source == "history"

    def test_history_is_household_scoped(self, store, make_account):
        other = make_account(household_id="household-2")
        category = Category(id=str(uuid.uuid4()), household_id="household-2", name="Coffee")
        store.create_category(category)
        with store.unit_of_work() as conn:
            store.insert_transaction(
                conn,
                Transaction(
                    id=str(uuid.uuid4()),
                    household_id="household-2",
                    account_id=other.id,
                    amount=Decimal("1"),
                    currency="IDR",
                    description="x",
                    date="2024-01-01",
                    is_expense=True,
                    created_by="someone",
                    created_at=utc_timestamp(),
                    merchant="STARBUCKS COFFEE",
                    category_id=category.id,
                ),
            )

        guess = Categorizer(store).for_merchant("STARBUCKS COFFEE", HOUSEHOLD_ID)
        assert guess.source == "rule"


class TestReceiptSuggestions:
    """Tests for receipt suggestion generation."""

    def test_main_and_item_suggestions(self, generator, starbucks_text):
        result = make_result(DocumentType.RECEIPT, starbucks_text)
        suggestions = generator.generate(result, HOUSEHOLD_ID)

        assert len(suggestions) == 4
        main = suggestions[0]
        assert main.description == "Purchase at STARBUCKS COFFEE"
        assert main.amount == Decimal("-93500")
        assert main.currency == "IDR"
        assert main.date == "2024-01-15"
        assert main.merchant == "STARBUCKS COFFEE"
        assert main.suggested_category_name == "Food & Dining"
        assert main.confidence == pytest.approx(1.0)
        assert main.source == SuggestionSource.RECEIPT
        assert main.metadata.ocr_result_id == result.id
        assert main.metadata.line_item_index is None

    def test_item_suggestions(self, generator, starbucks_text):
        result = make_result(DocumentType.RECEIPT, starbucks_text)
        items = generator.generate(result, HOUSEHOLD_ID)[1:]

        assert [s.description for s in items] == [
            "Americano Large at STARBUCKS COFFEE",
            "Croissant at STARBUCKS COFFEE",
            "Bottled Water at STARBUCKS COFFEE",
        ]
        assert [s.metadata.line_item_index for s in items] == [0, 1, 2]
        assert items[0].amount == Decimal("-45000")
        assert items[0].confidence == 0.8

    def test_invoice_uses_receipt_rules(self, generator, starbucks_text):
        result = make_result(DocumentType.INVOICE, starbucks_text)
        assert generator.generate(result, HOUSEHOLD_ID)[0].description.startswith("Purchase at")

    def test_zero_total_has_no_main_suggestion(self, generator):
        result = make_result(DocumentType.RECEIPT, "SHOP\n2x Bread 10,000\n")
        suggestions = generator.generate(result, HOUSEHOLD_ID)

        assert len(suggestions) == 1
        assert suggestions[0].description == "Bread at SHOP"

    def test_empty_receipt(self, generator):
        result = make_result(DocumentType.RECEIPT, "")
        assert generator.generate(result, HOUSEHOLD_ID) == []

    def test_suggestion_ids_unique(self, generator, starbucks_text):
        result = make_result(DocumentType.RECEIPT, starbucks_text)
        ids = [s.id for s in generator.generate(result, HOUSEHOLD_ID)]
        assert len(set(ids)) == len(ids)

    def test_ocr_result_not_mutated(self, generator, starbucks_text):
        result = make_result(DocumentType.RECEIPT, starbucks_text)
        before = result.to_dict()
        generator.generate(result, HOUSEHOLD_ID)
        assert result.to_dict() == before


class TestStatementSuggestions:
    """Tests for bank statement suggestion generation."""

    def test_one_suggestion_per_row(self, generator, statement_text):
        result = make_result(DocumentType.BANK_STATEMENT, statement_text)
        suggestions = generator.generate(result, HOUSEHOLD_ID)

        assert len(suggestions) == 11
        assert all(s.source == SuggestionSource.BANK_STATEMENT for s in suggestions)
        assert all(s.confidence == 0.8 for s in suggestions)

    def test_signs_and_categories(self, generator, statement_text):
        result = make_result(DocumentType.BANK_STATEMENT, statement_text)
        by_description = {s.description: s for s in generator.generate(result, HOUSEHOLD_ID)}

        salary = by_description["GAJI BULANAN"]
        assert salary.amount == Decimal("8000000.00")
        assert salary.suggested_category_name == "Income"

        atm = by_description["TARIK TUNAI ATM BCA"]
        assert atm.amount == Decimal("-500000.00")
        assert atm.suggested_category_name == "Cash & ATM"

        groceries = by_description["BELANJA INDOMARET"]
        assert groceries.merchant == "INDOMARET"
        assert groceries.suggested_category_name == "Groceries"
        assert groceries.date == "2024-01-10"

    def test_other_document_type(self, generator):
        result = OCRResult(
            id="r-1",
            document_id="doc-1",
            document_type=DocumentType.OTHER,
            confidence=0.5,
            extracted_data=ExtractedData(),
            raw_text="",
            processed_at=utc_timestamp(),
        )
        assert generator.generate(result, HOUSEHOLD_ID) == []
