"""Tests for confidence scoring."""

from decimal import Decimal

import pytest

from receipt_ledger.confidence import ConfidenceScorer, ConfidenceThresholds
from receipt_ledger.schemas import (
    AmountInfo,
    BankStatementInfo,
    BankStatementTransaction,
    DateInfo,
    ExtractedData,
    MerchantInfo,
    ProcessingStatus,
    StatementPeriod,
)


@pytest.fixture
def scorer():
    return ConfidenceScorer()


class TestTextQuality:
    """Tests for text quality assessment."""

    def test_short_text(self, scorer):
        assert scorer.assess_text_quality("TOTAL 5,000") == 0.3

    def test_medium_text(self, scorer):
        assert scorer.assess_text_quality("x" * 120) == 0.6

    def test_long_text_without_keywords(self, scorer):
        assert scorer.assess_text_quality("x" * 300) == 0.5

    def test_long_text_with_all_keywords(self, scorer):
        text = "receipt date subtotal tax total " + "x" * 200
        assert scorer.assess_text_quality(text) == 1.0


class TestOverallConfidence:
    """Tests for extraction confidence."""

    def test_empty_data(self, scorer):
        assert scorer.overall_confidence(ExtractedData(), "") == 0.5

    def test_mean_of_factors(self, scorer):
        data = ExtractedData(
            merchant=MerchantInfo(name="SHOP", confidence=0.8),
            amount=AmountInfo(total=Decimal("10"), currency="IDR", confidence=0.9),
        )
        # (0.8 + 0.9 + 0.3 text quality) / 3
        assert scorer.overall_confidence(data, "SHOP") == pytest.approx(2.0 / 3)

    def test_result_is_clamped(self, scorer):
        data = ExtractedData(merchant=MerchantInfo(name="SHOP", confidence=5.0))
        assert scorer.overall_confidence(data, "SHOP") == 1.0


class TestSuggestionConfidence:
    """Tests for the main receipt suggestion confidence."""

    def test_all_fields_confident(self, scorer):
        data = ExtractedData(
            merchant=MerchantInfo(name="SHOP", confidence=0.8),
            amount=AmountInfo(total=Decimal("10"), currency="IDR", confidence=0.9),
            date=DateInfo(date="2024-01-15", confidence=0.9),
        )
        assert scorer.suggestion_confidence(data) == pytest.approx(1.0)

    def test_thresholds_are_strict(self, scorer):
        """Bonuses need confidence strictly above the threshold."""
        data = ExtractedData(
            merchant=MerchantInfo(name="SHOP", confidence=0.7),
            amount=AmountInfo(total=Decimal("10"), currency="IDR", confidence=0.8),
            date=DateInfo(date="2024-01-15", confidence=0.3),
        )
        assert scorer.suggestion_confidence(data) == 0.5

    def test_statement_suggestion_constant(self, scorer):
        assert scorer.statement_suggestion_confidence() == 0.8


class TestStatementConfidence:
    def test_full_statement(self, scorer):
        info = BankStatementInfo(
            account_number="123",
            bank_name="BANK BCA",
            period=StatementPeriod(start_date="2024-01-01", end_date="2024-01-31"),
            transactions=[
                BankStatementTransaction(
                    date="2024-01-02",
                    description="GAJI",
                    amount=Decimal("10"),
                    balance=Decimal("10"),
                    type="CREDIT",
                )
            ],
        )
        assert scorer.statement_confidence(info, period_found=True) == 1.0

    def test_unknown_statement(self, scorer):
        info = BankStatementInfo(
            account_number="Unknown",
            bank_name="Unknown Bank",
            period=StatementPeriod(start_date="2024-01-01", end_date="2024-01-31"),
        )
        assert scorer.statement_confidence(info, period_found=False) == 0.5


class TestProcessingStatus:
    """Tests for terminal status selection."""

    def test_low_confidence_completes_without_opt_in(self, scorer):
        assert scorer.processing_status(0.1) == ProcessingStatus.COMPLETED

    def test_low_confidence_review_with_opt_in(self):
        scorer = ConfidenceScorer(review_opt_in=True)
        assert scorer.processing_status(0.5) == ProcessingStatus.REQUIRES_REVIEW
        assert scorer.processing_status(0.6) == ProcessingStatus.COMPLETED

    def test_custom_threshold(self):
        scorer = ConfidenceScorer(ConfidenceThresholds(review_threshold=0.9), review_opt_in=True)
        assert scorer.processing_status(0.88) == ProcessingStatus.REQUIRES_REVIEW
