"""Test fixtures and utilities."""

import uuid
from decimal import Decimal
from pathlib import Path

import pytest

from receipt_ledger.config import ProcessingConfig
from receipt_ledger.confidence import ConfidenceScorer
from receipt_ledger.extractors import ExtractorRouter, StaticTextBackend
from receipt_ledger.extractors.backends import SAMPLE_BANK_STATEMENT, SAMPLE_RECEIPTS
from receipt_ledger.schemas.ledger import Account
from receipt_ledger.services import (
    ApprovalService,
    HouseholdAccess,
    PipelineService,
    ProcessingMetrics,
)
from receipt_ledger.state_store import StateStore
from receipt_ledger.storage import DocumentStore
from receipt_ledger.suggestions import Categorizer, SuggestionGenerator

STARBUCKS_RECEIPT = SAMPLE_RECEIPTS[0]
INDOMARET_RECEIPT = SAMPLE_RECEIPTS[1]
KFC_RECEIPT = SAMPLE_RECEIPTS[2]
BCA_STATEMENT = SAMPLE_BANK_STATEMENT

HOUSEHOLD_ID = "household-1"
USER_ID = "user-1"

# Smallest byte strings that pass signature checks
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PDF_BYTES = b"%PDF-1.4\n" + b"0" * 64


@pytest.fixture
def starbucks_text() -> str:
    return STARBUCKS_RECEIPT


@pytest.fixture
def statement_text() -> str:
    return BCA_STATEMENT


@pytest.fixture
def jpeg_bytes() -> bytes:
    return JPEG_BYTES


@pytest.fixture
def pdf_bytes() -> bytes:
    return PDF_BYTES


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path."""
    return tmp_path / "test_state.db"


@pytest.fixture
def store(temp_db) -> StateStore:
    """Fresh state store with one household member."""
    state = StateStore(temp_db)
    state.add_household_member(HOUSEHOLD_ID, USER_ID)
    return state


@pytest.fixture
def document_store(tmp_path) -> DocumentStore:
    return DocumentStore(tmp_path / "uploads")


@pytest.fixture
def starbucks_backend() -> StaticTextBackend:
    """Backend that reads every receipt as the Starbucks sample."""
    return StaticTextBackend(receipt_texts=[STARBUCKS_RECEIPT])


@pytest.fixture
def metrics() -> ProcessingMetrics:
    return ProcessingMetrics()


@pytest.fixture
def sleeps() -> list[float]:
    """Recorded backoff sleeps."""
    return []


@pytest.fixture
def make_pipeline(store, document_store, metrics, sleeps):
    """
    Factory for pipeline services sharing the test store.

    Keyword arguments other than backend go to ProcessingConfig. Backoff
    sleeps are recorded in the `sleeps` fixture instead of slept.
    """
    created: list[PipelineService] = []

    def factory(backend=None, **processing) -> PipelineService:
        scorer = ConfidenceScorer(review_opt_in=processing.pop("review_opt_in", False))
        service = PipelineService(
            store=store,
            document_store=document_store,
            router=ExtractorRouter(backend=backend or StaticTextBackend(), scorer=scorer),
            generator=SuggestionGenerator(Categorizer(store), scorer),
            scorer=scorer,
            config=ProcessingConfig(**processing),
            access=HouseholdAccess(store),
            metrics=metrics,
            sleep=sleeps.append,
        )
        created.append(service)
        return service

    yield factory
    for service in created:
        service.shutdown()


@pytest.fixture
def pipeline(make_pipeline, starbucks_backend) -> PipelineService:
    return make_pipeline(starbucks_backend)


@pytest.fixture
def approval(store, metrics) -> ApprovalService:
    return ApprovalService(store, HouseholdAccess(store), metrics)


@pytest.fixture
def make_account(store):
    """Factory for ledger accounts."""

    def factory(
        household_id: str = HOUSEHOLD_ID,
        currency: str = "IDR",
        opening_balance: Decimal = Decimal("0"),
        is_active: bool = True,
    ) -> Account:
        account = Account(
            id=str(uuid.uuid4()),
            household_id=household_id,
            name="Wallet",
            currency=currency,
            is_active=is_active,
        )
        store.create_account(account, opening_balance=opening_balance)
        return account

    return factory


@pytest.fixture
def account(make_account) -> Account:
    return make_account(opening_balance=Decimal("1000000"))
