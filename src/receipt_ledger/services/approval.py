"""
Approval of transaction suggestions into the ledger.

Each approval runs as one unit of work holding the database write lock:
the approved-flag check, the transaction, its ledger entries, the balance
update and the flag flip either all commit or none do.
"""

import logging
import uuid
from typing import Any, Optional, Union

from ..errors import (
    AlreadyApprovedError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    ReceiptLedgerError,
)
from ..schemas.document import utc_timestamp
from ..schemas.ledger import EntryType, LedgerEntry, Transaction
from ..schemas.suggestion import (
    SuggestionCorrections,
    TransactionSuggestion,
    apply_corrections,
)
from ..state_store import StateStore, from_cents, to_cents
from .access import HouseholdAccess
from .metrics import ProcessingMetrics

logger = logging.getLogger(__name__)

TRANSACTION_SOURCE = "OCR_SUGGESTION"


class ApprovalService:
    """Turns one suggestion into exactly one ledger transaction."""

    def __init__(
        self,
        store: StateStore,
        access: Optional[HouseholdAccess] = None,
        metrics: Optional[ProcessingMetrics] = None,
    ):
        self.store = store
        self.access = access or HouseholdAccess(store)
        self.metrics = metrics

    def approve(
        self,
        suggestion_id: str,
        account_id: str,
        user_id: str,
        corrections: Union[SuggestionCorrections, dict[str, Any], None] = None,
    ) -> Transaction:
        """
        Approve a suggestion against an account.

        Corrections override suggestion fields for the produced transaction
        only; the stored suggestion keeps its generated values.

        Raises:
            NotFoundError: Unknown suggestion or account
            InvalidStateError: Account is inactive
            AccessDeniedError: User is not a member of the account's household
            AlreadyApprovedError: Suggestion was already consumed
            InvalidAmountError: Finalized amount is zero
        """
        suggestion = self.store.get_suggestion(suggestion_id)
        if suggestion is None:
            raise NotFoundError(f"Suggestion not found: {suggestion_id}")

        if isinstance(corrections, dict):
            corrections = SuggestionCorrections.from_dict(corrections)
        final = apply_corrections(suggestion, corrections)

        try:
            with self.store.unit_of_work() as conn:
                account = self.store.get_account(account_id, conn=conn)
                if account is None:
                    raise NotFoundError(f"Account not found: {account_id}")
                if not account.is_active:
                    raise InvalidStateError(f"Account {account_id} is inactive")

                self.access.verify(account.household_id, user_id, conn=conn)

                current = self.store.get_suggestion(suggestion_id, conn=conn)
                if current is None:
                    raise NotFoundError(f"Suggestion not found: {suggestion_id}")
                if current.approved:
                    raise AlreadyApprovedError(f"Suggestion {suggestion_id} is already approved")

                if not final.amount.is_finite() or to_cents(final.amount) == 0:
                    raise InvalidAmountError(f"Transaction amount must be a non-zero number of cents: {final.amount}")

                transaction = self._build_transaction(final, account.household_id, account_id, user_id)
                if corrections is not None:
                    transaction.metadata["corrected_fields"] = corrections.changed_fields()

                self.store.insert_transaction(conn, transaction)
                if not self.store.mark_suggestion_approved(conn, suggestion_id, transaction.id):
                    raise AlreadyApprovedError(f"Suggestion {suggestion_id} is already approved")
        except ReceiptLedgerError as e:
            logger.warning("Approval of suggestion %s rejected: [%s] %s", suggestion_id, e.code, e)
            if self.metrics:
                self.metrics.record_approval(suggestion_id, approved=False)
            raise

        if self.metrics:
            self.metrics.record_approval(suggestion_id, approved=True)
        logger.info(
            "Approved suggestion %s as transaction %s (%s %s) on account %s",
            suggestion_id,
            transaction.id,
            transaction.signed_amount,
            transaction.currency,
            account_id,
        )
        return transaction

    @staticmethod
    def _build_transaction(
        final: TransactionSuggestion,
        household_id: str,
        account_id: str,
        user_id: str,
    ) -> Transaction:
        transaction_id = str(uuid.uuid4())
        is_expense = final.amount < 0
        # Whole cents, as stored
        amount = from_cents(to_cents(abs(final.amount)))

        return Transaction(
            id=transaction_id,
            household_id=household_id,
            account_id=account_id,
            amount=amount,
            currency=final.currency,
            description=final.description,
            date=final.date,
            is_expense=is_expense,
            created_by=user_id,
            created_at=utc_timestamp(),
            merchant=final.merchant,
            category_id=final.suggested_category_id,
            metadata={
                "source": TRANSACTION_SOURCE,
                "suggestion_id": final.id,
                "ocr_result_id": final.ocr_result_id,
            },
            entries=[
                LedgerEntry(
                    id=str(uuid.uuid4()),
                    transaction_id=transaction_id,
                    account_id=account_id,
                    entry_type=EntryType.CREDIT if is_expense else EntryType.DEBIT,
                    amount=amount,
                    currency=final.currency,
                )
            ],
        )
