"""
SQLite-based state store implementation.

Tables:
- documents: Uploaded documents and their processing status
- ocr_results: Every extraction run (newest per document is authoritative)
- transaction_suggestions: Candidate transactions, single-use
- household_members: Membership used for access checks
- accounts, categories: Ledger reference data
- transactions, ledger_entries: Committed ledger state

Money is stored as integer minor units (amount_cents).
"""

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Optional

from ..errors import AlreadyProcessingError, NotFoundError, UnsupportedCurrencyError
from ..schemas.document import DocumentType, DocumentUpload, ProcessingStatus, utc_timestamp
from ..schemas.extraction import ExtractedData, OCRMetadata, OCRResult
from ..schemas.ledger import Account, Category, EntryType, LedgerEntry, Transaction
from ..schemas.suggestion import SuggestionMetadata, SuggestionSource, TransactionSuggestion

logger = logging.getLogger(__name__)


def to_cents(amount: Decimal) -> int:
    """Decimal amount -> integer minor units."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Integer minor units -> Decimal amount with two places."""
    return Decimal(cents).scaleb(-2)


def like_pattern(text: str) -> str:
    """Lowercased LIKE substring pattern with wildcards escaped (ESCAPE '\\')."""
    escaped = text.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def document_from_row(row: sqlite3.Row) -> DocumentUpload:
    return DocumentUpload(
        id=row["id"],
        household_id=row["household_id"],
        file_name=row["file_name"],
        file_size=row["file_size"],
        mime_type=row["mime_type"],
        document_type=DocumentType(row["document_type"]),
        status=ProcessingStatus(row["status"]),
        uploaded_by=row["uploaded_by"],
        uploaded_at=row["uploaded_at"],
        storage_token=row["storage_token"],
        processed_at=row["processed_at"],
        description=row["description"],
    )


def ocr_result_from_row(row: sqlite3.Row) -> OCRResult:
    return OCRResult(
        id=row["id"],
        document_id=row["document_id"],
        document_type=DocumentType(row["document_type"]),
        confidence=row["confidence"],
        extracted_data=ExtractedData.from_dict(json.loads(row["extracted_data"])),
        raw_text=row["raw_text"],
        processed_at=row["processed_at"],
        metadata=OCRMetadata.from_dict(json.loads(row["metadata"]) if row["metadata"] else {}),
    )


def suggestion_from_row(row: sqlite3.Row) -> TransactionSuggestion:
    return TransactionSuggestion(
        id=row["id"],
        document_id=row["document_id"],
        ocr_result_id=row["ocr_result_id"],
        description=row["description"],
        amount=from_cents(row["amount_cents"]),
        currency=row["currency"],
        date=row["date"],
        confidence=row["confidence"],
        source=SuggestionSource(row["source"]),
        metadata=SuggestionMetadata.from_dict(json.loads(row["metadata"]) if row["metadata"] else {}),
        merchant=row["merchant"],
        suggested_category_id=row["suggested_category_id"],
        suggested_category_name=row["suggested_category_name"],
        approved=bool(row["is_approved"]),
        approved_at=row["approved_at"],
        created_transaction_id=row["created_transaction_id"],
    )


def account_from_row(row: sqlite3.Row) -> Account:
    return Account(
        id=row["id"],
        household_id=row["household_id"],
        name=row["name"],
        currency=row["currency"],
        is_active=bool(row["is_active"]),
    )


class StateStore:
    """
    SQLite-based state store for the pipeline.

    Provides persistent tracking of:
    - Documents and their processing status
    - OCR results (all runs retained for audit)
    - Transaction suggestions and their approval state
    - Ledger transactions and entries written on approval

    Every public method opens its own short transaction unless handed the
    connection of an enclosing unit of work.
    """

    SCHEMA_VERSION = 1

    # Seconds a writer waits for the database lock before failing
    LOCK_TIMEOUT = 30.0

    def __init__(self, db_path: Path | str):
        """
        Initialize state store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path), timeout=self.LOCK_TIMEOUT)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def unit_of_work(self) -> Iterator[sqlite3.Connection]:
        """
        Serializable unit of work.

        Takes the database write lock up front (BEGIN IMMEDIATE), so reads
        made inside cannot be invalidated by a concurrent writer before
        commit. Any exception rolls back every write.
        """
        conn = self._get_connection()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    @contextmanager
    def _use(self, conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
        """Reuse an enclosing connection, or open a fresh transaction."""
        if conn is not None:
            yield conn
        else:
            with self._transaction() as own:
                yield own

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    file_name TEXT NOT NULL,
                    file_size INTEGER NOT NULL,
                    mime_type TEXT NOT NULL,
                    document_type TEXT NOT NULL,
                    status TEXT NOT NULL,
                    uploaded_by TEXT NOT NULL,
                    uploaded_at TEXT NOT NULL,
                    processed_at TEXT,
                    storage_token TEXT NOT NULL,
                    description TEXT,
                    error_message TEXT
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS ocr_results (
                    id TEXT PRIMARY KEY,
                    document_id TEXT NOT NULL REFERENCES documents(id),
                    document_type TEXT NOT NULL,
                    confidence REAL NOT NULL,
                    extracted_data TEXT NOT NULL,  -- JSON
                    raw_text TEXT NOT NULL,
                    metadata TEXT,  -- JSON
                    processed_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS transaction_suggestions (
                    id TEXT PRIMARY KEY,
                    document_id TEXT NOT NULL REFERENCES documents(id),
                    ocr_result_id TEXT NOT NULL REFERENCES ocr_results(id),
                    description TEXT NOT NULL,
                    amount_cents INTEGER NOT NULL,
                    currency TEXT NOT NULL,
                    date TEXT NOT NULL,
                    merchant TEXT,
                    suggested_category_id TEXT,
                    suggested_category_name TEXT,
                    confidence REAL NOT NULL,
                    source TEXT NOT NULL,
                    metadata TEXT,  -- JSON
                    is_approved INTEGER NOT NULL DEFAULT 0,
                    approved_at TEXT,
                    created_transaction_id TEXT,
                    created_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS household_members (
                    household_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    joined_at TEXT NOT NULL,
                    PRIMARY KEY (household_id, user_id)
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    currency TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    balance_cents INTEGER NOT NULL DEFAULT 0
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS categories (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    name TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS transactions (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    account_id TEXT NOT NULL REFERENCES accounts(id),
                    amount_cents INTEGER NOT NULL,  -- Absolute value
                    currency TEXT NOT NULL,
                    description TEXT NOT NULL,
                    merchant TEXT,
                    category_id TEXT,
                    date TEXT NOT NULL,
                    is_expense INTEGER NOT NULL,
                    created_by TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    metadata TEXT  -- JSON
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS ledger_entries (
                    id TEXT PRIMARY KEY,
                    transaction_id TEXT NOT NULL REFERENCES transactions(id),
                    account_id TEXT NOT NULL REFERENCES accounts(id),
                    entry_type TEXT NOT NULL,
                    amount_cents INTEGER NOT NULL,
                    currency TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_household ON documents(household_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_ocr_results_document ON ocr_results(document_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_suggestions_document "
                "ON transaction_suggestions(document_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_household "
                "ON transactions(household_id)"
            )

            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,),
            )

    # Document methods

    def insert_document(self, document: DocumentUpload) -> None:
        """Insert a new document record."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO documents
                (id, household_id, file_name, file_size, mime_type, document_type, status,
                 uploaded_by, uploaded_at, processed_at, storage_token, description)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    document.id,
                    document.household_id,
                    document.file_name,
                    document.file_size,
                    document.mime_type,
                    document.document_type.value,
                    document.status.value,
                    document.uploaded_by,
                    document.uploaded_at,
                    document.processed_at,
                    document.storage_token,
                    document.description,
                ),
            )

    def get_document(self, document_id: str) -> DocumentUpload | None:
        """Get a document record by ID."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM documents WHERE id = ?", (document_id,)).fetchone()
            return document_from_row(row) if row else None

    def list_documents(self, household_id: str) -> list[DocumentUpload]:
        """List a household's documents, newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM documents WHERE household_id = ?
                ORDER BY uploaded_at DESC, rowid DESC
            """,
                (household_id,),
            ).fetchall()
            return [document_from_row(row) for row in rows]

    def get_document_error(self, document_id: str) -> str | None:
        """Last failure message recorded for a document."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT error_message FROM documents WHERE id = ?", (document_id,)
            ).fetchone()
            return row["error_message"] if row else None

    def start_processing(self, document_id: str, force: bool = False) -> ProcessingStatus:
        """
        Atomically move a document to PROCESSING.

        Returns:
            The status the document had before

        Raises:
            NotFoundError: If the document does not exist
            AlreadyProcessingError: If it is already PROCESSING and force is not set
        """
        with self.unit_of_work() as conn:
            row = conn.execute(
                "SELECT status FROM documents WHERE id = ?", (document_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Document not found: {document_id}")

            previous = ProcessingStatus(row["status"])
            if previous == ProcessingStatus.PROCESSING and not force:
                raise AlreadyProcessingError(f"Document {document_id} is already being processed")

            conn.execute(
                "UPDATE documents SET status = ?, error_message = NULL WHERE id = ?",
                (ProcessingStatus.PROCESSING.value, document_id),
            )
            return previous

    def update_document_status(
        self,
        document_id: str,
        status: ProcessingStatus,
        error_message: str | None = None,
    ) -> bool:
        """Set a document's status. Terminal statuses stamp processed_at."""
        processed_at = utc_timestamp() if status.is_terminal else None

        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE documents
                SET status = ?, processed_at = COALESCE(?, processed_at), error_message = ?
                WHERE id = ?
            """,
                (status.value, processed_at, error_message, document_id),
            )
            return cursor.rowcount > 0

    def complete_processing(
        self,
        document_id: str,
        result: OCRResult,
        suggestions: list[TransactionSuggestion],
        status: ProcessingStatus = ProcessingStatus.COMPLETED,
    ) -> None:
        """Persist an OCR result with its suggestions and finish the document, atomically."""
        now = utc_timestamp()

        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO ocr_results
                (id, document_id, document_type, confidence, extracted_data, raw_text,
                 metadata, processed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    result.id,
                    document_id,
                    result.document_type.value,
                    result.confidence,
                    json.dumps(result.extracted_data.to_dict()),
                    result.raw_text,
                    json.dumps(result.metadata.to_dict()),
                    result.processed_at,
                ),
            )

            for suggestion in suggestions:
                conn.execute(
                    """
                    INSERT INTO transaction_suggestions
                    (id, document_id, ocr_result_id, description, amount_cents, currency, date,
                     merchant, suggested_category_id, suggested_category_name, confidence,
                     source, metadata, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        suggestion.id,
                        document_id,
                        suggestion.ocr_result_id,
                        suggestion.description,
                        to_cents(suggestion.amount),
                        suggestion.currency,
                        suggestion.date,
                        suggestion.merchant,
                        suggestion.suggested_category_id,
                        suggestion.suggested_category_name,
                        suggestion.confidence,
                        suggestion.source.value,
                        json.dumps(suggestion.metadata.to_dict()),
                        now,
                    ),
                )

            conn.execute(
                """
                UPDATE documents SET status = ?, processed_at = ?, error_message = NULL
                WHERE id = ?
            """,
                (status.value, now, document_id),
            )

    # OCR result methods

    def get_ocr_result(self, ocr_result_id: str) -> OCRResult | None:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM ocr_results WHERE id = ?", (ocr_result_id,)
            ).fetchone()
            return ocr_result_from_row(row) if row else None

    def get_latest_ocr_result(self, document_id: str) -> OCRResult | None:
        """Get the authoritative (newest) OCR result for a document."""
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT * FROM ocr_results WHERE document_id = ?
                ORDER BY processed_at DESC, rowid DESC LIMIT 1
            """,
                (document_id,),
            ).fetchone()
            return ocr_result_from_row(row) if row else None

    def list_ocr_results(self, document_id: str) -> list[OCRResult]:
        """All OCR runs for a document, oldest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM ocr_results WHERE document_id = ? ORDER BY rowid",
                (document_id,),
            ).fetchall()
            return [ocr_result_from_row(row) for row in rows]

    # Suggestion methods

    def get_suggestion(
        self,
        suggestion_id: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> TransactionSuggestion | None:
        with self._use(conn) as c:
            row = c.execute(
                "SELECT * FROM transaction_suggestions WHERE id = ?", (suggestion_id,)
            ).fetchone()
            return suggestion_from_row(row) if row else None

    def list_suggestions(
        self,
        document_id: str,
        ocr_result_id: str | None = None,
    ) -> list[TransactionSuggestion]:
        """Suggestions of a document in generation order, optionally for one OCR result."""
        with self._transaction() as conn:
            if ocr_result_id:
                rows = conn.execute(
                    """
                    SELECT * FROM transaction_suggestions
                    WHERE document_id = ? AND ocr_result_id = ? ORDER BY rowid
                """,
                    (document_id, ocr_result_id),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM transaction_suggestions WHERE document_id = ? ORDER BY rowid",
                    (document_id,),
                ).fetchall()
            return [suggestion_from_row(row) for row in rows]

    def mark_suggestion_approved(
        self,
        conn: sqlite3.Connection,
        suggestion_id: str,
        transaction_id: str,
    ) -> bool:
        """
        Flip a suggestion to approved inside an enclosing unit of work.

        Compare-and-swap on is_approved: returns False if another approval
        already won.
        """
        cursor = conn.execute(
            """
            UPDATE transaction_suggestions
            SET is_approved = 1, approved_at = ?, created_transaction_id = ?
            WHERE id = ? AND is_approved = 0
        """,
            (utc_timestamp(), transaction_id, suggestion_id),
        )
        return cursor.rowcount == 1

    # Household methods

    def add_household_member(self, household_id: str, user_id: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO household_members (household_id, user_id, joined_at)
                VALUES (?, ?, ?)
            """,
                (household_id, user_id, utc_timestamp()),
            )

    def is_household_member(
        self,
        household_id: str,
        user_id: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> bool:
        with self._use(conn) as c:
            row = c.execute(
                "SELECT 1 FROM household_members WHERE household_id = ? AND user_id = ?",
                (household_id, user_id),
            ).fetchone()
            return row is not None

    # Account methods

    def create_account(self, account: Account, opening_balance: Decimal = Decimal("0")) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO accounts (id, household_id, name, currency, is_active, balance_cents)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (
                    account.id,
                    account.household_id,
                    account.name,
                    account.currency,
                    int(account.is_active),
                    to_cents(opening_balance),
                ),
            )

    def get_account(
        self,
        account_id: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Account | None:
        with self._use(conn) as c:
            row = c.execute("SELECT * FROM accounts WHERE id = ?", (account_id,)).fetchone()
            return account_from_row(row) if row else None

    def get_account_balance(self, account_id: str) -> Decimal:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT balance_cents FROM accounts WHERE id = ?", (account_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Account not found: {account_id}")
            return from_cents(row["balance_cents"])

    def set_account_active(self, account_id: str, is_active: bool) -> None:
        with self._transaction() as conn:
            conn.execute(
                "UPDATE accounts SET is_active = ? WHERE id = ?", (int(is_active), account_id)
            )

    def household_total(self, household_id: str, currency: str) -> Decimal:
        """
        Sum the balances of a household's active accounts.

        No currency conversion is performed.

        Raises:
            UnsupportedCurrencyError: If any active account holds another currency
        """
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT currency, balance_cents FROM accounts
                WHERE household_id = ? AND is_active = 1
            """,
                (household_id,),
            ).fetchall()

        foreign = sorted({row["currency"] for row in rows if row["currency"] != currency})
        if foreign:
            raise UnsupportedCurrencyError(
                f"Household {household_id} holds {', '.join(foreign)} accounts; "
                f"cannot total in {currency} without conversion"
            )
        return from_cents(sum(row["balance_cents"] for row in rows))

    # Category and history lookups

    def create_category(self, category: Category) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO categories (id, household_id, name) VALUES (?, ?, ?)",
                (category.id, category.household_id, category.name),
            )

    def find_category_by_name(self, household_id: str, name: str) -> Category | None:
        """Case-insensitive exact-name category lookup within a household."""
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT * FROM categories
                WHERE household_id = ? AND LOWER(name) = LOWER(?)
                ORDER BY rowid LIMIT 1
            """,
                (household_id, name),
            ).fetchone()
            if row is None:
                return None
            return Category(id=row["id"], household_id=row["household_id"], name=row["name"])

    def find_latest_categorized_transaction(
        self,
        household_id: str,
        text: str,
        field: str = "merchant",
    ) -> Category | None:
        """
        Category of the most recent household transaction whose merchant
        (or description) contains text, case-insensitively.

        Args:
            household_id: Household to search
            text: Candidate merchant name or description
            field: "merchant" matches merchant or description; "description" only description
        """
        if not text:
            return None

        pattern = like_pattern(text)
        if field == "merchant":
            match_clause = (
                "(LOWER(t.merchant) LIKE ? ESCAPE '\\' OR LOWER(t.description) LIKE ? ESCAPE '\\')"
            )
            params: tuple[Any, ...] = (household_id, pattern, pattern)
        else:
            match_clause = "LOWER(t.description) LIKE ? ESCAPE '\\'"
            params = (household_id, pattern)

        with self._transaction() as conn:
            row = conn.execute(
                f"""
                SELECT c.id, c.household_id, c.name FROM transactions t
                JOIN categories c ON c.id = t.category_id
                WHERE t.household_id = ? AND {match_clause}
                ORDER BY t.created_at DESC, t.rowid DESC LIMIT 1
            """,
                params,
            ).fetchone()
            if row is None:
                return None
            return Category(id=row["id"], household_id=row["household_id"], name=row["name"])

    # Ledger methods

    def insert_transaction(self, conn: sqlite3.Connection, transaction: Transaction) -> None:
        """Write a transaction, its ledger entries and the balance change inside a unit of work."""
        conn.execute(
            """
            INSERT INTO transactions
            (id, household_id, account_id, amount_cents, currency, description, merchant,
             category_id, date, is_expense, created_by, created_at, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                transaction.id,
                transaction.household_id,
                transaction.account_id,
                to_cents(transaction.amount),
                transaction.currency,
                transaction.description,
                transaction.merchant,
                transaction.category_id,
                transaction.date,
                int(transaction.is_expense),
                transaction.created_by,
                transaction.created_at,
                json.dumps(transaction.metadata),
            ),
        )

        for entry in transaction.entries:
            conn.execute(
                """
                INSERT INTO ledger_entries
                (id, transaction_id, account_id, entry_type, amount_cents, currency, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    entry.id,
                    transaction.id,
                    entry.account_id,
                    entry.entry_type.value,
                    to_cents(entry.amount),
                    entry.currency,
                    transaction.created_at,
                ),
            )

        conn.execute(
            "UPDATE accounts SET balance_cents = balance_cents + ? WHERE id = ?",
            (to_cents(transaction.signed_amount), transaction.account_id),
        )

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM transactions WHERE id = ?", (transaction_id,)
            ).fetchone()
            if row is None:
                return None
            entries = conn.execute(
                "SELECT * FROM ledger_entries WHERE transaction_id = ? ORDER BY rowid",
                (transaction_id,),
            ).fetchall()

        return Transaction(
            id=row["id"],
            household_id=row["household_id"],
            account_id=row["account_id"],
            amount=from_cents(row["amount_cents"]),
            currency=row["currency"],
            description=row["description"],
            date=row["date"],
            is_expense=bool(row["is_expense"]),
            created_by=row["created_by"],
            created_at=row["created_at"],
            merchant=row["merchant"],
            category_id=row["category_id"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            entries=[
                LedgerEntry(
                    id=entry["id"],
                    transaction_id=entry["transaction_id"],
                    account_id=entry["account_id"],
                    entry_type=EntryType(entry["entry_type"]),
                    amount=from_cents(entry["amount_cents"]),
                    currency=entry["currency"],
                )
                for entry in entries
            ],
        )

    def count_transactions(self, household_id: str | None = None) -> int:
        with self._transaction() as conn:
            if household_id:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM transactions WHERE household_id = ?",
                    (household_id,),
                ).fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) AS n FROM transactions").fetchone()
            return row["n"]

    def count_ledger_entries(self, transaction_id: str | None = None) -> int:
        with self._transaction() as conn:
            if transaction_id:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM ledger_entries WHERE transaction_id = ?",
                    (transaction_id,),
                ).fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) AS n FROM ledger_entries").fetchone()
            return row["n"]

    # Statistics

    def get_stats(self) -> dict[str, Any]:
        """Counts by document status plus suggestion and ledger totals."""
        with self._transaction() as conn:
            status_rows = conn.execute(
                "SELECT status, COUNT(*) AS n FROM documents GROUP BY status"
            ).fetchall()
            suggestion_row = conn.execute(
                """
                SELECT COUNT(*) AS total, COALESCE(SUM(is_approved), 0) AS approved
                FROM transaction_suggestions
            """
            ).fetchone()
            transaction_row = conn.execute("SELECT COUNT(*) AS n FROM transactions").fetchone()

        return {
            "documents_by_status": {row["status"]: row["n"] for row in status_rows},
            "documents_total": sum(row["n"] for row in status_rows),
            "suggestions_total": suggestion_row["total"],
            "suggestions_approved": suggestion_row["approved"],
            "transactions_total": transaction_row["n"],
        }
