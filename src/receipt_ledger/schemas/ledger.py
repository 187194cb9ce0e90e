"""
Ledger-side shapes: accounts, categories, transactions and entries.

Only the fields this pipeline reads or writes are modelled here.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class EntryType(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


@dataclass
class Account:
    id: str
    household_id: str
    name: str
    currency: str
    is_active: bool = True


@dataclass
class Category:
    id: str
    household_id: str
    name: str


@dataclass
class LedgerEntry:
    """One leg of a double-entry transaction."""

    id: str
    transaction_id: str
    account_id: str
    entry_type: EntryType
    amount: Decimal  # Absolute value
    currency: str


@dataclass
class Transaction:
    """
    A committed ledger transaction.

    amount is the absolute value; the direction is carried by is_expense
    and by the entry types of its ledger entries.
    """

    id: str
    household_id: str
    account_id: str
    amount: Decimal
    currency: str
    description: str
    date: str  # ISO format YYYY-MM-DD
    is_expense: bool
    created_by: str
    created_at: str
    merchant: Optional[str] = None
    category_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    entries: list[LedgerEntry] = field(default_factory=list)

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.is_expense else self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "household_id": self.household_id,
            "account_id": self.account_id,
            "amount": str(self.amount),
            "currency": self.currency,
            "description": self.description,
            "date": self.date,
            "is_expense": self.is_expense,
            "merchant": self.merchant,
            "category_id": self.category_id,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "metadata": self.metadata,
            "entries": [
                {
                    "id": entry.id,
                    "account_id": entry.account_id,
                    "type": entry.entry_type.value,
                    "amount": str(entry.amount),
                    "currency": entry.currency,
                }
                for entry in self.entries
            ],
        }
