"""
Category inference for transaction suggestions.

Order of precedence:
1. Household history: the most recent categorized transaction matching the text
2. Keyword rules: first matching rule wins
3. Nothing
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from ..schemas.ledger import Category

logger = logging.getLogger(__name__)


class CategoryHistory(Protocol):
    """Household-scoped history lookups the categorizer depends on."""

    def find_category_by_name(self, household_id: str, name: str) -> Optional[Category]: ...

    def find_latest_categorized_transaction(
        self, household_id: str, text: str, field: str = "merchant"
    ) -> Optional[Category]: ...


@dataclass(frozen=True)
class CategoryRule:
    keywords: tuple[str, ...]
    category_name: str

    def matches(self, text: str) -> bool:
        lowered = text.lower()
        return any(keyword in lowered for keyword in self.keywords)


# Ordered; first match wins
CATEGORY_RULES = [
    CategoryRule(("starbucks", "coffee", "cafe", "kopi"), "Food & Dining"),
    CategoryRule(("indomaret", "alfamart", "supermarket", "grocery"), "Groceries"),
    CategoryRule(("gas", "petrol", "shell", "pertamina"), "Transportation"),
    CategoryRule(("gojek", "grab", "taxi", "uber"), "Transportation"),
    CategoryRule(("listrik", "pln", "electricity"), "Utilities"),
    CategoryRule(("internet", "telkom", "indihome"), "Utilities"),
    CategoryRule(("hospital", "doctor", "pharmacy", "apotek"), "Healthcare"),
    CategoryRule(("shopee", "tokopedia", "lazada", "blibli"), "Shopping"),
    CategoryRule(("atm", "tarik tunai", "cash withdrawal"), "Cash & ATM"),
    CategoryRule(("transfer", "kirim uang"), "Transfer"),
    CategoryRule(("gaji", "salary", "payroll"), "Income"),
    CategoryRule(("bunga", "interest"), "Income"),
    CategoryRule(("biaya admin", "admin fee"), "Bank Fees"),
]


@dataclass(frozen=True)
class CategoryGuess:
    """A suggested category. id is None when the household has no such category yet."""

    id: Optional[str]
    name: str
    source: str  # "history" or "rule"


class Categorizer:
    """History-then-rules category inference."""

    def __init__(self, history: CategoryHistory, rules: Optional[list[CategoryRule]] = None):
        self.history = history
        self.rules = rules if rules is not None else CATEGORY_RULES

    def for_merchant(self, merchant: str, household_id: str) -> Optional[CategoryGuess]:
        """Category for a receipt merchant: past transactions at the merchant, then rules."""
        category = self.history.find_latest_categorized_transaction(
            household_id, merchant, field="merchant"
        )
        if category:
            return CategoryGuess(id=category.id, name=category.name, source="history")
        return self.by_rules(merchant, household_id)

    def for_description(self, description: str, household_id: str) -> Optional[CategoryGuess]:
        """Category for a statement row: past transactions with that description, then rules."""
        category = self.history.find_latest_categorized_transaction(
            household_id, description, field="description"
        )
        if category:
            return CategoryGuess(id=category.id, name=category.name, source="history")
        return self.by_rules(description, household_id)

    def for_item(self, description: str, household_id: str) -> Optional[CategoryGuess]:
        """Line items are categorized by rules only."""
        return self.by_rules(description, household_id)

    def by_rules(self, text: str, household_id: str) -> Optional[CategoryGuess]:
        if not text:
            return None

        for rule in self.rules:
            if rule.matches(text):
                category = self.history.find_category_by_name(household_id, rule.category_name)
                if category:
                    return CategoryGuess(id=category.id, name=category.name, source="rule")
                return CategoryGuess(id=None, name=rule.category_name, source="rule")

        logger.debug("No category rule matched %r", text)
        return None
