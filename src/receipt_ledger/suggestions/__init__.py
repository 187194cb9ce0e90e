"""
Transaction suggestions: category inference and generation.
"""

from .categorizer import CATEGORY_RULES, Categorizer, CategoryGuess, CategoryRule
from .generator import SuggestionGenerator, extract_merchant_from_description

__all__ = [
    "CATEGORY_RULES",
    "Categorizer",
    "CategoryGuess",
    "CategoryRule",
    "SuggestionGenerator",
    "extract_merchant_from_description",
]
