"""
Receipt text heuristics extractor.

Extracts merchant, date, totals and line items from OCR text using
ordered pattern rules, line by line.

Supported formats:
- Dates: d/m/Y (with or without "Date:" label), Y-m-d, d-m-Y
- Amounts: comma-grouped, e.g. 93,500 or 1,250.50
- Currency: IDR unless stated otherwise
"""

import re
from datetime import date as date_cls
from decimal import Decimal
from typing import Optional

from ..schemas.document import DocumentType
from ..schemas.extraction import AmountInfo, DateInfo, ExtractedData, LineItem, MerchantInfo
from .base import BaseExtractor, parse_amount, split_lines

# Date patterns, tried in order against each line
DATE_PATTERNS = [
    (re.compile(r"Date:\s*(\d{1,2})/(\d{1,2})/(\d{4})", re.IGNORECASE), "dmy"),
    (re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b"), "dmy"),
    (re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b"), "ymd"),
    (re.compile(r"\b(\d{1,2})-(\d{1,2})-(\d{4})\b"), "dmy"),
]

ADDRESS_MARKERS = ("jl.", "jalan", "street", "road")

PHONE_PATTERNS = [
    re.compile(r"\(\d{3}\)\s*\d{3}-\d{4}"),
    re.compile(r"\d{4}-\d{4}"),
]
PHONE_LABELS = ("tel:", "phone:")

# "Subtotal" must not be read as the total
TOTAL_PATTERN = re.compile(r"\bTOTAL\b\s*:?\s*([\d,]+\.?\d*)", re.IGNORECASE)
SUBTOTAL_PATTERN = re.compile(r"\bSubtotal\b\s*:?\s*([\d,]+\.?\d*)", re.IGNORECASE)
TAX_PATTERN = re.compile(r"\bTax\s*\([^)]+\)\s*:?\s*([\d,]+\.?\d*)", re.IGNORECASE)

# 2x Paket Komplit   78,000
ITEM_PATTERN = re.compile(r"^(\d+)x?\s+(.+?)\s+([\d,]+\.?\d*)$", re.IGNORECASE)

DEFAULT_CURRENCY = "IDR"

MERCHANT_CONFIDENCE = 0.8
DATE_FOUND_CONFIDENCE = 0.9
DATE_DEFAULT_CONFIDENCE = 0.3
AMOUNT_FOUND_CONFIDENCE = 0.9
AMOUNT_MISSING_CONFIDENCE = 0.3
ITEM_CONFIDENCE = 0.8


def parse_date_parts(match: re.Match, order: str) -> Optional[str]:
    """Turn a date regex match into YYYY-MM-DD, or None if it is not a real date."""
    try:
        if order == "ymd":
            year, month, day = (int(g) for g in match.groups())
        else:
            # Indonesian receipts are day-first
            day, month, year = (int(g) for g in match.groups())
        if year <= 1900:
            return None
        return date_cls(year, month, day).isoformat()
    except ValueError:
        return None


class ReceiptExtractor(BaseExtractor):
    """
    Extract receipt data from OCR text using pattern matching.

    Also used for invoices, which share the receipt layout.
    """

    def __init__(self, backend, scorer=None, default_currency: str = DEFAULT_CURRENCY):
        super().__init__(backend, scorer)
        self.default_currency = default_currency

    @property
    def name(self) -> str:
        return "receipt_heuristic"

    @property
    def document_types(self) -> tuple[DocumentType, ...]:
        return (DocumentType.RECEIPT, DocumentType.INVOICE)

    def parse(self, raw_text: str) -> ExtractedData:
        lines = split_lines(raw_text)
        if not lines:
            return ExtractedData()

        return ExtractedData(
            merchant=self._extract_merchant(lines),
            amount=self._extract_amount(lines),
            date=self._extract_date(lines),
            items=self._extract_items(lines),
        )

    def score(self, data: ExtractedData, raw_text: str) -> float:
        return self.scorer.overall_confidence(data, raw_text)

    def _extract_merchant(self, lines: list[str]) -> MerchantInfo:
        """Merchant name is the first line; address and phone are found by markers."""
        address = next(
            (line for line in lines if any(marker in line.lower() for marker in ADDRESS_MARKERS)),
            None,
        )
        phone = next(
            (
                line
                for line in lines
                if any(label in line.lower() for label in PHONE_LABELS)
                or any(pattern.search(line) for pattern in PHONE_PATTERNS)
            ),
            None,
        )
        return MerchantInfo(
            name=lines[0],
            address=address,
            phone=phone,
            confidence=MERCHANT_CONFIDENCE,
        )

    def _extract_date(self, lines: list[str]) -> DateInfo:
        for line in lines:
            for pattern, order in DATE_PATTERNS:
                match = pattern.search(line)
                if match:
                    parsed = parse_date_parts(match, order)
                    if parsed:
                        return DateInfo(date=parsed, confidence=DATE_FOUND_CONFIDENCE)

        # No date on the receipt: assume today, flagged as uncertain
        return DateInfo(date=date_cls.today().isoformat(), confidence=DATE_DEFAULT_CONFIDENCE)

    def _extract_amount(self, lines: list[str]) -> AmountInfo:
        total = Decimal("0")
        subtotal = Decimal("0")
        tax = Decimal("0")

        # Later matches win: the grand total is usually printed last
        for line in lines:
            total_match = TOTAL_PATTERN.search(line)
            if total_match:
                total = parse_amount(total_match.group(1))

            subtotal_match = SUBTOTAL_PATTERN.search(line)
            if subtotal_match:
                subtotal = parse_amount(subtotal_match.group(1))

            tax_match = TAX_PATTERN.search(line)
            if tax_match:
                tax = parse_amount(tax_match.group(1))

        return AmountInfo(
            total=total,
            currency=self.default_currency,
            subtotal=subtotal if subtotal > 0 else None,
            tax=tax if tax > 0 else None,
            confidence=AMOUNT_FOUND_CONFIDENCE if total > 0 else AMOUNT_MISSING_CONFIDENCE,
        )

    def _extract_items(self, lines: list[str]) -> list[LineItem]:
        items: list[LineItem] = []
        for line in lines:
            match = ITEM_PATTERN.match(line)
            if not match:
                continue

            quantity = int(match.group(1)) or 1
            description = match.group(2).strip()
            total_price = parse_amount(match.group(3))
            if total_price <= 0:
                continue

            items.append(
                LineItem(
                    description=description,
                    quantity=quantity,
                    unit_price=(total_price / quantity).quantize(Decimal("0.01")),
                    total_price=total_price,
                    confidence=ITEM_CONFIDENCE,
                )
            )
        return items
