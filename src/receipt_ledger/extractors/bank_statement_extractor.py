"""
Bank statement extractor.

Parses the text of an Indonesian-style account statement (rekening koran):
header fields (account number, bank, period) and the transaction table
between the column header line and the closing summary line.

Rows are classified as debit or credit by the column their movement
amount sits under, so statements that leave the unused column blank
parse correctly.
"""

import calendar
import re
from datetime import date as date_cls
from typing import Optional

from ..schemas.document import DocumentType
from ..schemas.extraction import (
    BankStatementInfo,
    BankStatementTransaction,
    ExtractedData,
    StatementPeriod,
)
from .base import BaseExtractor, parse_amount, split_lines

ACCOUNT_NUMBER_PATTERN = re.compile(r"No\.?\s*Rekening\s*:?\s*(\d+)", re.IGNORECASE)

BANK_NAME_PATTERNS = [
    re.compile(r"BANK\s+CENTRAL\s+ASIA", re.IGNORECASE),
    re.compile(r"\bBCA\b", re.IGNORECASE),
    re.compile(r"BANK\s+MANDIRI", re.IGNORECASE),
    re.compile(r"BANK\s+BNI", re.IGNORECASE),
    re.compile(r"BANK\s+BRI", re.IGNORECASE),
    re.compile(r"BANK\s+DANAMON", re.IGNORECASE),
    re.compile(r"BANK\s+CIMB", re.IGNORECASE),
]
# The bank name is printed in the letterhead
BANK_NAME_SEARCH_LINES = 10

PERIOD_PATTERN = re.compile(
    r"Periode\s*:?\s*(\d{1,2}\s+\w+\s+\d{4})\s*-\s*(\d{1,2}\s+\w+\s+\d{4})",
    re.IGNORECASE,
)

# Indonesian and English month names / abbreviations
MONTHS = {
    "jan": 1, "januari": 1, "january": 1,
    "feb": 2, "februari": 2, "february": 2,
    "mar": 3, "maret": 3, "march": 3,
    "apr": 4, "april": 4,
    "mei": 5, "may": 5,
    "jun": 6, "juni": 6, "june": 6,
    "jul": 7, "juli": 7, "july": 7,
    "agu": 8, "agt": 8, "agustus": 8, "aug": 8, "august": 8,
    "sep": 9, "september": 9,
    "okt": 10, "oktober": 10, "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "des": 12, "desember": 12, "dec": 12, "december": 12,
}

ROW_DATE_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})\b")
ROW_AMOUNT_PATTERN = re.compile(r"(?<![\d,.])\d[\d,]*\.\d{2}(?![\d])")

DEBIT_HEADER_PATTERN = re.compile(r"\b(DEBET|DEBIT|MUTASI\s+DEBET)\b", re.IGNORECASE)
CREDIT_HEADER_PATTERN = re.compile(r"\b(KREDIT|CREDIT)\b", re.IGNORECASE)

FOOTER_MARKERS = ("total", "saldo akhir")

REFERENCE_PATTERNS = [
    re.compile(r"\bREF\b\.?\s*:?\s*(\w+)", re.IGNORECASE),
    re.compile(r"\bTRX\b\.?\s*:?\s*(\w+)", re.IGNORECASE),
    re.compile(r"\bNO\b\.?\s*:?\s*(\w+)", re.IGNORECASE),
]

DEFAULT_ACCOUNT_NUMBER = "Unknown"
DEFAULT_BANK_NAME = "Unknown Bank"

# Characters per printed page, used to estimate page count
CHARS_PER_PAGE = 2000


def parse_month_date(date_str: str) -> Optional[str]:
    """Parse '01 Jan 2024' / '31 Januari 2024' into YYYY-MM-DD."""
    parts = date_str.lower().split()
    if len(parts) != 3:
        return None
    day, month_name, year = parts
    month = MONTHS.get(month_name)
    if month is None:
        return None
    try:
        return date_cls(int(year), month, int(day)).isoformat()
    except ValueError:
        return None


def parse_row_date(match: re.Match) -> Optional[str]:
    """Parse a DD/MM/YY or DD/MM/YYYY row date. Two-digit years pivot at 50."""
    day, month, year = (int(g) for g in match.groups())
    if year < 100:
        year += 2000 if year < 50 else 1900
    try:
        return date_cls(year, month, day).isoformat()
    except ValueError:
        return None


def current_month_period(today: Optional[date_cls] = None) -> StatementPeriod:
    today = today or date_cls.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return StatementPeriod(
        start_date=today.replace(day=1).isoformat(),
        end_date=today.replace(day=last_day).isoformat(),
    )


def extract_reference(description: str) -> Optional[str]:
    for pattern in REFERENCE_PATTERNS:
        match = pattern.search(description)
        if match:
            return match.group(1)
    return None


class BankStatementExtractor(BaseExtractor):
    """Extract account header and transaction rows from bank statement text."""

    @property
    def name(self) -> str:
        return "bank_statement_heuristic"

    @property
    def document_types(self) -> tuple[DocumentType, ...]:
        return (DocumentType.BANK_STATEMENT,)

    def parse(self, raw_text: str) -> ExtractedData:
        lines = split_lines(raw_text)
        if not lines:
            return ExtractedData()

        info = BankStatementInfo(
            account_number=self._extract_account_number(lines),
            bank_name=self._extract_bank_name(lines),
            period=self._extract_period(lines) or current_month_period(),
            transactions=self._extract_transactions(lines),
        )
        return ExtractedData(bank_statement=info)

    def score(self, data: ExtractedData, raw_text: str) -> float:
        if data.bank_statement is None:
            return self.scorer.EMPTY_CONFIDENCE
        period_found = self._extract_period(split_lines(raw_text)) is not None
        return self.scorer.statement_confidence(data.bank_statement, period_found)

    def page_count(self, raw_text: str) -> Optional[int]:
        return max(1, -(-len(raw_text) // CHARS_PER_PAGE))

    def _extract_account_number(self, lines: list[str]) -> str:
        for line in lines:
            match = ACCOUNT_NUMBER_PATTERN.search(line)
            if match:
                return match.group(1)
        return DEFAULT_ACCOUNT_NUMBER

    def _extract_bank_name(self, lines: list[str]) -> str:
        for line in lines[:BANK_NAME_SEARCH_LINES]:
            for pattern in BANK_NAME_PATTERNS:
                if pattern.search(line):
                    return line
        return DEFAULT_BANK_NAME

    def _extract_period(self, lines: list[str]) -> Optional[StatementPeriod]:
        for line in lines:
            match = PERIOD_PATTERN.search(line)
            if match:
                start = parse_month_date(match.group(1))
                end = parse_month_date(match.group(2))
                if start and end:
                    return StatementPeriod(start_date=start, end_date=end)
        return None

    def _extract_transactions(self, lines: list[str]) -> list[BankStatementTransaction]:
        header_index = next(
            (
                i
                for i, line in enumerate(lines)
                if "tanggal" in line.lower() and "keterangan" in line.lower()
            ),
            None,
        )
        if header_index is None:
            return []

        header = lines[header_index]
        debit_match = DEBIT_HEADER_PATTERN.search(header)
        credit_match = CREDIT_HEADER_PATTERN.search(header)
        debit_col = debit_match.start() if debit_match else None
        credit_col = credit_match.start() if credit_match else None

        transactions: list[BankStatementTransaction] = []
        for line in lines[header_index + 1 :]:
            lowered = line.lower()
            if any(marker in lowered for marker in FOOTER_MARKERS):
                break

            transaction = self._parse_row(line, debit_col, credit_col)
            if transaction:
                transactions.append(transaction)

        return transactions

    def _parse_row(
        self,
        line: str,
        debit_col: Optional[int],
        credit_col: Optional[int],
    ) -> Optional[BankStatementTransaction]:
        """
        Parse one table row: DATE DESCRIPTION [DEBET] [KREDIT] SALDO.

        Returns None for lines that are not rows and for rows without a
        movement amount (opening balance).
        """
        date_match = ROW_DATE_PATTERN.match(line)
        if not date_match:
            return None
        row_date = parse_row_date(date_match)
        if not row_date:
            return None

        amounts = list(ROW_AMOUNT_PATTERN.finditer(line, date_match.end()))
        if len(amounts) < 2:
            return None

        balance = parse_amount(amounts[-1].group(0))
        movements = amounts[:-1]
        description = line[date_match.end() : movements[0].start()].strip()

        if len(movements) >= 2:
            # Both columns printed: debit first, credit second
            debit = parse_amount(movements[0].group(0))
            credit = parse_amount(movements[1].group(0))
            is_debit = debit > 0
            value = debit if is_debit else credit
        else:
            value = parse_amount(movements[0].group(0))
            is_debit = self._is_debit_column(movements[0].start(), debit_col, credit_col)

        if value <= 0:
            return None

        return BankStatementTransaction(
            date=row_date,
            description=description,
            amount=-value if is_debit else value,
            balance=balance,
            type="DEBIT" if is_debit else "CREDIT",
            reference=extract_reference(description),
        )

    @staticmethod
    def _is_debit_column(position: int, debit_col: Optional[int], credit_col: Optional[int]) -> bool:
        """Pick the nearer of the DEBET/KREDIT header columns."""
        if debit_col is None and credit_col is None:
            return True
        if credit_col is None:
            return True
        if debit_col is None:
            return False
        return abs(position - debit_col) <= abs(position - credit_col)

