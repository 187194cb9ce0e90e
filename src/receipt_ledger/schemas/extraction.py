"""
Canonical extraction output (SSOT).

ExtractedData is the single structured shape every extraction engine
produces. OCRResult wraps it with identity, raw text and processing
metadata. Each sub-record's confidence reflects only that field.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .document import DocumentType


@dataclass
class MerchantInfo:
    """Merchant block from a receipt header."""

    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    confidence: float = 0.0


@dataclass
class AmountInfo:
    """Totals block from a receipt."""

    total: Decimal
    currency: str
    subtotal: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    confidence: float = 0.0


@dataclass
class DateInfo:
    """Document date."""

    date: str  # ISO format YYYY-MM-DD
    confidence: float = 0.0


@dataclass
class LineItem:
    """Individual line item from a receipt."""

    description: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    confidence: float = 0.0


@dataclass
class BankStatementTransaction:
    """One row of a bank statement. Debits carry a negative amount."""

    date: str  # ISO format YYYY-MM-DD
    description: str
    amount: Decimal
    balance: Decimal
    type: str  # DEBIT or CREDIT
    reference: Optional[str] = None


@dataclass
class StatementPeriod:
    start_date: str
    end_date: str


@dataclass
class BankStatementInfo:
    """Header fields and rows of a bank statement."""

    account_number: str
    bank_name: str
    period: StatementPeriod
    transactions: list[BankStatementTransaction] = field(default_factory=list)


@dataclass
class ExtractedData:
    """Structured fields extracted from one document. All parts optional."""

    merchant: Optional[MerchantInfo] = None
    amount: Optional[AmountInfo] = None
    date: Optional[DateInfo] = None
    items: list[LineItem] = field(default_factory=list)
    bank_statement: Optional[BankStatementInfo] = None

    def is_empty(self) -> bool:
        return (
            self.merchant is None
            and self.amount is None
            and self.date is None
            and not self.items
            and self.bank_statement is None
        )

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON storage."""
        return {
            "merchant": (
                {
                    "name": self.merchant.name,
                    "address": self.merchant.address,
                    "phone": self.merchant.phone,
                    "confidence": self.merchant.confidence,
                }
                if self.merchant
                else None
            ),
            "amount": (
                {
                    "total": str(self.amount.total),
                    "currency": self.amount.currency,
                    "subtotal": str(self.amount.subtotal) if self.amount.subtotal else None,
                    "tax": str(self.amount.tax) if self.amount.tax else None,
                    "confidence": self.amount.confidence,
                }
                if self.amount
                else None
            ),
            "date": (
                {"date": self.date.date, "confidence": self.date.confidence}
                if self.date
                else None
            ),
            "items": [
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": str(item.unit_price),
                    "total_price": str(item.total_price),
                    "confidence": item.confidence,
                }
                for item in self.items
            ],
            "bank_statement": (
                {
                    "account_number": self.bank_statement.account_number,
                    "bank_name": self.bank_statement.bank_name,
                    "period": {
                        "start_date": self.bank_statement.period.start_date,
                        "end_date": self.bank_statement.period.end_date,
                    },
                    "transactions": [
                        {
                            "date": tx.date,
                            "description": tx.description,
                            "amount": str(tx.amount),
                            "balance": str(tx.balance),
                            "type": tx.type,
                            "reference": tx.reference,
                        }
                        for tx in self.bank_statement.transactions
                    ],
                }
                if self.bank_statement
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExtractedData":
        """Deserialize from dictionary."""
        merchant = None
        if data.get("merchant"):
            m = data["merchant"]
            merchant = MerchantInfo(
                name=m["name"],
                address=m.get("address"),
                phone=m.get("phone"),
                confidence=m.get("confidence", 0.0),
            )

        amount = None
        if data.get("amount"):
            a = data["amount"]
            amount = AmountInfo(
                total=Decimal(a["total"]),
                currency=a["currency"],
                subtotal=Decimal(a["subtotal"]) if a.get("subtotal") else None,
                tax=Decimal(a["tax"]) if a.get("tax") else None,
                confidence=a.get("confidence", 0.0),
            )

        date = None
        if data.get("date"):
            date = DateInfo(date=data["date"]["date"], confidence=data["date"].get("confidence", 0.0))

        items = [
            LineItem(
                description=item["description"],
                quantity=int(item["quantity"]),
                unit_price=Decimal(item["unit_price"]),
                total_price=Decimal(item["total_price"]),
                confidence=item.get("confidence", 0.0),
            )
            for item in data.get("items", [])
        ]

        bank_statement = None
        if data.get("bank_statement"):
            bs = data["bank_statement"]
            bank_statement = BankStatementInfo(
                account_number=bs["account_number"],
                bank_name=bs["bank_name"],
                period=StatementPeriod(
                    start_date=bs["period"]["start_date"],
                    end_date=bs["period"]["end_date"],
                ),
                transactions=[
                    BankStatementTransaction(
                        date=tx["date"],
                        description=tx["description"],
                        amount=Decimal(tx["amount"]),
                        balance=Decimal(tx["balance"]),
                        type=tx["type"],
                        reference=tx.get("reference"),
                    )
                    for tx in bs.get("transactions", [])
                ],
            )

        return cls(
            merchant=merchant,
            amount=amount,
            date=date,
            items=items,
            bank_statement=bank_statement,
        )


@dataclass
class OCRMetadata:
    """Processing metadata for audit."""

    processing_time_ms: int = 0
    engine: str = ""
    document_format: str = ""
    page_count: Optional[int] = None
    image_quality: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "processing_time_ms": self.processing_time_ms,
            "engine": self.engine,
            "document_format": self.document_format,
            "page_count": self.page_count,
            "image_quality": self.image_quality,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OCRMetadata":
        return cls(
            processing_time_ms=data.get("processing_time_ms", 0),
            engine=data.get("engine", ""),
            document_format=data.get("document_format", ""),
            page_count=data.get("page_count"),
            image_quality=data.get("image_quality"),
        )


@dataclass
class OCRResult:
    """
    Output of running one extraction engine over one document.

    A reprocess creates a new result; older results are kept for audit
    and only the newest is authoritative.
    """

    id: str
    document_id: str
    document_type: DocumentType
    confidence: float
    extracted_data: ExtractedData
    raw_text: str
    processed_at: str  # ISO timestamp
    metadata: OCRMetadata = field(default_factory=OCRMetadata)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "document_type": self.document_type.value,
            "confidence": self.confidence,
            "extracted_data": self.extracted_data.to_dict(),
            "raw_text": self.raw_text,
            "processed_at": self.processed_at,
            "metadata": self.metadata.to_dict(),
        }
