"""
OCR backends: turn document bytes into raw text.

The extraction engines only depend on OCRBackend, so a real OCR service
can replace the static fixture backend without touching orchestration.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import ExtractionFailureError
from ..schemas.document import DocumentType

logger = logging.getLogger(__name__)


SAMPLE_RECEIPTS = [
    """STARBUCKS COFFEE
Jl. Sudirman No. 123
Jakarta Selatan 12190
Tel: (021) 123-4567

Date: 15/01/2024
Time: 14:30:25

Cashier: Sarah
Receipt: #12345

1x Americano Large        45,000
1x Croissant             25,000
1x Bottled Water         15,000

Subtotal                 85,000
Tax (10%)                 8,500

TOTAL                    93,500

Payment: Credit Card
Card: ****1234

Thank you for visiting!
Visit us again soon.""",
    """INDOMARET
Jl. Kebon Jeruk No. 45
Jakarta Barat 11530

Date: 16/01/2024
Time: 09:15:30

Cashier: Budi

Indomie Goreng           3,500
Teh Botol Sosro          4,000
Roti Tawar               8,500
Susu Ultra               12,000

Total                    28,000

Cash                     30,000
Change                    2,000

Terima kasih!""",
    """KFC
Mall Taman Anggrek
Jakarta Barat

Date: 17/01/2024
Time: 19:45:12

Order #: 789456

2x Paket Komplit         78,000
1x Hot & Crispy          25,000
2x Pepsi Regular         16,000

Subtotal                119,000
Tax 10%                  11,900

TOTAL                   130,900

Debit Card Payment
Thank you!""",
]

SAMPLE_BANK_STATEMENT = """BANK CENTRAL ASIA
PT Bank Central Asia Tbk

REKENING KORAN / ACCOUNT STATEMENT

Nama Nasabah: JOHN DOE
No. Rekening: 1234567890
Periode: 01 Jan 2024 - 31 Jan 2024

Saldo Awal: IDR 5,000,000.00

TANGGAL    KETERANGAN                           DEBET        KREDIT       SALDO
01/01/24   SALDO AWAL                                                    5,000,000.00
02/01/24   TRF DARI 9876543210                              1,000,000.00 6,000,000.00
03/01/24   TARIK TUNAI ATM BCA                 500,000.00                5,500,000.00
05/01/24   BAYAR LISTRIK PLN                   250,000.00                5,250,000.00
07/01/24   GAJI BULANAN                                     8,000,000.00 13,250,000.00
10/01/24   BELANJA INDOMARET                   125,000.00                13,125,000.00
12/01/24   TRANSFER KE 5555666677              2,000,000.00              11,125,000.00
15/01/24   BUNGA TABUNGAN                                   25,000.00    11,150,000.00
18/01/24   BIAYA ADMIN BULANAN                 15,000.00                 11,135,000.00
20/01/24   BELANJA SHOPEE                      350,000.00                10,785,000.00
25/01/24   CASHBACK SHOPEE                                  35,000.00    10,820,000.00
28/01/24   BAYAR KARTU KREDIT                  1,500,000.00              9,320,000.00
31/01/24   SALDO AKHIR                                                   9,320,000.00

Total Debet: IDR 4,740,000.00
Total Kredit: IDR 9,060,000.00

Saldo Akhir: IDR 9,320,000.00"""


class OCRBackend(ABC):
    """Turns document bytes into raw text."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine name recorded in OCR metadata."""
        pass

    @abstractmethod
    def recognize(self, file_bytes: bytes, mime_type: str, document_type: DocumentType) -> str:
        """
        Recognize text in a document.

        Raises:
            ExtractionFailureError: If the bytes cannot be turned into text
        """
        pass


class StaticTextBackend(OCRBackend):
    """
    Deterministic fixture backend for local runs and tests.

    Picks one of the sample texts by hashing the document bytes, so the
    same bytes always produce the same text.
    """

    def __init__(
        self,
        receipt_texts: Optional[list[str]] = None,
        statement_text: Optional[str] = None,
    ):
        self.receipt_texts = receipt_texts or SAMPLE_RECEIPTS
        self.statement_text = statement_text if statement_text is not None else SAMPLE_BANK_STATEMENT

    @property
    def name(self) -> str:
        return "static"

    def recognize(self, file_bytes: bytes, mime_type: str, document_type: DocumentType) -> str:
        if not file_bytes:
            raise ExtractionFailureError("Invalid document buffer")

        if document_type == DocumentType.BANK_STATEMENT:
            return self.statement_text

        digest = hashlib.sha256(file_bytes).digest()
        return self.receipt_texts[digest[0] % len(self.receipt_texts)]


class HttpOCRBackend(OCRBackend):
    """
    Client for an external OCR HTTP service.

    POSTs the raw bytes and expects ``{"text": "..."}`` back. Every call
    carries a hard request timeout so a stuck service cannot hold a
    worker thread forever.
    """

    DEFAULT_TIMEOUT = 25
    ENDPOINT = "/ocr"

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
    ):
        """
        Initialize OCR service client.

        Args:
            base_url: OCR service URL (e.g., "http://localhost:8884")
            token: Optional bearer token
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts for transient HTTP failures
            backoff_factor: Backoff factor for retries
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @property
    def name(self) -> str:
        return "http"

    def recognize(self, file_bytes: bytes, mime_type: str, document_type: DocumentType) -> str:
        if not file_bytes:
            raise ExtractionFailureError("Invalid document buffer")

        url = f"{self.base_url}{self.ENDPOINT}"
        try:
            response = self.session.post(
                url,
                data=file_bytes,
                headers={"Content-Type": mime_type},
                params={"document_type": document_type.value},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ExtractionFailureError(f"OCR request timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ExtractionFailureError(f"OCR request failed: {e}") from e

        if not response.ok:
            raise ExtractionFailureError(
                f"OCR service error {response.status_code}: {response.reason}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ExtractionFailureError(f"OCR service returned invalid JSON: {e}") from e

        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise ExtractionFailureError("OCR service response has no text")

        logger.debug("OCR service returned %d characters", len(text))
        return text
