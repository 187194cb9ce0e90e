"""
Tests for the HTTP OCR backend.

These tests use responses library to mock HTTP requests,
so no OCR service is needed.
"""

import json

import pytest
import requests
import responses

from receipt_ledger.errors import ExtractionFailureError
from receipt_ledger.extractors import HttpOCRBackend, ReceiptExtractor
from receipt_ledger.schemas import DocumentType

OCR_URL = "http://ocr.test:8884"


class TestHttpOCRBackend:
    """Tests for HttpOCRBackend."""

    @pytest.fixture
    def backend(self):
        return HttpOCRBackend(OCR_URL, token="secret", timeout=5, max_retries=0)

    @responses.activate
    def test_recognize_success(self, backend, jpeg_bytes):
        responses.add(
            responses.POST,
            f"{OCR_URL}/ocr",
            json={"text": "STARBUCKS COFFEE\nTOTAL 93,500"},
            status=200,
        )

        text = backend.recognize(jpeg_bytes, "image/jpeg", DocumentType.RECEIPT)

        assert text == "STARBUCKS COFFEE\nTOTAL 93,500"
        request = responses.calls[0].request
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["Content-Type"] == "image/jpeg"
        assert "document_type=RECEIPT" in request.url
        assert request.body == jpeg_bytes

    def test_trailing_slash_stripped(self):
        assert HttpOCRBackend(f"{OCR_URL}/").base_url == OCR_URL

    @responses.activate
    def test_server_error(self, backend, jpeg_bytes):
        responses.add(responses.POST, f"{OCR_URL}/ocr", status=500)

        with pytest.raises(ExtractionFailureError):
            backend.recognize(jpeg_bytes, "image/jpeg", DocumentType.RECEIPT)

    @responses.activate
    def test_invalid_json(self, backend, jpeg_bytes):
        responses.add(responses.POST, f"{OCR_URL}/ocr", body="not json", status=200)

        with pytest.raises(ExtractionFailureError, match="invalid JSON"):
            backend.recognize(jpeg_bytes, "image/jpeg", DocumentType.RECEIPT)

    @responses.activate
    def test_missing_text_field(self, backend, jpeg_bytes):
        responses.add(
            responses.POST, f"{OCR_URL}/ocr", body=json.dumps({"pages": []}), status=200
        )

        with pytest.raises(ExtractionFailureError, match="no text"):
            backend.recognize(jpeg_bytes, "image/jpeg", DocumentType.RECEIPT)

    @responses.activate
    def test_timeout(self, backend, jpeg_bytes):
        responses.add(
            responses.POST, f"{OCR_URL}/ocr", body=requests.exceptions.ReadTimeout("slow")
        )

        with pytest.raises(ExtractionFailureError, match="timed out"):
            backend.recognize(jpeg_bytes, "image/jpeg", DocumentType.RECEIPT)

    @responses.activate
    def test_connection_error(self, backend, jpeg_bytes):
        responses.add(
            responses.POST,
            f"{OCR_URL}/ocr",
            body=requests.exceptions.ConnectionError("refused"),
        )

        with pytest.raises(ExtractionFailureError, match="failed"):
            backend.recognize(jpeg_bytes, "image/jpeg", DocumentType.RECEIPT)

    def test_empty_bytes_never_sent(self, backend):
        with pytest.raises(ExtractionFailureError):
            backend.recognize(b"", "image/jpeg", DocumentType.RECEIPT)

    @responses.activate
    def test_feeds_receipt_extractor(self, backend, jpeg_bytes, starbucks_text):
        """A remote backend plugs into the same extraction engine."""
        responses.add(responses.POST, f"{OCR_URL}/ocr", json={"text": starbucks_text})

        output = ReceiptExtractor(backend).extract(jpeg_bytes, "image/jpeg", DocumentType.RECEIPT)

        assert output.extracted_data.merchant.name == "STARBUCKS COFFEE"
        assert output.metadata.engine == "receipt_heuristic/http"
