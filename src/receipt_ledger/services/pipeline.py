"""
Document processing pipeline.

Coordinates the lifecycle of an uploaded document:
1. Validate and store the upload, record it as PENDING
2. Move it to PROCESSING, extract on a worker thread under a deadline
3. Generate suggestions and persist them with the OCR result atomically
4. On failure mark it FAILED; background runs retry transient failures
   with exponential backoff
"""

import logging
import time
import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import date as date_cls
from typing import Any, Optional

from ..config import ProcessingConfig
from ..confidence import ConfidenceScorer
from ..errors import (
    AlreadyProcessingError,
    NotFoundError,
    ProcessingTimeoutError,
    ReceiptLedgerError,
    TransientError,
)
from ..extractors import ExtractorRouter
from ..intake import MAX_UPLOAD_BYTES, UploadedFile, validate_upload
from ..schemas.document import DocumentType, DocumentUpload, ProcessingStatus, utc_timestamp
from ..schemas.extraction import OCRResult
from ..schemas.suggestion import TransactionSuggestion
from ..state_store import StateStore
from ..storage import DocumentStore
from ..suggestions import SuggestionGenerator
from .access import HouseholdAccess
from .metrics import ProcessingMetrics
from .review import ValidationReport, review_ocr_result

logger = logging.getLogger(__name__)


class PipelineService:
    """
    Orchestrates upload, extraction, suggestion generation and status transitions.

    Two thread pools: one runs scheduled background jobs, the other runs the
    extraction step under a deadline. A job blocks on its extraction future,
    so the two must not share a pool.
    """

    def __init__(
        self,
        store: StateStore,
        document_store: DocumentStore,
        router: ExtractorRouter,
        generator: SuggestionGenerator,
        scorer: Optional[ConfidenceScorer] = None,
        config: Optional[ProcessingConfig] = None,
        access: Optional[HouseholdAccess] = None,
        metrics: Optional[ProcessingMetrics] = None,
        sleep: Callable[[float], None] = time.sleep,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ):
        self.store = store
        self.document_store = document_store
        self.router = router
        self.generator = generator
        self.scorer = scorer or ConfidenceScorer()
        self.config = config or ProcessingConfig()
        self.access = access or HouseholdAccess(store)
        self.metrics = metrics or ProcessingMetrics()
        self.max_upload_bytes = max_upload_bytes
        self._sleep = sleep
        self._jobs = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="pipeline-job"
        )
        self._extraction = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="pipeline-extract"
        )

    # Intake

    def upload(
        self,
        upload: UploadedFile,
        household_id: str,
        document_type: DocumentType,
        user_id: str,
        description: Optional[str] = None,
        auto_process: bool = True,
    ) -> DocumentUpload:
        """
        Accept an upload and record it as PENDING.

        Validation and the membership check both happen before any bytes
        are written. With auto_process, background processing is scheduled
        and the call returns without waiting for it.
        """
        validate_upload(upload, document_type, self.max_upload_bytes)
        self.access.verify(household_id, user_id)

        token = self.document_store.store(upload.data, household_id, upload.file_name)
        document = DocumentUpload(
            id=str(uuid.uuid4()),
            household_id=household_id,
            file_name=upload.file_name,
            file_size=upload.byte_size,
            mime_type=upload.mime_type.lower(),
            document_type=document_type,
            status=ProcessingStatus.PENDING,
            uploaded_by=user_id,
            uploaded_at=utc_timestamp(),
            storage_token=token,
            description=description,
        )

        try:
            self.store.insert_document(document)
        except Exception:
            self.document_store.delete(token)
            raise

        self.metrics.record_upload(document_type, document.file_size)
        logger.info(
            f"Uploaded {document_type.value} document {document.id} "
            f"for household {household_id} ({document.file_size} bytes)"
        )

        if auto_process:
            self.schedule_processing(document.id)
        return document

    # Processing

    def process_document(self, document_id: str, force_reprocess: bool = False) -> OCRResult:
        """
        Process a document synchronously and return its OCR result.

        A COMPLETED (or REQUIRES_REVIEW) document returns its latest result
        unless force_reprocess is set. Any failure after the document enters
        PROCESSING marks it FAILED and re-raises.

        Raises:
            NotFoundError: Unknown document
            AlreadyProcessingError: Another run holds the document
            ProcessingTimeoutError: Extraction exceeded the configured deadline
        """
        document = self.store.get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document not found: {document_id}")

        if not force_reprocess and document.status in (
            ProcessingStatus.COMPLETED,
            ProcessingStatus.REQUIRES_REVIEW,
        ):
            latest = self.store.get_latest_ocr_result(document_id)
            if latest is not None:
                logger.info(f"Document {document_id} already processed, returning latest result")
                return latest

        self.store.start_processing(document_id, force=force_reprocess)
        self.metrics.record_processing_start(document_id, document.document_type)
        logger.info(f"Processing document {document_id} ({document.document_type.value})")

        try:
            result, suggestions = self._run_with_deadline(document)
            status = self.scorer.processing_status(result.confidence)
            self.store.complete_processing(document_id, result, suggestions, status)
        except Exception as e:
            message = str(e) or type(e).__name__
            self.store.update_document_status(
                document_id, ProcessingStatus.FAILED, error_message=message
            )
            self.metrics.record_processing_end(
                document_id, ProcessingStatus.FAILED, error_message=message
            )
            logger.error(f"Processing failed for document {document_id}: {message}")
            raise

        self.metrics.record_processing_end(document_id, status, confidence=result.confidence)
        if suggestions:
            self.metrics.record_suggestions(
                document_id,
                len(suggestions),
                sum(s.confidence for s in suggestions) / len(suggestions),
            )
        return result

    def _run_with_deadline(
        self, document: DocumentUpload
    ) -> tuple[OCRResult, list[TransactionSuggestion]]:
        future = self._extraction.submit(self._extract_and_suggest, document)
        try:
            return future.result(timeout=self.config.timeout_seconds)
        except FuturesTimeoutError:
            # A late finish is discarded: nothing is persisted from the worker
            future.cancel()
            raise ProcessingTimeoutError(
                f"Processing exceeded {self.config.timeout_seconds:g}s for document {document.id}"
            )

    def _extract_and_suggest(
        self, document: DocumentUpload
    ) -> tuple[OCRResult, list[TransactionSuggestion]]:
        file_bytes = self.document_store.retrieve(document.storage_token)
        output = self.router.extract(file_bytes, document.mime_type, document.document_type)
        result = OCRResult(
            id=str(uuid.uuid4()),
            document_id=document.id,
            document_type=document.document_type,
            confidence=output.confidence,
            extracted_data=output.extracted_data,
            raw_text=output.raw_text,
            processed_at=utc_timestamp(),
            metadata=output.metadata,
        )
        suggestions = self.generator.generate(result, document.household_id)
        return result, suggestions

    def process_with_retry(self, document_id: str) -> ProcessingStatus:
        """
        Process with bounded retries and exponential backoff.

        Only transient failures (timeouts, engine failures) are retried.
        After the final failed attempt the document is left FAILED.

        Returns:
            The document's final status
        """
        max_attempts = self.config.max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                self.process_document(document_id)
            except TransientError as e:
                if attempt >= max_attempts:
                    logger.error(
                        f"Processing failed after {attempt} attempts for document {document_id}: {e}"
                    )
                    self.store.update_document_status(
                        document_id,
                        ProcessingStatus.FAILED,
                        error_message=f"Processing failed after {attempt} attempts: {e}",
                    )
                    return ProcessingStatus.FAILED
                delay = self.config.backoff_base**attempt
                logger.warning(
                    f"Attempt {attempt}/{max_attempts} failed for document {document_id}: {e}; "
                    f"retrying in {delay:g}s"
                )
                self._sleep(delay)
            except AlreadyProcessingError:
                logger.info(f"Document {document_id} is already being processed elsewhere")
                return ProcessingStatus.PROCESSING
            except ReceiptLedgerError as e:
                logger.error(f"Non-retryable failure for document {document_id}: {e}")
                document = self.store.get_document(document_id)
                return document.status if document else ProcessingStatus.FAILED
            else:
                document = self.store.get_document(document_id)
                return document.status if document else ProcessingStatus.COMPLETED

        return ProcessingStatus.FAILED

    def schedule_processing(self, document_id: str) -> "Future[ProcessingStatus]":
        """Queue background processing; the returned future resolves to the final status."""
        logger.debug(f"Scheduling processing for document {document_id}")
        return self._jobs.submit(self._run_job, document_id)

    def _run_job(self, document_id: str) -> ProcessingStatus:
        try:
            return self.process_with_retry(document_id)
        except Exception as e:
            logger.exception(f"Background processing crashed for document {document_id}")
            self.store.update_document_status(
                document_id, ProcessingStatus.FAILED, error_message=str(e) or type(e).__name__
            )
            return ProcessingStatus.FAILED

    # Queries

    def get_document(self, document_id: str, user_id: Optional[str] = None) -> DocumentUpload:
        document = self.store.get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document not found: {document_id}")
        if user_id is not None:
            self.access.verify(document.household_id, user_id)
        return document

    def list_documents(
        self, household_id: str, user_id: Optional[str] = None
    ) -> list[DocumentUpload]:
        if user_id is not None:
            self.access.verify(household_id, user_id)
        return self.store.list_documents(household_id)

    def get_latest_result(self, document_id: str) -> Optional[OCRResult]:
        self.get_document(document_id)
        return self.store.get_latest_ocr_result(document_id)

    def get_suggestions(
        self, document_id: str, include_superseded: bool = False
    ) -> list[TransactionSuggestion]:
        """
        Suggestions for a document.

        By default only those of the newest OCR result are returned; earlier
        runs' suggestions stay stored but are superseded.
        """
        self.get_document(document_id)
        if include_superseded:
            return self.store.list_suggestions(document_id)
        latest = self.store.get_latest_ocr_result(document_id)
        if latest is None:
            return []
        return self.store.list_suggestions(document_id, ocr_result_id=latest.id)

    def validate_ocr_result(
        self,
        ocr_result_id: str,
        corrections: Optional[dict[str, Any]] = None,
        today: Optional[date_cls] = None,
    ) -> ValidationReport:
        result = self.store.get_ocr_result(ocr_result_id)
        if result is None:
            raise NotFoundError(f"OCR result not found: {ocr_result_id}")
        return review_ocr_result(result, corrections, today=today)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; with wait, block until queued jobs finish."""
        self._jobs.shutdown(wait=wait)
        self._extraction.shutdown(wait=wait)
