"""
Configuration management (SSOT).

This module defines ALL configuration for the receipt-ledger pipeline.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- Storage never escapes storage.root_dir
- Timeouts and retry ceilings are passed to services at construction,
  never read from module-level globals
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class StorageConfig:
    """Document store configuration."""

    root_dir: Path = field(default_factory=lambda: Path("data/uploads"))
    # 10 MiB upload ceiling
    max_upload_bytes: int = 10 * 1024 * 1024


@dataclass
class ProcessingConfig:
    """Pipeline orchestrator configuration.

    - timeout_seconds: wall-clock budget for extract + generate
    - max_attempts: ceiling for the background retry loop
    - backoff_base: sleep is backoff_base ** attempt seconds between attempts
    - review_opt_in: park low-confidence results in REQUIRES_REVIEW
    """

    timeout_seconds: float = 30.0
    max_attempts: int = 3
    backoff_base: float = 2.0
    review_opt_in: bool = False
    review_threshold: float = 0.60
    # Worker threads for background processing
    max_workers: int = 4


@dataclass
class OCRConfig:
    """OCR backend configuration.

    backend:
    - "static": deterministic text fixture (tests, local runs)
    - "http": external OCR service reached over HTTP
    """

    backend: str = "static"
    url: str | None = None
    token: str | None = None
    # Hard deadline for a single backend call (seconds)
    timeout_seconds: int = 25
    max_retries: int = 2

    def is_remote(self) -> bool:
        """Check if the OCR backend is a network service."""
        return self.backend == "http"


@dataclass
class Config:
    """Application configuration (SSOT)."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    state_db_path: Path = field(default_factory=lambda: Path("data/state.db"))
    default_currency: str = "IDR"

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if self.storage.max_upload_bytes <= 0:
            errors.append("storage.max_upload_bytes must be positive")

        if self.processing.timeout_seconds <= 0:
            errors.append("processing.timeout_seconds must be positive")
        if self.processing.max_attempts < 1:
            errors.append("processing.max_attempts must be at least 1")
        if self.processing.backoff_base < 1:
            errors.append("processing.backoff_base must be >= 1")
        if not 0.0 <= self.processing.review_threshold <= 1.0:
            errors.append("processing.review_threshold must be within [0, 1]")
        if self.processing.max_workers < 1:
            errors.append("processing.max_workers must be at least 1")

        if self.ocr.backend not in ("static", "http"):
            errors.append(f"ocr.backend must be 'static' or 'http', got {self.ocr.backend!r}")
        if self.ocr.is_remote() and not self.ocr.url:
            errors.append("ocr.url is required when ocr.backend is 'http'")

        if len(self.default_currency) != 3:
            errors.append("default_currency must be an ISO 4217 code")

        return errors


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - RECEIPT_LEDGER_STORAGE_ROOT
    - RECEIPT_LEDGER_STATE_DB
    - RECEIPT_LEDGER_OCR_BACKEND (static/http)
    - RECEIPT_LEDGER_OCR_URL
    - RECEIPT_LEDGER_OCR_TOKEN
    - RECEIPT_LEDGER_TIMEOUT (processing timeout in seconds)
    - RECEIPT_LEDGER_REVIEW_OPT_IN (true/false)
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    # Storage config
    storage_data = data.get("storage", {})
    storage = StorageConfig(
        root_dir=Path(
            os.environ.get(
                "RECEIPT_LEDGER_STORAGE_ROOT", storage_data.get("root_dir", "data/uploads")
            )
        ),
        max_upload_bytes=int(storage_data.get("max_upload_bytes", 10 * 1024 * 1024)),
    )

    # Processing config
    processing_data = data.get("processing", {})
    review_env = os.environ.get("RECEIPT_LEDGER_REVIEW_OPT_IN", "").lower()
    review_opt_in = processing_data.get("review_opt_in", False)
    if review_env == "true":
        review_opt_in = True
    elif review_env == "false":
        review_opt_in = False

    processing = ProcessingConfig(
        timeout_seconds=float(
            os.environ.get("RECEIPT_LEDGER_TIMEOUT", processing_data.get("timeout_seconds", 30))
        ),
        max_attempts=int(processing_data.get("max_attempts", 3)),
        backoff_base=float(processing_data.get("backoff_base", 2)),
        review_opt_in=review_opt_in,
        review_threshold=float(processing_data.get("review_threshold", 0.60)),
        max_workers=int(processing_data.get("max_workers", 4)),
    )

    # OCR config
    ocr_data = data.get("ocr", {})
    ocr = OCRConfig(
        backend=os.environ.get("RECEIPT_LEDGER_OCR_BACKEND", ocr_data.get("backend", "static")),
        url=os.environ.get("RECEIPT_LEDGER_OCR_URL", ocr_data.get("url")),
        token=os.environ.get("RECEIPT_LEDGER_OCR_TOKEN", ocr_data.get("token")),
        timeout_seconds=int(ocr_data.get("timeout_seconds", 25)),
        max_retries=int(ocr_data.get("max_retries", 2)),
    )

    state_db = os.environ.get(
        "RECEIPT_LEDGER_STATE_DB", data.get("state_db_path", "data/state.db")
    )

    return Config(
        storage=storage,
        processing=processing,
        ocr=ocr,
        state_db_path=Path(state_db),
        default_currency=data.get("default_currency", "IDR"),
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# receipt-ledger Pipeline Configuration

storage:
  root_dir: "data/uploads"                # All document bytes live below this directory
  max_upload_bytes: 10485760              # 10 MiB

processing:
  timeout_seconds: 30                     # Budget for extract + suggestion generation
  max_attempts: 3                         # Background retry ceiling
  backoff_base: 2                         # Sleep backoff_base ** attempt seconds between attempts
  review_opt_in: false                    # Park low-confidence results in REQUIRES_REVIEW
  review_threshold: 0.60                  # Below this confidence: REQUIRES_REVIEW (if opted in)
  max_workers: 4                          # Background processing threads

ocr:
  backend: "static"                       # static (fixture) or http (external OCR service)
  url: null                               # Required for the http backend
  token: null
  timeout_seconds: 25                     # Hard deadline per backend call
  max_retries: 2

# State database path
state_db_path: "data/state.db"

# Currency assumed when a document does not state one
default_currency: "IDR"
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
