"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path

from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..confidence import ConfidenceScorer, ConfidenceThresholds
from ..errors import ReceiptLedgerError
from ..extractors import ExtractorRouter, HttpOCRBackend, OCRBackend, StaticTextBackend
from ..intake import UploadedFile
from ..schemas.document import DocumentType, ProcessingStatus
from ..schemas.ledger import Account
from ..services import ApprovalService, HouseholdAccess, PipelineService, ProcessingMetrics
from ..state_store import StateStore
from ..storage import DocumentStore
from ..storage.document_store import DEFAULT_MIME_TYPE, MIME_TYPES_BY_EXTENSION
from ..suggestions import Categorizer, SuggestionGenerator

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@dataclass
class Services:
    """Wired services for one CLI invocation."""

    store: StateStore
    pipeline: PipelineService
    approval: ApprovalService


def build_backend(config: Config) -> OCRBackend:
    if config.ocr.is_remote():
        return HttpOCRBackend(
            base_url=config.ocr.url,
            token=config.ocr.token,
            timeout=config.ocr.timeout_seconds,
            max_retries=config.ocr.max_retries,
        )
    return StaticTextBackend()


def build_services(config: Config) -> Services:
    """Wire the pipeline from configuration."""
    errors = config.validate()
    if errors:
        raise ConfigValidationError("; ".join(errors))

    store = StateStore(config.state_db_path)
    scorer = ConfidenceScorer(
        ConfidenceThresholds(review_threshold=config.processing.review_threshold),
        review_opt_in=config.processing.review_opt_in,
    )
    access = HouseholdAccess(store)
    metrics = ProcessingMetrics()

    pipeline = PipelineService(
        store=store,
        document_store=DocumentStore(config.storage.root_dir),
        router=ExtractorRouter(
            backend=build_backend(config),
            scorer=scorer,
            default_currency=config.default_currency,
        ),
        generator=SuggestionGenerator(
            Categorizer(store), scorer, default_currency=config.default_currency
        ),
        scorer=scorer,
        config=config.processing,
        access=access,
        metrics=metrics,
        max_upload_bytes=config.storage.max_upload_bytes,
    )
    return Services(
        store=store,
        pipeline=pipeline,
        approval=ApprovalService(store, access=access, metrics=metrics),
    )


def guess_mime_type(path: Path) -> str:
    return MIME_TYPES_BY_EXTENSION.get(path.suffix.lower(), DEFAULT_MIME_TYPE)


def parse_corrections(pairs: list[str] | None) -> dict[str, str] | None:
    """Turn repeated --set field=value options into a corrections mapping."""
    if not pairs:
        return None
    corrections: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise argparse.ArgumentTypeError(f"Expected field=value, got {pair!r}")
        corrections[key.strip()] = value.strip()
    return corrections


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="receipt-ledger",
        description="OCR receipts and bank statements into reviewed ledger transactions",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-config", help="Write a default config file")

    member_parser = subparsers.add_parser("add-member", help="Add a user to a household")
    member_parser.add_argument("--household", required=True, help="Household ID")
    member_parser.add_argument("--user", required=True, help="User ID")

    account_parser = subparsers.add_parser("create-account", help="Create a ledger account")
    account_parser.add_argument("--household", required=True, help="Household ID")
    account_parser.add_argument("--name", required=True, help="Account name")
    account_parser.add_argument("--currency", help="ISO 4217 code (default: config currency)")
    account_parser.add_argument(
        "--opening-balance", default="0", help="Opening balance (default: 0)"
    )

    # upload command
    upload_parser = subparsers.add_parser("upload", help="Upload and process a document")
    upload_parser.add_argument("file", type=Path, help="Document to upload")
    upload_parser.add_argument("--household", required=True, help="Household ID")
    upload_parser.add_argument("--user", required=True, help="Uploading user ID")
    upload_parser.add_argument(
        "--type",
        choices=[t.value for t in DocumentType],
        default=DocumentType.RECEIPT.value,
        help="Document type (default: RECEIPT)",
    )
    upload_parser.add_argument("--mime", help="MIME type (default: guessed from extension)")
    upload_parser.add_argument("--description", help="Free-form description")
    upload_parser.add_argument(
        "--no-process",
        action="store_true",
        help="Only store the document; process later with 'process'",
    )

    process_parser = subparsers.add_parser("process", help="Process a stored document")
    process_parser.add_argument("document_id", help="Document ID")
    process_parser.add_argument(
        "--force",
        action="store_true",
        help="Reprocess even if a result already exists",
    )

    list_parser = subparsers.add_parser("list", help="List a household's documents")
    list_parser.add_argument("--household", required=True, help="Household ID")

    suggestions_parser = subparsers.add_parser(
        "suggestions", help="Show transaction suggestions for a document"
    )
    suggestions_parser.add_argument("document_id", help="Document ID")
    suggestions_parser.add_argument(
        "--all",
        action="store_true",
        help="Include suggestions from superseded OCR runs",
    )

    approve_parser = subparsers.add_parser("approve", help="Approve a suggestion into the ledger")
    approve_parser.add_argument("suggestion_id", help="Suggestion ID")
    approve_parser.add_argument("--account", required=True, help="Target account ID")
    approve_parser.add_argument("--user", required=True, help="Approving user ID")
    approve_parser.add_argument(
        "--set",
        action="append",
        metavar="FIELD=VALUE",
        help="Correct a field before approval (repeatable)",
    )

    validate_parser = subparsers.add_parser("validate", help="Review an OCR result")
    validate_parser.add_argument("ocr_result_id", help="OCR result ID")
    validate_parser.add_argument(
        "--set",
        action="append",
        metavar="PATH=VALUE",
        help="Proposed correction, e.g. amount.total=93500 (repeatable)",
    )

    subparsers.add_parser("status", help="Show pipeline status")

    return parser


def cmd_init_config(config_path: Path) -> int:
    if config_path.exists():
        print(f"⚠️  Config already exists: {config_path}")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote default config to {config_path}")
    return 0


def cmd_add_member(services: Services, household_id: str, user_id: str) -> int:
    services.store.add_household_member(household_id, user_id)
    print(f"✓ User {user_id} is a member of household {household_id}")
    return 0


def cmd_create_account(
    services: Services,
    config: Config,
    household_id: str,
    name: str,
    currency: str | None,
    opening_balance: str,
) -> int:
    try:
        balance = Decimal(opening_balance)
    except InvalidOperation:
        print(f"❌ Invalid opening balance: {opening_balance}")
        return 1

    account = Account(
        id=str(uuid.uuid4()),
        household_id=household_id,
        name=name,
        currency=(currency or config.default_currency).upper(),
    )
    services.store.create_account(account, opening_balance=balance)
    print(f"✓ Created account {account.id} ({account.name}, {account.currency})")
    return 0


def cmd_upload(
    services: Services,
    file_path: Path,
    household_id: str,
    user_id: str,
    document_type: str,
    mime_type: str | None,
    description: str | None,
    process: bool,
) -> int:
    """Upload a document and, unless told otherwise, process it with retries."""
    if not file_path.is_file():
        print(f"❌ File not found: {file_path}")
        return 1

    print(f"📤 Uploading {file_path.name}...")
    upload = UploadedFile(
        data=file_path.read_bytes(),
        file_name=file_path.name,
        mime_type=mime_type or guess_mime_type(file_path),
    )
    document = services.pipeline.upload(
        upload,
        household_id=household_id,
        document_type=DocumentType(document_type),
        user_id=user_id,
        description=description,
        auto_process=False,
    )
    print(f"  📄 [{document.id}] stored as {document.storage_token}")

    if not process:
        print(f"\n✓ Uploaded (status: {document.status.value})")
        return 0

    status = services.pipeline.process_with_retry(document.id)
    print(f"\n✓ Processing finished with status {status.value}")
    if status == ProcessingStatus.FAILED:
        error = services.store.get_document_error(document.id)
        if error:
            print(f"   ❌ {error}")
        return 1
    return _print_suggestions(services, document.id, include_superseded=False)


def cmd_process(services: Services, document_id: str, force: bool) -> int:
    print(f"📊 Processing document {document_id}...")
    result = services.pipeline.process_document(document_id, force_reprocess=force)
    data = result.extracted_data

    print(f"     → OCR result: {result.id}")
    if data.merchant:
        print(f"     → Merchant: {data.merchant.name}")
    if data.amount:
        print(f"     → Total: {data.amount.total} {data.amount.currency}")
    if data.date:
        print(f"     → Date: {data.date.date}")
    if data.bank_statement:
        print(f"     → Statement rows: {len(data.bank_statement.transactions)}")
    print(f"     → Confidence: {result.confidence:.0%}")
    return _print_suggestions(services, document_id, include_superseded=False)


def cmd_list(services: Services, household_id: str) -> int:
    documents = services.pipeline.list_documents(household_id)
    if not documents:
        print("No documents")
        return 0

    for document in documents:
        print(
            f"  📄 [{document.id}] {document.file_name} "
            f"{document.document_type.value} {document.status.value}"
        )
    print(f"\n✓ {len(documents)} document(s)")
    return 0


def _print_suggestions(services: Services, document_id: str, include_superseded: bool) -> int:
    suggestions = services.pipeline.get_suggestions(
        document_id, include_superseded=include_superseded
    )
    if not suggestions:
        print("No suggestions")
        return 0

    print("\n💡 Suggestions")
    print("=" * 40)
    for s in suggestions:
        marker = "✓" if s.approved else "•"
        category = f" [{s.suggested_category_name}]" if s.suggested_category_name else ""
        print(
            f"  {marker} [{s.id}] {s.date} {s.amount} {s.currency} "
            f"{s.description}{category} ({s.confidence:.0%})"
        )
    return 0


def cmd_approve(
    services: Services,
    suggestion_id: str,
    account_id: str,
    user_id: str,
    corrections: dict[str, str] | None,
) -> int:
    transaction = services.approval.approve(suggestion_id, account_id, user_id, corrections)
    entry_types = ", ".join(entry.entry_type.value for entry in transaction.entries)
    print(f"✓ Created transaction {transaction.id}")
    print(f"     → {transaction.date} {transaction.signed_amount} {transaction.currency}")
    print(f"     → {transaction.description}")
    print(f"     → Ledger entries: {entry_types}")
    return 0


def cmd_validate(services: Services, ocr_result_id: str, corrections: dict[str, str] | None) -> int:
    report = services.pipeline.validate_ocr_result(ocr_result_id, corrections)
    print(json.dumps(report.to_dict(), indent=2, default=str))
    return 0 if report.is_valid else 1


def cmd_status(services: Services) -> int:
    """Show pipeline status."""
    stats = services.store.get_stats()

    print("\n📊 Pipeline Status")
    print("=" * 40)
    print(f"  Documents total:        {stats['documents_total']}")
    for status, count in sorted(stats["documents_by_status"].items()):
        print(f"    {status:<20} {count}")
    print(f"  Suggestions total:      {stats['suggestions_total']}")
    print(f"  Suggestions approved:   {stats['suggestions_approved']}")
    print(f"  Transactions total:     {stats['transactions_total']}")
    print()

    return 0


def run_command(parsed: argparse.Namespace, config: Config, services: Services) -> int:
    if parsed.command == "add-member":
        return cmd_add_member(services, parsed.household, parsed.user)
    elif parsed.command == "create-account":
        return cmd_create_account(
            services, config, parsed.household, parsed.name, parsed.currency, parsed.opening_balance
        )
    elif parsed.command == "upload":
        return cmd_upload(
            services,
            parsed.file,
            parsed.household,
            parsed.user,
            parsed.type,
            parsed.mime,
            parsed.description,
            process=not parsed.no_process,
        )
    elif parsed.command == "process":
        return cmd_process(services, parsed.document_id, parsed.force)
    elif parsed.command == "list":
        return cmd_list(services, parsed.household)
    elif parsed.command == "suggestions":
        services.pipeline.get_document(parsed.document_id)
        return _print_suggestions(services, parsed.document_id, include_superseded=parsed.all)
    elif parsed.command == "approve":
        return cmd_approve(
            services, parsed.suggestion_id, parsed.account, parsed.user, parse_corrections(parsed.set)
        )
    elif parsed.command == "validate":
        return cmd_validate(services, parsed.ocr_result_id, parse_corrections(parsed.set))
    elif parsed.command == "status":
        return cmd_status(services)
    return 1


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config)

    # Load config
    try:
        config = load_config(parsed.config)
        services = build_services(config)
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    try:
        return run_command(parsed, config, services)
    except ReceiptLedgerError as e:
        print(f"❌ {e.code}: {e}")
        return 1
    except argparse.ArgumentTypeError as e:
        print(f"❌ {e}")
        return 2
    finally:
        services.pipeline.shutdown()


if __name__ == "__main__":
    sys.exit(main())
