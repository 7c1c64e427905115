"""
FastAPI dependency providers.

Stateful collaborators (ledger, document store, blob store, gateway) are
process-wide singletons built from settings. Flows are assembled per
request from them. Tests swap any provider via ``app.dependency_overrides``.
"""

import logging
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from .config import get_settings
from .database import create_db_engine, create_session_factory, init_db
from .services.ai import AIService, get_ai_service
from .services.analysis import AnalysisFlow
from .services.checkout import CheckoutFlow
from .services.documents import DocumentStore, InMemoryDocumentStore, SqlDocumentStore
from .services.ingestion import IngestionService
from .services.ledger import AccountLedger, InMemoryLedger, SqlLedger
from .services.paypal import PaymentGateway, PayPalGateway
from .services.pdf_service import PDFService, get_pdf_service
from .services.storage import BlobStore, InMemoryBlobStore, S3BlobStore

logger = logging.getLogger(__name__)


@lru_cache
def get_session_factory() -> sessionmaker | None:
    """Session factory for the configured database, or None when running in memory."""
    settings = get_settings()
    if not settings.database_url:
        return None
    engine = create_db_engine(settings.database_url, echo=settings.sql_debug)
    init_db(engine)
    logger.info("Using database-backed ledger and document store")
    return create_session_factory(engine)


@lru_cache
def get_ledger() -> AccountLedger:
    """Get the process-wide account ledger."""
    factory = get_session_factory()
    if factory is None:
        return InMemoryLedger()
    return SqlLedger(factory)


@lru_cache
def get_document_store() -> DocumentStore:
    """Get the process-wide document store."""
    factory = get_session_factory()
    if factory is None:
        return InMemoryDocumentStore()
    return SqlDocumentStore(factory)


@lru_cache
def get_blob_store() -> BlobStore:
    """Get the blob store; in-memory when no S3 bucket is configured."""
    settings = get_settings()
    if not settings.s3_bucket:
        logger.warning("S3_BUCKET not set; uploaded PDFs are kept in memory only")
        return InMemoryBlobStore()
    return S3BlobStore(
        bucket=settings.s3_bucket,
        region=settings.s3_region,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
        timeout=settings.outbound_timeout_seconds,
    )


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    """Get the PayPal adapter."""
    settings = get_settings()
    base_url = (settings.base_url or "").rstrip("/")
    return PayPalGateway(
        client_id=settings.paypal_client_id,
        client_secret=settings.paypal_client_secret,
        base_url=settings.paypal_base_url,
        return_url=f"{base_url}/api/capture-order",
        cancel_url=f"{base_url}/paypal-cancel",
        currency=settings.paypal_currency,
        timeout=settings.outbound_timeout_seconds,
    )


def get_checkout_flow(
    gateway: PaymentGateway = Depends(get_payment_gateway),
    ledger: AccountLedger = Depends(get_ledger),
) -> CheckoutFlow:
    settings = get_settings()
    return CheckoutFlow(
        gateway,
        ledger,
        reference_price=settings.reference_price,
        reference_credits=settings.reference_credits,
    )


def get_analysis_flow(
    documents: DocumentStore = Depends(get_document_store),
    ledger: AccountLedger = Depends(get_ledger),
    ai_service: AIService = Depends(get_ai_service),
) -> AnalysisFlow:
    return AnalysisFlow(documents, ledger, ai_service)


def get_ingestion_service(
    documents: DocumentStore = Depends(get_document_store),
    blob_store: BlobStore = Depends(get_blob_store),
    pdf_service: PDFService = Depends(get_pdf_service),
) -> IngestionService:
    settings = get_settings()
    return IngestionService(
        documents,
        blob_store,
        pdf_service,
        timeout=settings.outbound_timeout_seconds,
        max_bytes=settings.max_upload_bytes,
    )
