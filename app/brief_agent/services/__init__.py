"""
Services package for the brief analysis application.

Contains:
- ledger: credit balances and captured orders
- documents: extracted text of ingested briefs
- checkout: PayPal order creation and capture reconciliation
- analysis: the credit-gated model call
- ingestion: upload handling, text extraction and blob storage
- ai: OpenAI integration for brief analysis
"""

from .ai import AIService
from .analysis import AnalysisFlow
from .checkout import CheckoutFlow
from .documents import DocumentStore, InMemoryDocumentStore, SqlDocumentStore
from .ingestion import IngestionService
from .ledger import AccountLedger, InMemoryLedger, SqlLedger
from .paypal import PaymentGateway, PayPalGateway
from .pdf_service import PDFService
from .storage import BlobStore, InMemoryBlobStore, S3BlobStore

__all__ = [
    "AIService",
    "AccountLedger",
    "AnalysisFlow",
    "BlobStore",
    "CheckoutFlow",
    "DocumentStore",
    "InMemoryBlobStore",
    "InMemoryDocumentStore",
    "InMemoryLedger",
    "IngestionService",
    "PDFService",
    "PayPalGateway",
    "PaymentGateway",
    "S3BlobStore",
    "SqlDocumentStore",
    "SqlLedger",
]
