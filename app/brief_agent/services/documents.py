"""
Document store: extracted text and metadata keyed by document id.

Documents are written once at ingestion and never modified or deleted.
"""

import logging
import threading
from abc import ABC, abstractmethod

from sqlalchemy.orm import sessionmaker

from ..database import session_scope
from ..models import Document
from ..models_db import StoredDocument

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """Repository contract for ingested documents."""

    @abstractmethod
    def get(self, document_id: str) -> Document | None:
        """Return the document, or None if the id is unknown."""

    @abstractmethod
    def put(self, document: Document) -> None:
        """Store a newly ingested document."""


class InMemoryDocumentStore(DocumentStore):
    """Process-local document store."""

    def __init__(self):
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()

    def get(self, document_id: str) -> Document | None:
        with self._lock:
            return self._documents.get(document_id)

    def put(self, document: Document) -> None:
        with self._lock:
            if document.document_id in self._documents:
                raise ValueError(f"Document {document.document_id} already exists")
            self._documents[document.document_id] = document
        logger.info(
            "Stored document %s for %s (has_text=%s)",
            document.document_id,
            document.owner_account_id,
            document.has_text,
        )


class SqlDocumentStore(DocumentStore):
    """Document store persisted through SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, document_id: str) -> Document | None:
        with session_scope(self._session_factory) as session:
            row = session.get(StoredDocument, document_id)
            if row is None:
                return None
            return Document(
                document_id=row.document_id,
                extracted_text=row.extracted_text,
                owner_account_id=row.owner_account_id,
                storage_key=row.storage_key,
                uploaded_at=row.uploaded_at,
                original_name=row.original_name,
            )

    def put(self, document: Document) -> None:
        with session_scope(self._session_factory) as session:
            session.add(
                StoredDocument(
                    document_id=document.document_id,
                    extracted_text=document.extracted_text,
                    owner_account_id=document.owner_account_id,
                    storage_key=document.storage_key,
                    uploaded_at=document.uploaded_at,
                    original_name=document.original_name,
                )
            )
        logger.info(
            "Stored document %s for %s (has_text=%s)",
            document.document_id,
            document.owner_account_id,
            document.has_text,
        )
