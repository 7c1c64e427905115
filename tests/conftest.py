"""Pytest configuration and fixtures."""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from app.brief_agent.dependencies import (
    get_blob_store,
    get_document_store,
    get_ledger,
    get_payment_gateway,
)
from app.brief_agent.main import app
from app.brief_agent.services.ai import AIServiceError, get_ai_service
from app.brief_agent.services.documents import InMemoryDocumentStore
from app.brief_agent.services.ledger import InMemoryLedger
from app.brief_agent.services.storage import InMemoryBlobStore

from tests.helpers import BRIEF_TEXT, StubAIService, StubGateway, make_pdf


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def ai_stub() -> StubAIService:
    return StubAIService()


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def failing_ai_stub(ai_stub: StubAIService) -> StubAIService:
    ai_stub.error = AIServiceError("upstream unavailable")
    return ai_stub


@pytest.fixture
def client(
    ledger: InMemoryLedger,
    document_store: InMemoryDocumentStore,
    blob_store: InMemoryBlobStore,
    ai_stub: StubAIService,
    gateway: StubGateway,
) -> Generator[TestClient, None, None]:
    """Create a test client wired to in-memory collaborators."""
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_document_store] = lambda: document_store
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_ai_service] = lambda: ai_stub
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """A valid PDF whose page carries ``BRIEF_TEXT``."""
    return make_pdf(BRIEF_TEXT)


@pytest.fixture
def blank_pdf_bytes() -> bytes:
    """A valid PDF with no text layer (like a scanned brief)."""
    return make_pdf(None)


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-PDF) file bytes for testing."""
    return b"This is not a PDF file"
