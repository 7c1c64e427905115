"""Tests for the ingestion service."""

import httpx
import pytest

from app.brief_agent.exceptions import DownloadError, StorageError, UnfetchableUrl, ValidationError
from app.brief_agent.services.documents import InMemoryDocumentStore
from app.brief_agent.services.ingestion import IngestionService
from app.brief_agent.services.pdf_service import PDFService
from app.brief_agent.services.storage import BlobStore, InMemoryBlobStore, build_storage_key


class BrokenBlobStore(BlobStore):
    def put(self, key: str, data: bytes, content_type: str = "application/pdf") -> None:
        raise StorageError("Upload to storage failed: AccessDenied")


class RecordingDocumentStore(InMemoryDocumentStore):
    def __init__(self):
        super().__init__()
        self.stored: list[str] = []

    def put(self, document) -> None:
        self.stored.append(document.document_id)
        super().put(document)


@pytest.fixture
def ingestion(document_store: InMemoryDocumentStore, blob_store: InMemoryBlobStore) -> IngestionService:
    return IngestionService(document_store, blob_store, PDFService(), max_bytes=1024 * 1024)


def downloader(handler, document_store: InMemoryDocumentStore) -> IngestionService:
    return IngestionService(
        document_store,
        InMemoryBlobStore(),
        PDFService(),
        transport=httpx.MockTransport(handler),
    )


class TestIngest:
    """Tests for IngestionService.ingest."""

    @pytest.mark.asyncio
    async def test_registers_document_with_text(
        self,
        ingestion: IngestionService,
        document_store: InMemoryDocumentStore,
        blob_store: InMemoryBlobStore,
        sample_pdf_bytes: bytes,
    ):
        """Test that ingestion extracts text, stores bytes and registers the document."""
        document = await ingestion.ingest(sample_pdf_bytes, "Acme brief.pdf", "alice")

        assert document.document_id.startswith("doc-")
        assert document.has_text
        assert "Website redesign" in document.extracted_text
        assert document.owner_account_id == "alice"
        assert document.storage_key.startswith("uploads/")
        assert document.storage_key.endswith("-Acme_brief.pdf")
        assert blob_store.objects[document.storage_key] == sample_pdf_bytes
        assert document_store.get(document.document_id) == document

    @pytest.mark.asyncio
    async def test_scanned_pdf_registers_empty_text(
        self, ingestion: IngestionService, blank_pdf_bytes: bytes
    ):
        """Test that a PDF without a text layer is still registered."""
        document = await ingestion.ingest(blank_pdf_bytes, "scan.pdf")

        assert document.extracted_text == ""
        assert document.has_text is False
        assert document.owner_account_id == "anonymous"

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, ingestion: IngestionService, sample_pdf_bytes: bytes):
        """Test that two uploads of the same bytes get distinct ids."""
        first = await ingestion.ingest(sample_pdf_bytes, "a.pdf")
        second = await ingestion.ingest(sample_pdf_bytes, "a.pdf")
        assert first.document_id != second.document_id

    @pytest.mark.asyncio
    async def test_empty_body_rejected(self, blob_store: InMemoryBlobStore):
        """Test that an empty body is a validation error."""
        document_store = RecordingDocumentStore()
        ingestion = IngestionService(document_store, blob_store, PDFService())

        with pytest.raises(ValidationError) as exc_info:
            await ingestion.ingest(b"", "a.pdf")
        assert exc_info.value.message == "Empty request body"
        assert document_store.stored == []
        assert blob_store.objects == {}

    @pytest.mark.asyncio
    async def test_oversized_body_rejected(self, ingestion: IngestionService):
        """Test that bodies over the limit are refused."""
        with pytest.raises(ValidationError):
            await ingestion.ingest(b"x" * (1024 * 1024 + 1), "big.pdf")

    @pytest.mark.asyncio
    async def test_storage_failure_registers_nothing(self, sample_pdf_bytes: bytes):
        """Test that a failed blob upload leaves no document behind."""
        document_store = RecordingDocumentStore()
        ingestion = IngestionService(document_store, BrokenBlobStore(), PDFService())

        with pytest.raises(StorageError):
            await ingestion.ingest(sample_pdf_bytes, "a.pdf")
        assert document_store.stored == []


class TestCheckFetchable:
    """Tests for URL validation before download."""

    @pytest.mark.parametrize("url", [None, ""])
    def test_missing_url(self, ingestion: IngestionService, url):
        """Test that a missing URL is a validation error."""
        with pytest.raises(ValidationError):
            ingestion.check_fetchable(url)

    @pytest.mark.parametrize(
        "url",
        [
            "wix:document://v1/ugd/abc.pdf/brief.pdf",
            "ftp://files.example.com/brief.pdf",
            "file:///etc/passwd",
            "brief.pdf",
        ],
    )
    def test_unfetchable_urls(self, ingestion: IngestionService, url):
        """Test that references the server cannot download are refused."""
        with pytest.raises(UnfetchableUrl) as exc_info:
            ingestion.check_fetchable(url)
        assert exc_info.value.status_code == 400

    def test_https_url_accepted(self, ingestion: IngestionService):
        """Test that a public https URL passes."""
        url = ingestion.check_fetchable("https://static.example.com/brief.pdf")
        assert url.host == "static.example.com"


class TestDownload:
    """Tests for server-side downloads."""

    @pytest.mark.asyncio
    async def test_download_returns_body(
        self, document_store: InMemoryDocumentStore, sample_pdf_bytes: bytes
    ):
        """Test that a 200 response body is returned and the agent identifies itself."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=sample_pdf_bytes)

        ingestion = downloader(handler, document_store)
        data = await ingestion.download("https://static.example.com/brief.pdf")

        assert data == sample_pdf_bytes
        assert seen[0].headers["User-Agent"] == "ProjectBriefAgent/1.0"

    @pytest.mark.asyncio
    async def test_download_follows_redirects(
        self, document_store: InMemoryDocumentStore, sample_pdf_bytes: bytes
    ):
        """Test that redirects are followed."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old.pdf":
                return httpx.Response(302, headers={"Location": "https://static.example.com/new.pdf"})
            return httpx.Response(200, content=sample_pdf_bytes)

        ingestion = downloader(handler, document_store)
        assert await ingestion.download("https://static.example.com/old.pdf") == sample_pdf_bytes

    @pytest.mark.asyncio
    async def test_http_error_carries_snippet(self, document_store: InMemoryDocumentStore):
        """Test that a non-2xx answer raises DownloadError with the body excerpt."""
        ingestion = downloader(lambda request: httpx.Response(404, text="no such file"), document_store)

        with pytest.raises(DownloadError) as exc_info:
            await ingestion.download("https://static.example.com/missing.pdf")

        assert "404" in exc_info.value.message
        assert exc_info.value.body_snippet == "no such file"
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_long_error_body_truncated(self, document_store: InMemoryDocumentStore):
        """Test that long error bodies are cut to the snippet limit."""
        ingestion = downloader(lambda request: httpx.Response(500, text="e" * 5000), document_store)

        with pytest.raises(DownloadError) as exc_info:
            await ingestion.download("https://static.example.com/brief.pdf")

        assert exc_info.value.body_snippet == "e" * 1000 + "...[truncated]"

    @pytest.mark.asyncio
    async def test_network_error(self, document_store: InMemoryDocumentStore):
        """Test that connection failures become DownloadError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DownloadError):
            await downloader(handler, document_store).download("https://static.example.com/a.pdf")


class TestStorageKey:
    """Tests for object key naming."""

    def test_whitespace_replaced(self):
        """Test that whitespace in names becomes underscores."""
        key = build_storage_key("Project  brief v2.pdf")
        prefix, name = key.split("/", 1)
        stamp, rest = name.split("-", 1)
        assert prefix == "uploads"
        assert stamp.isdigit()
        assert rest == "Project_brief_v2.pdf"
