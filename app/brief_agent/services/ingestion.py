"""
Ingestion of uploaded briefs.

All three upload paths (multipart, server-side download, raw body) end in
``IngestionService.ingest``: extract text, store the original bytes,
register the document. A storage failure aborts before the document is
registered; an extraction failure only yields empty text.
"""

import asyncio
import logging
import time
import uuid

import httpx

from ..exceptions import DownloadError, UnfetchableUrl, ValidationError
from ..models import ANONYMOUS_ACCOUNT, Document
from .documents import DocumentStore
from .pdf_service import PDFService
from .storage import BlobStore, build_storage_key

logger = logging.getLogger(__name__)

USER_AGENT = "ProjectBriefAgent/1.0"
FETCHABLE_SCHEMES = ("http", "https")
BODY_SNIPPET_LIMIT = 1000


def new_document_id() -> str:
    """Generate a document id unique per ingestion."""
    return f"doc-{uuid.uuid4().hex}"


def default_raw_filename() -> str:
    """Filename used when a raw upload carries none."""
    return f"upload-{int(time.time() * 1000)}.pdf"


def _snippet(text: str) -> str:
    if not text:
        return "<empty>"
    if len(text) > BODY_SNIPPET_LIMIT:
        return text[:BODY_SNIPPET_LIMIT] + "...[truncated]"
    return text


class IngestionService:
    """Turns uploaded PDF bytes into stored documents."""

    def __init__(
        self,
        documents: DocumentStore,
        blob_store: BlobStore,
        pdf_service: PDFService,
        timeout: float = 30.0,
        max_bytes: int = 25 * 1024 * 1024,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the ingestion service.

        Args:
            documents: Where documents are registered.
            blob_store: Where the original PDF bytes are kept.
            pdf_service: Text extractor.
            timeout: Deadline in seconds for downloads and blob uploads.
            max_bytes: Largest accepted PDF.
            transport: Optional httpx transport for downloads (tests).
        """
        self.documents = documents
        self.blob_store = blob_store
        self.pdf_service = pdf_service
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._transport = transport

    async def ingest(
        self,
        data: bytes,
        original_name: str | None = None,
        account_id: str | None = None,
    ) -> Document:
        """
        Extract, store and register an uploaded PDF.

        Args:
            data: PDF bytes.
            original_name: Client-supplied filename.
            account_id: Uploading account; anonymous when absent.

        Returns:
            The registered document.

        Raises:
            ValidationError: If the body is empty or too large.
            StorageError: If the blob store rejects the upload.
        """
        if not data:
            raise ValidationError("Empty request body")
        if len(data) > self.max_bytes:
            raise ValidationError(f"File too large: {len(data)} bytes (limit {self.max_bytes})")

        original_name = original_name or "file.pdf"
        account_id = account_id or ANONYMOUS_ACCOUNT

        text = await asyncio.to_thread(self.pdf_service.extract_text, data)
        storage_key = build_storage_key(original_name)
        await self.blob_store.upload(storage_key, data, timeout=self.timeout)

        document = Document(
            document_id=new_document_id(),
            extracted_text=text,
            owner_account_id=account_id,
            storage_key=storage_key,
            original_name=original_name,
        )
        self.documents.put(document)
        logger.info(
            "Ingested %s as %s (storage_key=%s, has_text=%s)",
            original_name,
            document.document_id,
            storage_key,
            document.has_text,
        )
        return document

    def check_fetchable(self, file_url: str | None) -> httpx.URL:
        """
        Validate a client-supplied file URL.

        Raises:
            ValidationError: If the URL is missing.
            UnfetchableUrl: If the server cannot download from it
                (``wix:document://`` references, non-HTTP schemes).
        """
        if not file_url:
            raise ValidationError("fileUrl missing in request body")

        if file_url.startswith("wix:document://"):
            logger.warning("Received wix:document URL; cannot download from server: %s", file_url)
            raise UnfetchableUrl(
                "Unfetchable file URL provided. Use Wix File Upload (Upload Button) "
                "or convert to public URL."
            )

        try:
            url = httpx.URL(file_url)
        except httpx.InvalidURL as e:
            raise UnfetchableUrl(f"Unfetchable file URL provided: {e}") from e

        if url.scheme not in FETCHABLE_SCHEMES or not url.host:
            raise UnfetchableUrl(
                f"Unfetchable file URL provided: scheme {url.scheme or '<none>'!r} is not supported"
            )
        return url

    async def download(self, file_url: str | None) -> bytes:
        """
        Download a PDF from a public URL.

        Raises:
            ValidationError / UnfetchableUrl: See ``check_fetchable``.
            DownloadError: On network errors, timeouts or non-2xx responses.
        """
        url = self.check_fetchable(file_url)
        logger.info("Starting download: %s", url)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            logger.error("Download of %s timed out after %ss", url, self.timeout)
            raise DownloadError(f"Download timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            logger.error("Download of %s threw: %s", url, e)
            raise DownloadError(f"fetch threw an exception: {e}") from e

        if response.is_error:
            snippet = _snippet(response.text)
            logger.error(
                "Download failed: status=%d %s body=%s",
                response.status_code,
                response.reason_phrase,
                snippet,
            )
            raise DownloadError(
                f"Failed to download file: {response.status_code} {response.reason_phrase}",
                body_snippet=snippet,
            )

        return response.content
