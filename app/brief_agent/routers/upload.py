"""
Router for document ingestion endpoints.

Handles:
- Multipart PDF upload
- Server-side download of a PDF from a public URL
- Raw PDF bytes in the request body
"""

import logging
from typing import Annotated
from urllib.parse import unquote

from fastapi import APIRouter, Depends, File, Form, Header, Request, UploadFile

from ..dependencies import get_ingestion_service
from ..exceptions import ValidationError
from ..models import UploadByUrlRequest, UploadResponse
from ..services.ingestion import IngestionService, default_raw_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload", response_model=UploadResponse)
async def upload(
    ingestion: Annotated[IngestionService, Depends(get_ingestion_service)],
    file: Annotated[UploadFile | None, File(description="PDF brief")] = None,
    account_id: Annotated[str | None, Form(alias="accountId")] = None,
    user_id: Annotated[str | None, Form(alias="userId")] = None,
) -> UploadResponse:
    """
    Upload a PDF brief as multipart form data.

    Extracts its text, stores the original and registers a document owned by
    ``accountId`` (anonymous when absent).
    """
    if file is None:
        raise ValidationError("No file provided")

    try:
        data = await file.read()
        filename = file.filename or "upload.pdf"
        logger.info("Processing upload: %s (%d bytes)", filename, len(data))
        document = await ingestion.ingest(data, filename, account_id or user_id)
    finally:
        await file.close()

    return UploadResponse(document_id=document.document_id, has_text=document.has_text)


@router.post("/upload-by-url", response_model=UploadResponse)
async def upload_by_url(
    request: UploadByUrlRequest,
    ingestion: Annotated[IngestionService, Depends(get_ingestion_service)],
) -> UploadResponse:
    """
    Download a PDF from a public URL and ingest it.

    References the server cannot fetch (``wix:document://`` and non-HTTP
    schemes) are rejected with 400.
    """
    logger.info(
        "upload-by-url starting download: %s account=%s name=%s",
        request.file_url,
        request.account_id,
        request.original_file_name,
    )
    data = await ingestion.download(request.file_url)
    document = await ingestion.ingest(data, request.original_file_name, request.account_id)
    return UploadResponse(document_id=document.document_id, has_text=document.has_text)


@router.post("/upload-raw", response_model=UploadResponse)
async def upload_raw(
    request: Request,
    ingestion: Annotated[IngestionService, Depends(get_ingestion_service)],
    x_filename: Annotated[str | None, Header()] = None,
    x_userid: Annotated[str | None, Header()] = None,
) -> UploadResponse:
    """
    Ingest raw PDF bytes sent as the request body.

    The filename and account travel URL-encoded in the ``X-Filename`` and
    ``X-UserId`` headers.
    """
    data = await request.body()
    filename = unquote(x_filename) if x_filename else default_raw_filename()
    account_id = unquote(x_userid) if x_userid else None

    document = await ingestion.ingest(data, filename, account_id)
    return UploadResponse(document_id=document.document_id, has_text=document.has_text)
