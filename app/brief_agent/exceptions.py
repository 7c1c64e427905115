"""
Error taxonomy shared by the services and the HTTP layer.

Every failure the API reports maps to one of these classes; the exception
handlers in ``main`` turn them into JSON responses using ``status_code``
and ``code``.
"""

from fastapi import status


class BriefAgentError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BriefAgentError):
    """Raised when a required field is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class DocumentNotFound(BriefAgentError):
    """Raised when a document id does not resolve."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "document_not_found"

    def __init__(self, document_id: str):
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class NoExtractableText(BriefAgentError):
    """Raised when a document has no text to analyze."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "no_extractable_text"

    def __init__(self, document_id: str):
        super().__init__("No extractable text found in PDF. Consider OCR.")
        self.document_id = document_id


class InsufficientCredits(BriefAgentError):
    """Raised when an account cannot cover a debit."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED
    code = "insufficient_credits"

    def __init__(self, account_id: str, balance: int, requested: int):
        super().__init__("Insufficient credits. Please purchase credits.")
        self.account_id = account_id
        self.balance = balance
        self.requested = requested


class UnfetchableUrl(BriefAgentError):
    """Raised for file URLs the server cannot download."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "unfetchable_url"


class GatewayError(BriefAgentError):
    """Raised when the payment gateway rejects or fails a request."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "gateway_error"

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class DownloadError(BriefAgentError):
    """Raised when a remote file cannot be downloaded."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "download_error"

    def __init__(self, message: str, body_snippet: str | None = None):
        super().__init__(message)
        self.body_snippet = body_snippet


class AnalysisError(BriefAgentError):
    """Raised when the remote analysis call fails or times out."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "analysis_error"


class StorageError(BriefAgentError):
    """Raised when the blob store rejects an upload."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "storage_error"
