"""
Pydantic models for the brief analysis service.

Defines the domain records (documents, credit grants, analysis results)
and the request/response bodies of the HTTP API. API bodies use camelCase
on the wire and accept the legacy ``docId``/``userId`` names on input.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

ANONYMOUS_ACCOUNT = "anonymous"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Domain Models
# =============================================================================


class Document(BaseModel):
    """
    An ingested PDF brief.

    Attributes:
        document_id: Identifier generated at ingestion time.
        extracted_text: Text pulled from the PDF; empty when nothing was extractable.
        owner_account_id: Account that uploaded the document.
        storage_key: Object key of the original bytes in blob storage.
        uploaded_at: Ingestion timestamp (UTC).
        original_name: Filename supplied by the client.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    extracted_text: str = ""
    owner_account_id: str = ANONYMOUS_ACCOUNT
    storage_key: str | None = None
    uploaded_at: datetime = Field(default_factory=_utcnow)
    original_name: str = "file.pdf"

    @property
    def has_text(self) -> bool:
        """Whether the document carries any analyzable text."""
        return bool(self.extracted_text.strip())


class CreditGrant(BaseModel):
    """Outcome of applying a captured order to the ledger."""

    order_id: str
    account_id: str
    credits_added: int = Field(..., ge=0)
    new_balance: int = Field(..., ge=0)
    already_applied: bool = False


class CheckoutOrder(BaseModel):
    """A gateway order awaiting buyer approval."""

    order_id: str
    approval_url: str | None = None


# =============================================================================
# Analysis Result Models
# =============================================================================


class Deliverable(BaseModel):
    """A deliverable identified in the brief."""

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    description: str | None = None
    acceptance_criteria: Any = None


class Milestone(BaseModel):
    """A milestone with its estimated duration."""

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    duration_weeks: float | str | None = None


class Risk(BaseModel):
    """A project risk and how to mitigate it."""

    model_config = ConfigDict(extra="allow")

    risk: str | None = None
    mitigation: str | None = None


class AnalysisPayload(BaseModel):
    """
    Structured analysis returned by the language model.

    Every key is optional because the model is asked, not forced, to follow
    the shape. Unknown keys are preserved.
    """

    model_config = ConfigDict(extra="allow")

    overview: str | None = None
    deliverables: list[Deliverable] = Field(default_factory=list)
    milestones: list[Milestone] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    clarifying_questions: dict[str, list[str]] = Field(default_factory=dict)
    sources: Any = None
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)


class StructuredAnalysis(BaseModel):
    """
    Model output that parsed into a JSON object.

    ``data`` is kept exactly as the model sent it; ``payload`` is a typed view
    of it, None when the object strays from the ``AnalysisPayload`` shape.
    """

    kind: Literal["structured"] = "structured"
    data: dict[str, Any]

    @property
    def payload(self) -> AnalysisPayload | None:
        try:
            return AnalysisPayload.model_validate(self.data)
        except PydanticValidationError:
            return None

    def to_wire(self) -> dict[str, Any]:
        return dict(self.data)


class UnstructuredAnalysis(BaseModel):
    """Model output that was not a well-formed analysis object."""

    kind: Literal["unstructured"] = "unstructured"
    raw: str

    def to_wire(self) -> dict[str, Any]:
        return {"parse_error": True, "raw": self.raw}


AnalysisResult = Annotated[
    Union[StructuredAnalysis, UnstructuredAnalysis],
    Field(discriminator="kind"),
]


class AnalysisOutcome(BaseModel):
    """Result of a paid analysis plus the balance left afterwards."""

    document_id: str
    account_id: str
    result: AnalysisResult
    remaining_credits: int = Field(..., ge=0)


# =============================================================================
# API Models
# =============================================================================


class ApiModel(BaseModel):
    """Base for request/response bodies: camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(ApiModel):
    """Health check response."""

    status: str = Field(default="healthy")
    message: str = Field(default="")
    version: str = Field(default="1.0.0")


class ErrorResponse(ApiModel):
    """Error body returned by the exception handlers."""

    detail: str
    error: str


class UploadResponse(ApiModel):
    """Response model for every upload endpoint."""

    ok: bool = True
    document_id: str = Field(..., description="Identifier of the stored document")
    has_text: bool = Field(..., description="Whether any text was extracted")


class UploadByUrlRequest(ApiModel):
    """Request model for uploading a PDF the server downloads itself."""

    file_url: str | None = Field(default=None, description="Public URL of the PDF")
    account_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("accountId", "userId", "account_id"),
    )
    original_file_name: str | None = Field(default=None)


class CreateOrderRequest(ApiModel):
    """Request model for starting a credit purchase."""

    account_id: str = Field(
        default=ANONYMOUS_ACCOUNT,
        validation_alias=AliasChoices("accountId", "userId", "account_id"),
    )
    amount: str = Field(default="15.00", description="Decimal amount as a string")
    description: str = Field(default="Project Brief Analyzer - 50 credits")

    @field_validator("account_id", mode="before")
    @classmethod
    def default_blank_account(cls, v: Any) -> Any:
        """Treat null or blank account ids as anonymous."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return ANONYMOUS_ACCOUNT
        return v


class CreateOrderResponse(ApiModel):
    """Response model for a created order."""

    order_id: str
    approval_url: str | None = None


class AnalyzeRequest(ApiModel):
    """Request model for analyzing a stored document."""

    document_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("documentId", "docId", "document_id"),
    )
    account_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("accountId", "userId", "account_id"),
    )


class AnalyzeResponse(ApiModel):
    """Response model for a completed analysis."""

    ok: bool = True
    document_id: str
    result: dict[str, Any] = Field(
        ...,
        description="Structured analysis, or {parse_error, raw} when the model output was not JSON",
    )
    remaining_credits: int = Field(..., ge=0)


class BalanceResponse(ApiModel):
    """Response model for an account balance lookup."""

    account_id: str
    credits: int = Field(..., ge=0)


class WebhookAck(ApiModel):
    """Acknowledgement returned to the payment gateway."""

    ok: bool = True
