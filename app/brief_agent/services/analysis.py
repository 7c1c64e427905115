"""
Analysis flow: the paid operation.

Order of steps for one request:
    1. resolve the document (DocumentNotFound)
    2. resolve the paying account: explicit, else document owner, else anonymous
    3. refuse documents without text (NoExtractableText), before any charge
    4. debit one credit (InsufficientCredits, no model call)
    5. call the model; on any failure refund the credit and raise AnalysisError
    6. parse the reply into a Structured or Unstructured result
"""

import asyncio
import logging

from ..exceptions import AnalysisError, DocumentNotFound, NoExtractableText, ValidationError
from ..models import ANONYMOUS_ACCOUNT, AnalysisOutcome, StructuredAnalysis
from .ai import AIService, AIServiceError, parse_analysis
from .documents import DocumentStore
from .ledger import AccountLedger

logger = logging.getLogger(__name__)

CREDITS_PER_ANALYSIS = 1


class AnalysisFlow:
    """Gates the model call on the ledger and returns a tagged result."""

    def __init__(
        self,
        documents: DocumentStore,
        ledger: AccountLedger,
        ai_service: AIService,
        credits_per_analysis: int = CREDITS_PER_ANALYSIS,
    ):
        self.documents = documents
        self.ledger = ledger
        self.ai_service = ai_service
        self.credits_per_analysis = credits_per_analysis

    async def analyze(self, document_id: str | None, account_id: str | None = None) -> AnalysisOutcome:
        """
        Run a paid analysis of a stored document.

        Args:
            document_id: Document to analyze.
            account_id: Paying account; defaults to the document owner.

        Returns:
            AnalysisOutcome with the result and the balance after the debit.

        Raises:
            ValidationError: If ``document_id`` is missing.
            DocumentNotFound: If the document does not exist.
            NoExtractableText: If the document has no text. Nothing is charged.
            InsufficientCredits: If the account cannot pay. The model is not called.
            AnalysisError: If the model call fails or times out. The credit is refunded.
        """
        if not document_id:
            raise ValidationError("documentId missing")

        document = self.documents.get(document_id)
        if document is None:
            raise DocumentNotFound(document_id)

        payer = account_id or document.owner_account_id or ANONYMOUS_ACCOUNT

        if not document.has_text:
            logger.warning("Document %s has no extractable text; not charging %s", document_id, payer)
            raise NoExtractableText(document_id)

        remaining = self.ledger.try_debit(payer, self.credits_per_analysis)

        try:
            raw = await self.ai_service.analyze_brief(document.extracted_text)
        except AIServiceError as e:
            self.ledger.refund(payer, self.credits_per_analysis)
            logger.error("Analysis of %s failed for %s: %s", document_id, payer, e)
            raise AnalysisError(f"Analyze failed: {e}") from e
        except Exception as e:
            self.ledger.refund(payer, self.credits_per_analysis)
            logger.exception("Unexpected error analyzing %s for %s", document_id, payer)
            raise AnalysisError(f"Analyze failed: {e}") from e
        except asyncio.CancelledError:
            self.ledger.refund(payer, self.credits_per_analysis)
            logger.warning("Analysis of %s cancelled; refunded %s", document_id, payer)
            raise

        result = parse_analysis(raw)
        logger.info(
            "Analyzed %s for %s (structured=%s, remaining=%d)",
            document_id,
            payer,
            isinstance(result, StructuredAnalysis),
            remaining,
        )
        return AnalysisOutcome(
            document_id=document_id,
            account_id=payer,
            result=result,
            remaining_credits=remaining,
        )
