"""
Router for the paid analysis and balance endpoints.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_analysis_flow, get_ledger
from ..models import ANONYMOUS_ACCOUNT, AnalyzeRequest, AnalyzeResponse, BalanceResponse
from ..services.analysis import AnalysisFlow
from ..services.ledger import AccountLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    request: AnalyzeRequest,
    flow: Annotated[AnalysisFlow, Depends(get_analysis_flow)],
) -> AnalyzeResponse:
    """
    Analyze a stored brief for one credit.

    Returns 402 when the account has no credits, 400 when the document has
    no text (no credit is spent), 404 for unknown documents and 502 when
    the model call fails (the credit is refunded).
    """
    outcome = await flow.analyze(request.document_id, request.account_id)
    return AnalyzeResponse(
        document_id=outcome.document_id,
        result=outcome.result.to_wire(),
        remaining_credits=outcome.remaining_credits,
    )


@router.get("/balance", response_model=BalanceResponse)
@router.get("/user-credits", response_model=BalanceResponse, include_in_schema=False)
async def balance(
    ledger: Annotated[AccountLedger, Depends(get_ledger)],
    account_id: Annotated[str | None, Query(alias="accountId")] = None,
    user_id: Annotated[str | None, Query(alias="userId")] = None,
) -> BalanceResponse:
    """Return the credit balance of an account (0 for unknown accounts)."""
    account = account_id or user_id or ANONYMOUS_ACCOUNT
    return BalanceResponse(account_id=account, credits=ledger.get_balance(account))
