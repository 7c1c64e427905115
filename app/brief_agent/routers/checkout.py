"""
Router for credit purchase endpoints.

Handles:
- Creating a PayPal order
- Capturing an approved order and crediting the buyer's account
- Receiving PayPal webhook events
"""

import logging
from typing import Annotated, Any
from urllib.parse import urlencode

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import RedirectResponse

from ..config import get_settings
from ..dependencies import get_checkout_flow
from ..models import CreateOrderRequest, CreateOrderResponse, WebhookAck
from ..services.checkout import CheckoutFlow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["checkout"])


@router.post("/api/create-order", response_model=CreateOrderResponse)
@router.post("/api/create-paypal-order", response_model=CreateOrderResponse, include_in_schema=False)
async def create_order(
    request: CreateOrderRequest,
    checkout: Annotated[CheckoutFlow, Depends(get_checkout_flow)],
) -> CreateOrderResponse:
    """Create a PayPal order for a credit purchase and return its approval URL."""
    order = await checkout.initiate_checkout(
        account_id=request.account_id,
        amount=request.amount,
        description=request.description,
    )
    return CreateOrderResponse(order_id=order.order_id, approval_url=order.approval_url)


@router.get("/api/capture-order")
@router.get("/api/capture-paypal-order", include_in_schema=False)
async def capture_order(
    checkout: Annotated[CheckoutFlow, Depends(get_checkout_flow)],
    token: Annotated[str | None, Query()] = None,
    order_id: Annotated[str | None, Query(alias="orderId")] = None,
) -> RedirectResponse:
    """
    PayPal return URL: capture the approved order and credit its account.

    Redirects the buyer to the success page with the account and its new
    balance. Replaying the redirect does not credit twice.
    """
    grant = await checkout.finalize_checkout(token or order_id)

    base_url = (get_settings().base_url or "").rstrip("/")
    query = urlencode({"accountId": grant.account_id, "credits": grant.new_balance})
    return RedirectResponse(
        url=f"{base_url}/paypal-success?{query}",
        status_code=status.HTTP_302_FOUND,
    )


@router.post("/webhook", response_model=WebhookAck)
@router.post("/paypal-webhook", response_model=WebhookAck, include_in_schema=False)
async def webhook(
    event: Annotated[dict[str, Any], Body()],
    checkout: Annotated[CheckoutFlow, Depends(get_checkout_flow)],
) -> WebhookAck:
    """Acknowledge a PayPal webhook event. Events are logged only."""
    checkout.handle_webhook(event)
    return WebhookAck()
