"""
PayPal Orders v2 adapter.

Three REST calls, all bearer-token authenticated:
    - POST /v1/oauth2/token (client credentials)
    - POST /v2/checkout/orders
    - POST /v2/checkout/orders/{id}/capture

Every failure, including timeouts, surfaces as ``GatewayError`` carrying
the upstream status and body.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..exceptions import GatewayError
from ..models import CheckoutOrder

logger = logging.getLogger(__name__)

# Refresh the cached token this many seconds before PayPal expires it
TOKEN_EXPIRY_MARGIN = 60


class PaymentGateway(ABC):
    """Contract for the payment processor used by the checkout flow."""

    @abstractmethod
    async def create_order(self, account_id: str, amount: str, description: str) -> CheckoutOrder:
        """Create an order tagged with ``account_id`` and return its approval link."""

    @abstractmethod
    async def capture_order(self, order_id: str) -> dict[str, Any]:
        """Capture an approved order and return the gateway's capture payload."""


class PayPalGateway(PaymentGateway):
    """PayPal REST implementation of ``PaymentGateway``."""

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        base_url: str,
        return_url: str,
        cancel_url: str,
        currency: str = "USD",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the adapter.

        Args:
            client_id: PayPal REST app client id.
            client_secret: PayPal REST app secret.
            base_url: API host (sandbox or live).
            return_url: Where PayPal sends the buyer after approval.
            cancel_url: Where PayPal sends the buyer after cancelling.
            currency: ISO currency code for created orders.
            timeout: Deadline in seconds for each HTTP call.
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.return_url = return_url
        self.cancel_url = cancel_url
        self.currency = currency
        self.timeout = timeout
        self._transport = transport
        self._token: str | None = None
        self._token_expires_at = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _send(
        self,
        action: str,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Perform one request and map transport and HTTP failures to ``GatewayError``."""
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("PayPal %s timed out after %ss", action, self.timeout)
            raise GatewayError(f"PayPal {action} timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            logger.error("PayPal %s request error: %s", action, e)
            raise GatewayError(f"PayPal {action} failed: {e}") from e

        if response.is_error:
            logger.error(
                "PayPal %s failed: status=%d body=%s",
                action,
                response.status_code,
                response.text[:1000],
            )
            raise GatewayError(
                f"PayPal {action} failed: {response.status_code} {response.text}",
                upstream_status=response.status_code,
            )
        return response

    async def get_access_token(self) -> str:
        """
        Obtain an OAuth access token, reusing a cached one while it is valid.

        Raises:
            GatewayError: If credentials are missing or PayPal rejects them.
        """
        if not self.client_id or not self.client_secret:
            raise GatewayError("PayPal credentials missing in env")

        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        response = await self._send(
            "token",
            "POST",
            "/v1/oauth2/token",
            auth=(self.client_id, self.client_secret),
            data={"grant_type": "client_credentials"},
        )
        data = response.json()
        token = data.get("access_token")
        if not token:
            raise GatewayError("PayPal token response did not include an access token")

        expires_in = int(data.get("expires_in", 0) or 0)
        self._token = token
        self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
        return token

    async def create_order(self, account_id: str, amount: str, description: str) -> CheckoutOrder:
        token = await self.get_access_token()
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {"currency_code": self.currency, "value": amount},
                    "description": description,
                    "custom_id": account_id,
                }
            ],
            "application_context": {
                "return_url": self.return_url,
                "cancel_url": self.cancel_url,
            },
        }
        response = await self._send(
            "create order",
            "POST",
            "/v2/checkout/orders",
            json=body,
            headers={"Authorization": f"Bearer {token}"},
        )
        data = response.json()
        if not data.get("id"):
            raise GatewayError("PayPal create order response did not include an order id")

        approval_url = None
        for link in data.get("links") or []:
            if link.get("rel") in ("approve", "payer-action"):
                approval_url = link.get("href")
                break

        logger.info("Created PayPal order %s for %s (%s)", data.get("id"), account_id, amount)
        return CheckoutOrder(order_id=data["id"], approval_url=approval_url)

    async def capture_order(self, order_id: str) -> dict[str, Any]:
        token = await self.get_access_token()
        response = await self._send(
            "capture",
            "POST",
            f"/v2/checkout/orders/{order_id}/capture",
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
        )
        logger.info("Captured PayPal order %s", order_id)
        return response.json()
