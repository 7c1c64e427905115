"""
Checkout flow: from a PayPal payment to credits on an account.

    initiate_checkout  -> gateway order tagged with the account id
    finalize_checkout  -> capture, compute the grant, credit the ledger once

A captured order id is recorded together with its grant, so replaying the
return redirect (or capturing the same token twice) never grants twice.
"""

import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from price_parser import Price

from ..exceptions import ValidationError
from ..models import ANONYMOUS_ACCOUNT, CheckoutOrder, CreditGrant
from .ledger import AccountLedger
from .paypal import PaymentGateway

logger = logging.getLogger(__name__)

_AMOUNT_PATTERN = re.compile(r"^\d+(\.\d{1,2})?$")


def parse_amount(value: Any) -> Decimal | None:
    """
    Parse a captured amount into a Decimal.

    Plain numeric strings ("15.00", "1e2") are read exactly; anything else
    goes through price-parser, which accepts strings carrying a currency
    ("USD 15.00"). Returns None when no finite amount can be read.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        amount = Decimal(text)
    except InvalidOperation:
        amount = Price.fromstring(text).amount

    if amount is None or not amount.is_finite():
        return None
    return amount


def compute_credit_grant(
    amount_paid: Any,
    reference_price: Decimal = Decimal("15.00"),
    reference_credits: int = 50,
) -> int:
    """
    Convert a paid amount into credits.

    ``round(amount_paid / reference_price * reference_credits)`` rounded half
    up; a zero, negative or unreadable result grants ``reference_credits``.

    Examples:
        "15.00" -> 50, "30.00" -> 100, "0.00" -> 50, "abc" -> 50
    """
    amount = parse_amount(amount_paid)
    if amount is None or not amount.is_finite():
        return reference_credits

    try:
        credits = int(
            (amount / Decimal(reference_price) * reference_credits).quantize(
                Decimal("1"), rounding=ROUND_HALF_UP
            )
        )
    except (InvalidOperation, ZeroDivisionError):
        return reference_credits

    if credits <= 0:
        return reference_credits
    return credits


def extract_capture_details(capture: dict[str, Any]) -> tuple[str, str | None]:
    """
    Read the account id and paid amount from a PayPal capture payload.

    Returns:
        (account_id, amount) where account_id defaults to the anonymous
        account and amount is None when the payload carries none.
    """
    units = capture.get("purchase_units") or []
    unit = units[0] if units and isinstance(units[0], dict) else {}

    account_id = unit.get("custom_id") or ANONYMOUS_ACCOUNT

    captures = (unit.get("payments") or {}).get("captures") or []
    first_capture = captures[0] if captures and isinstance(captures[0], dict) else {}
    amount = (first_capture.get("amount") or {}).get("value")

    # Depending on the return representation, custom_id sits on the capture
    if account_id == ANONYMOUS_ACCOUNT and first_capture.get("custom_id"):
        account_id = first_capture["custom_id"]

    return account_id, amount


class CheckoutFlow:
    """Orchestrates order creation and capture reconciliation."""

    def __init__(
        self,
        gateway: PaymentGateway,
        ledger: AccountLedger,
        reference_price: Decimal = Decimal("15.00"),
        reference_credits: int = 50,
    ):
        self.gateway = gateway
        self.ledger = ledger
        self.reference_price = Decimal(reference_price)
        self.reference_credits = reference_credits

    async def initiate_checkout(
        self,
        account_id: str = ANONYMOUS_ACCOUNT,
        amount: str = "15.00",
        description: str = "Project Brief Analyzer - 50 credits",
    ) -> CheckoutOrder:
        """
        Create a gateway order for a credit purchase.

        Raises:
            ValidationError: If ``amount`` is not a positive decimal string.
            GatewayError: If the gateway call fails.
        """
        amount = (amount or "").strip()
        if not _AMOUNT_PATTERN.match(amount) or Decimal(amount) <= 0:
            raise ValidationError(f"Invalid amount: {amount!r}")

        account_id = account_id or ANONYMOUS_ACCOUNT
        order = await self.gateway.create_order(account_id, amount, description)
        logger.info("Checkout started for %s: order %s", account_id, order.order_id)
        return order

    async def finalize_checkout(self, order_token: str | None) -> CreditGrant:
        """
        Capture an approved order and credit its account exactly once.

        Args:
            order_token: Order id from the gateway's return redirect.

        Returns:
            The grant; ``already_applied`` is True when the order had been
            credited before (no gateway call is made in that case).

        Raises:
            ValidationError: If the token is missing.
            GatewayError: If the capture fails. Nothing is credited.
        """
        if not order_token:
            raise ValidationError("Missing token")

        previous = self.ledger.get_applied_order(order_token)
        if previous is not None:
            logger.warning("Order %s already captured; not capturing again", order_token)
            return previous

        capture = await self.gateway.capture_order(order_token)
        account_id, amount = extract_capture_details(capture)

        if amount is None:
            logger.warning("Capture %s carried no amount; using reference price", order_token)
            amount = self.reference_price

        credits = compute_credit_grant(amount, self.reference_price, self.reference_credits)
        grant = self.ledger.apply_order_credit(order_token, account_id, credits)

        if not grant.already_applied:
            logger.info(
                "PayPal payment captured for %s. Added credits: %d", account_id, credits
            )
        return grant

    def handle_webhook(self, event: dict[str, Any]) -> None:
        """Log a gateway webhook event. Events do not touch the ledger."""
        logger.info(
            "PayPal webhook event: type=%s id=%s resource=%s",
            event.get("event_type"),
            event.get("id"),
            (event.get("resource") or {}).get("id") if isinstance(event.get("resource"), dict) else None,
        )
