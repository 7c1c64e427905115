"""Shared test doubles and fixture builders."""

from typing import Any

from app.brief_agent.models import CheckoutOrder
from app.brief_agent.services.paypal import PaymentGateway

BRIEF_TEXT = "Website redesign brief for Acme Corp"


def make_pdf(text: str | None = None) -> bytes:
    """
    Build a single-page PDF with correct xref offsets.

    With ``text`` the page draws it in Helvetica; without it the page has
    no content stream and therefore no extractable text.
    """
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
    ]
    if text is None:
        objects.append(b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>")
    else:
        stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
        objects.append(
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            b"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>"
        )
        objects.append(
            b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream"
        )
        objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n".encode()
    out += f"startxref\n{xref_offset}\n%%EOF".encode()
    return bytes(out)


def capture_payload(order_id: str, account_id: str | None, amount: str | None) -> dict[str, Any]:
    """Build a PayPal capture response body."""
    unit: dict[str, Any] = {"reference_id": "default"}
    if account_id is not None:
        unit["custom_id"] = account_id
    capture: dict[str, Any] = {"id": f"CAP-{order_id}", "status": "COMPLETED"}
    if amount is not None:
        capture["amount"] = {"currency_code": "USD", "value": amount}
    unit["payments"] = {"captures": [capture]}
    return {"id": order_id, "status": "COMPLETED", "purchase_units": [unit]}


class StubAIService:
    """Stands in for AIService; records calls and returns a fixed reply."""

    def __init__(self, reply: str = '{"overview": "A redesign.", "confidence_score": 0.8}'):
        self.reply = reply
        self.error: Exception | None = None
        self.calls: list[str] = []

    async def analyze_brief(self, brief_text: str) -> str:
        self.calls.append(brief_text)
        if self.error is not None:
            raise self.error
        return self.reply


class StubGateway(PaymentGateway):
    """Payment gateway returning canned orders and captures."""

    def __init__(self):
        self.captures: dict[str, dict[str, Any]] = {}
        self.created: list[tuple[str, str, str]] = []
        self.capture_calls: list[str] = []
        self.error: Exception | None = None

    async def create_order(self, account_id: str, amount: str, description: str) -> CheckoutOrder:
        if self.error is not None:
            raise self.error
        self.created.append((account_id, amount, description))
        order_id = f"ORDER-{len(self.created)}"
        return CheckoutOrder(
            order_id=order_id,
            approval_url=f"https://www.sandbox.paypal.com/checkoutnow?token={order_id}",
        )

    async def capture_order(self, order_id: str) -> dict[str, Any]:
        self.capture_calls.append(order_id)
        if self.error is not None:
            raise self.error
        return self.captures[order_id]


