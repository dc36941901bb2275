"""Stripe checkout session building and webhook event parsing."""
import enum
import json
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import stripe

from cart import to_price

CURRENCY = "mxn"
PRODUCT_DESCRIPTION = "Suplemento natural para mascotas"
ALLOWED_COUNTRIES = ["MX"]
LOCALE = "es"

COMPLETED_EVENT = "checkout.session.completed"
EXPIRED_EVENT = "checkout.session.expired"


class CheckoutStatus(enum.Enum):
    INITIATED = "initiated"
    SESSION_CREATED = "session_created"
    PAID = "paid"
    ABANDONED = "abandoned"


EVENT_STATUS = {
    COMPLETED_EVENT: CheckoutStatus.PAID,
    EXPIRED_EVENT: CheckoutStatus.ABANDONED,
}


class CheckoutValidationError(ValueError):
    """Request body cannot be turned into Stripe line items."""


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


@dataclass
class PaymentEvent:
    type: str
    session_id: Optional[str] = None
    amount_total: Optional[int] = None
    customer_email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> Optional[CheckoutStatus]:
        return EVENT_STATUS.get(self.type)

    @classmethod
    def from_event(cls, event: dict) -> "PaymentEvent":
        data = _as_dict(event.get("data"))
        session = _as_dict(data.get("object"))
        details = _as_dict(session.get("customer_details"))
        return cls(
            type=event.get("type", ""),
            session_id=session.get("id"),
            amount_total=session.get("amount_total"),
            customer_email=session.get("customer_email") or details.get("email"),
            metadata=_as_dict(session.get("metadata")),
        )


def to_minor_units(price) -> int:
    """250.5 -> 25050. Halves round up, like the storefront's Math.round."""
    try:
        return int((to_price(price) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation as e:
        raise ValueError(f"price out of range {price!r}") from e


def build_line_items(items) -> List[dict]:
    if not items:
        raise CheckoutValidationError("No items provided")
    if not isinstance(items, list):
        raise CheckoutValidationError("items must be a list")

    line_items = []
    for item in items:
        if not isinstance(item, dict) or not item.get("name"):
            raise CheckoutValidationError("Each item needs a name")
        try:
            unit_amount = to_minor_units(item.get("price"))
        except ValueError:
            raise CheckoutValidationError(f"Invalid price for {item['name']}")
        qty = item.get("qty", 1)
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
            raise CheckoutValidationError(f"Invalid quantity for {item['name']}")
        if unit_amount < 0:
            raise CheckoutValidationError(f"Invalid price for {item['name']}")

        # Stripe line item
        line_items.append({
            "price_data": {
                "currency": CURRENCY,
                "product_data": {
                    "name": item["name"],
                    "description": PRODUCT_DESCRIPTION,
                },
                "unit_amount": unit_amount,
            },
            "quantity": qty,
        })
    return line_items


def create_session(items, customer_info, settings):
    """Create the hosted checkout session. Stripe errors propagate to the caller."""
    customer_info = customer_info or {}
    line_items = build_line_items(items)

    params = dict(
        payment_method_types=["card"],
        line_items=line_items,
        mode="payment",
        success_url=f"{settings.frontend_url}/gracias.html?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{settings.frontend_url}/checkout.html",
        metadata={
            "customer_name": customer_info.get("name") or "",
            "customer_phone": customer_info.get("phone") or "",
            "customer_address": customer_info.get("address") or "",
        },
        shipping_address_collection={"allowed_countries": ALLOWED_COUNTRIES},
        locale=LOCALE,
    )
    if customer_info.get("email"):
        params["customer_email"] = customer_info["email"]

    stripe.api_key = settings.stripe_secret_key
    return stripe.checkout.Session.create(**params)


def verify_event(payload: bytes, sig_header: Optional[str], secret: Optional[str]) -> dict:
    """
    Check the Stripe-Signature header against the exact request bytes and
    return the decoded event.

    Raises:
        stripe.SignatureVerificationError: header missing or not matching
        ValueError: secret not configured, body not UTF-8 or not JSON
    """
    if not secret:
        raise ValueError("Webhook signing secret is not configured")
    if not sig_header:
        raise stripe.SignatureVerificationError("Missing Stripe-Signature header", sig_header, payload)

    body = payload.decode("utf-8")
    stripe.WebhookSignature.verify_header(body, sig_header, secret, stripe.Webhook.DEFAULT_TOLERANCE)
    event = json.loads(body)
    if not isinstance(event, dict):
        raise ValueError("Event payload is not an object")
    return event
