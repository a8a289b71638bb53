"""Stripe Checkout integration for the one-time unlock.

Creates a hosted Checkout session through the Stripe REST API and
mints the access token that the success URL carries back.

Usage:
    from cadenceiq.integrations.checkout import CheckoutClient

    client = CheckoutClient()
    session = client.create_session()
    access_gate.issue(session.access_token)
    print(session.url)
"""

import hashlib
import time
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import requests  # type: ignore[import-untyped]

from cadenceiq.core.config import Config, get_config
from cadenceiq.core.exceptions import PaymentError
from cadenceiq.core.logging import get_logger
from cadenceiq.integrations.base import IntegrationBase

logger = get_logger(__name__)

STRIPE_API_URL = "https://api.stripe.com/v1"
PRODUCT_NAME = "CadenceIQ - Contact Management"
PRODUCT_DESCRIPTION = "One-time purchase for lifetime access"


@dataclass
class CheckoutSession:
    """Created checkout session.

    Attributes:
        session_id: Stripe session id
        url: Hosted checkout page to send the user to
        access_token: Token embedded in the success URL
    """

    session_id: str
    url: str
    access_token: str


def generate_access_token() -> str:
    """Return a fresh 32-character hex access token."""
    seed = f"{uuid.uuid4()}{time.time()}".encode("utf-8")
    return hashlib.sha256(seed).hexdigest()[:32]


class CheckoutClient(IntegrationBase):
    """Stripe Checkout client (one-time payment mode)."""

    service = "Stripe checkout"

    def __init__(self, config: Optional[Config] = None, timeout: float = 15.0) -> None:
        self._config = config or get_config()
        self._timeout = timeout

    def is_configured(self) -> bool:
        return bool(self._config.stripe_secret_key)

    def _form_data(self, amount_cents: int, token: str) -> dict[str, Any]:
        """Stripe expects nested params flattened into form keys."""
        base_url = self._config.app_url.rstrip("/")
        return {
            "mode": "payment",
            "payment_method_types[0]": "card",
            "line_items[0][quantity]": 1,
            "line_items[0][price_data][currency]": "usd",
            "line_items[0][price_data][unit_amount]": amount_cents,
            "line_items[0][price_data][product_data][name]": PRODUCT_NAME,
            "line_items[0][price_data][product_data][description]": PRODUCT_DESCRIPTION,
            "success_url": f"{base_url}/access/{token}",
            "cancel_url": f"{base_url}/payment",
        }

    def create_session(self, amount_cents: Optional[int] = None) -> CheckoutSession:
        """Create a Checkout session for the unlock fee.

        Args:
            amount_cents: Price override (defaults to config)

        Returns:
            CheckoutSession with the hosted URL and the access token

        Raises:
            PaymentError: If Stripe is not configured, the amount is invalid,
                or the API call fails
        """
        if not self.is_configured():
            raise PaymentError("Stripe not configured (STRIPE_SECRET_KEY missing)")

        amount = self._config.access_price_cents if amount_cents is None else amount_cents
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise PaymentError(f"Invalid amount: must be positive cents, got {amount!r}")

        token = generate_access_token()

        try:
            response = requests.post(
                f"{STRIPE_API_URL}/checkout/sessions",
                auth=(self._config.stripe_secret_key or "", ""),
                data=self._form_data(amount, token),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise PaymentError(f"Stripe request failed: {e}") from e

        if response.status_code != 200:
            message = response.text
            try:
                message = response.json().get("error", {}).get("message", message)
            except ValueError:
                pass
            raise PaymentError(f"Stripe API error {response.status_code}: {message}")

        body = response.json()
        url = body.get("url")
        if not url:
            raise PaymentError("Invalid response: missing checkout session URL")

        logger.info(
            "Checkout session created",
            extra={"context": {"session_id": body.get("id"), "amount_cents": amount}},
        )
        return CheckoutSession(session_id=body.get("id", ""), url=url, access_token=token)
