"""
Razorpay payment gateway integration.

Orders are created server-side through the REST API; the client opens
checkout with the options built here and relays the signed result back.
Signatures follow the gateway's scheme:

- checkout: HMAC-SHA256(key_secret, "<order_id>|<payment_id>")
- webhook:  HMAC-SHA256(webhook_secret, <raw request body>)
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass

import requests
from django.conf import settings

from apps.bookings.domain.errors import GatewayUnavailable

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.razorpay.com/v1/"


@dataclass(frozen=True)
class GatewayConfig:
    key_id: str = ""
    key_secret: str = ""
    webhook_secret: str = ""
    api_base_url: str = DEFAULT_API_BASE_URL
    timeout: float = 30
    require_signature: bool = True
    simulate: bool = False
    merchant_name: str = "Homestead"

    @classmethod
    def from_settings(cls) -> "GatewayConfig":
        conf = getattr(settings, "PAYMENT_GATEWAY", {}) or {}
        key_id = conf.get("KEY_ID", "")
        return cls(
            key_id=key_id,
            key_secret=conf.get("KEY_SECRET", ""),
            webhook_secret=conf.get("WEBHOOK_SECRET", ""),
            api_base_url=conf.get("API_BASE_URL", DEFAULT_API_BASE_URL),
            timeout=float(conf.get("TIMEOUT", 30)),
            require_signature=bool(conf.get("REQUIRE_SIGNATURE", True)),
            # Без ключей в DEBUG эмулируем заказы, как и раньше
            simulate=bool(conf.get("SIMULATE", settings.DEBUG and not key_id)),
            merchant_name=conf.get("MERCHANT_NAME", "Homestead"),
        )


def _hmac_sha256(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def sign_payment(secret: str, order_id: str, payment_id: str) -> str:
    return _hmac_sha256(secret, f"{order_id}|{payment_id}".encode())


class RazorpayGateway:
    """Thin client over the orders API and the signature checks."""

    def __init__(self, config: GatewayConfig | None = None, session: requests.Session | None = None):
        self.config = config or GatewayConfig.from_settings()
        self.http = session or requests.Session()

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict | None = None) -> str:
        """
        Open a gateway order for ``amount`` minor units.

        Returns the order id. Raises GatewayUnavailable when the gateway
        cannot be reached or refuses the order.
        """
        logger.info("Creating gateway order %s for %s %s", receipt, amount, currency)

        if self.config.simulate:
            order_id = f"order_sim_{uuid.uuid4().hex[:14]}"
            logger.warning("Gateway simulation mode, issuing %s without network I/O", order_id)
            return order_id

        if not self.config.key_id or not self.config.key_secret:
            raise GatewayUnavailable("Payment gateway credentials are not configured")

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt[:40],
            "notes": notes or {},
        }
        try:
            response = self.http.post(
                f"{self.config.api_base_url.rstrip('/')}/orders",
                json=payload,
                auth=(self.config.key_id, self.config.key_secret),
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            logger.error("Gateway order creation failed for %s: %s", receipt, exc)
            raise GatewayUnavailable("Payment gateway is unavailable, please try again later") from exc
        except ValueError as exc:
            logger.error("Gateway returned a malformed response for %s", receipt)
            raise GatewayUnavailable("Payment gateway returned an invalid response") from exc

        order_id = data.get("id")
        if not order_id:
            logger.error("Gateway response without order id for %s: %s", receipt, data)
            raise GatewayUnavailable("Payment gateway did not return an order")

        logger.info("Gateway order %s created for %s", order_id, receipt)
        return order_id

    def checkout_options(self, session) -> dict:
        """Options the client passes to the gateway checkout widget."""
        draft = session.draft
        return {
            "key": self.config.key_id,
            "order_id": session.order_id,
            "amount": session.pricing.total,
            "currency": session.pricing.currency,
            "name": self.config.merchant_name,
            "description": draft.subject.title or draft.kind.value.replace("_", " ").title(),
            "prefill": {
                "name": draft.contact.name,
                "email": draft.contact.email,
                "contact": draft.contact.phone,
            },
            "notes": {
                "session_id": str(session.id),
                "kind": draft.kind.value,
                "subject_id": draft.subject.subject_id,
            },
        }

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str | None) -> bool:
        if not signature or not self.config.key_secret:
            return False
        expected = sign_payment(self.config.key_secret, order_id, payment_id)
        return hmac.compare_digest(expected, signature)

    def verify_webhook_signature(self, body: bytes, signature: str | None) -> bool:
        if not signature or not self.config.webhook_secret:
            return False
        expected = _hmac_sha256(self.config.webhook_secret, body)
        return hmac.compare_digest(expected, signature)
