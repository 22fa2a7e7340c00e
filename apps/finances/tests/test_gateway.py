"""Tests for the Razorpay gateway client and the audit trail."""

from __future__ import annotations

import hashlib
import hmac
from unittest.mock import MagicMock

import pytest
import requests

from apps.bookings.domain.errors import GatewayUnavailable
from apps.finances.audit import record_transaction
from apps.finances.gateway import GatewayConfig, RazorpayGateway, sign_payment
from apps.finances.models import PaymentTransaction

CONFIG = GatewayConfig(key_id="rzp_test_key", key_secret="secret", webhook_secret="hook")


def gateway_with(response=None, error=None) -> tuple[RazorpayGateway, MagicMock]:
    http = MagicMock(spec=requests.Session)
    if error is not None:
        http.post.side_effect = error
    else:
        http.post.return_value = response
    return RazorpayGateway(CONFIG, session=http), http


def test_create_order_posts_amount_in_minor_units():
    response = MagicMock()
    response.json.return_value = {"id": "order_N1", "status": "created"}
    gateway, http = gateway_with(response)

    order_id = gateway.create_order(118000, "INR", receipt="session_abc", notes={"kind": "short_stay"})

    assert order_id == "order_N1"
    _, kwargs = http.post.call_args
    assert kwargs["json"]["amount"] == 118000
    assert kwargs["json"]["currency"] == "INR"
    assert kwargs["auth"] == ("rzp_test_key", "secret")
    assert http.post.call_args.args[0].endswith("/orders")


def test_network_error_means_gateway_unavailable():
    gateway, _ = gateway_with(error=requests.ConnectionError("connection refused"))

    with pytest.raises(GatewayUnavailable):
        gateway.create_order(30000, "INR", receipt="session_abc")


def test_http_error_means_gateway_unavailable():
    response = MagicMock()
    response.raise_for_status.side_effect = requests.HTTPError("502 Bad Gateway")
    gateway, _ = gateway_with(response)

    with pytest.raises(GatewayUnavailable):
        gateway.create_order(30000, "INR", receipt="session_abc")


def test_response_without_order_id_means_gateway_unavailable():
    response = MagicMock()
    response.json.return_value = {"error": {"code": "BAD_REQUEST_ERROR"}}
    gateway, _ = gateway_with(response)

    with pytest.raises(GatewayUnavailable):
        gateway.create_order(30000, "INR", receipt="session_abc")


def test_missing_credentials_means_gateway_unavailable():
    gateway = RazorpayGateway(GatewayConfig(), session=MagicMock())

    with pytest.raises(GatewayUnavailable):
        gateway.create_order(30000, "INR", receipt="session_abc")


def test_simulation_issues_orders_offline():
    http = MagicMock()
    gateway = RazorpayGateway(GatewayConfig(simulate=True), session=http)

    order_id = gateway.create_order(30000, "INR", receipt="session_abc")

    assert order_id.startswith("order_sim_")
    http.post.assert_not_called()


def test_payment_signature():
    gateway = RazorpayGateway(CONFIG, session=MagicMock())
    signature = sign_payment("secret", "order_N1", "pay_P1")

    assert gateway.verify_payment_signature("order_N1", "pay_P1", signature)
    assert not gateway.verify_payment_signature("order_N1", "pay_P2", signature)
    assert not gateway.verify_payment_signature("order_N1", "pay_P1", None)


def test_webhook_signature_covers_raw_body():
    gateway = RazorpayGateway(CONFIG, session=MagicMock())
    body = b'{"event":"payment.captured"}'
    signature = hmac.new(b"hook", body, hashlib.sha256).hexdigest()

    assert gateway.verify_webhook_signature(body, signature)
    assert not gateway.verify_webhook_signature(body + b" ", signature)
    assert not gateway.verify_webhook_signature(body, "")


@pytest.mark.django_db
def test_audit_redacts_signature():
    record_transaction(
        "checkout_callback",
        order_id="order_N1",
        payment_id="pay_P1",
        amount=30000,
        payload={"signature": "abc", "amount": 30000},
    )

    row = PaymentTransaction.objects.get()
    assert row.payload == {"signature": "***", "amount": 30000}
    assert row.order_id == "order_N1"
