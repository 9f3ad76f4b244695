"""
Midtrans Snap client and notification signature check.
"""
from __future__ import annotations

import hashlib
import hmac
from decimal import Decimal

from django.conf import settings

from market.gateways.base import GatewayClient


SANDBOX_URL = "https://app.sandbox.midtrans.com"
PRODUCTION_URL = "https://app.midtrans.com"


def notification_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode()).hexdigest()


def verify_signature(payload: dict, server_key: str) -> bool:
    """Check ``signature_key`` of a Midtrans HTTP notification."""
    expected = notification_signature(
        str(payload.get("order_id", "")),
        str(payload.get("status_code", "")),
        str(payload.get("gross_amount", "")),
        server_key,
    )
    return hmac.compare_digest(expected, str(payload.get("signature_key", "")))


class MidtransSnapClient(GatewayClient):
    """Creates Snap checkout sessions."""

    name = "midtrans"

    def __init__(self, server_key: str | None = None, is_production: bool | None = None, **kwargs):
        if is_production is None:
            is_production = settings.MIDTRANS_IS_PRODUCTION
        super().__init__(
            server_key if server_key is not None else settings.MIDTRANS_SERVER_KEY,
            PRODUCTION_URL if is_production else SANDBOX_URL,
            **kwargs,
        )

    def create_transaction(
        self,
        order_id: str,
        amount: Decimal,
        item_id: str,
        item_name: str,
        customer: dict,
    ) -> dict:
        """Returns ``{"token": ..., "redirect_url": ...}``."""
        gross_amount = int(amount)
        params = {
            "transaction_details": {
                "order_id": order_id,
                "gross_amount": gross_amount,
            },
            "customer_details": {
                "first_name": customer.get("name", ""),
                "email": customer.get("email", ""),
                "phone": customer.get("phone", ""),
            },
            "item_details": [
                {
                    "id": item_id,
                    "price": gross_amount,
                    "quantity": 1,
                    # Midtrans rejects item names longer than 50 characters
                    "name": item_name[:50],
                }
            ],
        }
        return self._post("/snap/v1/transactions", json=params, headers={"Accept": "application/json"})
