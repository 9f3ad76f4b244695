"""
Flip client: bill links for payments and disbursements for payouts.
"""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings

from market.gateways.base import GatewayClient


class FlipClient(GatewayClient):
    """Flip for Business API (form-encoded requests)."""

    name = "flip"

    def __init__(self, api_key: str | None = None, base_url: str | None = None, **kwargs):
        super().__init__(
            api_key if api_key is not None else settings.FLIP_API_KEY,
            base_url or settings.FLIP_API_BASE_URL,
            **kwargs,
        )

    def create_bill(self, title: str, amount: Decimal, redirect_url: str = "") -> dict:
        """Create a single-use bill link; returns ``link_id`` and ``link_url``."""
        data = {
            "title": title[:255],
            "amount": int(amount),
            "type": "SINGLE",
            "step": 1,
        }
        if redirect_url:
            data["redirect_url"] = redirect_url
        return self._post("/pwf/bill", data=data)

    def create_disbursement(
        self,
        idempotency_key: str,
        account_number: str,
        bank_code: str,
        amount: Decimal,
        remark: str = "",
    ) -> dict:
        data = {
            "account_number": account_number,
            "bank_code": bank_code.lower(),
            "amount": int(amount),
            "remark": remark[:18],
        }
        return self._post("/disbursement", data=data, headers={"idempotency-key": idempotency_key})
