"""
Xendit client for bank disbursements and e-wallet payouts.
"""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings

from market.gateways.base import GatewayClient


EWALLET_CHANNELS = {
    "dana": "ID_DANA",
    "ovo": "ID_OVO",
    "shopeepay": "ID_SHOPEEPAY",
    "linkaja": "ID_LINKAJA",
    "paytren": "ID_PAYTREN",
    "gopay": "ID_GOPAY",
}


class XenditClient(GatewayClient):
    name = "xendit"

    def __init__(self, api_key: str | None = None, base_url: str | None = None, **kwargs):
        super().__init__(
            api_key if api_key is not None else settings.XENDIT_API_KEY,
            base_url or settings.XENDIT_API_BASE_URL,
            **kwargs,
        )

    def create_disbursement(
        self,
        external_id: str,
        amount: Decimal,
        bank_code: str,
        account_holder_name: str,
        account_number: str,
        description: str = "",
    ) -> dict:
        payload = {
            "external_id": external_id,
            "amount": int(amount),
            "bank_code": bank_code.upper(),
            "account_holder_name": account_holder_name,
            "account_number": account_number,
            "description": description or f"Withdrawal {external_id}",
        }
        return self._post("/disbursements", json=payload, headers={"X-IDEMPOTENCY-KEY": external_id})

    def create_ewallet_charge(self, reference_id: str, amount: Decimal, method: str, mobile_number: str) -> dict:
        channel = EWALLET_CHANNELS.get(method.lower(), f"ID_{method.upper()}")
        payload = {
            "reference_id": reference_id,
            "currency": "IDR",
            "amount": int(amount),
            "checkout_method": "ONE_TIME_PAYMENT",
            "channel_code": channel,
            "channel_properties": {
                "mobile_number": mobile_number,
                "success_redirect_url": f"{settings.SITE_URL}/dashboard",
            },
        }
        return self._post("/ewallets/charges", json=payload, headers={"X-IDEMPOTENCY-KEY": reference_id})
