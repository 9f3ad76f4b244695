"""
Shared HTTP plumbing for payment gateway clients.
"""
from __future__ import annotations

import logging

import requests
from django.conf import settings

from market.errors import GatewayError
from market.infra.pii_masker import mask_pii_in_dict
from market.infra.retry import retry_with_backoff


logger = logging.getLogger(__name__)


class GatewayClient:
    """
    Base client: HTTP Basic auth with the API key as user name, JSON responses.

    Connection failures are retried with exponential backoff. Read timeouts
    are retried only for calls carrying an idempotency key header. HTTP error
    responses are never retried.
    """

    name = "gateway"
    idempotency_headers = ("idempotency-key", "x-idempotency-key")

    def __init__(
        self,
        api_key: str,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.auth = (api_key, "")
        self.timeout = timeout if timeout is not None else settings.GATEWAY_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.GATEWAY_MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else settings.GATEWAY_RETRY_DELAY

    def _post(self, path: str, json: dict | None = None, data: dict | None = None, headers: dict | None = None) -> dict:
        url = f"{self.base_url}{path}"
        logger.info(
            "gateway_request",
            extra={"gateway": self.name, "operation": path, "payload": mask_pii_in_dict(json or data or {})},
        )

        def log_retry(attempt, error, delay):
            logger.warning(
                "gateway_retry",
                extra={"gateway": self.name, "operation": path, "attempt": attempt, "error": str(error)},
            )

        retried = (requests.ConnectionError,)
        if any(h.lower() in self.idempotency_headers for h in headers or {}):
            retried += (requests.Timeout,)

        @retry_with_backoff(
            max_retries=self.max_retries,
            initial_delay=self.retry_delay,
            exceptions=retried,
            on_retry=log_retry,
        )
        def send():
            return self.session.post(url, json=json, data=data, headers=headers, timeout=self.timeout)

        try:
            response = send()
        except requests.RequestException as e:
            raise GatewayError(self.name, str(e)) from e

        return self._parse(response, path)

    def _parse(self, response: requests.Response, path: str) -> dict:
        try:
            payload = response.json()
        except ValueError:
            raise GatewayError(
                self.name,
                f"Invalid response (HTTP {response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )

        if not response.ok:
            logger.error(
                "gateway_error_response",
                extra={"gateway": self.name, "operation": path, "status": response.status_code},
            )
            raise GatewayError(
                self.name,
                self._error_message(payload) or f"HTTP {response.status_code}",
                status_code=response.status_code,
                payload=payload,
            )
        return payload

    def _error_message(self, payload) -> str:
        if isinstance(payload, dict):
            for key in ("message", "error_message", "status_message"):
                if payload.get(key):
                    return str(payload[key])
            errors = payload.get("error_messages") or payload.get("errors")
            if errors:
                return "; ".join(str(e) for e in errors) if isinstance(errors, list) else str(errors)
        return ""
