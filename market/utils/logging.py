"""
JSON log formatter.

Known context keys passed through ``extra=`` become top-level fields; email
and account values are masked before they reach the log stream.
"""
import json
import logging
from datetime import datetime, timezone

from market.infra.pii_masker import mask_account_number, mask_email


CONTEXT_FIELDS = (
    "request_id",
    "user_id",
    "operation",
    "status",
    "idempotency_key",
    "order_id",
    "product_id",
    "withdrawal_id",
    "event_id",
    "event_type",
    "gateway",
    "amount",
    "balance",
    "account",
    "email",
    "aggregate_type",
    "method",
    "path",
    "changed",
    "attempt",
    "payload",
    "error",
)

MASKERS = {
    "email": mask_email,
    "account": mask_account_number,
}


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                continue
            value = getattr(record, field)
            masker = MASKERS.get(field)
            if masker is not None and isinstance(value, str):
                value = masker(value)
            log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)
