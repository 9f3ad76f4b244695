"""
PII (Personally Identifiable Information) masking for log output.
"""
import re


def mask_email(email: str) -> str:
    """Mask email address."""
    if "@" not in email:
        return email
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        masked = "**"
    else:
        masked = local[:2] + "*" * (len(local) - 2)
    return f"{masked}@{domain}"


def mask_phone(phone: str) -> str:
    """Mask phone number."""
    if len(phone) <= 4:
        return "*" * len(phone)
    return phone[:2] + "*" * (len(phone) - 4) + phone[-2:]


def mask_account_number(account: str) -> str:
    """Mask bank account or e-wallet number, keeping the last four digits."""
    account = account or ""
    if len(account) <= 4:
        return "*" * len(account)
    return "*" * (len(account) - 4) + account[-4:]


def mask_name(name: str) -> str:
    """Mask name."""
    if len(name) <= 2:
        return "**"
    return name[0] + "*" * (len(name) - 2) + name[-1]


ACCOUNT_FIELDS = {"account", "account_number", "withdrawal_account", "mobile_number"}
EMAIL_FIELDS = {"email"}
PHONE_FIELDS = {"phone", "whatsapp"}
NAME_FIELDS = {"name", "account_holder_name", "beneficiary_name", "withdrawal_name", "first_name"}
SECRET_FIELDS = {"password", "signature_key", "token", "server_key"}


def mask_pii_in_dict(data: dict) -> dict:
    """Mask PII in dictionary recursively."""
    masked = {}

    for key, value in data.items():
        key_lower = key.lower()

        if isinstance(value, dict):
            masked[key] = mask_pii_in_dict(value)
        elif isinstance(value, list):
            masked[key] = [mask_pii_in_dict(item) if isinstance(item, dict) else item for item in value]
        elif not isinstance(value, str):
            masked[key] = value
        elif key_lower in SECRET_FIELDS:
            masked[key] = "***"
        elif key_lower in ACCOUNT_FIELDS:
            masked[key] = mask_account_number(value)
        elif key_lower in EMAIL_FIELDS or "@" in value:
            masked[key] = mask_email(value)
        elif key_lower in PHONE_FIELDS and re.match(r'^[\d\s\+\-\(\)]+$', value):
            masked[key] = mask_phone(value)
        elif key_lower in NAME_FIELDS:
            masked[key] = mask_name(value)
        else:
            masked[key] = value

    return masked
