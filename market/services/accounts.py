"""
Account services: registration, login and profile.
"""
from __future__ import annotations

import logging

from django.contrib.auth.hashers import check_password, make_password
from django.db import transaction

from market.errors import ServiceError
from market.infra.models import UserORM
from market.infra.pii_masker import mask_email
from market.infra.repositories import UserRepository


logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "whatsapp", "phone", "withdrawal_method", "withdrawal_account", "withdrawal_name")


def _text(value, label: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ServiceError(f"{label} must be a string")
    return value.strip()


class AccountService:
    """Service for user accounts."""

    def __init__(self, user_repo: UserRepository | None = None):
        self.user_repo = user_repo or UserRepository()

    @transaction.atomic
    def register(self, name: str, email: str, password: str, whatsapp: str) -> UserORM:
        name, email, whatsapp = _text(name, "name"), _text(email, "email"), _text(whatsapp, "whatsapp")
        if password is not None and not isinstance(password, str):
            raise ServiceError("password must be a string")
        if not name or not email or not password or not whatsapp:
            raise ServiceError("Name, email, password and WhatsApp number are required")
        if "@" not in email:
            raise ServiceError("Invalid email address")
        if self.user_repo.email_exists(email):
            raise ServiceError("Email already registered")

        user = self.user_repo.create(
            name=name,
            email=email,
            password=make_password(password),
            whatsapp=whatsapp,
        )
        logger.info("user_registered", extra={"user_id": str(user.id), "email": mask_email(user.email)})
        return user

    def authenticate(self, email: str, password: str) -> UserORM:
        email = _text(email, "email")
        if password is not None and not isinstance(password, str):
            raise ServiceError("password must be a string")
        if not email or not password:
            raise ServiceError("Email and password are required")

        user = self.user_repo.get_by_email(email)
        if user is None or not user.password or not check_password(password, user.password):
            logger.warning("login_failed", extra={"email": mask_email(email)})
            raise ServiceError("Invalid email or password", "UNAUTHORIZED")

        logger.info("login_succeeded", extra={"user_id": str(user.id)})
        return user

    def get_user(self, user_id) -> UserORM | None:
        return self.user_repo.get_by_id(user_id)

    def update_profile(self, user: UserORM, data: dict) -> UserORM:
        changes = {}
        for field in PROFILE_FIELDS:
            if field in data:
                changes[field] = str(data[field] or "").strip()
        if "name" in changes and not changes["name"]:
            raise ServiceError("Name cannot be empty")
        if "withdrawal_method" in changes:
            changes["withdrawal_method"] = changes["withdrawal_method"].lower()
        if not changes:
            return user
        return self.user_repo.update(user, **changes)
