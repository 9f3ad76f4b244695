"""
Expose ORM models for Django's auto-discovery while keeping real definitions
under the infrastructure module.
"""

from market.infra.models import *  # noqa: F401,F403
from market.infra.outbox import OutboxEvent  # noqa: F401
