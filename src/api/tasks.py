"""Periodic maintenance of the API's auth tables."""

import structlog
from celery import shared_task
from ninja_jwt.token_blacklist.models import OutstandingToken
from ninja_jwt.utils import aware_utcnow

logger = structlog.get_logger(__name__)


@shared_task
def flush_expired_tokens() -> int:
    """Delete expired refresh tokens from the outstanding token list, blacklist entries included."""
    deleted, _ = OutstandingToken.objects.filter(expires_at__lte=aware_utcnow()).delete()
    logger.info("expired_tokens_flushed", deleted=deleted)
    return deleted
