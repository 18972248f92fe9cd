"""
API Dependencies

FastAPI dependency injection for admin authentication and services.

Security: the admin surface is guarded by a shared key sent in the
X-Admin-Key header, compared in constant time.
"""

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from app.config.settings import get_settings
from app.services.invite_service import InviteService, get_invite_service
from app.services.payment_service import PaymentService, get_payment_service
from app.services.quota_service import QuotaService, get_quota_service


logger = logging.getLogger(__name__)


async def verify_admin_api_key(
    x_admin_key: str = Header(..., description="Admin API key for protected operations"),
) -> bool:
    """
    Verify the admin API key from the X-Admin-Key header.

    Raises:
        HTTPException 503: ADMIN_API_KEY is not configured
        HTTPException 403: key mismatch
    """
    expected_key = get_settings().admin_api_key

    if not expected_key:
        logger.error("ADMIN_API_KEY environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin authentication not configured",
        )

    if not secrets.compare_digest(x_admin_key, expected_key):
        logger.warning("Invalid admin API key attempt")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin API key",
        )

    return True


QuotaServiceDep = Annotated[QuotaService, Depends(get_quota_service)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
InviteServiceDep = Annotated[InviteService, Depends(get_invite_service)]


# =============================================================================
# Re-export DB dependencies for a single import source
# Routers should import from api.dependencies, not db.dependencies directly.
# =============================================================================
from app.infrastructure.db.dependencies import (  # noqa: E402, F401
    AccountRepoDep,
    BotSettingsDep,
    BotSettingsRepoDep,
    InviteCodeRepoDep,
    PaymentRepoDep,
)
