"""
Application Services

Ledger, payment and invite workflows composed from repositories and
infrastructure adapters.
"""

from app.services.quota_service import QuotaService, get_quota_service
from app.services.payment_service import PaymentService, get_payment_service
from app.services.invite_service import InviteService, get_invite_service


__all__ = [
    "QuotaService",
    "get_quota_service",
    "PaymentService",
    "get_payment_service",
    "InviteService",
    "get_invite_service",
]
