"""
Global Bot Settings Domain Models

The single operator-editable settings record (key "global"): free-tier size,
per-message cost, premium pricing, credit package catalog and feature toggles.

Callers read it once per request and pass the snapshot explicitly to the
ledger and payment services, so admin edits apply to the next request.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


SETTINGS_KEY = "global"


class CreditPackage(BaseModel):
    """A purchasable bundle of credits. Prices are in euro cents."""
    id: str
    name: str
    credits: int = Field(gt=0)
    price: int = Field(gt=0)
    popular: bool = False


DEFAULT_CREDIT_PACKAGES: list[CreditPackage] = [
    CreditPackage(id="pack_10", name="10 Messages", credits=10, price=100),
    CreditPackage(id="pack_50", name="50 Messages", credits=50, price=400, popular=True),
    CreditPackage(id="pack_100", name="100 Messages", credits=100, price=700),
    CreditPackage(id="pack_500", name="500 Messages", credits=500, price=2500),
]

_REQUIRED_PACKAGE_FIELDS = ("id", "name", "credits", "price")


class BotSettings(BaseModel):
    """Snapshot of the global settings record."""
    key: str = SETTINGS_KEY
    free_messages_limit: int = Field(default=5, ge=0)
    cost_per_message: int = Field(default=1, gt=0)
    credit_packages: list[dict[str, Any]] = Field(
        default_factory=lambda: [p.model_dump() for p in DEFAULT_CREDIT_PACKAGES]
    )
    premium_enabled: bool = True
    premium_monthly_price: int = 999
    premium_yearly_price: int = 7999
    maintenance_mode: bool = False
    private_mode: bool = False
    access_codes: list[str] = Field(default_factory=list)
    welcome_message: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BotSettingsUpdate(BaseModel):
    """Partial update accepted from the admin surface."""
    free_messages_limit: Optional[int] = Field(default=None, ge=0)
    cost_per_message: Optional[int] = Field(default=None, gt=0)
    credit_packages: Optional[list[CreditPackage]] = None
    premium_enabled: Optional[bool] = None
    premium_monthly_price: Optional[int] = Field(default=None, gt=0)
    premium_yearly_price: Optional[int] = Field(default=None, gt=0)
    maintenance_mode: Optional[bool] = None
    private_mode: Optional[bool] = None
    access_codes: Optional[list[str]] = None
    welcome_message: Optional[str] = None


def get_credit_packages(bot_settings: BotSettings) -> list[CreditPackage]:
    """
    Return the configured credit catalog.

    Falls back to DEFAULT_CREDIT_PACKAGES when the stored list is empty or
    any entry is missing one of id/name/credits/price (or fails validation).
    """
    raw = bot_settings.credit_packages or []
    if not raw:
        return list(DEFAULT_CREDIT_PACKAGES)

    packages = []
    for entry in raw:
        if not isinstance(entry, dict) or any(not entry.get(f) for f in _REQUIRED_PACKAGE_FIELDS):
            return list(DEFAULT_CREDIT_PACKAGES)
        try:
            packages.append(CreditPackage.model_validate(entry))
        except ValueError:
            return list(DEFAULT_CREDIT_PACKAGES)

    return packages


def find_credit_package(bot_settings: BotSettings, package_id: str) -> Optional[CreditPackage]:
    for package in get_credit_packages(bot_settings):
        if package.id == package_id:
            return package
    return None
