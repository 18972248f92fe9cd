"""
Bot Settings Repository

Reads and writes the single global settings row, creating it with defaults
on first access.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.domain.bot_settings import SETTINGS_KEY, BotSettings, BotSettingsUpdate
from app.infrastructure.db.database import get_session_context
from app.infrastructure.db.models.bot_settings import BotSettingsModel


logger = logging.getLogger(__name__)


class BotSettingsRepository:
    """Repository for the global settings record."""

    async def get(self) -> BotSettings:
        """
        Return a snapshot of the settings, materializing defaults if absent.
        """
        async with get_session_context() as session:
            result = await session.execute(
                select(BotSettingsModel).where(BotSettingsModel.key == SETTINGS_KEY)
            )
            model = result.scalar_one_or_none()
            if model:
                return self._to_domain(model)

        try:
            return await self.reset()
        except IntegrityError:
            # Created concurrently; read the winner
            return await self.get()

    async def update(self, changes: BotSettingsUpdate) -> BotSettings:
        """Apply the provided fields; last write wins."""
        await self.get()
        values = changes.model_dump(exclude_unset=True)

        async with get_session_context() as session:
            model = (await session.execute(
                select(BotSettingsModel).where(BotSettingsModel.key == SETTINGS_KEY)
            )).scalar_one()

            for field, value in values.items():
                setattr(model, field, value)

            await session.commit()
            await session.refresh(model)

            logger.info(f"Updated bot settings: {sorted(values)}")
            return self._to_domain(model)

    async def reset(self) -> BotSettings:
        """Overwrite the record with defaults (creating it when absent)."""
        defaults = BotSettings()

        async with get_session_context() as session:
            model = (await session.execute(
                select(BotSettingsModel).where(BotSettingsModel.key == SETTINGS_KEY)
            )).scalar_one_or_none()

            if model is None:
                model = BotSettingsModel(key=SETTINGS_KEY)
                session.add(model)

            for field, value in defaults.model_dump(exclude={"key", "updated_at"}).items():
                setattr(model, field, value)

            await session.commit()
            await session.refresh(model)

            logger.info("Bot settings initialized with defaults")
            return self._to_domain(model)

    def _to_domain(self, model: BotSettingsModel) -> BotSettings:
        return BotSettings(
            key=model.key,
            free_messages_limit=model.free_messages_limit,
            cost_per_message=model.cost_per_message,
            credit_packages=list(model.credit_packages or []),
            premium_enabled=model.premium_enabled,
            premium_monthly_price=model.premium_monthly_price,
            premium_yearly_price=model.premium_yearly_price,
            maintenance_mode=model.maintenance_mode,
            private_mode=model.private_mode,
            access_codes=list(model.access_codes or []),
            welcome_message=model.welcome_message,
            updated_at=model.updated_at,
        )


# =============================================================================
# Singleton Instance
# =============================================================================

_bot_settings_repository: Optional[BotSettingsRepository] = None


def get_bot_settings_repository() -> BotSettingsRepository:
    """Get or create the settings repository singleton."""
    global _bot_settings_repository
    if _bot_settings_repository is None:
        _bot_settings_repository = BotSettingsRepository()
    return _bot_settings_repository
