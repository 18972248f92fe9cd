"""
Invite Code Repository
"""

import logging
from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select

from app.domain.account import utcnow
from app.domain.invite import InviteCode, InviteCodeCreate, InviteCodeType
from app.infrastructure.db.database import get_session_context
from app.infrastructure.db.models.invite_code import InviteCodeModel
from app.infrastructure.exceptions import DuplicateError


logger = logging.getLogger(__name__)


class InviteCodeRepository:
    """Repository for private-mode invite codes."""

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_code(self, code: str) -> Optional[InviteCode]:
        async with get_session_context() as session:
            result = await session.execute(
                select(InviteCodeModel).where(InviteCodeModel.code == code)
            )
            model = result.scalar_one_or_none()

            if model:
                return self._to_domain(model)

            return None

    async def list_codes(self) -> list[InviteCode]:
        async with get_session_context() as session:
            result = await session.execute(
                select(InviteCodeModel).order_by(col(InviteCodeModel.created_at).desc())
            )
            return [self._to_domain(m) for m in result.scalars().all()]

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create(self, data: InviteCodeCreate) -> InviteCode:
        """
        Raises:
            DuplicateError: The code already exists
        """
        try:
            async with get_session_context() as session:
                model = InviteCodeModel(code=data.code, type=data.type.value)
                session.add(model)
                await session.commit()
                await session.refresh(model)

                logger.info(f"Created {data.type.value} invite code {data.code}")
                return self._to_domain(model)
        except IntegrityError as e:
            raise DuplicateError(
                f"Invite code {data.code} already exists",
                details={"code": data.code},
                original_error=e,
            )

    async def delete(self, code: str) -> bool:
        async with get_session_context() as session:
            result = await session.execute(
                delete(InviteCodeModel).where(InviteCodeModel.code == code)
            )
            await session.commit()
            return bool(result.rowcount)

    async def consume(self, code: str, telegram_id: int) -> bool:
        """
        Mark a one-time code used by `telegram_id`.

        Returns:
            True when this call consumed the code, False when it was
            already used (or is not a one-time code)
        """
        async with get_session_context() as session:
            result = await session.execute(
                update(InviteCodeModel)
                .where(
                    InviteCodeModel.code == code,
                    InviteCodeModel.type == InviteCodeType.ONE_TIME.value,
                    col(InviteCodeModel.is_used).is_(False),
                )
                .values(is_used=True, used_by=telegram_id, used_at=utcnow())
            )
            await session.commit()
            return bool(result.rowcount)

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: InviteCodeModel) -> InviteCode:
        return InviteCode(
            id=str(model.id),
            code=model.code,
            type=InviteCodeType(model.type),
            is_used=model.is_used,
            used_by=model.used_by,
            used_at=model.used_at,
            created_at=model.created_at,
        )


# =============================================================================
# Singleton Instance
# =============================================================================

_invite_code_repository: Optional[InviteCodeRepository] = None


def get_invite_code_repository() -> InviteCodeRepository:
    """Get or create the invite code repository singleton."""
    global _invite_code_repository
    if _invite_code_repository is None:
        _invite_code_repository = InviteCodeRepository()
    return _invite_code_repository
