import logging
import uuid
from typing import List, Optional, Union

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .classifier import mask_token
from .models import UserProfile

logger = logging.getLogger(__name__)


class PushTokenDAO:

    @staticmethod
    async def get_all_push_tokens(db: AsyncSession) -> List[str]:
        """Every non-empty push token across all user profiles."""
        query = select(UserProfile.push_token).where(
            UserProfile.push_token.is_not(None),
            UserProfile.push_token != ""
        )
        result = await db.execute(query)
        tokens = [token for token in result.scalars().all() if token]
        logger.info(f"Found {len(tokens)} users with push tokens")
        return tokens

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: Union[str, uuid.UUID]) -> Optional[UserProfile]:
        try:
            profile_id = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
        except ValueError:
            logger.info(f"Malformed user id: {user_id}")
            return None

        query = select(UserProfile).where(UserProfile.id == profile_id)
        result = await db.execute(query)
        return result.scalars().first()

    @staticmethod
    async def clear_push_tokens(db: AsyncSession, tokens: List[str]) -> int:
        """Unset the given tokens on whichever profiles still hold them."""
        if not tokens:
            return 0
        stmt = (
            update(UserProfile)
            .where(UserProfile.push_token.in_(tokens))
            .values(push_token=None)
        )
        result = await db.execute(stmt)
        await db.commit()
        logger.info(
            f"Cleared {result.rowcount} stale push tokens: {[mask_token(t) for t in tokens]}"
        )
        return result.rowcount
