import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from appdoki.db.models import User
from appdoki.schemas.user import Identity

logger = logging.getLogger(__name__)


class SQLUsersRepository:
    """User storage backed by an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, id: str) -> User | None:
        result = await self.db.execute(select(User).where(User.id == id))
        return result.scalar_one_or_none()

    async def find_or_create_user(self, identity: Identity) -> tuple[User, bool]:
        """
        Return the user with ``identity.subject`` as id, creating it if needed.

        An existing user's profile is refreshed when the identity carries
        different values; identical input leaves the row untouched.

        Returns:
            tuple: (user, created)
        """
        user = await self.get_by_id(identity.subject)
        if user:
            await self._refresh_profile(user, identity)
            return user, False

        user = User(
            id=identity.subject,
            name=identity.name,
            email=identity.email,
            picture=identity.picture,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request created the same user between our read and insert
            await self.db.rollback()
            existing = await self.get_by_id(identity.subject)
            if existing is None:
                raise
            logger.info(f"Concurrent creation detected for user {identity.subject}")
            await self._refresh_profile(existing, identity)
            return existing, False

        await self.db.refresh(user)
        return user, True

    async def _refresh_profile(self, user: User, identity: Identity) -> None:
        changes = {
            field: value
            for field, value in (
                ("name", identity.name),
                ("email", identity.email),
                ("picture", identity.picture),
            )
            if getattr(user, field) != value
        }
        if not changes:
            return

        for field, value in changes.items():
            setattr(user, field, value)
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
