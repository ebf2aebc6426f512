"""Maps verified ID token claims to local users."""

import logging
from typing import Any, Optional, Protocol

from pydantic import BaseModel, ValidationError, field_validator

from appdoki.core.exceptions import ClaimsDecodeError, PersistenceError
from appdoki.db.models import User
from appdoki.schemas.user import Identity
from appdoki.services.google_oauth import VerifiedToken

logger = logging.getLogger(__name__)


class IdTokenClaims(BaseModel):
    email: str = ""
    name: str = ""
    picture: str = ""

    @field_validator("email", "name", "picture", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Optional[Any]) -> Any:
        return "" if value is None else value


def extract_identity(token: VerifiedToken) -> Identity:
    """Decode profile claims from a verified token into an Identity."""
    try:
        claims = IdTokenClaims.model_validate(token.claims)
    except ValidationError as error:
        raise ClaimsDecodeError(f"unexpected claim shape: {error}") from error
    return Identity(subject=token.subject, **claims.model_dump())


class UsersRepository(Protocol):
    async def find_or_create_user(self, identity: Identity) -> tuple[User, bool]: ...


class IdentityReconciler:
    """Find-or-create of local users for verified identities."""

    def __init__(self, repository: UsersRepository):
        self.repository = repository

    async def find_or_create(self, identity: Identity) -> tuple[User, bool]:
        try:
            user, created = await self.repository.find_or_create_user(identity)
        except Exception as error:
            raise PersistenceError("user find-or-create failed") from error
        if created:
            logger.info(f"Created user {user.id}")
        return user, created
