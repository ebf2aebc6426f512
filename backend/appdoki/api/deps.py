from typing import Annotated, AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from appdoki.db.database import AsyncSessionLocal
from appdoki.db.crud import SQLUsersRepository
from appdoki.core.exceptions import AuthFlowError
from appdoki.core.platform import Platform
from appdoki.schemas.user import Identity
from appdoki.services.auth import AuthService, bearer_token
from appdoki.services.google_oauth import GoogleProviderClient
from appdoki.services.identity import IdentityReconciler, extract_identity
from appdoki.services.notifier import NewUserNotifier
from fastapi import Depends, Header, HTTPException, Request, status


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as db:
        yield db


def get_provider_client(request: Request) -> GoogleProviderClient:
    return request.app.state.provider_client


def get_new_user_notifier(request: Request) -> NewUserNotifier:
    return request.app.state.new_user_notifier


def get_platform(platform: Annotated[Optional[str], Header()] = None) -> Platform:
    return Platform.from_header(platform)


def get_auth_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    provider: Annotated[GoogleProviderClient, Depends(get_provider_client)],
    notifier: Annotated[NewUserNotifier, Depends(get_new_user_notifier)],
) -> AuthService:
    return AuthService(
        provider=provider,
        reconciler=IdentityReconciler(SQLUsersRepository(db)),
        new_user_notifier=notifier,
    )


async def require_verified_caller(
    provider: Annotated[GoogleProviderClient, Depends(get_provider_client)],
    platform: Annotated[Platform, Depends(get_platform)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> Identity:
    """Validates the caller's Google ID token and returns its identity"""
    try:
        token = bearer_token(authorization)
        verified = await provider.verify(token, provider.client_id_for(platform))
        return extract_identity(verified)
    except AuthFlowError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
