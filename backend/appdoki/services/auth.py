"""Authentication service composing the Google login flows."""

import logging
from typing import Optional

from appdoki.core.exceptions import VerificationError
from appdoki.core.platform import Platform
from appdoki.db.models import User
from appdoki.services.google_oauth import GoogleProviderClient
from appdoki.services.identity import IdentityReconciler, extract_identity
from appdoki.services.notifier import NewUserNotifier

logger = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str]) -> str:
    """Strip the ``Bearer`` scheme from an Authorization header value."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise VerificationError("missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise VerificationError("missing bearer token")
    return token


class AuthService:
    """
    Runs the code-exchange and bearer-token flows.

    Every step raises an ``AuthFlowError`` subclass on failure; callers
    translate those into a single opaque error response.
    """

    def __init__(
        self,
        provider: GoogleProviderClient,
        reconciler: IdentityReconciler,
        new_user_notifier: NewUserNotifier,
    ):
        self.provider = provider
        self.reconciler = reconciler
        self.new_user_notifier = new_user_notifier

    async def login_with_code(self, code: str) -> str:
        """
        Exchange an authorization code and reconcile the resulting identity.

        This method:
        1. Exchanges the code with Google
        2. Pulls the raw ID token out of the token response
        3. Verifies it against the web client id
        4. Finds or creates the local user (notifying when created)

        Returns:
            str: The raw ID token, unchanged
        """
        token = await self.provider.exchange_code(code)
        raw_id_token = self.provider.extract_id_token(token)
        await self._reconcile(raw_id_token, self.provider.default_client_id)
        return raw_id_token

    async def login_with_bearer(
        self, authorization: Optional[str], platform: Platform
    ) -> User:
        """Resolve a bearer ID token minted for ``platform`` into a local user."""
        raw_id_token = bearer_token(authorization)
        return await self._reconcile(raw_id_token, self.provider.client_id_for(platform))

    async def _reconcile(self, raw_id_token: str, client_id: str) -> User:
        verified = await self.provider.verify(raw_id_token, client_id)
        identity = extract_identity(verified)
        user, created = await self.reconciler.find_or_create(identity)
        if created:
            self.new_user_notifier.notify_created(user)
        return user
