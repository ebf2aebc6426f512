"""Google OAuth / OpenID Connect provider client.

This service wraps the parts of the Google flow the API needs:
- Building the consent page URL
- Exchanging authorization codes for tokens
- Pulling the raw ID token out of the token response
- Verifying ID tokens against Google's published keys for a given audience
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
import jwt
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.starlette_client import OAuth
from jwt import PyJWKClient

from appdoki.config import Settings
from appdoki.core.exceptions import (
    ExchangeError,
    MissingIDTokenError,
    VerificationError,
)
from appdoki.core.platform import Platform
from appdoki.oauth import create_oauth

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedToken:
    """An ID token whose signature and registered claims have been checked."""

    raw: str
    subject: str
    claims: dict[str, Any] = field(default_factory=dict)


class GoogleProviderClient:
    """Client for Google's OAuth 2.0 endpoints and ID token verification."""

    def __init__(
        self,
        settings: Settings,
        oauth: Optional[OAuth] = None,
        jwks_client: Optional[PyJWKClient] = None,
    ):
        self.settings = settings
        self._oauth = oauth or create_oauth(settings)
        # PyJWKClient caches the key set and refetches on unknown kid
        self._jwks_client = jwks_client or PyJWKClient(
            settings.google_jwks_uri, cache_keys=True
        )

    @property
    def default_client_id(self) -> str:
        return self.settings.GOOGLE_CLIENT_ID

    def client_id_for(self, platform: Platform) -> str:
        return self.settings.client_id_for(platform)

    async def build_consent_url(self, state: str, offline_access: bool = False) -> str:
        """Return the Google consent page URL carrying ``state``."""
        params: dict[str, str] = {"state": state}
        if offline_access:
            params["access_type"] = "offline"
        rv = await self._oauth.google.create_authorization_url(
            redirect_uri=self.settings.GOOGLE_REDIRECT_URI, **params
        )
        return rv["url"]

    async def exchange_code(self, code: str) -> dict[str, Any]:
        """Exchange an authorization code for Google's token response."""
        if not code:
            raise ExchangeError("empty authorization code")
        try:
            token = await self._oauth.google.fetch_access_token(
                redirect_uri=self.settings.GOOGLE_REDIRECT_URI, code=code
            )
        except (AuthlibBaseError, httpx.HTTPError, ValueError) as error:
            raise ExchangeError(f"code exchange failed: {error}") from error
        return dict(token)

    @staticmethod
    def extract_id_token(token: dict[str, Any]) -> str:
        raw_id_token = token.get("id_token")
        if not isinstance(raw_id_token, str) or not raw_id_token:
            raise MissingIDTokenError("token response carries no id_token")
        return raw_id_token

    async def verify(self, raw_id_token: str, expected_client_id: str) -> VerifiedToken:
        """
        Verify a Google ID token.

        Checks the RS256 signature against Google's JWKS, the issuer, that the
        audience equals ``expected_client_id``, and expiry. Key retrieval may
        hit the network, so the work runs in a worker thread.

        Raises:
            VerificationError: on any structural, signature or claim failure
        """
        if not expected_client_id:
            raise VerificationError("no client id configured for audience check")
        if not raw_id_token:
            raise VerificationError("empty id token")
        return await asyncio.to_thread(self._verify_sync, raw_id_token, expected_client_id)

    def _verify_sync(self, raw_id_token: str, expected_client_id: str) -> VerifiedToken:
        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(raw_id_token)
            claims = jwt.decode(
                raw_id_token,
                key=signing_key.key,
                algorithms=["RS256"],
                audience=expected_client_id,
                options={"require": ["exp", "iat", "iss", "aud", "sub"]},
                leeway=self.settings.id_token_leeway_seconds,
            )
        except jwt.PyJWTError as error:
            raise VerificationError(f"invalid id token: {error}") from error

        issuer = claims.get("iss")
        if issuer not in self.settings.google_issuers:
            raise VerificationError(f"untrusted issuer: {issuer}")

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise VerificationError("id token has no subject")

        logger.debug(f"Verified id token for sub={subject} aud={expected_client_id}")
        return VerifiedToken(raw=raw_id_token, subject=subject, claims=claims)
