"""OAuth configuration for Google authentication.

This module sets up the Authlib OAuth registry for Google OAuth 2.0/OpenID Connect.
Endpoints are configured statically, so building a consent URL never touches
the network.
"""

from authlib.integrations.starlette_client import OAuth

from appdoki.config import Settings


def create_oauth(settings: Settings) -> OAuth:
    """Create an OAuth registry with the Google client registered as ``google``."""
    oauth = OAuth()
    oauth.register(
        name="google",
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=(
            settings.GOOGLE_CLIENT_SECRET.get_secret_value()
            if settings.GOOGLE_CLIENT_SECRET
            else None
        ),
        authorize_url=settings.google_authorize_url,
        access_token_url=settings.google_token_url,
        jwks_uri=settings.google_jwks_uri,
        client_kwargs={
            "scope": "openid email profile",
            "timeout": 10,
        },
    )
    return oauth
