"""Security utilities."""

import base64
import secrets
from datetime import UTC, datetime, timedelta

from fastapi import Response

from appdoki.config import Settings

STATE_BYTES = 16


def generate_oauth_state() -> str:
    """Generate an unguessable OAuth ``state`` value (16 random bytes, URL-safe base64)."""
    return base64.urlsafe_b64encode(secrets.token_bytes(STATE_BYTES)).decode("ascii")


def states_match(expected: str | None, received: str | None) -> bool:
    """Constant-time comparison of the issued state and the one echoed back."""
    if not expected or not received:
        return False
    return secrets.compare_digest(expected.encode(), received.encode())


def set_oauth_state_cookie(response: Response, state: str, settings: Settings) -> None:
    """Bind ``state`` to the browser through the OAuth state cookie."""
    max_age = settings.oauth_state_cookie_max_age
    response.set_cookie(
        settings.oauth_state_cookie_name,
        state,
        max_age=max_age,
        expires=datetime.now(tz=UTC) + timedelta(seconds=max_age),
        httponly=True,
        samesite="lax",
        secure=not settings.debug,  # Require HTTPS in production
    )


def clear_oauth_state_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.oauth_state_cookie_name)
