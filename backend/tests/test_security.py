import base64

import pytest
from fastapi import Response

from appdoki.core.platform import Platform
from appdoki.core.security import (
    STATE_BYTES,
    generate_oauth_state,
    set_oauth_state_cookie,
    states_match,
)

from conftest import IOS_CLIENT_ID, WEB_CLIENT_ID


class TestOAuthState:
    def test_state_decodes_to_sixteen_random_bytes(self):
        state = generate_oauth_state()
        assert len(base64.urlsafe_b64decode(state)) == STATE_BYTES

    def test_states_are_url_safe_and_unique(self):
        states = {generate_oauth_state() for _ in range(200)}
        assert len(states) == 200
        for state in states:
            assert "+" not in state and "/" not in state

    def test_matching_states(self):
        state = generate_oauth_state()
        assert states_match(state, state)

    @pytest.mark.parametrize(
        "expected, received",
        [("abc", "abd"), (None, "abc"), ("abc", None), ("", ""), (None, None)],
    )
    def test_mismatched_or_missing_states(self, expected, received):
        assert not states_match(expected, received)


class TestStateCookie:
    @pytest.mark.parametrize("debug, secure", [(False, True), (True, False)])
    def test_cookie_attributes(self, settings, debug, secure):
        response = Response()
        set_oauth_state_cookie(response, "abc", settings.model_copy(update={"debug": debug}))

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("oauthstate=abc")
        assert "HttpOnly" in set_cookie
        assert "samesite=lax" in set_cookie.lower()
        assert ("; Secure" in set_cookie) is secure


class TestPlatform:
    @pytest.mark.parametrize(
        "header, platform",
        [
            ("web", Platform.WEB),
            ("IOS", Platform.IOS),
            (" Android ", Platform.ANDROID),
            ("windows-phone", Platform.WEB),
            ("", Platform.WEB),
            (None, Platform.WEB),
        ],
    )
    def test_from_header(self, header, platform):
        assert Platform.from_header(header) is platform

    def test_client_id_mapping_is_total(self, settings):
        assert settings.client_id_for(Platform.WEB) == WEB_CLIENT_ID
        assert settings.client_id_for(Platform.IOS) == IOS_CLIENT_ID
        # no dedicated Android client configured in tests
        assert settings.client_id_for(Platform.ANDROID) == WEB_CLIENT_ID
        for platform in Platform:
            assert settings.client_id_for(platform)
