"""Errors raised by the authentication pipeline.

Every error here is turned into the same opaque 500 response at the HTTP
boundary. The ``kind`` is only ever written to the logs.
"""


class AuthFlowError(Exception):
    """Base class for failures in an authentication flow."""

    kind = "auth_flow_error"


class DecodeRequestError(AuthFlowError):
    kind = "decode_request"


class StateMismatchError(AuthFlowError):
    kind = "state_mismatch"


class ExchangeError(AuthFlowError):
    """Authorization code could not be exchanged with the provider."""

    kind = "exchange"


class MissingIDTokenError(AuthFlowError):
    kind = "missing_id_token"


class VerificationError(AuthFlowError):
    """ID token failed signature, issuer, audience or expiry checks."""

    kind = "verification"


class ClaimsDecodeError(AuthFlowError):
    kind = "claims_decode"


class PersistenceError(AuthFlowError):
    kind = "persistence"
