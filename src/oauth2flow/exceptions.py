"""Exception hierarchy for oauth2flow.

Every failure a flow can report belongs to a closed set of kinds, listed in
:class:`ErrorKind`. Each kind has exactly one exception class, and every
class inherits from :class:`OAuth2FlowError`, which also carries an
``exit_code`` attribute mapped to a constant from
:mod:`oauth2flow.exit_codes`. The CLI entry point in
:func:`oauth2flow.app.main` catches ``OAuth2FlowError`` and exits with the
appropriate code.

Subclass hierarchy::

    OAuth2FlowError (exit 1)
    +-- InvalidConfiguration  (exit 4)
    +-- InvalidRedirectUri    (exit 4)
    +-- AuthError             (exit 3)
    +-- CodeNotFound          (exit 3)
    +-- TransportError        (exit 6)
    +-- ServerError           (exit 5)
    +-- DecodeError           (exit 7)
    +-- ConfigError           (exit 1)

Errors wrapping a lower-level failure keep it on ``cause`` and are raised
with ``raise ... from cause`` so that tracebacks show the chain.
"""

from __future__ import annotations

import enum
from typing import Optional

from oauth2flow.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_CONFIGURATION,
    EXIT_SERVER_ERROR,
    EXIT_TRANSPORT_ERROR,
)


class ErrorKind(str, enum.Enum):
    """The reportable failure kinds of an authorization flow."""

    INVALID_CONFIGURATION = "invalid_configuration"
    INVALID_REDIRECT_URI = "invalid_redirect_uri"
    AUTH_ERROR = "auth_error"
    CODE_NOT_FOUND = "code_not_found"
    TRANSPORT_ERROR = "transport_error"
    SERVER_ERROR = "server_error"
    DECODE_ERROR = "decode_error"


class OAuth2FlowError(Exception):
    """Base exception for all oauth2flow errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidConfiguration(OAuth2FlowError):
    """Raised when an endpoint or the redirect URI is malformed.

    Detected before any network or UI action and never retried.
    """

    exit_code = EXIT_INVALID_CONFIGURATION
    kind = ErrorKind.INVALID_CONFIGURATION


class InvalidRedirectUri(OAuth2FlowError):
    """Raised when no callback scheme can be resolved for the redirect URI."""

    exit_code = EXIT_INVALID_CONFIGURATION
    kind = ErrorKind.INVALID_REDIRECT_URI

    def __init__(self, redirect_uri: str):
        super().__init__(
            f"Cannot resolve a callback scheme from redirect URI {redirect_uri!r}"
        )
        self.redirect_uri = redirect_uri


class AuthError(OAuth2FlowError):
    """Raised when the user-interaction step fails or is cancelled.

    On the refresh path every downstream failure is re-raised as this
    kind, with the original error kept on :attr:`cause`.
    """

    exit_code = EXIT_AUTH_FAILURE
    kind = ErrorKind.AUTH_ERROR

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class CodeNotFound(OAuth2FlowError):
    """Raised when the redirect URL carries no ``code`` query parameter."""

    exit_code = EXIT_AUTH_FAILURE
    kind = ErrorKind.CODE_NOT_FOUND


class TransportError(OAuth2FlowError):
    """Raised on network-level failures executing a token request."""

    exit_code = EXIT_TRANSPORT_ERROR
    kind = ErrorKind.TRANSPORT_ERROR

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class ServerError(OAuth2FlowError):
    """Raised when the token endpoint answers with a non-2xx status.

    The response body is never inspected, so a JSON error payload on a
    401 still produces this error and not :class:`DecodeError`.
    """

    exit_code = EXIT_SERVER_ERROR
    kind = ErrorKind.SERVER_ERROR

    def __init__(self, status_code: int):
        super().__init__(f"Token endpoint returned HTTP {status_code}")
        self.status_code = status_code


class DecodeError(OAuth2FlowError):
    """Raised when a response body cannot be decoded into a credential."""

    exit_code = EXIT_DECODE_ERROR
    kind = ErrorKind.DECODE_ERROR

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class ConfigError(OAuth2FlowError):
    """Raised for CLI configuration problems (missing profiles, invalid JSON, bad secret sources)."""

    exit_code = EXIT_GENERIC_FAILURE
