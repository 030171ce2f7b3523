"""Canonical Pydantic models shared across all oauth2flow modules.

The models fall into three groups:

**Flow models** -- immutable values passed through a sign-in or refresh:
    :class:`ClientConfig`, :class:`PKCE`, :class:`HttpRequest`,
    :class:`HttpResponse`, plus the :class:`FlowState` enum and the
    :class:`FlowAttempt` record the orchestrator keeps per in-flight task.

**Configuration models** -- serialised as JSON in the user's config
directory by :mod:`oauth2flow.config`:
    :class:`GlobalConfig` and :class:`Profile`.

The token response entity lives in :mod:`oauth2flow.credential` because its
decoding rules are more involved than plain validation.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Flow models ---


class ClientConfig(BaseModel):
    """Immutable OAuth2 client configuration for one authorization server.

    Endpoint URLs are stored as given; the request builder rejects
    malformed ones with :class:`~oauth2flow.exceptions.InvalidConfiguration`
    when a request is built, so that a bad endpoint fails the flow before
    any network or UI action instead of failing at construction.

    Example::

        ClientConfig(
            authorize_endpoint="https://idp.example.com/authorize",
            token_endpoint="https://idp.example.com/token",
            client_id="abc",
            client_secret="shh",
            redirect_uri="app://cb",
            scopes=("openid", "profile"),
        )
    """

    model_config = ConfigDict(frozen=True)

    authorize_endpoint: str
    token_endpoint: str
    client_id: str
    client_secret: str
    redirect_uri: str
    scopes: tuple[str, ...] = ()
    explicit_callback_scheme: Optional[str] = Field(
        default=None,
        description="Callback scheme to use instead of the redirect URI's own scheme",
    )


class PKCE(BaseModel):
    """A Proof Key for Code Exchange pair (:rfc:`7636`).

    Generated fresh per sign-in attempt by
    :func:`~oauth2flow.request_builder.generate_pkce`, never persisted, and
    discarded after one token exchange.
    """

    model_config = ConfigDict(frozen=True)

    code_verifier: str
    code_challenge: str
    code_challenge_method: str = "S256"


class HttpRequest(BaseModel):
    """A fully built HTTP request, independent of any HTTP library."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""


class HttpResponse(BaseModel):
    """The parts of an HTTP response the orchestrator looks at."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: bytes = b""

    @property
    def is_success(self) -> bool:
        """``True`` for any 2xx status."""
        return 200 <= self.status_code < 300


class FlowState(str, enum.Enum):
    """States of a single sign-in, sign-out, or refresh attempt."""

    IDLE = "idle"
    AWAITING_USER_INTERACTION = "awaiting_user_interaction"
    EXCHANGING_CODE = "exchanging_code"
    EXCHANGING_REFRESH_TOKEN = "exchanging_refresh_token"
    COMPLETED = "completed"
    FAILED = "failed"


class FlowAttempt(BaseModel):
    """Transient record of one in-flight operation. Never persisted."""

    operation: str
    state: FlowState = FlowState.IDLE
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (FlowState.COMPLETED, FlowState.FAILED)


# --- Configuration models ---


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/oauth2flow/config.json``.

    Loaded and saved by :func:`~oauth2flow.config.load_global_config` and
    :func:`~oauth2flow.config.save_global_config`.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    interaction_timeout: Optional[float] = Field(
        default=None,
        description="Seconds to wait for the browser redirect (None = wait forever)",
    )
    request_timeout: float = Field(
        default=30.0, description="Token endpoint request timeout in seconds"
    )


class Profile(BaseModel):
    """Per-authorization-server profile stored under ``profiles/<name>.json``.

    The client secret itself is never written to the profile; only a
    *source* descriptor understood by
    :func:`~oauth2flow.config.resolve_secret` is stored.

    Extra fields are preserved and accessible via ``model_extra``.

    See Also:
        :func:`~oauth2flow.config.load_profile`: Deserialise a profile by name.
        :func:`~oauth2flow.config.save_profile`: Persist a profile to disk.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    authorize_endpoint: str
    token_endpoint: str
    client_id: str
    client_secret_source: str = Field(
        default="prompt",
        description="Secret source: env:VAR, file:/path, prompt, literal:VALUE",
    )
    redirect_uri: str
    scopes: list[str] = Field(default_factory=list)
    callback_scheme: Optional[str] = None
    use_pkce: bool = False

    def to_client_config(self, client_secret: str) -> ClientConfig:
        """Build the immutable :class:`ClientConfig` for this profile.

        Args:
            client_secret: The resolved client secret.
        """
        return ClientConfig(
            authorize_endpoint=self.authorize_endpoint,
            token_endpoint=self.token_endpoint,
            client_id=self.client_id,
            client_secret=client_secret,
            redirect_uri=self.redirect_uri,
            scopes=tuple(self.scopes),
            explicit_callback_scheme=self.callback_scheme,
        )
