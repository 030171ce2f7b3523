"""The authorization-code flow orchestrator.

:class:`OAuth2Client` coordinates one external user-interaction step with
asynchronous token exchange:

1. Resolves the callback scheme and builds the authorization URL.
2. Hands the URL to a :class:`~oauth2flow.useragent.UserAgentLauncher` and
   waits for the final redirect.
3. Extracts the ``code`` from the redirect.
4. Exchanges it at the token endpoint through an
   :class:`~oauth2flow.transport.HttpTransport`.
5. Delivers the decoded :class:`~oauth2flow.credential.Credential`.

Each public operation schedules an :class:`asyncio.Task` and returns it.
The task resolves exactly once, any number of coroutines may await it and
all see the same value or exception, and cancelling it tears down the
in-flight launcher session or HTTP call. Two calls are never coalesced:
calling :meth:`OAuth2Client.sign_in` twice runs two independent sessions.

Sign-in does not persist the credential; persisting it is up to the
caller. Refresh, in contrast, saves the new credential to the
:class:`~oauth2flow.credential_store.CredentialStore` before delivering it.

See Also:
    :mod:`oauth2flow.request_builder` for the request shapes.
    :mod:`oauth2flow.exceptions` for the error kinds each stage raises.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional

from oauth2flow.credential import Credential, decode_credential
from oauth2flow.credential_store import CredentialStore
from oauth2flow.exceptions import AuthError, OAuth2FlowError, ServerError
from oauth2flow.models import PKCE, ClientConfig, FlowAttempt, FlowState, HttpRequest
from oauth2flow.request_builder import (
    build_authorize_url,
    build_refresh_request,
    build_token_exchange_request,
    extract_code,
    resolve_callback_scheme,
    validate_config,
)
from oauth2flow.transport import HttpTransport, HttpxTransport
from oauth2flow.useragent import NullSessionDataStore, SessionDataStore, UserAgentLauncher

logger = logging.getLogger(__name__)

_Flow = Callable[..., Coroutine[Any, Any, Credential]]


class OAuth2Client:
    """Run sign-in, sign-out and refresh flows against one or more servers.

    Args:
        launcher: Presents the authorization URL and reports the redirect.
        transport: Executes token requests. Defaults to an
            :class:`~oauth2flow.transport.HttpxTransport` owned (and closed)
            by this client.
        session_store: Cleared before a sign-out's fresh sign-in. Defaults
            to :class:`~oauth2flow.useragent.NullSessionDataStore`.
        credential_store: Where :meth:`refresh` persists its result.
            Defaults to the standard :class:`CredentialStore` location.
        interaction_timeout: Seconds to wait for the redirect. ``None``
            waits indefinitely.

    Example::

        async with OAuth2Client(launcher) as client:
            credential = await client.sign_in(config)
            later = await client.refresh(config, credential.refresh_token)
    """

    def __init__(
        self,
        launcher: UserAgentLauncher,
        transport: Optional[HttpTransport] = None,
        session_store: Optional[SessionDataStore] = None,
        credential_store: Optional[CredentialStore] = None,
        interaction_timeout: Optional[float] = None,
    ) -> None:
        self._launcher = launcher
        self._owned_transport: Optional[HttpxTransport] = None
        if transport is None:
            transport = self._owned_transport = HttpxTransport()
        self._transport = transport
        self._session_store = session_store if session_store is not None else NullSessionDataStore()
        self._credential_store = (
            credential_store if credential_store is not None else CredentialStore()
        )
        self._interaction_timeout = interaction_timeout
        self._inflight: dict[asyncio.Task[Credential], FlowAttempt] = {}

    async def __aenter__(self) -> OAuth2Client:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    def sign_in(self, config: ClientConfig, pkce: Optional[PKCE] = None) -> asyncio.Task[Credential]:
        """Start an interactive sign-in.

        Args:
            config: The client configuration.
            pkce: A PKCE pair generated for this attempt only, or ``None``.

        Returns:
            A task resolving to the :class:`Credential`, or raising
            :class:`InvalidRedirectUri`, :class:`InvalidConfiguration`,
            :class:`AuthError`, :class:`CodeNotFound`,
            :class:`TransportError`, :class:`ServerError` or
            :class:`DecodeError`.
        """
        return self._spawn("sign_in", self._sign_in, config, pkce)

    def sign_out(self, config: ClientConfig, pkce: Optional[PKCE] = None) -> asyncio.Task[Credential]:
        """Clear the user-agent session, then sign in again.

        A failure to clear the session is logged and otherwise ignored.
        """
        return self._spawn("sign_out", self._sign_out, config, pkce)

    def refresh(self, config: ClientConfig, refresh_token: str) -> asyncio.Task[Credential]:
        """Exchange *refresh_token* for a new credential and persist it.

        Every failure on this path is raised as :class:`AuthError`, with
        the underlying error kept on ``cause``.
        """
        return self._spawn("refresh", self._refresh, config, refresh_token)

    def attempts(self) -> list[FlowAttempt]:
        """Return a snapshot of the in-flight operations and their states."""
        return [attempt.model_copy() for attempt in self._inflight.values()]

    @property
    def in_flight(self) -> int:
        """Number of operations that have not reached a terminal state."""
        return len(self._inflight)

    async def aclose(self) -> None:
        """Cancel all in-flight operations and close an owned transport."""
        tasks = list(self._inflight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    # ------------------------------------------------------------------ #
    # Task bookkeeping
    # ------------------------------------------------------------------ #

    def _spawn(self, operation: str, flow: _Flow, *args: Any) -> asyncio.Task[Credential]:
        loop = asyncio.get_running_loop()
        attempt = FlowAttempt(operation=operation)
        task = loop.create_task(
            self._track(attempt, flow(attempt, *args)), name=f"oauth2flow-{operation}"
        )
        self._inflight[task] = attempt
        task.add_done_callback(self._release)
        return task

    def _release(self, task: asyncio.Task[Credential]) -> None:
        self._inflight.pop(task, None)

    async def _track(
        self, attempt: FlowAttempt, flow: Coroutine[Any, Any, Credential]
    ) -> Credential:
        try:
            credential = await flow
        except asyncio.CancelledError:
            logger.debug("%s cancelled in state %s", attempt.operation, attempt.state.value)
            raise
        except Exception as exc:
            attempt.error = str(exc)
            self._transition(attempt, FlowState.FAILED)
            kind = exc.kind.value if isinstance(exc, OAuth2FlowError) and exc.kind else "unexpected"
            logger.info("%s failed (%s): %s", attempt.operation, kind, exc)
            raise
        self._transition(attempt, FlowState.COMPLETED)
        logger.info(
            "%s obtained a %s credential (expires_in=%s)",
            attempt.operation,
            credential.token_type,
            credential.expires_in,
        )
        return credential

    @staticmethod
    def _transition(attempt: FlowAttempt, state: FlowState) -> None:
        if attempt.is_terminal:
            raise RuntimeError(f"{attempt.operation} already {attempt.state.value}")
        logger.debug("%s: %s -> %s", attempt.operation, attempt.state.value, state.value)
        attempt.state = state

    # ------------------------------------------------------------------ #
    # Flows
    # ------------------------------------------------------------------ #

    async def _sign_in(
        self, attempt: FlowAttempt, config: ClientConfig, pkce: Optional[PKCE]
    ) -> Credential:
        callback_scheme = resolve_callback_scheme(config)
        validate_config(config)
        authorize_url = build_authorize_url(config, pkce)

        self._transition(attempt, FlowState.AWAITING_USER_INTERACTION)
        redirect_url = await self._interact(authorize_url, callback_scheme)
        code = extract_code(redirect_url)

        self._transition(attempt, FlowState.EXCHANGING_CODE)
        return await self._exchange(build_token_exchange_request(config, code, pkce))

    async def _sign_out(
        self, attempt: FlowAttempt, config: ClientConfig, pkce: Optional[PKCE]
    ) -> Credential:
        try:
            await self._session_store.clear_all()
        except Exception as exc:
            logger.warning("Could not clear user-agent session data: %s", exc)
        return await self._sign_in(attempt, config, pkce)

    async def _refresh(
        self, attempt: FlowAttempt, config: ClientConfig, refresh_token: str
    ) -> Credential:
        self._transition(attempt, FlowState.EXCHANGING_REFRESH_TOKEN)
        try:
            credential = await self._exchange(build_refresh_request(config, refresh_token))
        except Exception as exc:
            raise AuthError(f"Token refresh failed: {exc}", cause=exc) from exc

        try:
            self._credential_store.save(credential)
        except OSError as exc:
            logger.warning("Could not persist refreshed credential: %s", exc)
        return credential

    # ------------------------------------------------------------------ #
    # Stages
    # ------------------------------------------------------------------ #

    async def _interact(self, url: str, callback_scheme: str) -> str:
        """Run the launcher, mapping every failure to :class:`AuthError`."""
        launch = self._launcher.launch(url, callback_scheme)
        try:
            if self._interaction_timeout is None:
                return await launch
            return await asyncio.wait_for(launch, self._interaction_timeout)
        except asyncio.TimeoutError as exc:
            raise AuthError(
                f"No redirect received within {self._interaction_timeout} seconds",
                cause=exc,
            ) from exc
        except Exception as exc:
            raise AuthError(f"User-agent interaction failed: {exc}", cause=exc) from exc

    async def _exchange(self, request: HttpRequest) -> Credential:
        """Execute a token request and decode a 2xx body."""
        response = await self._transport.execute(request)
        if not response.is_success:
            raise ServerError(response.status_code)
        return decode_credential(response.body)
