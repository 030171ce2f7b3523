"""User-agent collaborators for the authorization step.

The orchestrator never renders an authorization page or captures a
redirect itself. It talks to two capabilities:

- :class:`UserAgentLauncher` -- opens the authorization URL in a browser-like
  surface and reports the final redirect URL (or raises if the user cancels
  or the surface fails).
- :class:`SessionDataStore` -- wipes the browser session (cookies, storage)
  so the next sign-in starts from a clean slate.

Concrete implementations provided here:

- :class:`LoopbackBrowserLauncher` opens the system browser and receives the
  redirect on a temporary local HTTP server, for redirect URIs of the form
  ``http://127.0.0.1:<port>/<path>``.
- :class:`NullSessionDataStore` for user agents whose session data lives
  outside this process (such as the system browser).
"""

from __future__ import annotations

import asyncio
import html
import logging
import threading
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable, Protocol
from urllib.parse import parse_qs, urlsplit

from oauth2flow.exceptions import InvalidConfiguration

logger = logging.getLogger(__name__)

_LOOPBACK_HOSTS = ("127.0.0.1", "localhost")


class UserAgentLauncher(Protocol):
    """Opens the authorization URL and waits for the redirect."""

    async def launch(self, url: str, callback_scheme: str) -> str:
        """Run one user-interaction session.

        Args:
            url: The authorization URL to present.
            callback_scheme: The URL scheme that marks the final redirect.

        Returns:
            The full redirect URL the authorization server sent the user to.

        Raises:
            Exception: Any failure of the session, including the user
                cancelling it.
        """
        ...


class SessionDataStore(Protocol):
    """Clears persisted user-agent session state."""

    async def clear_all(self) -> None:
        """Remove cookies, local/session storage and embedded databases."""
        ...


class NullSessionDataStore:
    """A :class:`SessionDataStore` with nothing to clear.

    Used with the system browser, whose cookies and storage belong to the
    browser process rather than to this one.
    """

    async def clear_all(self) -> None:
        logger.debug("No user-agent session data to clear")


class AuthorizationCancelled(Exception):
    """Raised by a launcher when the user abandons the authorization step."""


class LoopbackBrowserLauncher:
    """Authorize in the system browser, capturing the redirect on localhost.

    A single-purpose HTTP server is started on the host and port of the
    redirect URI in a daemon thread. The browser is then pointed at the
    authorization URL, and the coroutine waits until a request arrives on
    the redirect path. Requests to any other path (the browser's favicon
    request, for example) are answered with 404 and ignored. The server is
    shut down when the coroutine finishes, including on cancellation.

    Args:
        redirect_uri: A loopback ``http`` redirect URI with an explicit port.
        open_browser: Callable used to open the URL; returns ``False`` when
            no browser could be launched.

    Raises:
        InvalidConfiguration: If *redirect_uri* is not a loopback ``http``
            URI with a port.
    """

    def __init__(
        self,
        redirect_uri: str,
        open_browser: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        parts = urlsplit(redirect_uri)
        if parts.scheme != "http" or parts.hostname not in _LOOPBACK_HOSTS or not parts.port:
            raise InvalidConfiguration(
                f"Loopback launcher needs an http://127.0.0.1:<port>/ redirect URI, "
                f"got {redirect_uri!r}"
            )
        self._host = parts.hostname
        self._port = parts.port
        self._path = parts.path or "/"
        self._open_browser = open_browser

    @property
    def redirect_base(self) -> str:
        """Scheme, host and port the captured redirect URL is rebuilt with."""
        return f"http://{self._host}:{self._port}"

    async def launch(self, url: str, callback_scheme: str) -> str:
        loop = asyncio.get_running_loop()
        redirected: asyncio.Future[str] = loop.create_future()

        def deliver(path: str) -> None:
            if not redirected.done():
                redirected.set_result(f"{self.redirect_base}{path}")

        handler = _make_handler(self._path, lambda path: loop.call_soon_threadsafe(deliver, path))
        server = HTTPServer((self._host, self._port), handler)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        logger.debug("Callback server listening on %s%s", self.redirect_base, self._path)

        try:
            if not self._open_browser(url):
                logger.warning("Could not open a browser; visit this URL to continue: %s", url)
            return await redirected
        finally:
            await asyncio.to_thread(server.shutdown)
            server.server_close()
            logger.debug("Callback server stopped")


def _make_handler(
    callback_path: str, on_redirect: Callable[[str], Any]
) -> type[BaseHTTPRequestHandler]:
    """Build a request handler class bound to one callback path."""

    class CallbackHandler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            parsed = urlsplit(self.path)
            if parsed.path != callback_path:
                self.send_error(404)
                return

            params = parse_qs(parsed.query)
            if "error" in params:
                body = f"Authorization failed: {params['error'][0]}"
                error_desc = params.get("error_description", [""])[0]
                if error_desc:
                    body += f" - {error_desc}"
            elif "code" in params:
                body = (
                    "Authorization successful! You can close this window "
                    "and return to the terminal."
                )
            else:
                body = "No authorization code received."

            self.send_response(200)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.end_headers()
            self.wfile.write(f"<html><body><h2>{html.escape(body)}</h2></body></html>".encode("utf-8"))
            on_redirect(self.path)

        def log_message(self, format: str, *args: Any) -> None:
            # Suppress default logging
            pass

    return CallbackHandler
