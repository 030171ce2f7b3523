"""Shared test fixtures for oauth2flow.

Provides reusable fixtures for isolated config environments, output state,
the CLI runner, and in-memory doubles for the flow collaborators (launcher,
transport, session store). These fixtures are automatically discovered by
pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Union

import pytest

from oauth2flow.credential_store import CredentialStore
from oauth2flow.models import ClientConfig, HttpRequest, HttpResponse, Profile
from oauth2flow.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use. The same applies to the logging handler
    installed by ``configure_logging``, which holds the stderr console.
    """
    yield
    reset_output()
    logger = logging.getLogger("oauth2flow")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Flow fixtures
# ---------------------------------------------------------------------------


TOKEN_BODY = json.dumps(
    {
        "access_token": "at-1",
        "token_type": "Bearer",
        "refresh_token": "rt-1",
        "expires_in": 3600,
    }
).encode("utf-8")


@pytest.fixture
def client_config() -> ClientConfig:
    """A config with a custom-scheme redirect URI."""
    return ClientConfig(
        authorize_endpoint="https://idp.example.com/authorize",
        token_endpoint="https://idp.example.com/token",
        client_id="abc",
        client_secret="shh",
        redirect_uri="app://cb",
        scopes=("openid", "email"),
    )


class FakeLauncher:
    """Records launches and returns a canned redirect, or raises.

    When *block* is set the launch waits until :attr:`release` is set,
    which lets tests observe the awaiting state or cancel mid-flight.
    """

    def __init__(
        self,
        redirect: str = "app://cb?code=XYZ",
        error: Optional[BaseException] = None,
        block: bool = False,
    ) -> None:
        self.redirect = redirect
        self.error = error
        self.block = block
        self.calls: list[tuple[str, str]] = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.cancelled = False

    async def launch(self, url: str, callback_scheme: str) -> str:
        self.calls.append((url, callback_scheme))
        self.started.set()
        if self.block:
            try:
                await self.release.wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return self.redirect


class FakeTransport:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses: Union[HttpResponse, BaseException]) -> None:
        self.responses = list(responses) or [HttpResponse(status_code=200, body=TOKEN_BODY)]
        self.requests: list[HttpRequest] = []

    async def execute(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        result = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(result, BaseException):
            raise result
        return result


class FakeSessionStore:
    def __init__(self, error: Optional[BaseException] = None) -> None:
        self.error = error
        self.cleared = 0

    async def clear_all(self) -> None:
        self.cleared += 1
        if self.error is not None:
            raise self.error


@pytest.fixture
def credential_store(tmp_path: Path) -> CredentialStore:
    """A CredentialStore writing into a temp directory."""
    return CredentialStore(tmp_path / "credential.json")


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    and forces the XDG layout so that tests never touch real user config.
    Clears OAUTH2FLOW_PROFILE and changes the working directory to
    tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("oauth2flow.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("OAUTH2FLOW_PROFILE", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def sample_profile() -> Profile:
    """A loopback profile whose secret comes from a literal source."""
    return Profile(
        name="test-idp",
        authorize_endpoint="https://idp.example.com/authorize",
        token_endpoint="https://idp.example.com/token",
        client_id="abc",
        client_secret_source="literal:shh",
        redirect_uri="http://127.0.0.1:8765/callback",
        scopes=["openid", "email"],
    )


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager and reset it afterwards."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
