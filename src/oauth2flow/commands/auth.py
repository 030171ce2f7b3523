"""Auth commands -- sign in, refresh, and manage the stored credential.

Provides the ``oauth2flow auth`` sub-command group. Every command works on
the active profile (see :func:`~oauth2flow.config.resolve_profile`).

Typical workflow::

    oauth2flow auth login          # browser sign-in, saves the credential
    oauth2flow auth show           # inspect the stored credential
    oauth2flow auth refresh        # exchange the stored refresh token
    oauth2flow auth login --fresh  # sign out of the session and sign in again
    oauth2flow auth logout         # forget the stored credential
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from oauth2flow.client import OAuth2Client
from oauth2flow.credential import Credential
from oauth2flow.credential_store import CredentialStore
from oauth2flow.exceptions import InvalidConfiguration, OAuth2FlowError
from oauth2flow.exit_codes import EXIT_INVALID_USAGE
from oauth2flow.models import ClientConfig, GlobalConfig, Profile
from oauth2flow.output import error, info, print_credential, print_data, success, suggest
from oauth2flow.transport import HttpxTransport
from oauth2flow.useragent import (
    AuthorizationCancelled,
    LoopbackBrowserLauncher,
    UserAgentLauncher,
)


auth_app = typer.Typer(no_args_is_help=True)


class PasteRedirectLauncher:
    """Launcher for redirect URIs this process cannot receive (custom schemes).

    Shows the authorization URL and asks the user to paste the URL the
    browser was finally redirected to.
    """

    async def launch(self, url: str, callback_scheme: str) -> str:
        info("Open this URL in a browser and authorize the application:")
        info(url)
        redirect = await asyncio.to_thread(
            typer.prompt,
            f"Paste the {callback_scheme}: URL you were redirected to",
            default="",
            show_default=False,
        )
        redirect = redirect.strip()
        if not redirect:
            raise AuthorizationCancelled("No redirect URL entered")
        return redirect


def _choose_launcher(profile: Profile, paste: bool) -> UserAgentLauncher:
    if paste:
        return PasteRedirectLauncher()
    try:
        return LoopbackBrowserLauncher(profile.redirect_uri)
    except InvalidConfiguration:
        return PasteRedirectLauncher()


def _load(ctx: typer.Context) -> tuple[Profile, ClientConfig, GlobalConfig]:
    """Resolve the active profile and build its client config, or exit 2."""
    from oauth2flow.config import load_global_config, resolve_profile, resolve_secret

    cli_profile = ctx.obj.get("profile") if ctx.obj else None
    try:
        global_cfg = load_global_config()
        profile = resolve_profile(cli_profile, global_cfg)
        secret = resolve_secret(profile.client_secret_source)
    except OAuth2FlowError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    return profile, profile.to_client_config(secret), global_cfg


async def _sign_in(
    launcher: UserAgentLauncher,
    config: ClientConfig,
    global_cfg: GlobalConfig,
    store: CredentialStore,
    fresh: bool,
    use_pkce: bool,
) -> Credential:
    from oauth2flow.request_builder import generate_pkce

    pkce = generate_pkce() if use_pkce else None
    async with HttpxTransport(timeout=global_cfg.request_timeout) as transport:
        async with OAuth2Client(
            launcher,
            transport=transport,
            credential_store=store,
            interaction_timeout=global_cfg.interaction_timeout,
        ) as client:
            task = client.sign_out(config, pkce) if fresh else client.sign_in(config, pkce)
            return await task


async def _refresh(
    config: ClientConfig, global_cfg: GlobalConfig, store: CredentialStore, refresh_token: str
) -> Credential:
    async with HttpxTransport(timeout=global_cfg.request_timeout) as transport:
        async with OAuth2Client(
            PasteRedirectLauncher(), transport=transport, credential_store=store
        ) as client:
            return await client.refresh(config, refresh_token)


@auth_app.command("url")
def auth_url(
    ctx: typer.Context,
    pkce: bool = typer.Option(False, "--pkce", help="Include a fresh PKCE challenge."),
) -> None:
    """Print the authorization URL for the active profile.

    With ``--pkce`` the matching ``code_verifier`` is written to stderr so
    the code can be exchanged by hand.
    """
    from oauth2flow.request_builder import build_authorize_url, generate_pkce

    _, config, _ = _load(ctx)
    pair = generate_pkce() if pkce else None
    try:
        url = build_authorize_url(config, pair)
    except OAuth2FlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    print_data(url)
    if pair is not None:
        info(f"code_verifier: {pair.code_verifier}")


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    fresh: bool = typer.Option(
        False, "--fresh", help="Clear the browser session before signing in."
    ),
    paste: bool = typer.Option(
        False, "--paste", help="Paste the redirect URL instead of listening on localhost."
    ),
    save: bool = typer.Option(True, "--save/--no-save", help="Store the credential."),
) -> None:
    """Sign in through the browser and print the resulting credential.

    Example::

        oauth2flow auth login
        oauth2flow --profile myidp auth login --fresh --no-save
    """
    profile, config, global_cfg = _load(ctx)
    store = CredentialStore()
    launcher = _choose_launcher(profile, paste)

    try:
        credential = asyncio.run(
            _sign_in(launcher, config, global_cfg, store, fresh, profile.use_pkce)
        )
    except OAuth2FlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if save:
        store.save(credential)
        success(f"Signed in. Credential saved to {store.path}")
    else:
        success("Signed in.")
    print_credential(credential)


@auth_app.command("refresh")
def auth_refresh(
    ctx: typer.Context,
    refresh_token: Optional[str] = typer.Option(
        None, "--refresh-token", help="Refresh token to use instead of the stored one."
    ),
) -> None:
    """Exchange a refresh token for a new credential and store it."""
    _, config, global_cfg = _load(ctx)
    store = CredentialStore()

    if refresh_token is None:
        stored = store.load()
        if stored is None or not stored.refresh_token:
            error("No stored refresh token.")
            suggest("Sign in first: oauth2flow auth login")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        refresh_token = stored.refresh_token

    try:
        credential = asyncio.run(_refresh(config, global_cfg, store, refresh_token))
    except OAuth2FlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success("Credential refreshed.")
    print_credential(credential)


@auth_app.command("show")
def auth_show(
    reveal: bool = typer.Option(False, "--reveal", help="Show tokens unmasked."),
) -> None:
    """Print the stored credential.

    Tokens are masked in plain and rich output unless ``--reveal`` is given;
    ``--json`` output always carries them in full.
    """
    credential = CredentialStore().load()
    if credential is None:
        info("No stored credential.")
        suggest("Sign in: oauth2flow auth login")
        return
    print_credential(credential, reveal=reveal)


@auth_app.command("logout")
def auth_logout() -> None:
    """Forget the stored credential."""
    store = CredentialStore()
    if not store.path.is_file():
        info("No stored credential.")
        return
    store.remove()
    success("Stored credential removed.")
