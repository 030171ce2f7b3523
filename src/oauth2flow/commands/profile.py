"""Profile commands -- manage authorization-server profiles.

Provides the ``oauth2flow profile`` sub-command group. A profile records
the endpoints, client id, redirect URI and scopes of one authorization
server, plus *where* to read the client secret from (never the secret
itself).

Typical workflow::

    oauth2flow profile add github \\
        --authorize-url https://github.com/login/oauth/authorize \\
        --token-url https://github.com/login/oauth/access_token \\
        --client-id Iv1.abc --client-secret-source env:GITHUB_SECRET \\
        --redirect-uri http://127.0.0.1:8765/callback --scope read:user
    oauth2flow profile use github
    oauth2flow auth login
"""

from __future__ import annotations

from typing import Optional

import typer

from oauth2flow.output import error, format_response, info, print_table, success, suggest


profile_app = typer.Typer(no_args_is_help=True)


@profile_app.command("add")
def profile_add(
    name: str = typer.Argument(help="Profile name."),
    authorize_url: str = typer.Option(..., "--authorize-url", help="Authorization endpoint."),
    token_url: str = typer.Option(..., "--token-url", help="Token endpoint."),
    client_id: str = typer.Option(..., "--client-id", help="OAuth2 client id."),
    client_secret_source: str = typer.Option(
        "prompt",
        "--client-secret-source",
        "-s",
        help="Secret source: env:VAR, file:/path, literal:VALUE, prompt.",
    ),
    redirect_uri: str = typer.Option(..., "--redirect-uri", help="Registered redirect URI."),
    scopes: Optional[list[str]] = typer.Option(
        None, "--scope", help="Scope to request (repeatable)."
    ),
    callback_scheme: Optional[str] = typer.Option(
        None, "--callback-scheme", help="Override the redirect URI's scheme."
    ),
    use_pkce: bool = typer.Option(False, "--pkce", help="Send a PKCE challenge (RFC 7636)."),
) -> None:
    """Create or replace a profile.

    Example::

        oauth2flow profile add myidp --authorize-url https://idp/authorize \\
            --token-url https://idp/token --client-id abc \\
            --redirect-uri http://127.0.0.1:8765/callback --scope openid
    """
    from oauth2flow.config import profile_exists, save_profile
    from oauth2flow.models import Profile

    existed = profile_exists(name)
    profile = Profile(
        name=name,
        authorize_endpoint=authorize_url,
        token_endpoint=token_url,
        client_id=client_id,
        client_secret_source=client_secret_source,
        redirect_uri=redirect_uri,
        scopes=scopes or [],
        callback_scheme=callback_scheme,
        use_pkce=use_pkce,
    )
    save_profile(profile)
    success(f'Profile "{name}" {"updated" if existed else "created"}.')
    suggest(f"Sign in: oauth2flow --profile {name} auth login")


@profile_app.command("list")
def profile_list() -> None:
    """List all configured profiles."""
    from oauth2flow.config import list_profiles, load_global_config, load_profile

    names = list_profiles()
    if not names:
        info("No profiles configured.")
        suggest("Create one: oauth2flow profile add <name> ...")
        return

    default = load_global_config().default_profile
    rows: list[list[str]] = []
    for name in names:
        marker = "*" if name == default else ""
        try:
            profile = load_profile(name)
        except Exception:
            rows.append([marker, name, "error", "-"])
            continue
        rows.append([marker, name, profile.client_id, profile.redirect_uri])

    print_table(["", "Profile", "Client ID", "Redirect URI"], rows, title="Profiles")


@profile_app.command("show")
def profile_show(name: str = typer.Argument(help="Profile name.")) -> None:
    """Print a profile's settings."""
    from oauth2flow.config import load_profile
    from oauth2flow.exceptions import ConfigError

    try:
        profile = load_profile(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None
    format_response(profile.model_dump(mode="json"))


@profile_app.command("use")
def profile_use(name: str = typer.Argument(help="Profile to make the default.")) -> None:
    """Set the default profile."""
    from oauth2flow.config import load_global_config, profile_exists, save_global_config

    if not profile_exists(name):
        error(f'Profile "{name}" does not exist.')
        raise typer.Exit(code=2)
    config = load_global_config()
    config.default_profile = name
    save_global_config(config)
    success(f'Default profile set to "{name}".')


@profile_app.command("remove")
def profile_remove(
    ctx: typer.Context,
    name: str = typer.Argument(help="Profile name to remove."),
) -> None:
    """Delete a profile. Asks for confirmation unless ``--force`` is active."""
    from oauth2flow.config import delete_profile, load_global_config, save_global_config
    from oauth2flow.exceptions import ConfigError

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm(f'Remove profile "{name}"?'):
        info("Cancelled.")
        return

    try:
        delete_profile(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None

    config = load_global_config()
    if config.default_profile == name:
        config.default_profile = None
        save_global_config(config)
    success(f'Profile "{name}" removed.')
