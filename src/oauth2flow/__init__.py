"""oauth2flow -- OAuth2 Authorization-Code client flow.

This package drives a user through an external authorization step,
exchanges the resulting authorization code for a
:class:`~oauth2flow.credential.Credential` (access / refresh / ID tokens),
and can later refresh that credential.

Typical library usage::

    from oauth2flow import ClientConfig, OAuth2Client
    from oauth2flow.useragent import LoopbackBrowserLauncher

    config = ClientConfig(
        authorize_endpoint="https://idp.example.com/authorize",
        token_endpoint="https://idp.example.com/token",
        client_id="abc",
        client_secret="shh",
        redirect_uri="http://127.0.0.1:8765/callback",
        scopes=("openid", "email"),
    )
    async with OAuth2Client(LoopbackBrowserLauncher(config.redirect_uri)) as client:
        credential = await client.sign_in(config)

Modules:
    formencoding: ``application/x-www-form-urlencoded`` value codec.
    request_builder: Pure builders for authorize URLs and token requests.
    credential: The token response entity and its tolerant JSON codec.
    client: The flow orchestrator (sign-in, sign-out, refresh).
    exceptions: Closed error taxonomy with exit-code mapping.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"

from oauth2flow.client import OAuth2Client
from oauth2flow.credential import Credential, decode_credential, encode_credential
from oauth2flow.models import PKCE, ClientConfig

__all__ = [
    "ClientConfig",
    "Credential",
    "OAuth2Client",
    "PKCE",
    "decode_credential",
    "encode_credential",
]
