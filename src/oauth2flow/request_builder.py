"""Pure builders for authorization URLs and token-endpoint requests.

Every function in this module is free of I/O and state: the same inputs
always produce byte-identical output. The orchestrator in
:mod:`oauth2flow.client` calls them at each stage of a flow.

Also exports :func:`generate_pkce`, which creates a fresh
``code_verifier`` / ``code_challenge`` pair (:rfc:`7636`, S256), plus the
two small parsers the sign-in path needs: :func:`resolve_callback_scheme`
and :func:`extract_code`.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from typing import Optional
from urllib.parse import parse_qsl, quote, urlsplit, urlunsplit

from oauth2flow.exceptions import CodeNotFound, InvalidConfiguration, InvalidRedirectUri
from oauth2flow.formencoding import encode_form_value
from oauth2flow.models import PKCE, ClientConfig, HttpRequest

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Characters left literal in query values. "+" must survive so that the
# scope list keeps its literal "+" separators.
_QUERY_SAFE = "-._~!$'()*+,;:@/?"

_TOKEN_HEADERS = {
    "Content-Type": FORM_CONTENT_TYPE,
    "Accept": "application/json",
}


def generate_pkce() -> PKCE:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A new :class:`~oauth2flow.models.PKCE`.
    """
    # RFC 7636: 43-128 characters from unreserved character set
    code_verifier = secrets.token_urlsafe(64)[:128]
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    code_challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return PKCE(code_verifier=code_verifier, code_challenge=code_challenge)


def _require_absolute(url: str, field: str) -> None:
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise InvalidConfiguration(f"{field} is not a valid URL: {url!r}") from exc
    if not parts.scheme or not parts.netloc:
        raise InvalidConfiguration(f"{field} is not an absolute URL: {url!r}")


def validate_config(config: ClientConfig) -> None:
    """Check both endpoints up front.

    Raises:
        InvalidConfiguration: If either endpoint is not an absolute URL.
    """
    _require_absolute(config.authorize_endpoint, "authorize_endpoint")
    _require_absolute(config.token_endpoint, "token_endpoint")


def resolve_callback_scheme(config: ClientConfig) -> str:
    """Return the URL scheme the user-agent launcher should wait for.

    Uses ``config.explicit_callback_scheme`` when set, otherwise the scheme
    of ``config.redirect_uri``.

    Raises:
        InvalidRedirectUri: If neither yields a scheme.
    """
    if config.explicit_callback_scheme:
        return config.explicit_callback_scheme
    try:
        scheme = urlsplit(config.redirect_uri).scheme
    except ValueError:
        scheme = ""
    if not scheme:
        raise InvalidRedirectUri(config.redirect_uri)
    return scheme


def build_authorize_url(config: ClientConfig, pkce: Optional[PKCE] = None) -> str:
    """Build the URL the user is sent to for authorization.

    Query parameters are emitted in a fixed order: ``client_id``,
    ``redirect_uri``, ``response_type=code``, ``scope`` and, with *pkce*,
    ``code_challenge`` then ``code_challenge_method``. Scopes are joined
    with a literal ``+``. Any query string already on the endpoint is
    replaced.

    Raises:
        InvalidConfiguration: If ``authorize_endpoint`` is not absolute.
    """
    _require_absolute(config.authorize_endpoint, "authorize_endpoint")

    params: list[tuple[str, str]] = [
        ("client_id", config.client_id),
        ("redirect_uri", config.redirect_uri),
        ("response_type", "code"),
        ("scope", "+".join(config.scopes)),
    ]
    if pkce is not None:
        params.append(("code_challenge", pkce.code_challenge))
        params.append(("code_challenge_method", pkce.code_challenge_method))

    query = "&".join(
        f"{quote(name, safe=_QUERY_SAFE)}={quote(value, safe=_QUERY_SAFE)}"
        for name, value in params
    )
    parts = urlsplit(config.authorize_endpoint)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _form_body(pairs: list[tuple[str, str]]) -> bytes:
    return "&".join(f"{name}={encode_form_value(value)}" for name, value in pairs).encode(
        "utf-8"
    )


def _token_request(config: ClientConfig, pairs: list[tuple[str, str]]) -> HttpRequest:
    _require_absolute(config.token_endpoint, "token_endpoint")
    return HttpRequest(
        method="POST",
        url=config.token_endpoint,
        headers=dict(_TOKEN_HEADERS),
        body=_form_body(pairs),
    )


def build_token_exchange_request(
    config: ClientConfig, code: str, pkce: Optional[PKCE] = None
) -> HttpRequest:
    """Build the ``authorization_code`` grant request.

    The body pairs are ``redirect_uri``, ``grant_type``, ``client_id``,
    ``code``, ``client_secret`` in that order, followed by
    ``code_verifier`` when *pkce* is given.

    Raises:
        InvalidConfiguration: If ``token_endpoint`` is not absolute.
    """
    pairs = [
        ("redirect_uri", config.redirect_uri),
        ("grant_type", "authorization_code"),
        ("client_id", config.client_id),
        ("code", code),
        ("client_secret", config.client_secret),
    ]
    if pkce is not None:
        pairs.append(("code_verifier", pkce.code_verifier))
    return _token_request(config, pairs)


def build_refresh_request(config: ClientConfig, refresh_token: str) -> HttpRequest:
    """Build the ``refresh_token`` grant request.

    Raises:
        InvalidConfiguration: If ``token_endpoint`` is not absolute.
    """
    return _token_request(
        config,
        [
            ("client_id", config.client_id),
            ("grant_type", "refresh_token"),
            ("refresh_token", refresh_token),
            ("client_secret", config.client_secret),
        ],
    )


def extract_code(redirect_url: str) -> str:
    """Return the ``code`` query parameter of the final redirect URL.

    Raises:
        CodeNotFound: If the URL has no non-empty ``code`` parameter. When
            the authorization server reported an ``error`` instead, it is
            included in the message.
    """
    try:
        query = urlsplit(redirect_url).query
    except ValueError as exc:
        raise CodeNotFound(f"Malformed redirect URL: {exc}") from exc
    params = parse_qsl(query, keep_blank_values=True)
    for name, value in params:
        if name == "code" and value:
            return value

    errors = dict(params)
    if "error" in errors:
        detail = errors["error"]
        if errors.get("error_description"):
            detail += f" - {errors['error_description']}"
        raise CodeNotFound(f"Authorization failed: {detail}")
    raise CodeNotFound("No authorization code in redirect URL")
