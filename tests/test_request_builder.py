"""Tests for oauth2flow.request_builder -- authorize URLs, token requests, PKCE."""

from __future__ import annotations

import base64
import hashlib
from urllib.parse import parse_qsl, urlsplit

import pytest

from oauth2flow.exceptions import CodeNotFound, InvalidConfiguration, InvalidRedirectUri
from oauth2flow.models import PKCE, ClientConfig
from oauth2flow.request_builder import (
    FORM_CONTENT_TYPE,
    build_authorize_url,
    build_refresh_request,
    build_token_exchange_request,
    extract_code,
    generate_pkce,
    resolve_callback_scheme,
    validate_config,
)


_PKCE = PKCE(code_verifier="verifier-123", code_challenge="challenge-456")


def _config(**overrides: object) -> ClientConfig:
    values: dict[str, object] = {
        "authorize_endpoint": "https://idp.example.com/authorize",
        "token_endpoint": "https://idp.example.com/token",
        "client_id": "abc",
        "client_secret": "shh",
        "redirect_uri": "app://cb",
        "scopes": ("openid", "email"),
    }
    values.update(overrides)
    return ClientConfig(**values)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# PKCE
# ---------------------------------------------------------------------------


class TestGeneratePkce:
    def test_challenge_is_s256_of_verifier(self) -> None:
        pkce = generate_pkce()
        digest = hashlib.sha256(pkce.code_verifier.encode("ascii")).digest()
        expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        assert pkce.code_challenge == expected
        assert pkce.code_challenge_method == "S256"

    def test_verifier_length_within_rfc_bounds(self) -> None:
        assert 43 <= len(generate_pkce().code_verifier) <= 128

    def test_fresh_per_call(self) -> None:
        assert generate_pkce().code_verifier != generate_pkce().code_verifier


# ---------------------------------------------------------------------------
# Authorize URL
# ---------------------------------------------------------------------------


class TestBuildAuthorizeUrl:
    def test_exact_url(self) -> None:
        assert build_authorize_url(_config()) == (
            "https://idp.example.com/authorize"
            "?client_id=abc&redirect_uri=app://cb&response_type=code&scope=openid+email"
        )

    def test_deterministic(self) -> None:
        assert build_authorize_url(_config()) == build_authorize_url(_config())

    def test_scopes_joined_with_literal_plus(self) -> None:
        url = build_authorize_url(_config(scopes=("a", "b", "c")))
        assert url.endswith("&scope=a+b+c")

    def test_empty_scopes(self) -> None:
        assert build_authorize_url(_config(scopes=())).endswith("&scope=")

    def test_pkce_appends_challenge(self) -> None:
        url = build_authorize_url(_config(), _PKCE)
        params = parse_qsl(urlsplit(url).query)
        assert [name for name, _ in params] == [
            "client_id",
            "redirect_uri",
            "response_type",
            "scope",
            "code_challenge",
            "code_challenge_method",
        ]
        assert params[-2:] == [("code_challenge", "challenge-456"), ("code_challenge_method", "S256")]

    def test_existing_query_is_replaced(self) -> None:
        url = build_authorize_url(
            _config(authorize_endpoint="https://idp.example.com/authorize?prompt=login")
        )
        assert "prompt=login" not in url
        assert urlsplit(url).query.startswith("client_id=abc")

    def test_reserved_characters_are_escaped(self) -> None:
        url = build_authorize_url(_config(client_id="a&b=c d"))
        assert "client_id=a%26b%3Dc%20d&" in url

    def test_relative_endpoint_rejected(self) -> None:
        with pytest.raises(InvalidConfiguration, match="authorize_endpoint"):
            build_authorize_url(_config(authorize_endpoint="/authorize"))


# ---------------------------------------------------------------------------
# Token requests
# ---------------------------------------------------------------------------


class TestBuildTokenExchangeRequest:
    def test_exact_body(self) -> None:
        request = build_token_exchange_request(_config(), "XYZ")
        assert request.method == "POST"
        assert request.url == "https://idp.example.com/token"
        assert request.headers["Content-Type"] == FORM_CONTENT_TYPE
        assert request.headers["Accept"] == "application/json"
        assert request.body == (
            b"redirect_uri=app%3A%2F%2Fcb&grant_type=authorization_code"
            b"&client_id=abc&code=XYZ&client_secret=shh"
        )

    def test_deterministic(self) -> None:
        first = build_token_exchange_request(_config(), "XYZ")
        second = build_token_exchange_request(_config(), "XYZ")
        assert first == second

    def test_pkce_appends_verifier(self) -> None:
        request = build_token_exchange_request(_config(), "XYZ", _PKCE)
        assert request.body.endswith(b"&client_secret=shh&code_verifier=verifier-123")

    def test_values_are_form_encoded(self) -> None:
        request = build_token_exchange_request(_config(client_secret="s~ p"), "a/b")
        assert b"code=a%2Fb" in request.body
        assert b"client_secret=s%7E+p" in request.body

    def test_relative_token_endpoint_rejected(self) -> None:
        with pytest.raises(InvalidConfiguration, match="token_endpoint"):
            build_token_exchange_request(_config(token_endpoint="token"), "XYZ")


class TestBuildRefreshRequest:
    def test_exact_body(self) -> None:
        request = build_refresh_request(_config(), "rt-1")
        assert request.method == "POST"
        assert request.url == "https://idp.example.com/token"
        assert request.body == (
            b"client_id=abc&grant_type=refresh_token&refresh_token=rt-1&client_secret=shh"
        )

    def test_headers_are_independent_copies(self) -> None:
        first = build_refresh_request(_config(), "rt-1")
        second = build_refresh_request(_config(), "rt-1")
        assert first.headers == second.headers
        assert first.headers is not second.headers


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


class TestResolveCallbackScheme:
    def test_scheme_from_redirect_uri(self) -> None:
        assert resolve_callback_scheme(_config()) == "app"

    def test_explicit_scheme_wins(self) -> None:
        config = _config(explicit_callback_scheme="com.example.app")
        assert resolve_callback_scheme(config) == "com.example.app"

    def test_explicit_scheme_used_for_unparseable_uri(self) -> None:
        config = _config(redirect_uri="not a uri", explicit_callback_scheme="myapp")
        assert resolve_callback_scheme(config) == "myapp"

    @pytest.mark.parametrize("redirect_uri", ["", "no-scheme", "/callback"])
    def test_missing_scheme_raises(self, redirect_uri: str) -> None:
        with pytest.raises(InvalidRedirectUri) as exc_info:
            resolve_callback_scheme(_config(redirect_uri=redirect_uri))
        assert exc_info.value.redirect_uri == redirect_uri


class TestValidateConfig:
    def test_valid(self) -> None:
        validate_config(_config())

    @pytest.mark.parametrize(
        "field", ["authorize_endpoint", "token_endpoint"]
    )
    def test_relative_endpoint(self, field: str) -> None:
        with pytest.raises(InvalidConfiguration, match=field):
            validate_config(_config(**{field: "idp.example.com/x"}))

    @pytest.mark.parametrize("field", ["authorize_endpoint", "token_endpoint"])
    def test_malformed_endpoint(self, field: str) -> None:
        with pytest.raises(InvalidConfiguration, match=f"{field} is not a valid URL") as exc_info:
            validate_config(_config(**{field: "https://[::1/x"}))
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_builders_reject_malformed_endpoints(self) -> None:
        with pytest.raises(InvalidConfiguration):
            build_authorize_url(_config(authorize_endpoint="https://[::1/authorize"))
        with pytest.raises(InvalidConfiguration):
            build_token_exchange_request(_config(token_endpoint="https://[::1/token"), "c")
        with pytest.raises(InvalidConfiguration):
            build_refresh_request(_config(token_endpoint="https://[::1/token"), "rt")


class TestExtractCode:
    def test_code_with_other_params(self) -> None:
        assert extract_code("app://cb?state=s1&code=XYZ") == "XYZ"

    def test_percent_decoded(self) -> None:
        assert extract_code("http://127.0.0.1:8765/callback?code=a%2Fb") == "a/b"

    def test_first_non_empty_code(self) -> None:
        assert extract_code("app://cb?code=&code=Q") == "Q"

    def test_missing_code(self) -> None:
        with pytest.raises(CodeNotFound, match="No authorization code"):
            extract_code("app://cb?state=s1")

    def test_empty_code(self) -> None:
        with pytest.raises(CodeNotFound):
            extract_code("app://cb?code=")

    def test_error_is_reported(self) -> None:
        with pytest.raises(CodeNotFound, match="access_denied - User denied"):
            extract_code("app://cb?error=access_denied&error_description=User+denied")

    def test_error_without_description(self) -> None:
        with pytest.raises(CodeNotFound, match="Authorization failed: invalid_scope$"):
            extract_code("app://cb?error=invalid_scope")

    def test_malformed_redirect(self) -> None:
        with pytest.raises(CodeNotFound, match="Malformed redirect URL"):
            extract_code("app://[cb?code=X")
