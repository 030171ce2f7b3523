"""Tests for oauth2flow.credential -- tolerant decoding and the wire encoding."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from oauth2flow.credential import Credential, decode_credential, encode_credential
from oauth2flow.exceptions import DecodeError


class TestDecodeCredential:
    def test_minimal(self) -> None:
        credential = decode_credential(b'{"access_token":"A","token_type":"Bearer"}')
        assert credential == Credential(access_token="A", token_type="Bearer")
        assert credential.refresh_token is None
        assert credential.expires_in is None

    def test_full_snake_case(self) -> None:
        body = {
            "access_token": "A",
            "token_type": "Bearer",
            "sub": "user-1",
            "refresh_token": "R",
            "scope": "openid email",
            "expires_in": 3600,
            "id_token": "eyJ...",
        }
        credential = decode_credential(json.dumps(body))
        assert credential.model_dump() == body

    def test_camel_case_keys(self) -> None:
        body = {
            "accessToken": "A",
            "tokenType": "Bearer",
            "refreshToken": "R",
            "idToken": "I",
            "expiresIn": 60,
        }
        credential = decode_credential(json.dumps(body))
        assert credential.access_token == "A"
        assert credential.token_type == "Bearer"
        assert credential.refresh_token == "R"
        assert credential.id_token == "I"
        assert credential.expires_in == 60

    def test_snake_case_wins_over_camel_case(self) -> None:
        credential = decode_credential(
            b'{"access_token":"snake","accessToken":"camel","token_type":"Bearer"}'
        )
        assert credential.access_token == "snake"

    def test_expires_preferred_over_expires_in(self) -> None:
        credential = decode_credential(
            b'{"access_token":"A","token_type":"Bearer","expires":10,"expires_in":20}'
        )
        assert credential.expires_in == 10

    def test_non_integer_expires_falls_through(self) -> None:
        credential = decode_credential(
            b'{"access_token":"A","token_type":"Bearer","expires":"soon","expires_in":20}'
        )
        assert credential.expires_in == 20

    def test_wrong_typed_optional_field_is_absent(self) -> None:
        credential = decode_credential(
            b'{"access_token":"A","token_type":"Bearer","refresh_token":42,"expires_in":true}'
        )
        assert credential.refresh_token is None
        assert credential.expires_in is None

    def test_unknown_fields_ignored(self) -> None:
        credential = decode_credential(
            b'{"access_token":"A","token_type":"Bearer","x_vendor":{"a":1}}'
        )
        assert credential == Credential(access_token="A", token_type="Bearer")

    def test_missing_access_token(self) -> None:
        with pytest.raises(DecodeError, match="access_token"):
            decode_credential(b'{"token_type":"Bearer"}')

    def test_missing_token_type(self) -> None:
        with pytest.raises(DecodeError, match="token_type"):
            decode_credential(b'{"access_token":"A"}')

    def test_non_string_access_token(self) -> None:
        with pytest.raises(DecodeError, match="access_token"):
            decode_credential(b'{"access_token":123,"token_type":"Bearer"}')

    def test_invalid_json_keeps_cause(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            decode_credential(b"<html>nope</html>")
        assert isinstance(exc_info.value.cause, json.JSONDecodeError)

    def test_json_array_rejected(self) -> None:
        with pytest.raises(DecodeError, match="JSON object"):
            decode_credential(b"[]")

    def test_deeply_nested_body(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            decode_credential(b"[" * 100_000 + b"]" * 100_000)
        assert isinstance(exc_info.value.cause, RecursionError)

    def test_invalid_utf8(self) -> None:
        with pytest.raises(DecodeError):
            decode_credential(b'{"access_token": "\xff", "token_type": "Bearer"}')


class TestEncodeCredential:
    def test_omits_absent_fields(self) -> None:
        data = json.loads(encode_credential(Credential(access_token="A", token_type="Bearer")))
        assert data == {"access_token": "A", "token_type": "Bearer"}

    def test_snake_case_keys(self) -> None:
        credential = Credential(
            access_token="A",
            token_type="Bearer",
            refresh_token="R",
            expires_in=60,
        )
        data = json.loads(encode_credential(credential))
        assert set(data) == {"access_token", "token_type", "refresh_token", "expires_in"}

    def test_decodes_back_to_equal_value(self) -> None:
        credential = Credential(
            access_token="A",
            token_type="Bearer",
            sub="u",
            refresh_token="R",
            scope="openid",
            expires_in=60,
            id_token="I",
        )
        assert decode_credential(encode_credential(credential)) == credential


class TestCredentialModel:
    def test_frozen(self) -> None:
        credential = Credential(access_token="A", token_type="Bearer")
        with pytest.raises(ValidationError):
            credential.access_token = "B"  # type: ignore[misc]

    def test_structural_equality(self) -> None:
        assert Credential(access_token="A", token_type="Bearer", scope="s") == Credential(
            access_token="A", token_type="Bearer", scope="s"
        )
        assert Credential(access_token="A", token_type="Bearer") != Credential(
            access_token="A", token_type="Bearer", expires_in=1
        )
