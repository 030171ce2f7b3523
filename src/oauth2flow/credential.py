"""The token-endpoint response entity and its JSON codec.

Authorization servers disagree on the shape of a token response, so
:func:`decode_credential` is deliberately tolerant:

* every field is looked up under its snake_case name first
  (``access_token``) and then its camelCase name (``accessToken``);
* the lifetime may arrive as ``expires`` or ``expires_in``; ``expires`` is
  checked first and the first integer found wins;
* an optional field that is missing or has the wrong type is left as
  ``None`` without failing the decode;
* unknown fields are ignored.

Only a missing or non-string ``access_token`` / ``token_type`` makes the
decode fail, with :class:`~oauth2flow.exceptions.DecodeError`.

:func:`encode_credential` writes the snake_case wire form used by the
credential store.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

from oauth2flow.exceptions import DecodeError


class Credential(BaseModel):
    """The result of one successful token exchange or refresh.

    Immutable; equality is structural over all seven fields.

    Attributes:
        access_token: Bearer token for API authentication.
        token_type: Token type reported by the server, usually ``"Bearer"``.
        sub: Subject identifier, when the server includes one.
        refresh_token: Token for obtaining a new credential later.
        scope: Space- or plus-separated scopes actually granted.
        expires_in: Access token lifetime in seconds.
        id_token: OpenID Connect ID token (a JWT), when requested.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str
    sub: Optional[str] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    expires_in: Optional[int] = None
    id_token: Optional[str] = None


_FIELD_ORDER = (
    "access_token",
    "sub",
    "token_type",
    "refresh_token",
    "scope",
    "expires_in",
    "id_token",
)

_EXPIRES_KEYS = ("expires", "expires_in", "expiresIn")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _lookup_str(data: dict[str, Any], name: str) -> Optional[str]:
    for key in (name, _camel(name)):
        value = data.get(key)
        if isinstance(value, str):
            return value
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def credential_from_mapping(data: dict[str, Any]) -> Credential:
    """Build a :class:`Credential` from an already-parsed JSON object.

    Raises:
        DecodeError: If ``access_token`` or ``token_type`` is missing or
            not a string.
    """
    access_token = _lookup_str(data, "access_token")
    if access_token is None:
        raise DecodeError("Token response missing 'access_token' field")
    token_type = _lookup_str(data, "token_type")
    if token_type is None:
        raise DecodeError("Token response missing 'token_type' field")

    expires_in: Optional[int] = None
    for key in _EXPIRES_KEYS:
        expires_in = _as_int(data.get(key))
        if expires_in is not None:
            break

    return Credential(
        access_token=access_token,
        token_type=token_type,
        sub=_lookup_str(data, "sub"),
        refresh_token=_lookup_str(data, "refresh_token"),
        scope=_lookup_str(data, "scope"),
        expires_in=expires_in,
        id_token=_lookup_str(data, "id_token"),
    )


def decode_credential(payload: Union[bytes, str]) -> Credential:
    """Decode a token response body into a :class:`Credential`.

    Args:
        payload: The raw JSON body.

    Raises:
        DecodeError: If the body is not a JSON object, or the required
            fields are missing. The parse error, if any, is kept on
            ``cause``.
    """
    try:
        data = json.loads(payload)
    except (ValueError, RecursionError) as exc:
        raise DecodeError(f"Token response is not valid JSON: {exc}", cause=exc) from exc

    if not isinstance(data, dict):
        raise DecodeError(
            f"Token response must be a JSON object, got {type(data).__name__}"
        )
    return credential_from_mapping(data)


def encode_credential(credential: Credential) -> bytes:
    """Serialise *credential* to pretty-printed snake_case JSON.

    Fields that are ``None`` are omitted.
    """
    values = credential.model_dump()
    data = {name: values[name] for name in _FIELD_ORDER if values[name] is not None}
    return json.dumps(data, indent=2).encode("utf-8")
