"""``application/x-www-form-urlencoded`` value encoding.

Implements the WHATWG form-encoding algorithm for a single value: the
bytes ``A-Z``, ``a-z``, ``0-9`` and ``- . _ *`` are left as-is, the space
becomes ``+``, and every other UTF-8 byte is percent-encoded. Note that
``~`` is *not* left alone, unlike RFC 3986 unreserved characters.
"""

from __future__ import annotations

import re
from urllib.parse import quote_plus, unquote

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def encode_form_value(value: str) -> str:
    """Encode *value* for use in a form-urlencoded body.

    Example::

        >>> encode_form_value("app://cb a~b")
        'app%3A%2F%2Fcb+a%7Eb'
    """
    # quote_plus always treats "~" as safe; the form algorithm does not.
    return quote_plus(value, safe="*").replace("~", "%7E")


def decode_form_value(value: str) -> str:
    """Decode a form-urlencoded value, turning ``+`` back into a space.

    Never raises. When the percent-escapes are malformed or do not decode
    to UTF-8, the string is returned with only the ``+`` replacement
    applied.
    """
    replaced = value.replace("+", " ")
    if _MALFORMED_ESCAPE.search(replaced):
        return replaced
    try:
        return unquote(replaced, errors="strict")
    except UnicodeDecodeError:
        return replaced
