"""Persistent single-slot storage for the last obtained credential.

The store holds exactly one :class:`~oauth2flow.credential.Credential`
under a fixed key inside a JSON document, by default
``~/.local/share/oauth2flow/credential.json`` (XDG) or the
platform-equivalent directory. A new :meth:`CredentialStore.save`
overwrites whatever was there; there is no multi-account storage.

The credential is written in its snake_case wire form by
:func:`~oauth2flow.credential.encode_credential` and read back with the
same tolerant rules used for token responses, so a document written by an
older version with camelCase keys still loads.

Files are written atomically via :func:`oauth2flow.config.atomic_write`
with ``0o600`` permissions so that tokens are never world-readable, even
momentarily.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from oauth2flow.config import atomic_write, get_data_dir
from oauth2flow.credential import Credential, credential_from_mapping, encode_credential
from oauth2flow.exceptions import DecodeError

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "credential"
"""The fixed key the credential is stored under."""

_DEFAULT_FILENAME = "credential.json"


class CredentialStore:
    """Save, load and remove the last-obtained credential.

    Args:
        path: Location of the JSON document. Defaults to
            ``credential.json`` in :func:`~oauth2flow.config.get_data_dir`,
            resolved on first use.

    Example::

        store = CredentialStore()
        store.save(credential)
        assert store.load() == credential
        store.remove()
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path is not None else None

    @property
    def path(self) -> Path:
        """The filesystem path of the credential document."""
        if self._path is None:
            self._path = get_data_dir() / _DEFAULT_FILENAME
        return self._path

    def save(self, credential: Credential) -> None:
        """Persist *credential*, replacing any previously stored one.

        Raises:
            OSError: If the file cannot be written.
        """
        document = {CREDENTIAL_KEY: json.loads(encode_credential(credential))}
        atomic_write(self.path, json.dumps(document, indent=2) + "\n", mode=0o600)
        logger.debug("Saved credential to %s", self.path)

    def load(self) -> Optional[Credential]:
        """Load the stored credential.

        Returns:
            The credential, or ``None`` if nothing is stored or the stored
            document cannot be read or decoded.
        """
        if not self.path.is_file():
            return None
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            data = document[CREDENTIAL_KEY]
            if not isinstance(data, dict):
                raise DecodeError("Stored credential is not a JSON object")
            return credential_from_mapping(data)
        except (ValueError, RecursionError, OSError, KeyError, TypeError, DecodeError) as exc:
            logger.warning("Ignoring unreadable credential at %s: %s", self.path, exc)
            return None

    def remove(self) -> None:
        """Delete the stored credential. A no-op when nothing is stored."""
        if self.path.is_file():
            self.path.unlink()
            logger.debug("Removed credential at %s", self.path)
