"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a failure category and is referenced by the
corresponding :class:`~oauth2flow.exceptions.OAuth2FlowError` subclass.
Shell wrappers can inspect the exit code to tell a cancelled login from an
unreachable token endpoint without parsing stderr.

Example::

    $ oauth2flow auth refresh
    $ echo $?
    5   # EXIT_SERVER_ERROR -- the token endpoint answered with a non-2xx status
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The user-interaction step failed, was cancelled, or returned no code."""

EXIT_INVALID_CONFIGURATION = 4
"""The client configuration (endpoints, redirect URI) is malformed."""

EXIT_SERVER_ERROR = 5
"""The token endpoint returned a non-2xx HTTP status."""

EXIT_TRANSPORT_ERROR = 6
"""A network-level failure prevented the token request from completing."""

EXIT_DECODE_ERROR = 7
"""The token endpoint response could not be decoded into a credential."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C (128 + SIGINT)."""
