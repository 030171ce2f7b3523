"""Built-in CLI sub-commands for oauth2flow.

This package groups the Typer sub-command modules that form the CLI's
command tree:

* :mod:`~oauth2flow.commands.profile` -- create, list and remove
  authorization-server profiles.
* :mod:`~oauth2flow.commands.auth` -- sign in, refresh, and manage the
  stored credential.

Each module exports a :class:`typer.Typer` sub-application registered on
the root app in :mod:`oauth2flow.app`.
"""
