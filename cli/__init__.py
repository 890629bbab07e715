"""CLI package for the Codex Responses Relay

Subcommands: serve, login, import-auth, status, logout and ask.
"""

from cli.main import main

__all__ = [
    "main",
]
