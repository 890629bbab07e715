"""Status display functionality for CLI"""

from rich.table import Table

import settings
from codex_oauth import CredentialStore


def get_auth_status(store: CredentialStore) -> tuple[str, str]:
    """
    Get authentication status and a short detail message

    Args:
        store: CredentialStore instance

    Returns:
        Tuple of (status, detail_message)
    """
    status = store.get_status()

    if not status["has_credentials"]:
        return "NO AUTH", "No credentials stored"
    if not status["usable"]:
        return "UNUSABLE", "Neither access token nor API key present"
    if status["mode"] == "api_key":
        return "VALID", "Using API key"
    return "VALID", f"Using ChatGPT tokens (last refresh {status['last_refresh'] or 'unknown'})"


def show_credential_status(store: CredentialStore, console):
    """
    Display credential and relay configuration details

    Args:
        store: CredentialStore instance
        console: Rich console for output
    """
    status = store.get_status()
    auth_status, auth_detail = get_auth_status(store)
    color = "green" if auth_status == "VALID" else "yellow"

    table = Table(title="Relay Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Auth", f"[{color}]{auth_status}[/] ({auth_detail})")
    table.add_row("Credential File", status["path"])
    table.add_row("Mode", status["mode"] or "-")
    table.add_row("Account ID", status["account_id"] or "-")
    if status["expires_at"]:
        table.add_row("Access Token Expires", status["expires_at"])
    table.add_row("Upstream", f"{settings.UPSTREAM_MODE} ({settings.UPSTREAM_BASE_URL})")
    table.add_row("Listen", f"http://{settings.BIND_ADDRESS}:{settings.PORT}")

    console.print(table)
