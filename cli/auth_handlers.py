"""Authentication handlers for CLI"""

import asyncio
import logging
from pathlib import Path
from typing import Union

from rich.prompt import Confirm

from codex_oauth import (
    CredentialStore,
    CredentialUnusable,
    OAuthError,
    import_credentials,
    run_login_flow,
)

logger = logging.getLogger(__name__)


def login(
    store: CredentialStore,
    console,
    open_browser: bool = True,
    relogin: bool = False,
    timeout: float = 300,
) -> bool:
    """
    Run the browser PKCE login and save the resulting credentials

    Args:
        store: CredentialStore to write to
        console: Rich console for output
        open_browser: Launch a private browser window; otherwise print the URL only
        relogin: Log in again even when usable credentials exist
        timeout: Seconds to wait for the OAuth callback

    Returns:
        True when credentials were saved
    """
    if not relogin and store.is_usable(store.read()):
        console.print(f"[green]Already logged in[/green] ({store.path})")
        console.print("Use [cyan]--relogin[/cyan] to sign in again.")
        return True

    def show_url(url: str):
        if open_browser:
            console.print("Opening your browser to sign in...")
            console.print("[dim]If it does not open, visit this URL:[/dim]")
        else:
            console.print("Open this URL in a browser to sign in:")
        console.print(f"[cyan]{url}[/cyan]")

    try:
        record = asyncio.run(
            run_login_flow(store, open_browser=open_browser, timeout=timeout, on_url=show_url)
        )
    except asyncio.TimeoutError:
        console.print(f"[red]ERROR:[/red] No login callback within {timeout:.0f} seconds")
        return False
    except (OAuthError, OSError) as e:
        console.print(f"[red]ERROR:[/red] Login failed: {e}")
        return False

    console.print(f"[green][OK][/green] Credentials saved to {store.path}")
    if record.api_key:
        console.print("API key: [green]available[/green]")
    else:
        console.print("API key: [yellow]not issued[/yellow] - ChatGPT tokens will be used")
    return True


def import_auth(source: Union[str, Path], store: CredentialStore, console) -> bool:
    """
    Import an existing Codex auth.json (or OPENAI_API_KEY) into the credential file

    Args:
        source: Path of the auth file to import
        store: CredentialStore to write to
        console: Rich console for output

    Returns:
        True when credentials were imported
    """
    try:
        record = import_credentials(source, store)
    except CredentialUnusable as e:
        console.print(f"[red]ERROR:[/red] {e}")
        return False
    except OSError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        return False

    mode = "API key" if record.api_key else "ChatGPT tokens"
    console.print(f"[green][OK][/green] Imported {mode} from {source} into {store.path}")
    return True


def logout(store: CredentialStore, console, assume_yes: bool = False) -> bool:
    """
    Clear stored credentials

    Args:
        store: CredentialStore to clear
        console: Rich console for output
        assume_yes: Skip the confirmation prompt
    """
    if not assume_yes and not Confirm.ask("Are you sure you want to clear all credentials?"):
        console.print("Logout cancelled")
        return False

    if store.clear():
        console.print("[green]Credentials cleared successfully[/green]")
        return True
    console.print(f"[red]ERROR:[/red] Could not remove {store.path}")
    return False
