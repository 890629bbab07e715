"""CLI entry point and argument parsing"""

import os
import sys
import argparse
from rich.console import Console

import settings
from codex_oauth import CredentialStore
from upstream import UPSTREAM_MODES


console = Console()

DEFAULT_IMPORT_SOURCE = os.path.join(os.path.expanduser(os.getenv("CODEX_HOME", "~/.codex")), "auth.json")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Codex Responses Relay CLI")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--credential-file",
        default=None,
        help="Override the credential file (default: from config)"
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the relay server (default)")
    serve.add_argument("--bind", "-b", default=None, help="Override bind address (default: from config)")
    serve.add_argument("--port", "-p", type=int, default=None, help="Override port (default: from config)")
    serve.add_argument("--upstream", choices=UPSTREAM_MODES, default=None, help="Override upstream mode")
    serve.add_argument(
        "--stream-trace",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable raw stream tracing log capture (on by default with --debug)"
    )

    login = subparsers.add_parser("login", help="Sign in through the browser")
    login.add_argument("--no-browser", action="store_true", help="Print the login URL instead of opening a browser")
    login.add_argument("--relogin", action="store_true", help="Sign in again even if credentials exist")

    import_auth = subparsers.add_parser("import-auth", help="Import an existing Codex auth.json")
    import_auth.add_argument("path", nargs="?", default=DEFAULT_IMPORT_SOURCE, help="Auth file to import")

    subparsers.add_parser("status", help="Show credential and relay status")

    logout = subparsers.add_parser("logout", help="Remove stored credentials")
    logout.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    ask = subparsers.add_parser("ask", help="Send one question through the upstream")
    ask.add_argument("question", help="Question text")
    ask.add_argument("--upstream", choices=UPSTREAM_MODES, default=None, help="Override upstream mode")

    return parser


def main(argv=None):
    """Entry point for the CLI"""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "serve"

    store = CredentialStore(args.credential_file or settings.CREDENTIAL_FILE)

    try:
        if command == "serve":
            # Config default -> --debug -> explicit flag
            stream_trace = getattr(args, "stream_trace", None)
            if stream_trace is None:
                stream_trace = settings.STREAM_TRACE_ENABLED or args.debug
            settings.STREAM_TRACE_ENABLED = stream_trace

            from cli.server_handlers import start_proxy_server
            start_proxy_server(
                console,
                bind_address=getattr(args, "bind", None),
                port=getattr(args, "port", None),
                debug=args.debug,
                mode=getattr(args, "upstream", None),
            )
            ok = True
        elif command == "login":
            from cli.auth_handlers import login
            ok = login(store, console, open_browser=not args.no_browser, relogin=args.relogin)
        elif command == "import-auth":
            from cli.auth_handlers import import_auth
            ok = import_auth(args.path, store, console)
        elif command == "status":
            from cli.status_display import show_credential_status
            show_credential_status(store, console)
            ok = True
        elif command == "logout":
            from cli.auth_handlers import logout
            ok = logout(store, console, assume_yes=args.yes)
        else:
            from cli.server_handlers import ask_question
            ok = ask_question(args.question, console, mode=args.upstream)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        console.print("Goodbye!")
        ok = True
    except ValueError as e:
        console.print(f"\n[red]Fatal error:[/red] {e}")
        ok = False

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
