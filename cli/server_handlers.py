"""Server and one-shot request handlers for CLI"""

import asyncio
import json
import uuid
from typing import Optional

from codex_oauth import CredentialUnusable, OAuthError
from proxy import ProxyServer
from responses_compat import PlainText, normalize_reply
from upstream import UpstreamError, UpstreamRequest, build_upstream_client, render_prompt

import settings


def start_proxy_server(
    console,
    bind_address: Optional[str] = None,
    port: Optional[int] = None,
    debug: bool = False,
    mode: Optional[str] = None,
):
    """
    Run the relay server in the foreground until interrupted

    Args:
        console: Rich console for output
        bind_address: Override for BIND_ADDRESS
        port: Override for PORT
        debug: Whether debug mode is enabled
        mode: Override for UPSTREAM_MODE
    """
    upstream = build_upstream_client(mode)
    proxy_server = ProxyServer(debug=debug, bind_address=bind_address, port=port, upstream_client=upstream)

    base_url = f"http://{proxy_server.bind_address}:{proxy_server.port}"
    console.print(f"[green][OK][/green] Relay starting at {base_url}")
    console.print("[bold cyan]Responses API:[/bold cyan]")
    console.print(f"  Base URL: {base_url}/v1")
    console.print("  Endpoint: /v1/responses")
    console.print(f"  Upstream: {upstream.name}")
    console.print("\n[dim]Press Ctrl+C to stop[/dim]")

    proxy_server.run()


async def _ask(question: str, mode: Optional[str]):
    upstream = build_upstream_client(mode)
    await upstream.prepare()
    body = {"input": question}
    request = UpstreamRequest(body=body, prompt=render_prompt(body, force_json=settings.FORCE_JSON))
    return await upstream.complete(request, str(uuid.uuid4())[:8])


def ask_question(question: str, console, mode: Optional[str] = None) -> bool:
    """
    Send one question through the configured upstream and print the reply

    Args:
        question: Prompt text
        console: Rich console for output
        mode: Override for UPSTREAM_MODE

    Returns:
        True when a reply was printed
    """
    try:
        reply = asyncio.run(_ask(question, mode))
    except CredentialUnusable as e:
        console.print(f"[red]ERROR:[/red] {e}")
        return False
    except (UpstreamError, OAuthError) as e:
        console.print(f"[red]ERROR:[/red] Upstream request failed: {e}")
        return False

    normalized = normalize_reply(reply, strict=settings.EXPECT_JSON)
    if isinstance(normalized, PlainText):
        console.print(normalized.text)
        return True

    if normalized.reasoning_summary:
        console.print(f"[dim]{normalized.reasoning_summary}[/dim]")
    if normalized.is_final:
        console.print(normalized.final_message)
        return True
    for fragment in normalized.content:
        console.print(fragment)
    for call in normalized.tool_calls:
        console.print(f"[cyan]tool call[/cyan] {call.name}: {json.dumps(call.arguments, ensure_ascii=False)}")
    return True
