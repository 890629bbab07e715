"""
Local OAuth callback listener

Lifecycle: IDLE -> LISTENING -> AWAITING_CALLBACK -> EXCHANGING -> COMPLETED | FAILED

Bad callbacks (wrong state, missing code, provider error) get a 400 and the
listener keeps waiting so the user can retry. The first valid callback
consumes the PKCE session; anything after it is rejected.
"""
import asyncio
import enum
import html
import logging
import socket
from typing import Awaitable, Callable, Optional

from aiohttp import web

from .authorization import build_authorize_url
from .browser import open_private_window
from .constants import (
    CALLBACK_HOST,
    CALLBACK_HOST_V6,
    CALLBACK_PATH,
    CALLBACK_PORT,
    REDIRECT_HOST,
    SHUTDOWN_DELAY,
    SUCCESS_PATH,
)
from .errors import ApiKeyExchangeError, AuthStateMismatch, OAuthError
from .models import CredentialRecord, TokenBundle
from .pkce import PkceSession
from .storage import CredentialStore
from .token_exchange import exchange_code_for_tokens, exchange_id_token_for_api_key

logger = logging.getLogger(__name__)

SUCCESS_PAGE = (
    "<html><body><h1>Login successful</h1>"
    "<p>You can close this tab and return to the terminal.</p></body></html>"
)

CodeExchanger = Callable[[str, str, str], Awaitable[TokenBundle]]
ApiKeyExchanger = Callable[[str], Awaitable[str]]


class ListenerState(enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"
    COMPLETED = "completed"
    FAILED = "failed"


def bind_loopback_socket(preferred_port: int, host: str = CALLBACK_HOST) -> socket.socket:
    """Bind ``host:preferred_port``, or an OS-chosen port when it is taken"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, preferred_port))
    except OSError as e:
        sock.close()
        logger.info(f"Port {preferred_port} unavailable ({e}), using an ephemeral port")
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind((host, 0))
    sock.listen(8)
    sock.setblocking(False)
    return sock


def bind_ipv6_loopback_socket(port: int) -> Optional[socket.socket]:
    """Bind ``[::1]:port`` next to the IPv4 socket; None when IPv6 is unavailable"""
    if not socket.has_ipv6:
        return None
    sock = None
    try:
        sock = socket.socket(socket.AF_INET6, socket.SOCK_STREAM)
        sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
        sock.bind((CALLBACK_HOST_V6, port))
    except OSError as e:
        if sock is not None:
            sock.close()
        logger.debug(f"IPv6 loopback not bound on port {port}: {e}")
        return None
    sock.listen(8)
    sock.setblocking(False)
    return sock


class CallbackListener:
    """Short-lived loopback HTTP server that completes one PKCE login"""

    def __init__(
        self,
        store: CredentialStore,
        session: Optional[PkceSession] = None,
        preferred_port: int = CALLBACK_PORT,
        open_browser: Callable[[str], bool] = open_private_window,
        exchange_code: CodeExchanger = exchange_code_for_tokens,
        exchange_api_key: ApiKeyExchanger = exchange_id_token_for_api_key,
        shutdown_delay: float = SHUTDOWN_DELAY,
    ):
        self.store = store
        self.session = session or PkceSession()
        self.preferred_port = preferred_port
        self.shutdown_delay = shutdown_delay
        self._open_browser = open_browser
        self._exchange_code = exchange_code
        self._exchange_api_key = exchange_api_key

        self.state = ListenerState.IDLE
        self.port: Optional[int] = None
        self.record: Optional[CredentialRecord] = None
        self.error: Optional[Exception] = None

        self._runner: Optional[web.AppRunner] = None
        self._closed = asyncio.Event()
        self._shutdown_task: Optional[asyncio.Task] = None

        self.app = web.Application()
        self.app.router.add_get(CALLBACK_PATH, self._handle_callback)
        self.app.router.add_get(SUCCESS_PATH, self._handle_success)

    @property
    def redirect_uri(self) -> str:
        if self.port is None:
            raise RuntimeError("Listener is not bound yet")
        return f"http://{REDIRECT_HOST}:{self.port}{CALLBACK_PATH}"

    @property
    def authorize_url(self) -> str:
        return build_authorize_url(self.redirect_uri, self.session.challenge, self.session.state)

    async def start(self) -> None:
        """Bind the loopback port and start serving (IDLE -> LISTENING)"""
        if self.state is not ListenerState.IDLE:
            raise RuntimeError(f"Cannot start listener in state {self.state.value}")

        sock = bind_loopback_socket(self.preferred_port)
        self.port = sock.getsockname()[1]

        self._runner = web.AppRunner(self.app, access_log=None)
        await self._runner.setup()
        await web.SockSite(self._runner, sock).start()

        v6_sock = bind_ipv6_loopback_socket(self.port)
        if v6_sock is not None:
            await web.SockSite(self._runner, v6_sock).start()

        self.state = ListenerState.LISTENING
        logger.info(f"OAuth callback listener on {CALLBACK_HOST}:{self.port}")

    async def launch_browser(self) -> bool:
        """Open the authorize URL (LISTENING -> AWAITING_CALLBACK)

        A browser that cannot be launched is logged, not fatal.
        """
        url = self.authorize_url
        self.state = ListenerState.AWAITING_CALLBACK
        try:
            return bool(await asyncio.to_thread(self._open_browser, url))
        except OSError as e:
            logger.warning(f"Failed to launch browser: {e}")
            return False

    def _validate(self, request: web.Request) -> str:
        code = request.query.get("code")
        if not self.session.matches(request.query.get("state", "")) or not code:
            raise AuthStateMismatch("Invalid state or missing code")
        return code

    async def _handle_callback(self, request: web.Request) -> web.Response:
        if self.session.consumed or self.state in (
            ListenerState.EXCHANGING,
            ListenerState.COMPLETED,
            ListenerState.FAILED,
        ):
            logger.warning("Rejected callback for an already used login session")
            return web.Response(text="Login session already used", status=409)

        error = request.query.get("error")
        if error:
            description = request.query.get("error_description", "")
            logger.warning(f"Authorization server returned error: {error} {description}")
            return web.Response(
                text=(
                    "<html><body><h1>Authentication failed</h1>"
                    f"<p>{html.escape(error)}</p><p>{html.escape(description)}</p></body></html>"
                ),
                content_type="text/html",
                status=400,
            )

        try:
            code = self._validate(request)
        except AuthStateMismatch as e:
            logger.warning(f"Callback rejected: {e}")
            return web.Response(text=str(e), status=400)

        # Single-use from here on, before the first suspension point
        self.session.consumed = True
        self.state = ListenerState.EXCHANGING

        try:
            self.record = await self._complete_login(code)
        except (OAuthError, OSError) as e:
            logger.error(f"Login failed during token exchange: {e}")
            self.error = e
            self.state = ListenerState.FAILED
            self._schedule_shutdown()
            return web.Response(text=f"Server error: {e}", status=500)

        self.state = ListenerState.COMPLETED
        self._schedule_shutdown()
        raise web.HTTPFound(SUCCESS_PATH)

    async def _complete_login(self, code: str) -> CredentialRecord:
        tokens = await self._exchange_code(code, self.redirect_uri, self.session.verifier)

        api_key = None
        try:
            api_key = await self._exchange_api_key(tokens.id_token)
        except ApiKeyExchangeError as e:
            logger.warning(f"Continuing without API key: {e}")

        record = CredentialRecord.from_tokens(tokens, api_key=api_key)
        if not self.store.write(record):
            raise OSError(f"Could not save credentials to {self.store.path}")
        logger.info(f"Saved credentials to {self.store.path}")
        return record

    async def _handle_success(self, request: web.Request) -> web.Response:
        return web.Response(text=SUCCESS_PAGE, content_type="text/html")

    def _schedule_shutdown(self) -> None:
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self._delayed_stop())

    async def _delayed_stop(self) -> None:
        await asyncio.sleep(self.shutdown_delay)
        await self.stop()

    async def wait(self, timeout: Optional[float] = 300) -> CredentialRecord:
        """Wait for the listener to finish and return the saved record

        Raises:
            asyncio.TimeoutError: no successful callback within ``timeout``
            OAuthError / OSError: the exchange failed
        """
        try:
            await asyncio.wait_for(self._closed.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"No OAuth callback within {timeout} seconds")
            await self.stop()
            raise

        if self.state is ListenerState.COMPLETED and self.record is not None:
            return self.record
        if self.error is not None:
            raise self.error
        raise OAuthError("Login listener closed before a callback arrived")

    async def stop(self) -> None:
        task = self._shutdown_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        if self._runner is not None:
            runner, self._runner = self._runner, None
            await runner.cleanup()
            logger.debug("OAuth callback listener stopped")
        self._closed.set()


async def run_login_flow(
    store: CredentialStore,
    open_browser: bool = True,
    timeout: Optional[float] = 300,
    on_url: Optional[Callable[[str], None]] = None,
) -> CredentialRecord:
    """Run a complete browser login and return the persisted credentials

    Args:
        store: Where to save the credentials
        open_browser: Launch a browser; otherwise only report the URL
        timeout: Seconds to wait for the callback
        on_url: Called with the authorize URL once it is known
    """
    listener = CallbackListener(store)
    await listener.start()
    if on_url is not None:
        on_url(listener.authorize_url)
    if open_browser:
        await listener.launch_browser()
    else:
        listener.state = ListenerState.AWAITING_CALLBACK
    return await listener.wait(timeout=timeout)
