"""
Codex Responses relay - HTTP server package.

Accepts Responses API requests, relays them to the configured upstream chat
service and streams the reply back as Responses events.
"""
from .server import ProxyServer
from .app import app

__version__ = "1.0.0"

__all__ = [
    'ProxyServer',
    'app',
]
