"""
Logging utilities for request debugging and tracing.
"""
import logging
from typing import Dict, Any, Mapping, Optional

logger = logging.getLogger(__name__)

SENSITIVE_HEADERS = ('authorization', 'x-api-key', 'api-key', 'cookie', 'chatgpt-account-id')


def redact_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Copy of ``headers`` with credential-bearing values replaced"""
    return {
        name: "[REDACTED]" if name.lower() in SENSITIVE_HEADERS else value
        for name, value in headers.items()
    }


def log_request(request_id: str, request_data: Dict[str, Any], endpoint: str,
                headers: Optional[Mapping[str, str]] = None):
    """Log incoming request details including headers"""
    if not logger.isEnabledFor(logging.DEBUG):
        return

    logger.debug(f"[{request_id}] RAW REQUEST CAPTURE")
    logger.debug(f"[{request_id}] Endpoint: {endpoint}")
    logger.debug(f"[{request_id}] Model: {request_data.get('model', 'unknown')}")
    logger.debug(f"[{request_id}] Body keys: {sorted(request_data.keys())}")

    conversation = request_data.get('input', request_data.get('messages'))
    if isinstance(conversation, list):
        logger.debug(f"[{request_id}] Conversation items: {len(conversation)}")
    elif isinstance(conversation, str):
        logger.debug(f"[{request_id}] Input (preview): {conversation[:200]}")

    if headers:
        for header_name, header_value in redact_headers(headers).items():
            logger.debug(f"[{request_id}] {header_name}: {header_value}")
