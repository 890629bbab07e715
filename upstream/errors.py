"""Upstream failure type"""

import json
from typing import Optional

_UNSUPPORTED_MODEL_MARKERS = ("unsupported model", "model is not supported", "model_not_found", "does not exist")


class UpstreamError(Exception):
    """Transport failure or non-2xx answer from the upstream chat service

    Attributes:
        status: HTTP status, None for transport failures
        message: Best-effort human readable reason
    """

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        self.message = message
        super().__init__(f"HTTP {status}: {message}" if status else message)

    @property
    def is_unsupported_model(self) -> bool:
        lowered = self.message.lower()
        return self.status in (400, 404) and any(marker in lowered for marker in _UNSUPPORTED_MODEL_MARKERS)

    @classmethod
    def from_response_body(cls, status: int, body: str) -> "UpstreamError":
        """Pull a readable message out of a JSON or text error body"""
        message = body.strip()[:500] or f"Upstream returned status {status}"
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, TypeError):
            return cls(message, status)

        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str):
                message = error["message"]
            elif isinstance(error, str):
                message = error
            elif isinstance(data.get("detail"), str):
                message = data["detail"]
        return cls(message, status)
