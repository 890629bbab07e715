"""
Utilities to capture raw streaming data for troubleshooting.

When stream tracing is enabled, the tracer writes the raw upstream chunks and
the SSE frames sent back to the client into one file per request.
"""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Optional


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class StreamTracer:
    """Captures one request's stream into a size-capped log file."""

    def __init__(self, request_id: str, route: str, base_dir: str, max_bytes: Optional[int]):
        safe_route = route.strip("/").replace("/", "-").replace(" ", "-") or "root"

        self.request_id = request_id
        self.route = safe_route
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        timestamp = _utc_now().strftime("%Y%m%dT%H%M%SZ")
        self.path = self.base_dir / f"{timestamp}_{safe_route}_{request_id}.log"
        self._file = self.path.open("w", encoding="utf-8")

        self._max_bytes = max_bytes if isinstance(max_bytes, int) and max_bytes > 0 else None
        self._written = 0
        self._truncated = False

        self.log_note("stream tracer initialized")

    def log_source_chunk(self, chunk: str) -> None:
        """Record raw upstream data."""
        self._write("UPSTREAM", chunk)

    def log_emitted_frame(self, frame: str) -> None:
        """Record an SSE frame sent to the client."""
        self._write("EMITTED", frame)

    def log_note(self, note: str) -> None:
        self._write("NOTE", note)

    def log_error(self, message: str) -> None:
        self._write("ERROR", message)

    def close(self) -> None:
        if self._file.closed:
            return
        try:
            self.log_note("stream tracer closed")
        finally:
            self._file.close()

    def _write(self, label: str, payload: str) -> None:
        if self._file.closed or self._truncated:
            return

        if not isinstance(payload, str):
            payload = repr(payload)

        timestamp = _utc_now().isoformat(timespec="milliseconds")
        entry = f"[{timestamp}] [{label}] len={len(payload)}\n{payload}\n"
        encoded = entry.encode("utf-8", "replace")

        if self._max_bytes is not None and self._written + len(encoded) > self._max_bytes:
            remaining = max(self._max_bytes - self._written, 0)
            self._file.write(encoded[:remaining].decode("utf-8", "ignore"))
            self._file.write("\n[stream trace truncated]\n")
            self._file.flush()
            self._written = self._max_bytes
            self._truncated = True
            return

        self._file.write(entry)
        self._file.flush()
        self._written += len(encoded)


def maybe_create_stream_tracer(
    enabled: bool,
    request_id: str,
    route: str,
    base_dir: str,
    max_bytes: Optional[int],
) -> Optional[StreamTracer]:
    """Factory helper that respects the global enable flag."""
    if not enabled:
        return None
    return StreamTracer(request_id=request_id, route=route, base_dir=base_dir, max_bytes=max_bytes)
