"""
Scripted demo upstream.

Walks each conversation through a fixed sequence of replies (inspect a
file, plan, patch, verify, finish the plan, summarize). Requests past the
end of the script are saved to disk and acknowledged.
"""
import asyncio
import datetime
import json
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, TYPE_CHECKING

from .base_client import UpstreamClient, UpstreamRequest

if TYPE_CHECKING:
    from stream_debug import StreamTracer

logger = logging.getLogger(__name__)

DEFAULT_CONVERSATION = "global"
CONVERSATION_HEADERS = ("conversation_id", "session_id")


def conversation_key(headers: Mapping[str, str]) -> str:
    """Conversation key from the request headers, ``global`` when absent"""
    for name in CONVERSATION_HEADERS:
        value = headers.get(name) or headers.get(name.replace("_", "-"))
        if value:
            return value
    return DEFAULT_CONVERSATION


@dataclass
class ConversationSession:
    """Per-conversation progress; ``lock`` serializes requests for one key"""
    key: str
    step: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class ConversationStore:
    """Keyed sessions; different keys never wait on each other"""

    def __init__(self) -> None:
        self._sessions: Dict[str, ConversationSession] = {}

    def get(self, key: str) -> ConversationSession:
        session = self._sessions.get(key)
        if session is None:
            session = self._sessions[key] = ConversationSession(key=key)
        return session

    @asynccontextmanager
    async def session(self, key: str) -> AsyncIterator[ConversationSession]:
        session = self.get(key)
        async with session.lock:
            yield session

    async def advance(self, key: str) -> int:
        """Return the current step for ``key`` and move it forward by one"""
        async with self.session(key) as session:
            step = session.step
            session.step += 1
            return step

    def __len__(self) -> int:
        return len(self._sessions)


DEMO_FILE = "test.js"
DEMO_PATCH = (
    "*** Begin Patch\n"
    f"*** Update File: {DEMO_FILE}\n"
    "@@ function sum(a, b) {\n"
    "   return a + b;\n"
    " }\n"
    "+\n"
    "+function subtract(a, b) {\n"
    "+  return a - b;\n"
    "+}\n"
    "*** End Patch\n"
)
PLAN_STEP = "Add a subtract function next to sum"


def _plan(status: str) -> Dict[str, Any]:
    return {"plan": [{"step": PLAN_STEP, "status": status}]}


def _local_shell(command: List[str]) -> Dict[str, Any]:
    return {"name": "local_shell", "arguments": {"command": command, "timeout_ms": 120000}}


SCRIPT: List[Dict[str, Any]] = [
    {
        "reasoning": {"summary": f"I'll read `{DEMO_FILE}` first to see how sum is written."},
        "tool_calls": [_local_shell(["cat", DEMO_FILE])],
    },
    {
        "reasoning": {"summary": "The file has a sum function. I'll plan the subtraction change."},
        "tool_calls": [{"name": "update_plan", "arguments": _plan("in_progress")}],
    },
    {
        "reasoning": {"summary": f"Adding subtract to `{DEMO_FILE}` with a patch."},
        "tool_calls": [_local_shell(["apply_patch", DEMO_PATCH])],
    },
    {
        "reasoning": {"summary": "Reading the file again to verify the change."},
        "tool_calls": [_local_shell(["cat", DEMO_FILE])],
    },
    {
        "reasoning": {"summary": "The change is in place. Marking the plan step as done."},
        "tool_calls": [{"name": "update_plan", "arguments": _plan("completed")}],
    },
    {
        "content": (
            "**Task Completed**\n\n"
            f"`{DEMO_FILE}` now has a `subtract` function alongside `sum`."
        ),
    },
]
SAVED_REPLY = "Request saved. No action taken."


class ScriptedClient(UpstreamClient):
    """Demo upstream replaying SCRIPT per conversation"""

    name = "scripted"
    accepts_any_body = True

    def __init__(self, save_dir: str, store: Optional[ConversationStore] = None):
        self.save_dir = Path(save_dir)
        self.store = store or ConversationStore()

    def _save_request(self, key: str, body: Dict[str, Any]) -> Path:
        self.save_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        path = self.save_dir / f"request-{stamp}-{safe_key}.json"
        path.write_text(json.dumps(body, indent=2), encoding="utf-8")
        return path

    async def complete(
        self,
        request: UpstreamRequest,
        request_id: str,
        tracer: Optional["StreamTracer"] = None,
    ) -> Dict[str, Any]:
        step = await self.store.advance(request.conversation_id)
        logger.info(f"[{request_id}] Conversation {request.conversation_id} at scripted step {step}")

        if step < len(SCRIPT):
            return SCRIPT[step]

        try:
            path = self._save_request(request.conversation_id, request.body)
            logger.info(f"[{request_id}] Saved request to {path}")
        except OSError as e:
            logger.error(f"[{request_id}] Failed to save request: {e}")
        return {"content": SAVED_REPLY}
