# Copyright (c) Nex-AGI. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Agent worker: drives one agent's inference session.

The session pulls user messages through ``next_message()``. The cursor
yields the opening message first, then whatever the bus delivered into the
inbound queue, and suspends while the queue is empty. ``stop()`` releases a
suspended cursor (it returns None) and aborts the in-flight request.

The worker never retries on its own. Status changes, output, stream deltas,
failures and context-rotation requests go to its listener (the supervisor);
a detached worker reports nothing.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from synod.archs.inference.session import (
    AssistantTurnEvent,
    InferenceEvent,
    InferenceProvider,
    InferenceSession,
    SessionContext,
    SessionErrorEvent,
    StreamDeltaEvent,
    TurnResultEvent,
)

from .inbound_queue import InboundQueue
from .types import AgentStatus, QueueKind, UsageEntry

if TYPE_CHECKING:
    from .tools import BusTools
    from .usage_ledger import UsageLedger

logger = logging.getLogger(__name__)


class WorkerListener(Protocol):
    async def on_status(self, worker: AgentWorker, status: AgentStatus) -> None: ...

    async def on_output(self, worker: AgentWorker, text: str) -> None: ...

    async def on_stream(self, worker: AgentWorker, text: str) -> None: ...

    async def on_error(self, worker: AgentWorker, detail: str) -> None: ...

    async def on_context_rotation(self, worker: AgentWorker, input_tokens: int) -> None: ...


@dataclass(frozen=True)
class WorkerSpec:
    agent_id: str
    team_id: str
    agent_name: str
    model: str
    system_prompt: str
    workspace_path: Path
    opening_message: str
    context_window_threshold: int = 150_000


class AgentWorker:
    """One running agent. Create, ``start()``, later ``stop()`` and ``join()``."""

    def __init__(
        self,
        *,
        spec: WorkerSpec,
        provider: InferenceProvider,
        ledger: UsageLedger,
        queue: InboundQueue | None = None,
        tools: BusTools | None = None,
        listener: WorkerListener | None = None,
    ) -> None:
        self.spec = spec
        self._provider = provider
        self._ledger = ledger
        self._queue = queue if queue is not None else InboundQueue()
        self._tools = tools
        self._listener = listener

        self._ready: deque[str] = deque([spec.opening_message])
        self._wakeup = asyncio.Event()
        self._stopped = False
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._session: InferenceSession | None = None
        self._rotation_requested = False

        self.status: AgentStatus = "idle"
        self.session_token: str | None = None
        self.cumulative_input_tokens = 0

    @property
    def agent_id(self) -> str:
        return self.spec.agent_id

    @property
    def team_id(self) -> str:
        return self.spec.team_id

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def pending(self) -> int:
        return len(self._ready) + len(self._queue)

    # --- inbound ---

    def enqueue(self, content: str, *, kind: QueueKind = "message") -> None:
        if self._stopped:
            return
        self._queue.push(content, kind)
        self._wakeup.set()

    async def next_message(self) -> str | None:
        """Delivery cursor. Suspends while nothing is pending; None once stopped."""
        while not self._stopped:
            if self._ready:
                return self._ready.popleft()
            if self._queue:
                self._ready.extend(self._queue.drain())
                continue
            self._wakeup.clear()
            await self._wakeup.wait()
        return None

    # --- lifecycle ---

    def start(self) -> asyncio.Task[None]:
        """Start the session loop without waiting for it."""
        if self._task is None:
            self._running = True
            self._task = asyncio.get_running_loop().create_task(self._run(), name=f"worker-{self.agent_id}")
        return self._task

    def stop(self) -> None:
        """Abort the session and release the cursor. Idempotent."""
        if self._stopped:
            return
        self._stopped = True
        self._wakeup.set()
        if self._session is not None:
            self._session.abort()

    def detach(self) -> None:
        """Stop reporting to the listener."""
        self._listener = None

    async def join(self, timeout: float = 10.0) -> None:
        """Wait for the session loop to finish; cancel it after ``timeout`` seconds."""
        task = self._task
        if task is None or task.done() or task is asyncio.current_task():
            return
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            logger.warning(f"Worker {self.agent_id} did not stop within {timeout}s; cancelling")
            task.cancel()
            await asyncio.wait({task})

    # --- session loop ---

    async def _run(self) -> None:
        await self._set_status("running")
        failure: str | None = None
        try:
            context = SessionContext(
                agent_id=self.spec.agent_id,
                team_id=self.spec.team_id,
                agent_name=self.spec.agent_name,
                model=self.spec.model,
                system_prompt=self.spec.system_prompt,
                workspace_path=self.spec.workspace_path,
                tools=self._tools,
            )
            self._session = self._provider.open_session(context, self)
            self.session_token = self._session.session_token
            logger.info(f"Worker {self.agent_id} ({self.spec.agent_name}) started with model {self.spec.model}")

            async for event in self._session.events():
                if self._stopped:
                    break
                failure = await self._handle(event)
                if failure is not None:
                    break
        except Exception as e:
            if not self._stopped:
                failure = str(e) or type(e).__name__
        finally:
            self._running = False

        if failure is not None:
            self._stopped = True
            if self._session is not None:
                self._session.abort()
            logger.error(f"Worker {self.agent_id} failed: {failure}")
            await self._set_status("error")
            if self._listener is not None:
                await self._listener.on_error(self, failure)
            return

        await self._set_status("stopped")
        logger.info(f"Worker {self.agent_id} stopped")

    async def _handle(self, event: InferenceEvent) -> str | None:
        """Apply one session event. Returns a failure description, if any."""
        if isinstance(event, AssistantTurnEvent):
            for text in event.text_blocks:
                if self._listener is not None:
                    await self._listener.on_output(self, text)
            await self._set_status("tool_use" if event.has_tool_use else "thinking")
            return None

        if isinstance(event, StreamDeltaEvent):
            if self._listener is not None:
                await self._listener.on_stream(self, event.text)
            return None

        if isinstance(event, TurnResultEvent):
            if not event.success:
                return f"Turn failed: {'; '.join(event.errors) or 'unknown error'}"
            await self._ledger.record(
                UsageEntry(
                    team_id=self.team_id,
                    agent_id=self.agent_id,
                    model=event.model,
                    input_tokens=event.input_tokens,
                    output_tokens=event.output_tokens,
                    cost_usd=event.cost_usd,
                )
            )
            self.cumulative_input_tokens += event.input_tokens
            if not self._rotation_requested and self.cumulative_input_tokens >= self.spec.context_window_threshold:
                self._rotation_requested = True
                logger.info(f"Worker {self.agent_id} reached {self.cumulative_input_tokens} input tokens; requesting context rotation")
                if self._listener is not None:
                    await self._listener.on_context_rotation(self, self.cumulative_input_tokens)
            return None

        if isinstance(event, SessionErrorEvent):
            return event.message
        return None

    async def _set_status(self, status: AgentStatus) -> None:
        if status == self.status:
            return
        self.status = status
        if self._listener is not None:
            await self._listener.on_status(self, status)
