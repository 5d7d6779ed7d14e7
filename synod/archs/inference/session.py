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

"""Inference session contract.

A session turns messages pulled from a worker's cursor into a stream of
typed events. The engine never looks inside the model; it only needs these
events and the ability to abort.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Protocol

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from synod.archs.orchestration.tools import BusTools


class AssistantTurnEvent(BaseModel):
    """One completed assistant message."""

    type: Literal["assistant"] = "assistant"
    text_blocks: list[str] = Field(default_factory=list)
    tool_calls: list[str] = Field(default_factory=list)

    @property
    def has_tool_use(self) -> bool:
        return bool(self.tool_calls)


class StreamDeltaEvent(BaseModel):
    type: Literal["stream_delta"] = "stream_delta"
    text: str


class TurnResultEvent(BaseModel):
    """End of one user turn (including any tool-use round trips)."""

    type: Literal["result"] = "result"
    success: bool
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    errors: list[str] = Field(default_factory=list)


class SessionErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


InferenceEvent = AssistantTurnEvent | StreamDeltaEvent | TurnResultEvent | SessionErrorEvent


class MessageCursor(Protocol):
    async def next_message(self) -> str | None:
        """Next user message, or None once the worker is stopping."""
        ...


@dataclass(frozen=True)
class SessionContext:
    agent_id: str
    team_id: str
    agent_name: str
    model: str
    system_prompt: str
    workspace_path: Path
    tools: BusTools | None = None


class InferenceSession(ABC):
    session_token: str

    @abstractmethod
    def events(self) -> AsyncIterator[InferenceEvent]:
        """Run the session, yielding events until the cursor is exhausted or the session aborts."""

    @abstractmethod
    def abort(self) -> None:
        """Interrupt any in-flight request. Idempotent."""


class InferenceProvider(ABC):
    @abstractmethod
    def open_session(self, context: SessionContext, cursor: MessageCursor) -> InferenceSession:
        """Create a session bound to one worker."""
