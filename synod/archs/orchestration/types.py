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

"""Orchestration types and exceptions.

Status vocabularies, result dataclasses and the not-found error family
shared by the bus, the coordinator, the supervisor and the tool surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

# --- Status vocabularies ---

TeamStatus = Literal["idle", "running", "paused", "stopped", "error"]
AgentStatus = Literal["idle", "running", "thinking", "tool_use", "paused", "stopped", "error", "restarting"]
AuthorRole = Literal["agent", "human", "system"]
TaskStatus = Literal["backlog", "todo", "in_progress", "review", "done", "blocked"]
TaskPriority = Literal["low", "medium", "high", "critical"]
EscalationStatus = Literal["open", "in_review", "resolved", "dismissed"]
IdleStatus = Literal["active", "backed_off", "hibernating", "stopped"]
QueueKind = Literal["message", "system", "escalation"]
VoteOutcome = Literal["pending", "resolved", "deadlocked"]

TASK_STATUSES: tuple[str, ...] = ("backlog", "todo", "in_progress", "review", "done", "blocked")
TASK_PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "critical")

# Agent statuses that mean "a worker should be alive"
ACTIVE_AGENT_STATUSES: frozenset[str] = frozenset({"running", "thinking", "tool_use", "restarting"})

# --- Exceptions ---


class NotFoundError(Exception):
    """Referenced entity does not exist."""


class TeamNotFoundError(NotFoundError):
    def __init__(self, team_id: str) -> None:
        super().__init__(f"Team {team_id} not found")
        self.team_id = team_id


class AgentNotFoundError(NotFoundError):
    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent {agent_id} not found")
        self.agent_id = agent_id


class ChannelNotFoundError(NotFoundError):
    def __init__(self, channel: str) -> None:
        super().__init__(f"Channel {channel} not found")
        self.channel = channel


class TaskNotFoundError(NotFoundError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


# --- Result Types ---


@dataclass(frozen=True)
class VoteResult:
    """cast_vote return value.

    ``accepted`` is False for an unknown session, an option outside the
    offered set, or a voter who already voted; nothing changes in that case.
    """

    accepted: bool
    result: VoteOutcome = "pending"
    winner: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class UsageEntry:
    """One inference turn's usage, as reported by a worker."""

    team_id: str
    agent_id: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    task_id: str | None = None


@dataclass(frozen=True)
class UsageTotals:
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    records: int = 0


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a bus tool call, in the shape the inference session forwards to the model."""

    text: str
    is_error: bool = False

    @classmethod
    def error(cls, text: str) -> ToolResult:
        return cls(text=f"Error: {text}", is_error=True)
