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

"""Orchestration core: activity log, ledger, bus, escalations, idle scheduling, workers and the supervisor."""

from .activity_log import ActivityLog
from .escalation import EscalationCoordinator, VoteSession
from .events import EventHub, ObserverList, SubscriptionToken, SynodEvent
from .idle_scheduler import IdleScheduler, IdleSettings
from .inbound_queue import InboundQueue
from .learnings import LearningStore
from .message_bus import BusMessage, MessageBus
from .supervisor import AgentStatusInfo, Supervisor, TeamRuntimeInfo
from .task_board import TaskBoard
from .types import (
    AgentNotFoundError,
    ChannelNotFoundError,
    NotFoundError,
    TaskNotFoundError,
    TeamNotFoundError,
    ToolResult,
    UsageEntry,
    UsageTotals,
    VoteResult,
)
from .usage_ledger import UsageLedger
from .worker import AgentWorker, WorkerSpec

__all__ = [
    "ActivityLog",
    "AgentNotFoundError",
    "AgentStatusInfo",
    "AgentWorker",
    "BusMessage",
    "ChannelNotFoundError",
    "EscalationCoordinator",
    "EventHub",
    "IdleScheduler",
    "IdleSettings",
    "InboundQueue",
    "LearningStore",
    "MessageBus",
    "NotFoundError",
    "ObserverList",
    "SubscriptionToken",
    "Supervisor",
    "SynodEvent",
    "TaskBoard",
    "TaskNotFoundError",
    "TeamNotFoundError",
    "TeamRuntimeInfo",
    "ToolResult",
    "UsageEntry",
    "UsageLedger",
    "UsageTotals",
    "VoteResult",
    "VoteSession",
    "WorkerSpec",
]
