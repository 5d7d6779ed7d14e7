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

"""Typed events and the observer lists that carry them.

Every component that reports something (bus posts, agent status, votes,
usage, idle nudges) publishes a typed event model. Subscribers register a
plain callable and get back a ``SubscriptionToken``; removal goes through
that token.

Notification is synchronous: all subscribers registered when ``notify`` is
called run, in registration order, before it returns. A subscriber that
raises is logged and skipped.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# ============= Event models =============


class SynodEvent(BaseModel):
    """Base for all engine events."""

    model_config = ConfigDict(frozen=True)

    type: str
    team_id: str
    timestamp: datetime = Field(default_factory=datetime.now)


class AgentStatusEvent(SynodEvent):
    type: Literal["agent:status"] = "agent:status"
    agent_id: str
    status: str
    detail: str | None = None


class AgentStreamEvent(SynodEvent):
    type: Literal["agent:stream"] = "agent:stream"
    agent_id: str
    text: str


class TeamStatusEvent(SynodEvent):
    type: Literal["team:status"] = "team:status"
    status: str
    reason: str | None = None
    started_at: datetime | None = None
    max_runtime_minutes: int | None = None


class IdleNudgeEvent(SynodEvent):
    type: Literal["idle:nudge"] = "idle:nudge"
    nudge_count: int
    next_nudge_at: datetime | None
    status: str
    interval_seconds: float


class EscalationNewEvent(SynodEvent):
    type: Literal["escalation:new"] = "escalation:new"
    escalation_id: str
    channel_id: str
    reason: str


class EscalationResolvedEvent(SynodEvent):
    type: Literal["escalation:resolved"] = "escalation:resolved"
    escalation_id: str
    resolution: str


class VoteStartedEvent(SynodEvent):
    type: Literal["vote:started"] = "vote:started"
    escalation_id: str
    topic: str
    options: list[str]
    total_voters: int


class VoteResolvedEvent(SynodEvent):
    type: Literal["vote:resolved"] = "vote:resolved"
    escalation_id: str
    winner: str
    tally: dict[str, int]


class VoteDeadlockedEvent(SynodEvent):
    type: Literal["vote:deadlocked"] = "vote:deadlocked"
    escalation_id: str
    tally: dict[str, int]


class UsageUpdateEvent(SynodEvent):
    type: Literal["usage:update"] = "usage:update"
    agent_id: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    team_total_usd: float


class BudgetWarningEvent(SynodEvent):
    type: Literal["usage:budget_warning"] = "usage:budget_warning"
    total_usd: float
    ceiling_usd: float


class BudgetExceededEvent(SynodEvent):
    type: Literal["usage:budget_exceeded"] = "usage:budget_exceeded"
    total_usd: float
    ceiling_usd: float


class BusMessageEvent(SynodEvent):
    type: Literal["bus:message"] = "bus:message"
    message_id: str
    channel_id: str
    channel_name: str
    sequence: int
    author_id: str
    author_role: str
    author_name: str | None
    content: str
    message_type: str


Event = (
    AgentStatusEvent
    | AgentStreamEvent
    | TeamStatusEvent
    | IdleNudgeEvent
    | EscalationNewEvent
    | EscalationResolvedEvent
    | VoteStartedEvent
    | VoteResolvedEvent
    | VoteDeadlockedEvent
    | UsageUpdateEvent
    | BudgetWarningEvent
    | BudgetExceededEvent
    | BusMessageEvent
)

# ============= Observer infrastructure =============


@dataclass(frozen=True)
class SubscriptionToken:
    """Handle returned by ``subscribe``; pass it to ``unsubscribe``."""

    source: str
    id: int


T = TypeVar("T")


class ObserverList(Generic[T]):
    """Ordered set of callbacks keyed by subscription token."""

    _sources = itertools.count(1)

    def __init__(self, name: str) -> None:
        self._source = f"{name}#{next(self._sources)}"
        self._ids = itertools.count(1)
        self._observers: dict[int, Callable[[T], None]] = {}

    def subscribe(self, callback: Callable[[T], None]) -> SubscriptionToken:
        token = SubscriptionToken(source=self._source, id=next(self._ids))
        self._observers[token.id] = callback
        return token

    def unsubscribe(self, token: SubscriptionToken) -> bool:
        """Remove a subscription. Returns False for unknown or foreign tokens."""
        if token.source != self._source:
            return False
        return self._observers.pop(token.id, None) is not None

    def notify(self, item: T) -> None:
        # Snapshot: subscribe/unsubscribe inside a callback affects the next notify only
        for callback in list(self._observers.values()):
            try:
                callback(item)
            except Exception as e:
                logger.warning(f"Observer on {self._source} failed: {e}", exc_info=True)

    def clear(self) -> None:
        self._observers.clear()

    def __len__(self) -> int:
        return len(self._observers)


class EventHub:
    """Process-wide event fan-out shared by the supervisor and its components.

    Example:
        >>> hub = EventHub()
        >>> token = hub.subscribe(print, types={"vote:resolved"})
        >>> hub.unsubscribe(token)
    """

    def __init__(self) -> None:
        self._observers: ObserverList[SynodEvent] = ObserverList("events")

    def subscribe(
        self,
        callback: Callable[[SynodEvent], None],
        *,
        types: Iterable[str] | None = None,
        team_id: str | None = None,
    ) -> SubscriptionToken:
        """Subscribe to events, optionally narrowed by event type and team."""
        if types is None and team_id is None:
            return self._observers.subscribe(callback)

        wanted = frozenset(types) if types is not None else None

        def filtered(event: SynodEvent) -> None:
            if wanted is not None and event.type not in wanted:
                return
            if team_id is not None and event.team_id != team_id:
                return
            callback(event)

        return self._observers.subscribe(filtered)

    def unsubscribe(self, token: SubscriptionToken) -> bool:
        return self._observers.unsubscribe(token)

    def emit(self, event: SynodEvent) -> None:
        logger.debug(f"event {event.type} team={event.team_id}")
        self._observers.notify(event)
