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

"""Idle scheduler: nudges a quiet team and backs off when nudges go unanswered.

States:

- ``active``: no unanswered nudges; checks run every ``base_interval``.
- ``backed_off``: ``fruitless`` > 0; the interval doubles per unanswered
  nudge, capped at ``max_interval``.
- ``hibernating``: ``max_fruitless`` nudges in a row went unanswered; no
  more checks until a human speaks.

A nudge opens an observation window. Any bus activity inside the window
makes the nudge fruitful and resets the backoff.

Nothing here is persisted; a scheduler is rebuilt from team id + settings.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Protocol

from .events import EventHub, IdleNudgeEvent
from .types import IdleStatus, QueueKind

if TYPE_CHECKING:
    from synod.archs.config import SynodConfig

logger = logging.getLogger(__name__)

NUDGE_MESSAGE = """[System: Idle Check] The team has gone quiet. Take the lead like a real product manager instead of waiting to be told what to do.

1. Review where the project stands: call list_tasks, read the workspace files and check what has been built.
2. Ask what a real product team would do next. Which features would users love? Where is the UX rough? Is the code tested well enough to ship? Could a new developer follow the documentation?
3. If external tools such as analytics are available, use them to understand how the product is used.
4. Record anything worth remembering with save_learning.
5. If you find meaningful improvements, create tasks, announce them in #planning and coordinate the team.
6. If the product is genuinely complete and polished, stay silent.

Propose features and push on quality, but do not invent busywork or spend tokens on trivial changes."""


class NudgeTarget(Protocol):
    def enqueue(self, content: str, *, kind: QueueKind = "message") -> None: ...


BudgetProbe = Callable[[], Awaitable[tuple[float, float | None]]]


@dataclass(frozen=True)
class IdleSettings:
    """Idle scheduler timing, in seconds."""

    base_interval: float
    max_interval: float = 2 * 60 * 60
    observation_window: float = 5 * 60
    max_fruitless: int = 3
    budget_threshold: float = 0.8

    @classmethod
    def from_config(cls, config: SynodConfig) -> IdleSettings:
        return cls(
            base_interval=config.idle_nudge_interval_seconds,
            max_interval=config.idle_nudge_max_interval_seconds,
            observation_window=config.idle_nudge_observation_window_seconds,
            max_fruitless=config.idle_nudge_max_fruitless,
            budget_threshold=config.idle_nudge_budget_threshold,
        )


class IdleScheduler:
    """Per-team nudge timer.

    Args:
        select_target: Returns the worker to nudge given the running nudge
            count (round-robin key), or None when no worker is running.
        budget_probe: Returns ``(team cost, ceiling)``; nudges are skipped
            while cost is at or above ``budget_threshold`` of the ceiling.
        clock: Source of "now" for ``next_nudge_at``.
    """

    def __init__(
        self,
        *,
        team_id: str,
        settings: IdleSettings,
        events: EventHub,
        select_target: Callable[[int], NudgeTarget | None],
        budget_probe: BudgetProbe | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.team_id = team_id
        self._settings = settings
        self._events = events
        self._select_target = select_target
        self._budget_probe = budget_probe
        self._clock = clock

        self.nudge_count = 0
        self.fruitless = 0
        self._hibernating = False
        self._stopped = True
        self._waiting_for_first_activity = True
        self._in_observation = False
        self._observation_saw_activity = False
        self._idle_timer: asyncio.Task[None] | None = None
        self._observation_timer: asyncio.Task[None] | None = None

    # --- state ---

    @property
    def status(self) -> IdleStatus:
        if self._stopped:
            return "stopped"
        if self._hibernating:
            return "hibernating"
        if self.fruitless > 0:
            return "backed_off"
        return "active"

    @property
    def current_interval(self) -> float:
        return min(self._settings.base_interval * 2**self.fruitless, self._settings.max_interval)

    @property
    def in_observation(self) -> bool:
        return self._in_observation

    @property
    def waiting_for_first_activity(self) -> bool:
        return self._waiting_for_first_activity

    @property
    def check_scheduled(self) -> bool:
        return self._idle_timer is not None and not self._idle_timer.done()

    # --- public API ---

    def start(self) -> None:
        """Arm the scheduler; the first recorded activity schedules the first check."""
        self._stopped = False
        self._waiting_for_first_activity = True
        logger.info(f"Idle scheduler started for team {self.team_id} (interval {self._settings.base_interval}s)")

    def stop(self) -> None:
        self._stopped = True
        self._in_observation = False
        for timer in (self._idle_timer, self._observation_timer):
            if timer is not None:
                timer.cancel()
        self._idle_timer = None
        self._observation_timer = None

    def record_activity(self) -> None:
        """Any bus message. Debounces the next idle check."""
        if self._stopped:
            return
        if self._in_observation:
            self._observation_saw_activity = True
        self._waiting_for_first_activity = False
        self._schedule_idle_check()

    def record_human_activity(self) -> None:
        """A human message. Leaves hibernation and clears the backoff."""
        if self._stopped:
            return
        if self._hibernating:
            logger.info(f"Team {self.team_id} idle scheduler woken by human activity")
            self._hibernating = False
            self.fruitless = 0
            self._emit_status()
        self.record_activity()

    # --- timers ---

    def _schedule_idle_check(self) -> None:
        if self._idle_timer is not None:
            self._idle_timer.cancel()
            self._idle_timer = None
        if self._hibernating or self._stopped:
            return
        self._idle_timer = self._spawn(self._idle_timer_body(self.current_interval))

    async def _idle_timer_body(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._idle_timer = None
        await self._on_idle_timeout()

    async def _observation_timer_body(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._observation_timer = None
        self._on_observation_end()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        return asyncio.get_running_loop().create_task(coro, name=f"idle-{self.team_id}")

    # --- handlers ---

    async def _on_idle_timeout(self) -> None:
        if self._stopped or self._hibernating:
            return
        # Previous nudge still being observed
        if self._in_observation:
            return

        if self._budget_probe is not None:
            try:
                spent, ceiling = await self._budget_probe()
            except Exception as e:
                logger.warning(f"Budget probe failed for team {self.team_id}: {e}")
                spent, ceiling = 0.0, None
            if ceiling and spent >= self._settings.budget_threshold * ceiling:
                logger.info(f"Team {self.team_id} near budget (${spent:.2f} of ${ceiling:.2f}); skipping nudge")
                self._schedule_idle_check()
                return

        if self.fruitless >= self._settings.max_fruitless:
            self._hibernating = True
            logger.info(f"Team {self.team_id} hibernating after {self.fruitless} unanswered nudges")
            self._emit_status()
            return

        target = self._select_target(self.nudge_count)
        if target is None:
            self._schedule_idle_check()
            return

        self.nudge_count += 1
        target.enqueue(NUDGE_MESSAGE, kind="system")
        logger.info(f"Nudged team {self.team_id} (nudge #{self.nudge_count}, fruitless {self.fruitless})")

        self._in_observation = True
        self._observation_saw_activity = False
        self._observation_timer = self._spawn(self._observation_timer_body(self._settings.observation_window))
        self._emit_status()

    def _on_observation_end(self) -> None:
        if self._observation_timer is not None:
            self._observation_timer.cancel()
            self._observation_timer = None
        self._in_observation = False
        if self._observation_saw_activity:
            self.fruitless = 0
        else:
            self.fruitless += 1
        self._emit_status()
        if not self._stopped and not self._hibernating:
            self._schedule_idle_check()

    def _emit_status(self) -> None:
        next_nudge_at: datetime | None = None
        if not self._hibernating and not self._stopped:
            next_nudge_at = self._clock() + timedelta(seconds=self.current_interval)
        self._events.emit(
            IdleNudgeEvent(
                team_id=self.team_id,
                nudge_count=self.nudge_count,
                next_nudge_at=next_nudge_at,
                status=self.status,
                interval_seconds=self.current_interval,
            )
        )
