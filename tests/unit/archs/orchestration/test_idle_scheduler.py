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

"""Unit tests for the idle scheduler.

Handlers are driven directly with long intervals so no real timer fires,
except in the one test that checks the timers themselves.
"""

import asyncio

import pytest

from synod.archs.orchestration.events import EventHub
from synod.archs.orchestration.idle_scheduler import NUDGE_MESSAGE, IdleScheduler, IdleSettings
from tests.fakes import wait_until


class RecordingTarget:
    def __init__(self):
        self.nudges = []

    def enqueue(self, content, *, kind="message"):
        self.nudges.append((content, kind))


def _scheduler(settings=None, target=None, budget_probe=None):
    events = EventHub()
    seen = []
    events.subscribe(seen.append, types={"idle:nudge"})
    target = target if target is not None else RecordingTarget()
    scheduler = IdleScheduler(
        team_id="t1",
        settings=settings or IdleSettings(base_interval=1.0, max_interval=10.0, observation_window=5.0, max_fruitless=2),
        events=events,
        select_target=lambda count: target,
        budget_probe=budget_probe,
    )
    return scheduler, target, seen


class TestBackoff:
    def test_unanswered_nudges_double_interval_then_hibernate(self):
        async def run():
            scheduler, target, seen = _scheduler()
            scheduler.start()
            scheduler.record_activity()
            intervals = [scheduler.current_interval]

            for _ in range(2):
                await scheduler._on_idle_timeout()
                assert scheduler.in_observation
                scheduler._on_observation_end()
                intervals.append(scheduler.current_interval)

            assert intervals == [1.0, 2.0, 4.0]
            assert scheduler.status == "backed_off"

            await scheduler._on_idle_timeout()
            assert scheduler.status == "hibernating"
            assert len(target.nudges) == 2
            assert all(kind == "system" for _, kind in target.nudges)
            assert target.nudges[0][0] == NUDGE_MESSAGE
            assert seen[-1].status == "hibernating"
            assert seen[-1].next_nudge_at is None
            scheduler.stop()

        asyncio.run(run())

    def test_interval_capped_at_max(self):
        async def run():
            settings = IdleSettings(base_interval=1.0, max_interval=3.0, observation_window=5.0, max_fruitless=10)
            scheduler, _, _ = _scheduler(settings)
            scheduler.start()
            for _ in range(4):
                await scheduler._on_idle_timeout()
                scheduler._on_observation_end()
            assert scheduler.current_interval == 3.0
            scheduler.stop()

        asyncio.run(run())

    def test_activity_during_observation_resets_backoff(self):
        async def run():
            scheduler, _, _ = _scheduler()
            scheduler.start()
            await scheduler._on_idle_timeout()
            scheduler._on_observation_end()
            assert scheduler.fruitless == 1

            await scheduler._on_idle_timeout()
            scheduler.record_activity()
            scheduler._on_observation_end()

            assert scheduler.fruitless == 0
            assert scheduler.status == "active"
            assert scheduler.current_interval == 1.0
            scheduler.stop()

        asyncio.run(run())

    def test_human_activity_wakes_hibernating_team(self):
        async def run():
            scheduler, _, seen = _scheduler()
            scheduler.start()
            for _ in range(2):
                await scheduler._on_idle_timeout()
                scheduler._on_observation_end()
            await scheduler._on_idle_timeout()
            assert scheduler.status == "hibernating"

            scheduler.record_activity()
            assert scheduler.status == "hibernating"
            assert not scheduler.check_scheduled

            scheduler.record_human_activity()
            assert scheduler.status == "active"
            assert scheduler.fruitless == 0
            assert scheduler.check_scheduled
            assert seen[-1].status == "active"
            scheduler.stop()

        asyncio.run(run())


class TestSkips:
    def test_near_budget_skips_nudge(self):
        async def run():
            async def probe():
                return 0.85, 1.0

            scheduler, target, _ = _scheduler(budget_probe=probe)
            scheduler.start()
            await scheduler._on_idle_timeout()

            assert target.nudges == []
            assert scheduler.nudge_count == 0
            assert scheduler.check_scheduled
            scheduler.stop()

        asyncio.run(run())

    def test_no_running_worker_reschedules(self):
        async def run():
            events = EventHub()
            scheduler = IdleScheduler(
                team_id="t1",
                settings=IdleSettings(base_interval=1.0),
                events=events,
                select_target=lambda count: None,
            )
            scheduler.start()
            await scheduler._on_idle_timeout()

            assert scheduler.nudge_count == 0
            assert not scheduler.in_observation
            assert scheduler.check_scheduled
            scheduler.stop()

        asyncio.run(run())

    def test_stopped_scheduler_ignores_everything(self):
        async def run():
            scheduler, target, _ = _scheduler()
            scheduler.record_activity()
            await scheduler._on_idle_timeout()

            assert scheduler.status == "stopped"
            assert not scheduler.check_scheduled
            assert target.nudges == []

        asyncio.run(run())

    def test_no_check_before_first_activity(self):
        async def run():
            scheduler, _, _ = _scheduler()
            scheduler.start()
            assert scheduler.waiting_for_first_activity
            assert not scheduler.check_scheduled

            scheduler.record_activity()
            assert not scheduler.waiting_for_first_activity
            assert scheduler.check_scheduled
            scheduler.stop()
            assert not scheduler.check_scheduled

        asyncio.run(run())


class TestTimers:
    def test_real_timers_nudge_and_observe(self):
        async def run():
            settings = IdleSettings(base_interval=0.01, max_interval=1.0, observation_window=0.01, max_fruitless=1)
            scheduler, target, seen = _scheduler(settings)
            scheduler.start()
            scheduler.record_activity()

            await wait_until(lambda: scheduler.status == "hibernating")
            assert len(target.nudges) == 1
            assert [e.nudge_count for e in seen][-1] == 1
            scheduler.stop()

        asyncio.run(run())

    @pytest.mark.parametrize("fruitless,expected", [(0, 1.0), (1, 2.0), (2, 4.0), (5, 10.0)])
    def test_current_interval(self, fruitless, expected):
        scheduler, _, _ = _scheduler()
        scheduler.fruitless = fruitless
        assert scheduler.current_interval == expected
