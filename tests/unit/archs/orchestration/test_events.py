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

"""Unit tests for the observer list and event hub."""

from synod.archs.orchestration.events import (
    AgentStatusEvent,
    EventHub,
    ObserverList,
    TeamStatusEvent,
)


class TestObserverList:
    def test_notifies_in_subscription_order(self):
        observers: ObserverList[int] = ObserverList("test")
        seen = []
        observers.subscribe(lambda x: seen.append(("first", x)))
        observers.subscribe(lambda x: seen.append(("second", x)))

        observers.notify(1)

        assert seen == [("first", 1), ("second", 1)]

    def test_unsubscribe_by_token(self):
        observers: ObserverList[int] = ObserverList("test")
        seen = []
        token = observers.subscribe(seen.append)

        assert observers.unsubscribe(token) is True
        assert observers.unsubscribe(token) is False
        observers.notify(1)
        assert seen == []

    def test_foreign_token_rejected(self):
        a: ObserverList[int] = ObserverList("a")
        b: ObserverList[int] = ObserverList("b")
        token = a.subscribe(lambda x: None)

        assert b.unsubscribe(token) is False
        assert len(a) == 1

    def test_failing_subscriber_does_not_stop_others(self):
        observers: ObserverList[int] = ObserverList("test")
        seen = []

        def boom(_):
            raise RuntimeError("boom")

        observers.subscribe(boom)
        observers.subscribe(seen.append)
        observers.notify(7)

        assert seen == [7]

    def test_subscription_during_notify_applies_next_time(self):
        observers: ObserverList[int] = ObserverList("test")
        late = []

        def add_late(_):
            observers.subscribe(late.append)

        observers.subscribe(add_late)
        observers.notify(1)
        assert late == []

        observers.notify(2)
        assert late == [2]


class TestEventHub:
    def test_filters_by_type_and_team(self):
        hub = EventHub()
        statuses = []
        team_events = []
        hub.subscribe(statuses.append, types={"agent:status"})
        hub.subscribe(team_events.append, team_id="t2")

        hub.emit(AgentStatusEvent(team_id="t1", agent_id="a1", status="running"))
        hub.emit(TeamStatusEvent(team_id="t2", status="running"))

        assert [e.type for e in statuses] == ["agent:status"]
        assert [e.team_id for e in team_events] == ["t2"]

    def test_unsubscribe_filtered_subscription(self):
        hub = EventHub()
        seen = []
        token = hub.subscribe(seen.append, types={"team:status"})
        assert hub.unsubscribe(token)

        hub.emit(TeamStatusEvent(team_id="t1", status="stopped"))
        assert seen == []
