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

"""Unit tests for the bounded inbound queue."""

from hypothesis import given
from hypothesis import strategies as st

from synod.archs.orchestration.inbound_queue import InboundQueue


class TestEviction:
    @given(st.integers(min_value=1, max_value=20), st.integers(min_value=0, max_value=60))
    def test_keeps_newest_max_size(self, max_size, pushes):
        queue = InboundQueue(max_size=max_size, aggregation_threshold=100)
        for i in range(pushes):
            queue.push(str(i))

        kept = [entry.content for entry in queue.peek()]
        assert kept == [str(i) for i in range(max(0, pushes - max_size), pushes)]
        assert queue.evicted == max(0, pushes - max_size)

    def test_evicts_oldest_regardless_of_kind(self):
        queue = InboundQueue(max_size=2)
        queue.push("nudge", "system")
        queue.push("a")
        queue.push("b")
        assert [e.content for e in queue.peek()] == ["a", "b"]


class TestDrain:
    def test_small_backlog_delivered_verbatim(self):
        queue = InboundQueue(aggregation_threshold=3)
        for text in ("a", "b", "c"):
            queue.push(text)
        assert queue.drain() == ["a", "b", "c"]
        assert len(queue) == 0

    def test_large_backlog_collapses(self):
        queue = InboundQueue(aggregation_threshold=4, keep_recent=2, truncate_length=5)
        queue.push("m1 long message")
        queue.push("vote!", "escalation")
        queue.push("m2")
        queue.push("nudge", "system")
        queue.push("m3")
        queue.push("m4")

        deliveries = queue.drain()

        assert deliveries[:2] == ["vote!", "nudge"]
        digest = deliveries[2]
        assert digest.startswith("[Catch-up] 2 earlier messages")
        assert "- m1 lo..." in digest
        assert "- m2" in digest
        assert deliveries[3:] == ["m3", "m4"]

    def test_no_digest_when_only_recent_regular_entries(self):
        queue = InboundQueue(aggregation_threshold=2, keep_recent=3)
        queue.push("s1", "system")
        queue.push("s2", "system")
        queue.push("m1")
        assert queue.drain() == ["s1", "s2", "m1"]
