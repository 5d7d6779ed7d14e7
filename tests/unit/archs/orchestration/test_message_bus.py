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

"""Unit tests for the message bus."""

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from synod.archs.orchestration.message_bus import MessageBus
from synod.archs.orchestration.types import ChannelNotFoundError
from synod.archs.session.models import MessageModel
from synod.archs.session.orm import InMemoryDatabaseEngine, where


async def _bus(team_id: str = "t1", engine: InMemoryDatabaseEngine | None = None) -> MessageBus:
    bus = MessageBus(team_id=team_id, engine=engine or InMemoryDatabaseEngine())
    await bus.ensure_default_channels(["general", "planning"])
    return bus


class TestPost:
    def test_post_by_name_and_id(self):
        async def run():
            bus = await _bus()
            general = await bus.find_channel("general")
            assert general is not None

            first = await bus.post(channel="general", author_id="a1", author_role="agent", content="hi")
            second = await bus.post(channel=general.channel_id, author_id="a2", author_role="agent", content="hey")

            assert first.channel_id == second.channel_id == general.channel_id
            assert (first.sequence, second.sequence) == (1, 2)
            assert second.channel_name == "general"

        asyncio.run(run())

    def test_sequences_are_per_channel(self):
        async def run():
            bus = await _bus()
            a = await bus.post(channel="general", author_id="a1", author_role="agent", content="1")
            b = await bus.post(channel="planning", author_id="a1", author_role="agent", content="2")
            assert a.sequence == b.sequence == 1

        asyncio.run(run())

    def test_unknown_channel_raises(self):
        async def run():
            bus = await _bus()
            with pytest.raises(ChannelNotFoundError):
                await bus.post(channel="random", author_id="a1", author_role="agent", content="?")

        asyncio.run(run())

    def test_channel_of_other_team_not_visible(self):
        async def run():
            engine = InMemoryDatabaseEngine()
            await _bus("t1", engine)
            other = MessageBus(team_id="t2", engine=engine)
            with pytest.raises(ChannelNotFoundError):
                await other.post(channel="general", author_id="a1", author_role="agent", content="?")

        asyncio.run(run())

    def test_sequence_continues_after_new_bus_instance(self):
        async def run():
            engine = InMemoryDatabaseEngine()
            bus = await _bus("t1", engine)
            await bus.post(channel="general", author_id="a1", author_role="agent", content="1")

            fresh = MessageBus(team_id="t1", engine=engine)
            message = await fresh.post(channel="general", author_id="a1", author_role="agent", content="2")
            assert message.sequence == 2

        asyncio.run(run())


class TestSubscribers:
    def test_subscriber_failure_does_not_block_delivery(self):
        async def run():
            bus = await _bus()
            seen = []

            def boom(_):
                raise RuntimeError("boom")

            bus.subscribe(boom)
            bus.subscribe(seen.append)
            message = await bus.post(channel="general", author_id="a1", author_role="agent", content="hi")

            assert seen == [message]
            stored = await bus.query(message.channel_id)
            assert [m.message_id for m in stored] == [message.message_id]

        asyncio.run(run())

    def test_unsubscribe_stops_delivery(self):
        async def run():
            bus = await _bus()
            seen = []
            token = bus.subscribe(seen.append)
            assert bus.subscriber_count == 1
            assert bus.unsubscribe(token)
            await bus.post(channel="general", author_id="a1", author_role="agent", content="hi")
            assert seen == []

        asyncio.run(run())

    @settings(max_examples=25, deadline=None)
    @given(st.lists(st.sampled_from(["general", "planning"]), min_size=1, max_size=30))
    def test_delivery_order_matches_sequence_order(self, channels):
        async def run():
            bus = await _bus()
            delivered = []
            bus.subscribe(delivered.append)

            await asyncio.gather(
                *(
                    bus.post(channel=name, author_id=f"a{i % 3}", author_role="agent", content=str(i))
                    for i, name in enumerate(channels)
                )
            )

            for name in set(channels):
                per_channel = [m.sequence for m in delivered if m.channel_name == name]
                assert per_channel == list(range(1, channels.count(name) + 1))

                row = await bus.find_channel(name)
                stored = await bus.query(row.channel_id, limit=200)
                assert [m.sequence for m in stored] == per_channel

        asyncio.run(run())


class TestReads:
    def test_query_returns_latest_oldest_first(self):
        async def run():
            bus = await _bus()
            for i in range(5):
                await bus.post(channel="general", author_id="a1", author_role="agent", content=str(i))
            general = await bus.find_channel("general")

            rows = await bus.query(general.channel_id, limit=3)
            assert [m.content for m in rows] == ["2", "3", "4"]

        asyncio.run(run())

    def test_default_channels_created_once(self):
        async def run():
            engine = InMemoryDatabaseEngine()
            bus = MessageBus(team_id="t1", engine=engine)
            first = await bus.ensure_default_channels()
            again = await bus.ensure_default_channels()

            assert [c.name for c in first] == ["general", "planning", "design", "engineering", "escalations", "suggestions"]
            assert len(again) == len(first)

        asyncio.run(run())

    def test_human_author_label(self):
        async def run():
            bus = await _bus()
            message = await bus.post(channel="general", author_id="human", author_role="human", content="go")
            assert message.author_label == "human"
            named = await bus.post(
                channel="general", author_id="human", author_role="human", author_name="Human", content="go"
            )
            assert named.author_label == "Human"
            assert await bus._engine.count(MessageModel, filters=where(team_id="t1")) == 2

        asyncio.run(run())
