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

"""Unit tests for the in-memory and SQL engines."""

import asyncio

import pytest

from synod.archs.session.models import ALL_MODELS, MessageModel, TeamModel
from synod.archs.session.orm import ComparisonFilter, InMemoryDatabaseEngine, SQLDatabaseEngine, where


def _message(i: int, channel: str = "c1") -> MessageModel:
    return MessageModel(
        message_id=f"m{i}",
        team_id="t1",
        channel_id=channel,
        sequence=i,
        author_id="a1",
        author_role="agent",
        content=f"hello {i}",
    )


class TestInMemoryDatabaseEngine:
    def test_duplicate_primary_key_rejected(self):
        async def run():
            engine = InMemoryDatabaseEngine()
            await engine.setup_models(ALL_MODELS)
            await engine.create(TeamModel(team_id="t1", name="one"))
            with pytest.raises(ValueError, match="Duplicate primary key"):
                await engine.create(TeamModel(team_id="t1", name="again"))

        asyncio.run(run())

    def test_find_many_orders_and_limits(self):
        async def run():
            engine = InMemoryDatabaseEngine()
            for i in (3, 1, 2):
                await engine.create(_message(i))
            await engine.create(_message(9, channel="c2"))

            rows = await engine.find_many(MessageModel, filters=where(channel_id="c1"), order_by="sequence")
            assert [r.sequence for r in rows] == [1, 2, 3]

            latest = await engine.find_many(MessageModel, filters=where(channel_id="c1"), order_by="-sequence", limit=1)
            assert [r.sequence for r in latest] == [3]
            assert await engine.count(MessageModel) == 4
            assert await engine.count(MessageModel, filters=where(channel_id="c2")) == 1

        asyncio.run(run())

    def test_delete_matching(self):
        async def run():
            engine = InMemoryDatabaseEngine()
            for i in (1, 2, 3):
                await engine.create(_message(i))

            removed = await engine.delete(MessageModel, filters=ComparisonFilter.in_("message_id", ["m1", "m3", "m7"]))

            assert removed == 2
            assert [r.message_id for r in await engine.find_many(MessageModel)] == ["m2"]
            assert await engine.delete(MessageModel, filters=where(channel_id="nope")) == 0

        asyncio.run(run())


class TestSQLDatabaseEngine:
    def test_requires_async_driver(self):
        with pytest.raises(ValueError, match="async driver"):
            SQLDatabaseEngine.from_url("sqlite:///plain.db")

    def test_create_update_and_query(self, tmp_path):
        async def run():
            engine = SQLDatabaseEngine.from_url(f"sqlite+aiosqlite:///{tmp_path / 'synod.db'}")
            try:
                await engine.setup_models(ALL_MODELS)
                await engine.create(TeamModel(team_id="t1", name="one"))
                for i in (2, 1):
                    await engine.create(_message(i))

                team = await engine.find_first(TeamModel, filters=where(team_id="t1"))
                assert team is not None
                team.status = "running"
                await engine.update(team)

                reloaded = await engine.find_first(TeamModel, filters=where(team_id="t1"))
                assert reloaded is not None and reloaded.status == "running"

                rows = await engine.find_many(MessageModel, filters=where(team_id="t1"), order_by="sequence")
                assert [r.message_id for r in rows] == ["m1", "m2"]
                assert await engine.count(MessageModel, filters=where(channel_id="c1")) == 2

                removed = await engine.delete(MessageModel, filters=ComparisonFilter.in_("message_id", ["m1"]))
                assert removed == 1
                assert [r.message_id for r in await engine.find_many(MessageModel)] == ["m2"]
            finally:
                await engine.close()

        asyncio.run(run())
