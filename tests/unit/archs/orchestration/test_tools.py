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

"""Unit tests for the bus tools agents call."""

import asyncio

import pytest

from synod.archs.orchestration.escalation import EscalationCoordinator
from synod.archs.orchestration.events import EventHub
from synod.archs.orchestration.learnings import LearningStore
from synod.archs.orchestration.message_bus import MessageBus
from synod.archs.orchestration.task_board import TaskBoard
from synod.archs.orchestration.tools import TOOL_NAMES, BusTools, ToolContext, get_tool
from synod.archs.session.models import TaskModel
from synod.archs.session.orm import InMemoryDatabaseEngine


async def _tools(agent_id="a1", team_id="t1", engine=None, coordinator=None, team_agent_count=2):
    engine = engine or InMemoryDatabaseEngine()
    bus = MessageBus(team_id=team_id, engine=engine)
    await bus.ensure_default_channels()
    context = ToolContext(
        agent_id=agent_id,
        agent_name=agent_id.upper(),
        team_id=team_id,
        bus=bus,
        coordinator=coordinator or EscalationCoordinator(engine=engine, events=EventHub()),
        task_board=TaskBoard(engine=engine),
        learnings=LearningStore(engine=engine),
        team_agent_count=team_agent_count,
    )
    return BusTools(context), engine


class TestDefinitions:
    @pytest.mark.parametrize("name", TOOL_NAMES)
    def test_yaml_definition_loads(self, name):
        tool = get_tool(name)
        assert tool.definition.name == name
        spec = tool.definition.to_anthropic()
        assert spec["input_schema"]["type"] == "object"
        assert spec["description"]

    def test_unknown_tool(self):
        async def run():
            tools, _ = await _tools()
            result = await tools.call("drop_database", {})
            assert result.is_error
            assert result.text == "Error: Unknown tool: drop_database"

        asyncio.run(run())

    def test_schema_violation_is_error_result(self):
        async def run():
            tools, _ = await _tools()
            result = await tools.call("send_message", {"channel": "general"})
            assert result.is_error
            assert "content" in result.text

        asyncio.run(run())


class TestMessaging:
    def test_send_and_read(self):
        async def run():
            tools, _ = await _tools()
            sent = await tools.call("send_message", {"channel": "#general", "content": "Hello team"})
            assert not sent.is_error
            assert sent.text.startswith("Message sent (id: ")

            read = await tools.call("read_channel", {"channel": "general"})
            assert read.text.endswith("A1: Hello team")

        asyncio.run(run())

    def test_read_empty_and_missing_channel(self):
        async def run():
            tools, _ = await _tools()
            empty = await tools.call("read_channel", {"channel": "design"})
            assert empty.text == "No messages yet in #design"

            missing = await tools.call("read_channel", {"channel": "random"})
            assert missing.is_error
            assert missing.text == "Error: Channel #random not found"

        asyncio.run(run())

    def test_send_to_missing_channel(self):
        async def run():
            tools, _ = await _tools()
            result = await tools.call("send_message", {"channel": "random", "content": "?"})
            assert result.is_error
            assert "not found" in result.text

        asyncio.run(run())


class TestTasks:
    def test_create_list_update(self):
        async def run():
            tools, _ = await _tools()
            assert (await tools.call("list_tasks")).text == "No tasks on the board"

            created = await tools.call("create_task", {"title": "Write README", "priority": "high"})
            assert created.text.startswith('Task created: "Write README" (id: ')
            assert created.text.endswith("status: todo)")
            task_id = created.text.split("id: ")[1].split(",")[0]

            listing = await tools.call("list_tasks", {})
            assert listing.text == f"- [todo] Write README (high, id: {task_id})"

            updated = await tools.call("update_task", {"task_id": task_id, "status": "done"})
            assert updated.text == 'Task updated: "Write README" (status: done)'

        asyncio.run(run())

    def test_update_missing_task(self):
        async def run():
            tools, _ = await _tools()
            result = await tools.call("update_task", {"task_id": "nope", "status": "done"})
            assert result.is_error
            assert result.text == "Error: Task nope not found"

        asyncio.run(run())

    def test_update_task_of_other_team_rejected(self):
        async def run():
            tools, engine = await _tools()
            await engine.create(TaskModel(task_id="x1", team_id="other", title="Secret"))
            result = await tools.call("update_task", {"task_id": "x1", "status": "done"})
            assert result.is_error
            assert "does not belong to this team" in result.text

        asyncio.run(run())

    def test_invalid_status_rejected_by_schema(self):
        async def run():
            tools, _ = await _tools()
            result = await tools.call("create_task", {"title": "x", "status": "someday"})
            assert result.is_error

        asyncio.run(run())


class TestVotingAndEscalation:
    def test_vote_round_trip(self):
        async def run():
            engine = InMemoryDatabaseEngine()
            coordinator = EscalationCoordinator(engine=engine, events=EventHub())
            ada, _ = await _tools("a1", engine=engine, coordinator=coordinator)
            bob = BusTools(
                ToolContext(
                    agent_id="a2",
                    agent_name="A2",
                    team_id="t1",
                    bus=ada.context.bus,
                    coordinator=coordinator,
                    task_board=ada.context.task_board,
                    learnings=ada.context.learnings,
                    team_agent_count=2,
                )
            )

            started = await ada.call("call_vote", {"topic": "Database", "options": ["sqlite", "postgres"]})
            assert started.text.startswith("Vote started (id: ")
            assert started.text.endswith("Options: sqlite, postgres")
            vote_id = started.text.split("id: ")[1].split(")")[0]

            escalations = await ada.context.bus.find_channel("escalations")
            posted = await ada.context.bus.query(escalations.channel_id)
            assert posted[-1].message_type == "vote"
            assert posted[-1].content.startswith('Called a vote: "Database"')

            first = await ada.call("cast_vote", {"escalation_id": vote_id, "choice": "sqlite"})
            assert first.text == "Vote recorded. Waiting for other agents to vote."
            final = await bob.call("cast_vote", {"escalation_id": vote_id, "choice": "sqlite"})
            assert final.text == "Vote resolved! Winner: sqlite"

        asyncio.run(run())

    def test_deadlock_and_rejection_messages(self):
        async def run():
            engine = InMemoryDatabaseEngine()
            coordinator = EscalationCoordinator(engine=engine, events=EventHub())
            tools, _ = await _tools(engine=engine, coordinator=coordinator, team_agent_count=1)

            rejected = await tools.call("cast_vote", {"escalation_id": "nope", "choice": "A"})
            assert rejected.is_error
            assert "Vote not accepted. Check escalation ID and choice." in rejected.text

            vote = await coordinator.call_vote(
                team_id="t1", channel_id="c", caller_id="a9", topic="t", options=["A", "B"], total_voters=2
            )
            await coordinator.cast_vote(vote.escalation_id, "a9", "A")
            final = await tools.call("cast_vote", {"escalation_id": vote.escalation_id, "choice": "B"})
            assert final.text == "Vote deadlocked, escalated to human for resolution."

        asyncio.run(run())

    def test_escalate_posts_and_records(self):
        async def run():
            tools, _ = await _tools()
            result = await tools.call("escalate", {"reason": "Need a production API key"})
            assert result.text.startswith("Escalation created (id: ")
            assert result.text.endswith("Human will be notified.")

            open_rows = await tools.context.coordinator.get_open("t1")
            assert len(open_rows) == 1
            assert open_rows[0].message_id is not None

            channel = await tools.context.bus.find_channel("escalations")
            posted = await tools.context.bus.query(channel.channel_id)
            assert posted[0].content == "Escalated to human: Need a production API key"
            assert posted[0].message_type == "escalation"

        asyncio.run(run())

    def test_vote_needs_two_options(self):
        async def run():
            tools, _ = await _tools()
            result = await tools.call("call_vote", {"topic": "x", "options": ["only"]})
            assert result.is_error

        asyncio.run(run())


class TestLearnings:
    def test_save_and_filter(self):
        async def run():
            tools, _ = await _tools()
            assert (await tools.call("get_learnings", {})).text == "No learnings saved yet"

            await tools.call("save_learning", {"category": "technical", "content": "Use WAL mode"})
            await tools.call("save_learning", {"category": "process", "content": "Demo on Fridays"})

            everything = await tools.call("get_learnings", {})
            assert everything.text.splitlines() == ["- [technical] Use WAL mode", "- [process] Demo on Fridays"]
            technical = await tools.call("get_learnings", {"category": "technical"})
            assert technical.text == "- [technical] Use WAL mode"

        asyncio.run(run())
