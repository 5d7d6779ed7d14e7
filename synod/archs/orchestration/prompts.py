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

"""Prompt text handed to agents: system prompt, opening message, context summary."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from synod.archs.session.models import (
    AgentModel,
    ChannelModel,
    LearningModel,
    MessageModel,
    PersonaModel,
    TaskModel,
    TeamModel,
)

SUMMARY_MESSAGE_LIMIT = 30
SUMMARY_CONTENT_LENGTH = 300


def build_system_prompt(
    *,
    team: TeamModel,
    agent: AgentModel,
    persona: PersonaModel | None,
    teammates: Sequence[AgentModel],
    channels: Sequence[ChannelModel],
    workspace_path: Path,
    tool_names: Sequence[str],
) -> str:
    """Assemble the system prompt for one agent.

    Sections, in order: persona, team context, teammates, channels,
    workspace, tools, then the working rules shared by every agent.
    """
    sections: list[str] = []

    if persona is not None and persona.system_prompt:
        sections.append(persona.system_prompt.strip())

    goal = team.goal or "No goal has been set yet."
    sections.append(
        "## Team\n"
        f"You are {agent.name}, working as {agent.role} on the team \"{team.name}\".\n"
        f"Current goal: {goal}"
    )

    others = [t for t in teammates if t.agent_id != agent.agent_id]
    if others:
        lines = "\n".join(f"- {t.name} ({t.role}, id: {t.agent_id})" for t in others)
        sections.append(f"## Teammates\n{lines}")

    if channels:
        lines = "\n".join(
            f"- #{c.name}" + (f": {c.description}" if c.description else "") for c in channels
        )
        sections.append(f"## Channels\n{lines}")

    sections.append(
        "## Workspace\n"
        f"Your working directory is {workspace_path}. Create and edit files only inside it; "
        "every teammate shares this directory."
    )

    if tool_names:
        sections.append("## Team tools\n" + "\n".join(f"- {name}" for name in tool_names))

    sections.append(_WORKING_RULES)
    return "\n\n".join(sections)


_WORKING_RULES = """## How to work
- Keep messages short and concrete. Post in the channel that fits the topic; do not repeat what others already said.
- Before starting anything, call list_tasks. Pick up work that is unassigned or assigned to you, and move it to in_progress.
- Mark a task done only when the work is actually finished, and say so in the channel where it was discussed.
- When the team disagrees, call_vote instead of arguing in circles. Use escalate when you are blocked or need a human decision.
- Use save_learning for decisions and insights the team should remember.
- Do not wait for permission to do work that is clearly part of the goal.

## When the goal is met
When every task needed for the goal is done, post "PROJECT COMPLETE" in #planning with a short summary of what was built, then stop sending messages."""


def build_opening_message(agent_name: str, goal: str | None) -> str:
    goal_line = f"The team's current goal is: {goal}" if goal else "No goal has been set yet."
    return (
        f"You are {agent_name}. {goal_line}\n\n"
        "Start by calling list_tasks and reading #planning so you know where things stand. "
        "Post one short introduction to #general (a single sentence), then get to work right away. "
        "Do NOT send several messages before you have done any work."
    )


def build_context_summary(
    *,
    agent: AgentModel,
    team: TeamModel,
    tasks: Sequence[TaskModel],
    messages: Sequence[MessageModel],
    learnings: Sequence[LearningModel],
    channel_names: dict[str, str] | None = None,
) -> str:
    """Opening message for a session that replaces one whose context filled up."""
    channel_names = channel_names or {}
    parts = [
        f"[Context refresh] You are {agent.name} ({agent.role}). Your previous session reached its context "
        "limit and was replaced. This is a summary of where the team stands.",
        f"Goal: {team.goal or 'No goal has been set yet.'}",
    ]

    if tasks:
        parts.append(
            "Tasks:\n"
            + "\n".join(
                f"- [{t.status}] {t.title} ({t.priority}, id: {t.task_id})"
                + (" (yours)" if t.assignee_id == agent.agent_id else "")
                for t in tasks
            )
        )
    else:
        parts.append("Tasks: none yet.")

    recent = list(messages)[-SUMMARY_MESSAGE_LIMIT:]
    if recent:
        lines = []
        for m in recent:
            content = m.content
            if len(content) > SUMMARY_CONTENT_LENGTH:
                content = content[:SUMMARY_CONTENT_LENGTH] + "..."
            channel = channel_names.get(m.channel_id, m.channel_id)
            lines.append(f"[#{channel}] {m.author_name or m.author_role}: {content}")
        parts.append("Recent messages:\n" + "\n".join(lines))

    if learnings:
        parts.append("Team learnings:\n" + "\n".join(f"- [{r.category}] {r.content}" for r in learnings))

    parts.append("Continue your work from here. Check list_tasks before picking anything up.")
    return "\n\n".join(parts)
