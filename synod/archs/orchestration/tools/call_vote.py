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

"""Open a team vote and announce it on the bus."""

from __future__ import annotations

from synod.archs.orchestration.tools import ToolContext
from synod.archs.orchestration.types import ToolResult

DEFAULT_CHANNEL = "escalations"


async def call_vote(
    ctx: ToolContext,
    topic: str,
    options: list[str],
    channel: str = DEFAULT_CHANNEL,
) -> ToolResult:
    """Start a vote sized to the whole team.

    The voter count is taken when the vote opens; agents added later do
    not change it.
    """
    name = channel.lstrip("#")
    row = await ctx.bus.find_channel(name)
    if row is None:
        return ToolResult.error(f"Channel #{name} not found")

    vote = await ctx.coordinator.call_vote(
        team_id=ctx.team_id,
        channel_id=row.channel_id,
        caller_id=ctx.agent_id,
        topic=topic,
        options=options,
        total_voters=ctx.team_agent_count,
    )
    opts = ", ".join(vote.vote_options or [])
    await ctx.bus.post(
        channel=row.channel_id,
        author_id=ctx.agent_id,
        author_role="agent",
        author_name=ctx.agent_name,
        content=f'Called a vote: "{topic}"\nOptions: {opts}\nVote id: {vote.escalation_id}',
        message_type="vote",
    )
    return ToolResult(text=f"Vote started (id: {vote.escalation_id}). Options: {opts}")
