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

"""Hand a problem to the human operator."""

from __future__ import annotations

from synod.archs.orchestration.tools import ToolContext
from synod.archs.orchestration.types import ToolResult

DEFAULT_CHANNEL = "escalations"


async def escalate(ctx: ToolContext, reason: str, channel: str = DEFAULT_CHANNEL) -> ToolResult:
    message = await ctx.bus.post(
        channel=channel.lstrip("#"),
        author_id=ctx.agent_id,
        author_role="agent",
        author_name=ctx.agent_name,
        content=f"Escalated to human: {reason}",
        message_type="escalation",
    )
    row = await ctx.coordinator.escalate(
        team_id=ctx.team_id,
        channel_id=message.channel_id,
        agent_id=ctx.agent_id,
        reason=reason,
        message_id=message.message_id,
    )
    return ToolResult(text=f"Escalation created (id: {row.escalation_id}). Human will be notified.")
