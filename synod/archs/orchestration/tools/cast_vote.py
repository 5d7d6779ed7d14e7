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

"""Cast a ballot in an open vote."""

from __future__ import annotations

from synod.archs.orchestration.tools import ToolContext
from synod.archs.orchestration.types import ToolResult


async def cast_vote(ctx: ToolContext, escalation_id: str, choice: str) -> ToolResult:
    result = await ctx.coordinator.cast_vote(escalation_id, ctx.agent_id, choice)
    if not result.accepted:
        detail = f" ({result.reason})" if result.reason else ""
        return ToolResult.error(f"Vote not accepted. Check escalation ID and choice.{detail}")
    if result.result == "resolved":
        return ToolResult(text=f"Vote resolved! Winner: {result.winner}")
    if result.result == "deadlocked":
        return ToolResult(text="Vote deadlocked, escalated to human for resolution.")
    return ToolResult(text="Vote recorded. Waiting for other agents to vote.")
