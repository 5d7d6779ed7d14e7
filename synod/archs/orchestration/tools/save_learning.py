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

"""Record a team learning."""

from __future__ import annotations

from synod.archs.orchestration.tools import ToolContext
from synod.archs.orchestration.types import ToolResult


async def save_learning(ctx: ToolContext, category: str, content: str) -> ToolResult:
    row = await ctx.learnings.save(team_id=ctx.team_id, agent_id=ctx.agent_id, category=category, content=content)
    return ToolResult(text=f"Learning saved (id: {row.learning_id}, category: {row.category})")
