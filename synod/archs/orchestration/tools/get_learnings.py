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

"""Recall team learnings, optionally by category."""

from __future__ import annotations

from synod.archs.orchestration.tools import ToolContext
from synod.archs.orchestration.types import ToolResult


async def get_learnings(ctx: ToolContext, category: str | None = None) -> ToolResult:
    rows = await ctx.learnings.list_for_team(ctx.team_id, category=category)
    if not rows:
        suffix = f" in category '{category}'" if category else ""
        return ToolResult(text=f"No learnings saved yet{suffix}")
    return ToolResult(text="\n".join(f"- [{r.category}] {r.content}" for r in rows))
