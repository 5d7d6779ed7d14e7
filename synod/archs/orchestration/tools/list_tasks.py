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

"""Show the team board."""

from __future__ import annotations

from synod.archs.orchestration.tools import ToolContext
from synod.archs.orchestration.types import ToolResult


async def list_tasks(ctx: ToolContext) -> ToolResult:
    tasks = await ctx.task_board.list_tasks(ctx.team_id)
    if not tasks:
        return ToolResult(text="No tasks on the board")
    lines = []
    for t in tasks:
        line = f"- [{t.status}] {t.title} ({t.priority}, id: {t.task_id})"
        if t.assignee_id:
            line += f" -> {t.assignee_id}"
        lines.append(line)
    return ToolResult(text="\n".join(lines))
