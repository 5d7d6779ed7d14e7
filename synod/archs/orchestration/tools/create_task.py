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

"""Add a task to the team board."""

from __future__ import annotations

from synod.archs.orchestration.tools import ToolContext
from synod.archs.orchestration.types import ToolResult


async def create_task(
    ctx: ToolContext,
    title: str,
    description: str = "",
    status: str = "todo",
    priority: str = "medium",
    assignee_id: str | None = None,
) -> ToolResult:
    task = await ctx.task_board.create_task(
        team_id=ctx.team_id,
        title=title,
        description=description,
        status=status,
        priority=priority,
        assignee_id=assignee_id,
        created_by=ctx.agent_id,
    )
    return ToolResult(text=f'Task created: "{task.title}" (id: {task.task_id}, status: {task.status})')
