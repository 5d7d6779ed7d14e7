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

"""Change fields of an existing task."""

from __future__ import annotations

from synod.archs.orchestration.tools import ToolContext
from synod.archs.orchestration.types import ToolResult


async def update_task(ctx: ToolContext, task_id: str, **changes: str) -> ToolResult:
    # TaskNotFoundError and the cross-team ValueError surface as error results
    task = await ctx.task_board.update_task(team_id=ctx.team_id, task_id=task_id, **changes)
    return ToolResult(text=f'Task updated: "{task.title}" (status: {task.status})')
