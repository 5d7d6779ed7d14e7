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

"""Read the recent history of a channel."""

from __future__ import annotations

from synod.archs.orchestration.tools import ToolContext
from synod.archs.orchestration.types import ToolResult

DEFAULT_LIMIT = 20


async def read_channel(ctx: ToolContext, channel: str, limit: int = DEFAULT_LIMIT) -> ToolResult:
    name = channel.lstrip("#")
    row = await ctx.bus.find_channel(name)
    if row is None:
        return ToolResult.error(f"Channel #{name} not found")

    messages = await ctx.bus.query(row.channel_id, limit=limit)
    if not messages:
        return ToolResult(text=f"No messages yet in #{name}")

    lines = [
        f"[{m.created_at.isoformat(timespec='seconds')}] {m.author_name or m.author_role}: {m.content}"
        for m in messages
    ]
    return ToolResult(text="\n".join(lines))
