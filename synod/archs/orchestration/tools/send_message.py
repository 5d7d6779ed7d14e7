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

"""Post to a team channel."""

from __future__ import annotations

from synod.archs.orchestration.tools import ToolContext
from synod.archs.orchestration.types import ToolResult


async def send_message(
    ctx: ToolContext,
    channel: str,
    content: str,
    message_type: str = "text",
    thread_id: str | None = None,
) -> ToolResult:
    message = await ctx.bus.post(
        channel=channel.lstrip("#"),
        author_id=ctx.agent_id,
        author_role="agent",
        author_name=ctx.agent_name,
        content=content,
        message_type=message_type,
        thread_id=thread_id,
    )
    return ToolResult(text=f"Message sent (id: {message.message_id})")
