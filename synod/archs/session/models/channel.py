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

"""Channel and message data models.

Messages form an append-only log per channel; ``sequence`` is the position
of a message within its channel and is assigned by the message bus.
"""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel


class ChannelModel(SQLModel, table=True):
    """Named conversation channel scoped to a team."""

    __tablename__ = "channels"  # type: ignore[assignment]

    channel_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)

    name: str
    description: str = Field(default="")

    created_at: datetime = Field(default_factory=datetime.now)


class MessageModel(SQLModel, table=True):
    """A single post on a channel. Never mutated after creation.

    Attributes:
        author_role: agent | human | system.
        message_type: text | vote | escalation | system.
        thread_id: Optional id of the message this one replies to.
    """

    __tablename__ = "messages"  # type: ignore[assignment]

    message_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)
    channel_id: str = Field(index=True)
    sequence: int = Field(default=0)

    author_id: str
    author_role: str
    author_name: str | None = Field(default=None)
    content: str
    message_type: str = Field(default="text")
    thread_id: str | None = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.now)
