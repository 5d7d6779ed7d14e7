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

"""Per-team message bus.

Channels are named, append-only logs. ``post`` persists a message and then
notifies every subscriber that was registered when the call started, in
registration order, before returning. Posts are serialized by an
``asyncio.Lock`` so the store order, the sequence numbers and the delivery
order are the same.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from synod.archs.config import DEFAULT_CHANNELS
from synod.archs.session.models import ChannelModel, MessageModel
from synod.archs.session.orm import DatabaseEngine, where

from .events import ObserverList, SubscriptionToken
from .types import AuthorRole, ChannelNotFoundError

logger = logging.getLogger(__name__)

QUERY_DEFAULT_LIMIT = 50
QUERY_MAX_LIMIT = 200


@dataclass(frozen=True)
class BusMessage:
    """A persisted post as seen by subscribers."""

    message_id: str
    team_id: str
    channel_id: str
    channel_name: str
    sequence: int
    author_id: str
    author_role: str
    author_name: str | None
    content: str
    message_type: str
    thread_id: str | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: MessageModel, channel_name: str) -> BusMessage:
        return cls(
            message_id=row.message_id,
            team_id=row.team_id,
            channel_id=row.channel_id,
            channel_name=channel_name,
            sequence=row.sequence,
            author_id=row.author_id,
            author_role=row.author_role,
            author_name=row.author_name,
            content=row.content,
            message_type=row.message_type,
            thread_id=row.thread_id,
            created_at=row.created_at,
        )

    @property
    def author_label(self) -> str:
        return self.author_name or self.author_role


class MessageBus:
    """Publish/subscribe over a team's channels.

    Example:
        >>> bus = MessageBus(team_id="t1", engine=engine)
        >>> token = bus.subscribe(lambda m: print(m.content))
        >>> await bus.post(channel="general", author_id="a1", author_role="agent", content="hi")
        >>> bus.unsubscribe(token)
    """

    def __init__(self, *, team_id: str, engine: DatabaseEngine) -> None:
        self.team_id = team_id
        self._engine = engine
        self._observers: ObserverList[BusMessage] = ObserverList(f"bus:{team_id}")
        self._lock = asyncio.Lock()
        # channel_id -> last assigned sequence
        self._sequences: dict[str, int] = {}

    # --- subscriptions ---

    def subscribe(self, callback: Callable[[BusMessage], None]) -> SubscriptionToken:
        return self._observers.subscribe(callback)

    def unsubscribe(self, token: SubscriptionToken) -> bool:
        return self._observers.unsubscribe(token)

    @property
    def subscriber_count(self) -> int:
        return len(self._observers)

    # --- posting ---

    async def post(
        self,
        *,
        channel: str,
        author_id: str,
        author_role: AuthorRole,
        content: str,
        message_type: str = "text",
        thread_id: str | None = None,
        author_name: str | None = None,
    ) -> BusMessage:
        """Persist a message and deliver it to current subscribers.

        Args:
            channel: Channel id or channel name within this team.

        Raises:
            ChannelNotFoundError: No channel with that id or name exists in the team.
        """
        async with self._lock:
            channel_row = await self._resolve_channel(channel)
            sequence = await self._next_sequence(channel_row.channel_id)
            row = MessageModel(
                message_id=str(uuid.uuid4()),
                team_id=self.team_id,
                channel_id=channel_row.channel_id,
                sequence=sequence,
                author_id=author_id,
                author_role=author_role,
                author_name=author_name,
                content=content,
                message_type=message_type,
                thread_id=thread_id,
            )
            await self._engine.create(row)
            self._sequences[channel_row.channel_id] = sequence

            message = BusMessage.from_row(row, channel_row.name)
            self._observers.notify(message)
            return message

    async def _resolve_channel(self, channel: str) -> ChannelModel:
        row = await self._engine.find_first(ChannelModel, filters=where(team_id=self.team_id, channel_id=channel))
        if row is None:
            row = await self.find_channel(channel)
        if row is None:
            raise ChannelNotFoundError(channel)
        return row

    async def _next_sequence(self, channel_id: str) -> int:
        if channel_id not in self._sequences:
            latest = await self._engine.find_many(
                MessageModel,
                filters=where(channel_id=channel_id),
                order_by="-sequence",
                limit=1,
            )
            self._sequences[channel_id] = latest[0].sequence if latest else 0
        return self._sequences[channel_id] + 1

    # --- reads ---

    async def query(self, channel_id: str, limit: int = QUERY_DEFAULT_LIMIT) -> list[MessageModel]:
        """Most recent ``limit`` messages of a channel, oldest first."""
        limit = max(1, min(limit, QUERY_MAX_LIMIT))
        rows = await self._engine.find_many(
            MessageModel,
            filters=where(team_id=self.team_id, channel_id=channel_id),
            order_by="-sequence",
            limit=limit,
        )
        rows.reverse()
        return rows

    async def recent(self, limit: int = QUERY_DEFAULT_LIMIT) -> list[MessageModel]:
        """Most recent messages across all channels of the team, oldest first."""
        rows = await self._engine.find_many(
            MessageModel,
            filters=where(team_id=self.team_id),
            order_by="-created_at",
            limit=max(1, min(limit, QUERY_MAX_LIMIT)),
        )
        rows.reverse()
        return rows

    async def channels(self) -> list[ChannelModel]:
        return await self._engine.find_many(ChannelModel, filters=where(team_id=self.team_id), order_by=("created_at", "name"))

    async def find_channel(self, name: str) -> ChannelModel | None:
        return await self._engine.find_first(ChannelModel, filters=where(team_id=self.team_id, name=name))

    # --- channel setup ---

    async def create_channel(self, name: str, description: str = "") -> ChannelModel:
        """Create a channel, or return the existing one with that name."""
        existing = await self.find_channel(name)
        if existing is not None:
            return existing
        row = ChannelModel(channel_id=str(uuid.uuid4()), team_id=self.team_id, name=name, description=description)
        await self._engine.create(row)
        logger.info(f"Created channel #{name} for team {self.team_id}")
        return row

    async def ensure_default_channels(self, names: Iterable[str] = DEFAULT_CHANNELS) -> list[ChannelModel]:
        """Create the default channels when the team has none yet."""
        existing = await self.channels()
        if existing:
            return existing
        return [await self.create_channel(name) for name in names]
