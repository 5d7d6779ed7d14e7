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

"""Persisted per-team activity log.

Lifecycle transitions (agents starting, failing, restarting, rotating
context; teams starting and stopping) are written to the store so they can
be queried after the fact. Each team keeps at most ``max_entries`` rows; the
oldest are evicted first. Diagnostics still go through stdlib ``logging``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Literal

from synod.archs.session.models import ActivityLogModel
from synod.archs.session.orm import ComparisonFilter, DatabaseEngine, where

logger = logging.getLogger(__name__)

LogLevel = Literal["debug", "info", "warning", "error"]

DEFAULT_MAX_ENTRIES = 10_000
DEFAULT_QUERY_LIMIT = 100


class ActivityLog:
    """Append-only team activity log with count-based eviction.

    Example:
        >>> log = ActivityLog(engine=engine, max_entries=1000)
        >>> await log.record("t1", "team.started", data={"agents": 3})
        >>> entries = await log.list_for_team("t1", event="team.started")
    """

    def __init__(self, *, engine: DatabaseEngine, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._engine = engine
        self._max_entries = max_entries

    async def record(
        self,
        team_id: str,
        event: str,
        *,
        level: LogLevel = "info",
        agent_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> ActivityLogModel | None:
        """Persist one entry. A failed write is logged and dropped."""
        row = ActivityLogModel(
            log_id=str(uuid.uuid4()),
            team_id=team_id,
            agent_id=agent_id,
            level=level,
            event=event,
            data=data,
        )
        try:
            await self._engine.create(row)
            await self._evict(team_id)
        except Exception as e:
            logger.warning(f"Failed to write activity log entry {event} for team {team_id}: {e}")
            return None
        return row

    async def _evict(self, team_id: str) -> int:
        overflow = await self._engine.count(ActivityLogModel, filters=where(team_id=team_id)) - self._max_entries
        if overflow <= 0:
            return 0
        oldest = await self._engine.find_many(
            ActivityLogModel,
            filters=where(team_id=team_id),
            order_by="created_at",
            limit=overflow,
        )
        removed = await self._engine.delete(
            ActivityLogModel,
            filters=ComparisonFilter.in_("log_id", [row.log_id for row in oldest]),
        )
        logger.debug(f"Evicted {removed} activity log entries for team {team_id}")
        return removed

    async def list_for_team(
        self,
        team_id: str,
        *,
        level: LogLevel | None = None,
        agent_id: str | None = None,
        event: str | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> list[ActivityLogModel]:
        """Newest entries first, optionally narrowed by level, agent or event."""
        fields: dict[str, str] = {"team_id": team_id}
        if level:
            fields["level"] = level
        if agent_id:
            fields["agent_id"] = agent_id
        if event:
            fields["event"] = event
        return await self._engine.find_many(
            ActivityLogModel,
            filters=where(**fields),
            order_by="-created_at",
            limit=limit,
        )
