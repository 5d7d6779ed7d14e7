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

"""Escalations and votes.

An escalation asks for human attention. A vote is an escalation whose
outcome the agents try to settle among themselves first: ballots are
collected in memory and, once every expected voter has voted, the vote
either resolves by strict majority or deadlocks and is handed to a human
as an ``open`` escalation.

The expected voter count is fixed when the vote is called.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from synod.archs.session.models import EscalationModel
from synod.archs.session.orm import DatabaseEngine, where

from .events import (
    EscalationNewEvent,
    EscalationResolvedEvent,
    EventHub,
    VoteDeadlockedEvent,
    VoteResolvedEvent,
    VoteStartedEvent,
)
from .types import EscalationStatus, VoteResult

logger = logging.getLogger(__name__)


@dataclass
class VoteSession:
    """In-flight ballots for one vote. Never persisted."""

    escalation_id: str
    team_id: str
    channel_id: str
    topic: str
    options: tuple[str, ...]
    total_voters: int
    ballots: dict[str, str] = field(default_factory=dict)

    def tally(self) -> dict[str, int]:
        counts = dict.fromkeys(self.options, 0)
        for choice in self.ballots.values():
            counts[choice] += 1
        return counts

    def majority_winner(self) -> str | None:
        for option, count in self.tally().items():
            if count > self.total_voters / 2:
                return option
        return None


class EscalationCoordinator:
    """Owns open escalations and active vote sessions for all teams."""

    def __init__(self, *, engine: DatabaseEngine, events: EventHub) -> None:
        self._engine = engine
        self._events = events
        self._sessions: dict[str, VoteSession] = {}
        self._lock = asyncio.Lock()

    # --- votes ---

    async def call_vote(
        self,
        *,
        team_id: str,
        channel_id: str,
        caller_id: str,
        topic: str,
        options: Sequence[str],
        total_voters: int,
    ) -> EscalationModel:
        """Open a vote.

        Raises:
            ValueError: fewer than two distinct options, or no voters.
        """
        distinct = list(dict.fromkeys(o.strip() for o in options if o.strip()))
        if len(distinct) < 2:
            raise ValueError("A vote needs at least two distinct options")
        if total_voters < 1:
            raise ValueError("A vote needs at least one voter")

        row = EscalationModel(
            escalation_id=str(uuid.uuid4()),
            team_id=team_id,
            channel_id=channel_id,
            agent_id=caller_id,
            reason=f"Vote: {topic}",
            status="in_review",
            vote_options=distinct,
            votes={},
        )
        await self._engine.create(row)

        async with self._lock:
            self._sessions[row.escalation_id] = VoteSession(
                escalation_id=row.escalation_id,
                team_id=team_id,
                channel_id=channel_id,
                topic=topic,
                options=tuple(distinct),
                total_voters=total_voters,
            )

        logger.info(f"Vote {row.escalation_id} started in team {team_id}: {topic} {distinct} ({total_voters} voters)")
        self._events.emit(
            VoteStartedEvent(
                team_id=team_id,
                escalation_id=row.escalation_id,
                topic=topic,
                options=distinct,
                total_voters=total_voters,
            )
        )
        return row

    async def cast_vote(self, escalation_id: str, voter_id: str, choice: str) -> VoteResult:
        """Record one ballot and settle the vote once everyone has voted.

        The session is removed before any store access, so a vote resolves
        or deadlocks at most once.
        """
        async with self._lock:
            session = self._sessions.get(escalation_id)
            if session is None:
                return VoteResult(accepted=False, reason="No active vote with that id")
            if choice not in session.options:
                return VoteResult(accepted=False, reason=f"Invalid option. Choose one of: {', '.join(session.options)}")
            if voter_id in session.ballots:
                return VoteResult(accepted=False, reason="You have already voted")

            session.ballots[voter_id] = choice
            if len(session.ballots) < session.total_voters:
                return VoteResult(accepted=True, result="pending")

            del self._sessions[escalation_id]

        tally = session.tally()
        winner = session.majority_winner()
        if winner is not None:
            await self._finish_vote(
                session,
                status="resolved",
                resolution=f"Majority vote: {winner}",
            )
            logger.info(f"Vote {escalation_id} resolved: {winner} {tally}")
            self._events.emit(
                VoteResolvedEvent(team_id=session.team_id, escalation_id=escalation_id, winner=winner, tally=tally)
            )
            return VoteResult(accepted=True, result="resolved", winner=winner)

        row = await self._finish_vote(session, status="open", resolution=None)
        logger.info(f"Vote {escalation_id} deadlocked {tally}; escalating to a human")
        self._events.emit(VoteDeadlockedEvent(team_id=session.team_id, escalation_id=escalation_id, tally=tally))
        self._events.emit(
            EscalationNewEvent(
                team_id=session.team_id,
                escalation_id=escalation_id,
                channel_id=session.channel_id,
                reason=row.reason if row is not None else f"Vote: {session.topic}",
            )
        )
        return VoteResult(accepted=True, result="deadlocked")

    async def _finish_vote(
        self,
        session: VoteSession,
        *,
        status: EscalationStatus,
        resolution: str | None,
    ) -> EscalationModel | None:
        row = await self.get_by_id(session.escalation_id)
        if row is None:
            logger.warning(f"Escalation {session.escalation_id} vanished before its vote completed")
            return None
        row.status = status
        row.votes = dict(session.ballots)
        row.resolution = resolution
        if status == "resolved":
            row.resolved_at = datetime.now()
        try:
            return await self._engine.update(row)
        except Exception as e:
            logger.warning(f"Failed to persist vote outcome for {session.escalation_id}: {e}")
            return row

    def active_session(self, escalation_id: str) -> VoteSession | None:
        return self._sessions.get(escalation_id)

    # --- escalations ---

    async def escalate(
        self,
        *,
        team_id: str,
        channel_id: str,
        agent_id: str,
        reason: str,
        message_id: str | None = None,
    ) -> EscalationModel:
        row = EscalationModel(
            escalation_id=str(uuid.uuid4()),
            team_id=team_id,
            channel_id=channel_id,
            agent_id=agent_id,
            reason=reason,
            message_id=message_id,
            status="open",
        )
        await self._engine.create(row)
        logger.info(f"Escalation {row.escalation_id} opened in team {team_id} by {agent_id}")
        self._events.emit(
            EscalationNewEvent(team_id=team_id, escalation_id=row.escalation_id, channel_id=channel_id, reason=reason)
        )
        return row

    async def resolve(self, escalation_id: str, resolution: str) -> EscalationModel | None:
        """Resolve an escalation. Any vote still collecting ballots is discarded."""
        row = await self.get_by_id(escalation_id)
        if row is None:
            return None
        async with self._lock:
            self._sessions.pop(escalation_id, None)

        row.status = "resolved"
        row.resolution = resolution
        row.resolved_at = datetime.now()
        row = await self._engine.update(row)
        self._events.emit(EscalationResolvedEvent(team_id=row.team_id, escalation_id=escalation_id, resolution=resolution))
        return row

    async def dismiss(self, escalation_id: str) -> EscalationModel | None:
        row = await self.get_by_id(escalation_id)
        if row is None:
            return None
        async with self._lock:
            self._sessions.pop(escalation_id, None)

        row.status = "dismissed"
        row.resolved_at = datetime.now()
        return await self._engine.update(row)

    # --- queries ---

    async def get_by_id(self, escalation_id: str) -> EscalationModel | None:
        return await self._engine.find_first(EscalationModel, filters=where(escalation_id=escalation_id))

    async def get_by_team(self, team_id: str) -> list[EscalationModel]:
        return await self._engine.find_many(EscalationModel, filters=where(team_id=team_id), order_by="-created_at")

    async def get_open(self, team_id: str) -> list[EscalationModel]:
        return await self._engine.find_many(
            EscalationModel,
            filters=where(team_id=team_id, status="open"),
            order_by="-created_at",
        )

