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

"""Usage ledger: token/cost accounting and the team budget breaker.

Every successful inference turn is appended as a ``TokenUsageModel`` row.
After each append the team total is re-read and compared with the team's
ceiling; the append, the re-read and the comparison happen under one lock
so a check always sees its own write.

Budget signals are latched per team: the warning fires once when cost
reaches ``warning_ratio`` of the ceiling and the exceeded signal fires once
when cost reaches the ceiling. ``rearm`` clears both latches and is called
when a team is (re)started.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Literal

from synod.archs.session.models import TokenUsageModel
from synod.archs.session.orm import DatabaseEngine, where

from .events import BudgetExceededEvent, BudgetWarningEvent, EventHub, UsageUpdateEvent
from .types import UsageEntry, UsageTotals

logger = logging.getLogger(__name__)


def _sum(rows: list[TokenUsageModel]) -> UsageTotals:
    return UsageTotals(
        input_tokens=sum(r.input_tokens for r in rows),
        output_tokens=sum(r.output_tokens for r in rows),
        cost_usd=sum(r.cost_usd for r in rows),
        records=len(rows),
    )


class UsageLedger:
    """Append-only usage store with threshold evaluation."""

    def __init__(
        self,
        *,
        engine: DatabaseEngine,
        events: EventHub,
        default_ceiling_usd: float | None = None,
        warning_ratio: float = 0.8,
    ) -> None:
        self._engine = engine
        self._events = events
        self._default_ceiling = default_ceiling_usd
        self._warning_ratio = warning_ratio
        self._ceilings: dict[str, float] = {}
        self._warned: set[str] = set()
        self._exceeded: set[str] = set()
        self._lock = asyncio.Lock()

    # --- ceilings ---

    def set_ceiling(self, team_id: str, ceiling_usd: float | None) -> None:
        """Set a per-team ceiling; None falls back to the default."""
        if ceiling_usd is None:
            self._ceilings.pop(team_id, None)
        else:
            self._ceilings[team_id] = ceiling_usd

    def ceiling_for(self, team_id: str) -> float | None:
        return self._ceilings.get(team_id, self._default_ceiling)

    def rearm(self, team_id: str) -> None:
        self._warned.discard(team_id)
        self._exceeded.discard(team_id)

    # --- recording ---

    async def record(self, entry: UsageEntry) -> bool:
        """Append one usage entry.

        Returns:
            True when the team's cumulative cost is at or above its ceiling.
            False otherwise, including when the write failed.
        """
        async with self._lock:
            row = TokenUsageModel(
                usage_id=str(uuid.uuid4()),
                team_id=entry.team_id,
                agent_id=entry.agent_id,
                task_id=entry.task_id,
                model=entry.model,
                input_tokens=entry.input_tokens,
                output_tokens=entry.output_tokens,
                cost_usd=entry.cost_usd,
            )
            try:
                await self._engine.create(row)
                totals = await self.team_total(entry.team_id)
            except Exception as e:
                logger.warning(f"Failed to record usage for agent {entry.agent_id}: {e}")
                return False

            self._events.emit(
                UsageUpdateEvent(
                    team_id=entry.team_id,
                    agent_id=entry.agent_id,
                    model=entry.model,
                    input_tokens=entry.input_tokens,
                    output_tokens=entry.output_tokens,
                    cost_usd=entry.cost_usd,
                    team_total_usd=totals.cost_usd,
                )
            )
            return self._check_thresholds(entry.team_id, totals.cost_usd)

    def _check_thresholds(self, team_id: str, total: float) -> bool:
        ceiling = self.ceiling_for(team_id)
        if ceiling is None:
            return False

        if total >= ceiling:
            if team_id not in self._exceeded:
                self._exceeded.add(team_id)
                self._warned.add(team_id)
                logger.warning(f"Team {team_id} exceeded its budget: ${total:.4f} of ${ceiling:.2f}")
                self._events.emit(BudgetExceededEvent(team_id=team_id, total_usd=total, ceiling_usd=ceiling))
            return True

        if total >= self._warning_ratio * ceiling and team_id not in self._warned:
            self._warned.add(team_id)
            logger.warning(f"Team {team_id} has used {total / ceiling:.0%} of its budget (${total:.4f} of ${ceiling:.2f})")
            self._events.emit(BudgetWarningEvent(team_id=team_id, total_usd=total, ceiling_usd=ceiling))
        return False

    # --- queries ---

    async def team_total(self, team_id: str) -> UsageTotals:
        rows = await self._engine.find_many(TokenUsageModel, filters=where(team_id=team_id))
        return _sum(rows)

    async def agent_total(self, agent_id: str) -> UsageTotals:
        rows = await self._engine.find_many(TokenUsageModel, filters=where(agent_id=agent_id))
        return _sum(rows)

    async def breakdown(self, team_id: str, *, by: Literal["agent", "model"] = "agent") -> dict[str, UsageTotals]:
        """Team totals grouped by agent id or by model name."""
        rows = await self._engine.find_many(TokenUsageModel, filters=where(team_id=team_id))
        groups: dict[str, list[TokenUsageModel]] = {}
        for row in rows:
            key = row.agent_id if by == "agent" else row.model
            groups.setdefault(key, []).append(row)
        return {key: _sum(group) for key, group in groups.items()}
