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

"""Supervisor: owns every running agent of every team.

Per-agent lifecycle::

    stopped -> running -> (error -> restarting -> running)* -> stopped | error

A worker failure increments the agent's failure counter. Below
``agent_max_restart_attempts`` the agent is restarted after
``min(base * 2**(n - 1), max)`` seconds; at the limit it stays in ``error``.
Any assistant output resets the counter.

The supervisor is built once per process and handed to whoever needs it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from synod.archs.config import SynodConfig
from synod.archs.inference.session import InferenceProvider
from synod.archs.session.models import ALL_MODELS, AgentModel, PersonaModel, TeamModel
from synod.archs.session.orm import AndFilter, ComparisonFilter, DatabaseEngine, where

from .activity_log import ActivityLog
from .escalation import EscalationCoordinator
from .events import AgentStatusEvent, AgentStreamEvent, BusMessageEvent, EventHub, SubscriptionToken, SynodEvent, TeamStatusEvent
from .idle_scheduler import IdleScheduler, IdleSettings
from .inbound_queue import InboundQueue
from .learnings import LearningStore
from .message_bus import BusMessage, MessageBus
from .prompts import SUMMARY_MESSAGE_LIMIT, build_context_summary, build_opening_message, build_system_prompt
from .task_board import TaskBoard
from .tools import BusTools, ToolContext
from .types import AgentNotFoundError, AgentStatus, IdleStatus, QueueKind, TeamNotFoundError
from .usage_ledger import UsageLedger
from .worker import AgentWorker, WorkerSpec

logger = logging.getLogger(__name__)

HUMAN_AUTHOR_ID = "human"
HUMAN_AUTHOR_NAME = "Human"


@dataclass
class _AgentEntry:
    worker: AgentWorker
    bus_token: SubscriptionToken | None = None


@dataclass(frozen=True)
class AgentStatusInfo:
    agent_id: str
    name: str
    role: str
    status: str
    running: bool
    failures: int
    pending_messages: int
    session_token: str | None


@dataclass(frozen=True)
class TeamRuntimeInfo:
    team_id: str
    running: bool
    started_at: datetime | None
    max_runtime_minutes: int | None
    idle_status: IdleStatus
    nudge_count: int


def _queue_kind(message: BusMessage) -> QueueKind:
    if message.message_type in ("vote", "escalation"):
        return "escalation"
    if message.author_role == "system":
        return "system"
    return "message"


class Supervisor:
    """Starts, stops and restarts agent workers and the per-team machinery around them.

    Args:
        engine: Storage for teams, agents, messages, usage and escalations.
        config: Engine settings.
        provider: Opens inference sessions for workers.
        events: Shared event hub; a new one is created when omitted.
        ledger: Usage ledger; built from ``config`` when omitted.
        coordinator: Escalation coordinator; built when omitted.
        clock: Source of "now" for runtime bookkeeping.
    """

    def __init__(
        self,
        *,
        engine: DatabaseEngine,
        config: SynodConfig,
        provider: InferenceProvider,
        events: EventHub | None = None,
        ledger: UsageLedger | None = None,
        coordinator: EscalationCoordinator | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._engine = engine
        self.config = config
        self._provider = provider
        self.events = events if events is not None else EventHub()
        self.ledger = (
            ledger
            if ledger is not None
            else UsageLedger(
                engine=engine,
                events=self.events,
                default_ceiling_usd=config.max_budget_usd,
                warning_ratio=config.budget_warning_ratio,
            )
        )
        self.coordinator = coordinator if coordinator is not None else EscalationCoordinator(engine=engine, events=self.events)
        self.task_board = TaskBoard(engine=engine)
        self.learnings = LearningStore(engine=engine)
        self.activity = ActivityLog(engine=engine, max_entries=config.activity_log_max_entries)
        self._clock = clock

        self._entries: dict[str, _AgentEntry] = {}
        self._failures: dict[str, int] = {}
        self._restart_timers: dict[str, asyncio.Task[None]] = {}
        self._pending_summaries: dict[str, str] = {}
        # (team_id, agent_id) -> pending context rotation
        self._rotations: dict[tuple[str, str], asyncio.Task[None]] = {}

        self._buses: dict[str, MessageBus] = {}
        self._bus_tokens: dict[str, SubscriptionToken] = {}
        self._schedulers: dict[str, IdleScheduler] = {}
        self._runtime_timers: dict[str, asyncio.Task[None]] = {}
        self._started_at: dict[str, datetime] = {}
        self._max_runtime: dict[str, int] = {}
        self._running_teams: set[str] = set()

        self._background: set[asyncio.Task[Any]] = set()
        self._shutdown = False
        self._budget_token = self.events.subscribe(self._on_budget_exceeded, types={"usage:budget_exceeded"})

    async def setup(self) -> None:
        await self._engine.setup_models(ALL_MODELS)

    # ------------------------------------------------------------------
    # Buses
    # ------------------------------------------------------------------

    def get_bus(self, team_id: str) -> MessageBus:
        bus = self._buses.get(team_id)
        if bus is None:
            bus = MessageBus(team_id=team_id, engine=self._engine)
            self._buses[team_id] = bus
            self._bus_tokens[team_id] = bus.subscribe(self._on_bus_message)
        return bus

    def _on_bus_message(self, message: BusMessage) -> None:
        self.events.emit(
            BusMessageEvent(
                team_id=message.team_id,
                message_id=message.message_id,
                channel_id=message.channel_id,
                channel_name=message.channel_name,
                sequence=message.sequence,
                author_id=message.author_id,
                author_role=message.author_role,
                author_name=message.author_name,
                content=message.content,
                message_type=message.message_type,
            )
        )
        scheduler = self._schedulers.get(message.team_id)
        if scheduler is None:
            return
        if message.author_role == "human":
            scheduler.record_human_activity()
        else:
            scheduler.record_activity()

    def _bus_listener(self, worker: AgentWorker) -> Callable[[BusMessage], None]:
        def deliver(message: BusMessage) -> None:
            # Agents never receive their own posts
            if message.author_id == worker.agent_id:
                return
            worker.enqueue(
                f"[#{message.channel_name}] {message.author_label}: {message.content}",
                kind=_queue_kind(message),
            )

        return deliver

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    async def start_agent(self, agent_id: str, *, opening_message: str | None = None) -> AgentWorker:
        """Start (or replace) the worker of one agent without waiting for it.

        Raises:
            AgentNotFoundError: no such agent.
            TeamNotFoundError: the agent's team is missing.
        """
        await self._cleanup_agent(agent_id)

        agent = await self._get_agent(agent_id)
        team = await self._get_team(agent.team_id)
        workspace = Path(team.workspace_path) if team.workspace_path else self.config.workspace_for(team.team_id)
        workspace.mkdir(parents=True, exist_ok=True)

        bus = self.get_bus(team.team_id)
        teammates = await self._engine.find_many(AgentModel, filters=where(team_id=team.team_id), order_by="created_at")
        persona = None
        if agent.persona_id:
            persona = await self._engine.find_first(PersonaModel, filters=where(persona_id=agent.persona_id))

        tools = BusTools(
            ToolContext(
                agent_id=agent.agent_id,
                agent_name=agent.name,
                team_id=team.team_id,
                bus=bus,
                coordinator=self.coordinator,
                task_board=self.task_board,
                learnings=self.learnings,
                team_agent_count=len(teammates),
            )
        )
        system_prompt = build_system_prompt(
            team=team,
            agent=agent,
            persona=persona,
            teammates=teammates,
            channels=await bus.channels(),
            workspace_path=workspace,
            tool_names=tools.names,
        )
        opening = (
            opening_message
            or self._pending_summaries.pop(agent_id, None)
            or build_opening_message(agent.name, team.goal)
        )

        worker = AgentWorker(
            spec=WorkerSpec(
                agent_id=agent.agent_id,
                team_id=team.team_id,
                agent_name=agent.name,
                model=self.config.model_for(agent.agent_id, agent.model_override),
                system_prompt=system_prompt,
                workspace_path=workspace,
                opening_message=opening,
                context_window_threshold=self.config.context_window_threshold,
            ),
            provider=self._provider,
            ledger=self.ledger,
            queue=InboundQueue(
                max_size=self.config.message_queue_max_size,
                aggregation_threshold=self.config.message_queue_aggregation_threshold,
                keep_recent=self.config.message_queue_keep_recent,
                truncate_length=self.config.message_queue_truncate_length,
            ),
            tools=tools,
            listener=self,
        )
        entry = _AgentEntry(worker=worker)
        entry.bus_token = bus.subscribe(self._bus_listener(worker))
        self._entries[agent_id] = entry
        worker.start()
        logger.info(f"Started agent {agent.name} ({agent_id}) in team {team.team_id}")
        await self.activity.record(team.team_id, "agent.started", agent_id=agent_id, data={"model": worker.spec.model})
        return worker

    async def stop_agent(self, agent_id: str) -> None:
        agent = await self._get_agent(agent_id)
        await self._cleanup_agent(agent_id)
        await self._set_agent_status(agent_id, agent.team_id, "stopped")
        await self.activity.record(agent.team_id, "agent.stopped", agent_id=agent_id)

    async def restart_agent(self, agent_id: str) -> AgentWorker:
        """Manual restart: stop, wait the grace period, start with a clean failure count."""
        await self._get_agent(agent_id)
        self._failures[agent_id] = 0
        await self._cleanup_agent(agent_id)
        await asyncio.sleep(self.config.agent_restart_grace_seconds)
        return await self.start_agent(agent_id)

    def get_worker(self, agent_id: str) -> AgentWorker | None:
        entry = self._entries.get(agent_id)
        return entry.worker if entry is not None else None

    def failure_count(self, agent_id: str) -> int:
        return self._failures.get(agent_id, 0)

    def restart_delay(self, attempt: int) -> float:
        """Backoff before restart number ``attempt`` (1-based)."""
        base = self.config.agent_restart_backoff_base_seconds
        return min(base * 2 ** (attempt - 1), self.config.agent_restart_backoff_max_seconds)

    async def _cleanup_agent(self, agent_id: str) -> None:
        timer = self._restart_timers.pop(agent_id, None)
        if timer is not None:
            timer.cancel()

        entry = self._entries.pop(agent_id, None)
        if entry is None:
            return
        worker = entry.worker
        bus = self._buses.get(worker.team_id)
        if bus is not None and entry.bus_token is not None:
            bus.unsubscribe(entry.bus_token)
        worker.detach()
        worker.stop()
        await worker.join(self.config.agent_stop_timeout_seconds)

    def _is_current(self, worker: AgentWorker) -> bool:
        entry = self._entries.get(worker.agent_id)
        return entry is not None and entry.worker is worker

    # --- worker listener ---

    async def on_status(self, worker: AgentWorker, status: AgentStatus) -> None:
        if self._is_current(worker):
            await self._set_agent_status(worker.agent_id, worker.team_id, status, session_token=worker.session_token)

    async def on_output(self, worker: AgentWorker, text: str) -> None:
        if self._is_current(worker):
            self._failures[worker.agent_id] = 0

    async def on_stream(self, worker: AgentWorker, text: str) -> None:
        if self._is_current(worker):
            self.events.emit(AgentStreamEvent(team_id=worker.team_id, agent_id=worker.agent_id, text=text))

    async def on_error(self, worker: AgentWorker, detail: str) -> None:
        if not self._is_current(worker):
            return
        agent_id = worker.agent_id
        failures = self._failures.get(agent_id, 0) + 1
        self._failures[agent_id] = failures
        limit = self.config.agent_max_restart_attempts

        team_id = worker.team_id

        if failures >= limit:
            logger.error(f"Agent {agent_id} failed {failures} times; giving up: {detail}")
            await self._set_agent_status(agent_id, team_id, "error", detail=detail)
            await self.activity.record(
                team_id, "agent.error", level="error", agent_id=agent_id, data={"error": detail, "failures": failures}
            )
            return

        delay = self.restart_delay(failures)
        logger.warning(f"Agent {agent_id} failed ({failures}/{limit}), restarting in {delay:.1f}s: {detail}")
        await self._set_agent_status(agent_id, team_id, "restarting", detail=detail)
        await self.activity.record(
            team_id,
            "agent.restarting",
            level="warning",
            agent_id=agent_id,
            data={"error": detail, "attempt": failures, "delay_seconds": delay},
        )
        self._restart_timers[agent_id] = self._start_timer(
            self._restart_after(agent_id, team_id, delay), name=f"restart-{agent_id}"
        )

    async def on_context_rotation(self, worker: AgentWorker, input_tokens: int) -> None:
        if not self._is_current(worker) or not self._team_active(worker.team_id):
            return
        agent_id = worker.agent_id
        key = (worker.team_id, agent_id)
        if key in self._rotations:
            return
        self._rotations[key] = self._spawn(self._rotate_context(agent_id, worker.team_id))
        await self.activity.record(
            worker.team_id, "agent.context_rotation", agent_id=agent_id, data={"input_tokens": input_tokens}
        )

    def _team_active(self, team_id: str) -> bool:
        return not self._shutdown and team_id in self._running_teams

    async def _restart_after(self, agent_id: str, team_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        self._restart_timers.pop(agent_id, None)
        if not self._team_active(team_id):
            logger.info(f"Skipping restart of agent {agent_id}; team {team_id} is not running")
            return
        try:
            await self.start_agent(agent_id)
        except Exception as e:
            logger.error(f"Restart of agent {agent_id} failed: {e}", exc_info=True)

    async def _rotate_context(self, agent_id: str, team_id: str) -> None:
        try:
            await self._cleanup_agent(agent_id)
            agent = await self._get_agent(agent_id)
            team = await self._get_team(team_id)
            bus = self.get_bus(team_id)
            channels = await bus.channels()
            summary = build_context_summary(
                agent=agent,
                team=team,
                tasks=await self.task_board.list_tasks(team_id),
                messages=await bus.recent(SUMMARY_MESSAGE_LIMIT),
                learnings=await self.learnings.list_for_team(team_id),
                channel_names={c.channel_id: c.name for c in channels},
            )
            if not self._team_active(team_id):
                logger.info(f"Dropping context rotation for agent {agent_id}; team {team_id} is not running")
                return
            logger.info(f"Rotating context for agent {agent_id}")
            self._pending_summaries[agent_id] = summary
            await self.start_agent(agent_id)
        finally:
            if self._rotations.get((team_id, agent_id)) is asyncio.current_task():
                del self._rotations[(team_id, agent_id)]

    async def _set_agent_status(
        self,
        agent_id: str,
        team_id: str,
        status: AgentStatus,
        *,
        detail: str | None = None,
        session_token: str | None = None,
    ) -> None:
        try:
            agent = await self._engine.find_first(AgentModel, filters=where(agent_id=agent_id))
            if agent is not None:
                agent.status = status
                if session_token is not None:
                    agent.session_token = session_token
                agent.updated_at = datetime.now()
                await self._engine.update(agent)
        except Exception as e:
            logger.warning(f"Failed to persist status {status} for agent {agent_id}: {e}")
        self.events.emit(AgentStatusEvent(team_id=team_id, agent_id=agent_id, status=status, detail=detail))

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    async def start_team(self, team_id: str) -> None:
        """Start every agent of a team plus its idle scheduler and runtime limit."""
        team = await self._get_team(team_id)
        if team_id in self._running_teams:
            logger.info(f"Team {team_id} is already running")
            return
        self._running_teams.add(team_id)
        await self._set_team_status(team, "running")

        bus = self.get_bus(team_id)
        await bus.ensure_default_channels(self.config.default_channels)
        self.ledger.rearm(team_id)
        self.ledger.set_ceiling(team_id, team.max_budget_usd)

        settings = IdleSettings.from_config(self.config)
        if settings.base_interval > 0:
            scheduler = IdleScheduler(
                team_id=team_id,
                settings=settings,
                events=self.events,
                select_target=lambda count: self._select_nudge_target(team_id, count),
                budget_probe=lambda: self._budget_probe(team_id),
                clock=self._clock,
            )
            self._schedulers[team_id] = scheduler
            scheduler.start()

        agents = await self._engine.find_many(AgentModel, filters=where(team_id=team_id), order_by="created_at")
        for agent in agents:
            self._failures[agent.agent_id] = 0
            try:
                await self.start_agent(agent.agent_id)
            except Exception as e:
                logger.error(f"Failed to start agent {agent.agent_id}: {e}", exc_info=True)
                await self._set_agent_status(agent.agent_id, team_id, "error", detail=str(e))

        max_runtime = team.max_runtime_minutes if team.max_runtime_minutes is not None else self.config.max_runtime_minutes
        started_at = self._clock()
        self._started_at[team_id] = started_at
        self._max_runtime[team_id] = max_runtime
        if max_runtime > 0:
            self._runtime_timers[team_id] = self._start_timer(
                self._runtime_limit(team_id, max_runtime * 60), name=f"runtime-{team_id}"
            )

        logger.info(f"Team {team_id} started with {len(agents)} agents (max runtime {max_runtime} min)")
        self.events.emit(
            TeamStatusEvent(team_id=team_id, status="running", started_at=started_at, max_runtime_minutes=max_runtime)
        )
        await self.activity.record(
            team_id, "team.started", data={"agents": len(agents), "max_runtime_minutes": max_runtime}
        )

    async def stop_team(self, team_id: str, reason: str | None = None) -> None:
        """Stop a team and all of its agents. Safe to call repeatedly."""
        was_running = team_id in self._running_teams
        self._running_teams.discard(team_id)

        rotations = [self._rotations.pop(key) for key in list(self._rotations) if key[0] == team_id]
        rotations = [task for task in rotations if task is not asyncio.current_task()]
        for task in rotations:
            task.cancel()
        await asyncio.gather(*rotations, return_exceptions=True)

        timer = self._runtime_timers.pop(team_id, None)
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()
        scheduler = self._schedulers.pop(team_id, None)
        if scheduler is not None:
            scheduler.stop()

        for agent_id in [a for a, e in self._entries.items() if e.worker.team_id == team_id]:
            await self._cleanup_agent(agent_id)

        agents = await self._engine.find_many(AgentModel, filters=where(team_id=team_id))
        for agent in agents:
            # A pending restart may belong to an agent whose worker is already gone
            timer = self._restart_timers.pop(agent.agent_id, None)
            if timer is not None:
                timer.cancel()
            if agent.status != "stopped":
                await self._set_agent_status(agent.agent_id, team_id, "stopped")

        team = await self._engine.find_first(TeamModel, filters=where(team_id=team_id))
        if team is not None:
            await self._set_team_status(team, "stopped")
        self._started_at.pop(team_id, None)

        if was_running:
            logger.info(f"Team {team_id} stopped" + (f" ({reason})" if reason else ""))
            self.events.emit(TeamStatusEvent(team_id=team_id, status="stopped", reason=reason))
            await self.activity.record(team_id, "team.stopped", data={"reason": reason})

    def is_team_running(self, team_id: str) -> bool:
        return team_id in self._running_teams

    async def send_human_message(self, team_id: str, channel_name: str, content: str) -> BusMessage:
        """Post as the human operator. Wakes a hibernating idle scheduler."""
        await self._get_team(team_id)
        return await self.get_bus(team_id).post(
            channel=channel_name.lstrip("#"),
            author_id=HUMAN_AUTHOR_ID,
            author_role="human",
            author_name=HUMAN_AUTHOR_NAME,
            content=content,
        )

    async def get_team_agent_statuses(self, team_id: str) -> list[AgentStatusInfo]:
        agents = await self._engine.find_many(AgentModel, filters=where(team_id=team_id), order_by="created_at")
        infos = []
        for agent in agents:
            worker = self.get_worker(agent.agent_id)
            infos.append(
                AgentStatusInfo(
                    agent_id=agent.agent_id,
                    name=agent.name,
                    role=agent.role,
                    status=agent.status,
                    running=worker is not None and worker.is_running,
                    failures=self.failure_count(agent.agent_id),
                    pending_messages=worker.pending if worker is not None else 0,
                    session_token=agent.session_token,
                )
            )
        return infos

    def get_team_runtime_info(self, team_id: str) -> TeamRuntimeInfo:
        scheduler = self._schedulers.get(team_id)
        return TeamRuntimeInfo(
            team_id=team_id,
            running=team_id in self._running_teams,
            started_at=self._started_at.get(team_id),
            max_runtime_minutes=self._max_runtime.get(team_id),
            idle_status=scheduler.status if scheduler is not None else "stopped",
            nudge_count=scheduler.nudge_count if scheduler is not None else 0,
        )

    async def reset_stale_statuses(self) -> int:
        """Mark teams and agents left active by a previous process as stopped.

        Returns:
            Number of rows changed.
        """
        changed = 0
        settled = AndFilter(filters=[ComparisonFilter.neq("status", "idle"), ComparisonFilter.neq("status", "stopped")])
        for team in await self._engine.find_many(TeamModel, filters=settled):
            if team.team_id in self._running_teams:
                continue
            await self._set_team_status(team, "stopped")
            changed += 1
        for agent in await self._engine.find_many(AgentModel, filters=settled):
            if agent.agent_id in self._entries:
                continue
            agent.status = "stopped"
            agent.updated_at = datetime.now()
            await self._engine.update(agent)
            changed += 1
        if changed:
            logger.info(f"Reset {changed} stale team/agent statuses to stopped")
        return changed

    def _select_nudge_target(self, team_id: str, nudge_count: int) -> AgentWorker | None:
        running = [e.worker for e in self._entries.values() if e.worker.team_id == team_id and e.worker.is_running]
        if not running:
            return None
        return running[nudge_count % len(running)]

    async def _budget_probe(self, team_id: str) -> tuple[float, float | None]:
        totals = await self.ledger.team_total(team_id)
        return totals.cost_usd, self.ledger.ceiling_for(team_id)

    async def _runtime_limit(self, team_id: str, seconds: float) -> None:
        await asyncio.sleep(seconds)
        self._runtime_timers.pop(team_id, None)
        logger.warning(f"Team {team_id} reached its maximum runtime; stopping")
        await self.activity.record(
            team_id, "team.max_runtime_reached", level="warning", data={"max_runtime_minutes": self._max_runtime.get(team_id)}
        )
        await self.stop_team(team_id, reason="max_runtime")

    def _on_budget_exceeded(self, event: SynodEvent) -> None:
        if event.team_id not in self._running_teams:
            return
        logger.warning(f"Team {event.team_id} exceeded its budget; stopping all agents")
        self._spawn(self.stop_team(event.team_id, reason="budget_exceeded"))

    async def _set_team_status(self, team: TeamModel, status: str) -> None:
        team.status = status
        team.updated_at = datetime.now()
        try:
            await self._engine.update(team)
        except Exception as e:
            logger.warning(f"Failed to persist status {status} for team {team.team_id}: {e}")

    # ------------------------------------------------------------------
    # Lookups / tasks
    # ------------------------------------------------------------------

    async def _get_agent(self, agent_id: str) -> AgentModel:
        agent = await self._engine.find_first(AgentModel, filters=where(agent_id=agent_id))
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    async def _get_team(self, team_id: str) -> TeamModel:
        team = await self._engine.find_first(TeamModel, filters=where(team_id=team_id))
        if team is None:
            raise TeamNotFoundError(team_id)
        return team

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background task failed: {task.exception()}")

    def _start_timer(self, coro: Coroutine[Any, Any, None], *, name: str) -> asyncio.Task[None]:
        return asyncio.get_running_loop().create_task(coro, name=name)

    async def settle(self) -> None:
        """Wait for spawned background work (team stops, context rotations) to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def shutdown(self) -> None:
        """Stop every team, worker, timer and scheduler. Safe to call repeatedly."""
        if self._shutdown:
            return
        self._shutdown = True
        self.events.unsubscribe(self._budget_token)

        for team_id in list(self._running_teams):
            await self.stop_team(team_id, reason="shutdown")
        for agent_id in list(self._entries):
            await self._cleanup_agent(agent_id)
        for timer in [*self._restart_timers.values(), *self._runtime_timers.values(), *self._rotations.values()]:
            timer.cancel()
        self._restart_timers.clear()
        self._rotations.clear()
        self._runtime_timers.clear()
        for scheduler in self._schedulers.values():
            scheduler.stop()
        self._schedulers.clear()

        await self.settle()
        for team_id, token in self._bus_tokens.items():
            self._buses[team_id].unsubscribe(token)
        self._bus_tokens.clear()
        logger.info("Supervisor shut down")
