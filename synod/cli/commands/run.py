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

"""Run command - seed a team from its YAML definition and supervise it."""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys
from datetime import datetime

from dotenv import load_dotenv

from synod.archs.config import ConfigError, SynodConfig, TeamDefinition, load_config
from synod.archs.inference import AnthropicInferenceProvider
from synod.archs.orchestration import Supervisor
from synod.archs.orchestration.events import BusMessageEvent, SynodEvent, TeamStatusEvent
from synod.archs.session.models import AgentModel, PersonaModel, TeamModel
from synod.archs.session.orm import DatabaseEngine, InMemoryDatabaseEngine, SQLDatabaseEngine, where

logger = logging.getLogger(__name__)


def setup_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("team", type=str, help="Path to team YAML definition")
    add_common_arguments(parser)


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=str, help="Path to synod config YAML (default: ~/.synod/config.yaml)")
    parser.add_argument(
        "--database-url",
        type=str,
        help="Async SQLAlchemy URL, or memory:// for an ephemeral store (default: sqlite under the data dir)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output (debug level logging)")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        force=True,
    )


def load_run_config(args: argparse.Namespace) -> SynodConfig:
    config = load_config(args.config)
    if args.database_url:
        config = config.model_copy(update={"database_url": args.database_url})
    return config


MEMORY_URL = "memory://"


def open_engine(config: SynodConfig) -> DatabaseEngine:
    if config.database_url == MEMORY_URL:
        return InMemoryDatabaseEngine()
    if not config.database_url:
        config.resolved_data_dir.mkdir(parents=True, exist_ok=True)
    return SQLDatabaseEngine.from_url(config.resolved_database_url())


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "agent"


async def seed_team(engine: DatabaseEngine, definition: TeamDefinition) -> TeamModel:
    """Create or refresh the team, its agents and their personas from a definition."""
    team = await engine.find_first(TeamModel, filters=where(team_id=definition.team_id))
    if team is None:
        team = await engine.create(
            TeamModel(
                team_id=definition.team_id,
                name=definition.name,
                goal=definition.goal,
                max_budget_usd=definition.max_budget_usd,
                max_runtime_minutes=definition.max_runtime_minutes,
            )
        )
    else:
        team.name = definition.name
        team.goal = definition.goal
        team.max_budget_usd = definition.max_budget_usd
        team.max_runtime_minutes = definition.max_runtime_minutes
        team.updated_at = datetime.now()
        team = await engine.update(team)

    for agent_def in definition.agents:
        agent_id = agent_def.agent_id or f"{definition.team_id}-{_slug(agent_def.name)}"

        persona_id = None
        if agent_def.system_prompt or agent_def.description:
            persona_id = f"{agent_id}-persona"
            persona = PersonaModel(
                persona_id=persona_id,
                name=agent_def.name,
                role=agent_def.role,
                description=agent_def.description,
                system_prompt=agent_def.system_prompt,
            )
            if await engine.find_first(PersonaModel, filters=where(persona_id=persona_id)) is None:
                await engine.create(persona)
            else:
                await engine.update(persona)

        agent = await engine.find_first(AgentModel, filters=where(agent_id=agent_id))
        if agent is None:
            await engine.create(
                AgentModel(
                    agent_id=agent_id,
                    team_id=definition.team_id,
                    name=agent_def.name,
                    role=agent_def.role,
                    persona_id=persona_id,
                    model_override=agent_def.model,
                )
            )
        else:
            agent.team_id = definition.team_id
            agent.name = agent_def.name
            agent.role = agent_def.role
            agent.persona_id = persona_id
            agent.model_override = agent_def.model
            agent.updated_at = datetime.now()
            await engine.update(agent)

    logger.info(f"Seeded team {definition.team_id} with {len(definition.agents)} agents")
    return team


async def run_team(config: SynodConfig, definition: TeamDefinition) -> int:
    engine = open_engine(config)
    supervisor = Supervisor(engine=engine, config=config, provider=AnthropicInferenceProvider(config))
    stopped = asyncio.Event()
    stop_reason: list[str | None] = []

    def on_event(event: SynodEvent) -> None:
        if isinstance(event, BusMessageEvent):
            print(f"[#{event.channel_name}] {event.author_name or event.author_role}: {event.content}", flush=True)
        elif isinstance(event, TeamStatusEvent) and event.status == "stopped":
            stop_reason.append(event.reason)
            stopped.set()

    supervisor.events.subscribe(on_event, types={"bus:message", "team:status"}, team_id=definition.team_id)
    try:
        await supervisor.setup()
        await supervisor.reset_stale_statuses()
        await seed_team(engine, definition)
        await supervisor.start_team(definition.team_id)
        await stopped.wait()
    finally:
        await supervisor.shutdown()
        await engine.close()

    reason = stop_reason[0] if stop_reason else None
    print(f"Team {definition.team_id} stopped" + (f" ({reason})" if reason else ""), file=sys.stderr)
    return 0


def main(args: argparse.Namespace) -> int:
    """Execute the run command."""
    load_dotenv()
    configure_logging(args.verbose)

    try:
        config = load_run_config(args)
        definition = TeamDefinition.from_yaml(args.team)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if not config.resolve_api_key():
        print("Error: no Anthropic API key; set ANTHROPIC_API_KEY or api_key in the config", file=sys.stderr)
        return 1

    return asyncio.run(run_team(config, definition))
