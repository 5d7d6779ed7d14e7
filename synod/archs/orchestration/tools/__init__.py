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

"""Bus tools: the surface agents use to talk to the team.

Each tool is a YAML definition (name, description, JSON Schema input) next
to a Python binding of the same name. Arguments are validated against the
schema before the binding runs; every failure comes back as an error
``ToolResult`` instead of an exception.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from importlib import import_module
from pathlib import Path
from typing import TYPE_CHECKING, Any

import jsonschema
import yaml
from pydantic import BaseModel, ConfigDict, Field

from synod.archs.orchestration.types import ToolResult

if TYPE_CHECKING:
    from synod.archs.orchestration.escalation import EscalationCoordinator
    from synod.archs.orchestration.learnings import LearningStore
    from synod.archs.orchestration.message_bus import MessageBus
    from synod.archs.orchestration.task_board import TaskBoard

logger = logging.getLogger(__name__)

_TOOL_DIR = Path(__file__).parent

TOOL_NAMES: list[str] = [
    "send_message",
    "read_channel",
    "create_task",
    "update_task",
    "list_tasks",
    "call_vote",
    "cast_vote",
    "escalate",
    "save_learning",
    "get_learnings",
]

ToolBinding = Callable[..., Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolContext:
    """Everything a tool needs to act on behalf of one agent."""

    agent_id: str
    agent_name: str
    team_id: str
    bus: MessageBus
    coordinator: EscalationCoordinator
    task_board: TaskBoard
    learnings: LearningStore
    team_agent_count: int = 3


class ToolDefinition(BaseModel):
    """Schema describing a tool YAML definition."""

    model_config = ConfigDict(extra="forbid")

    name: str
    description: str
    input_schema: dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> ToolDefinition:
        if not yaml_path.exists():
            raise FileNotFoundError(f"Tool YAML file not found: {yaml_path}")
        with open(yaml_path, encoding="utf-8") as f:
            definition = cls.model_validate(yaml.safe_load(f))
        try:
            jsonschema.validators.validator_for(definition.input_schema).check_schema(definition.input_schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema for tool '{definition.name}': {e}") from e
        return definition

    def to_anthropic(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "input_schema": self.input_schema}


@dataclass(frozen=True)
class BoundTool:
    definition: ToolDefinition
    binding: ToolBinding


def _load_tool(name: str) -> BoundTool:
    """Load a bus tool by name (YAML + Python binding)."""
    definition = ToolDefinition.from_yaml(_TOOL_DIR / f"{name}.yaml")
    module = import_module(f"synod.archs.orchestration.tools.{name}")
    binding = getattr(module, name)  # noqa: B009
    return BoundTool(definition=definition, binding=binding)


_CACHE: dict[str, BoundTool] = {}


def get_tool(name: str) -> BoundTool:
    if name not in _CACHE:
        _CACHE[name] = _load_tool(name)
    return _CACHE[name]


class BusTools:
    """The tool set bound to one agent."""

    def __init__(self, context: ToolContext, names: list[str] | None = None) -> None:
        self.context = context
        self._tools = {name: get_tool(name) for name in (names or TOOL_NAMES)}

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def definitions(self) -> list[ToolDefinition]:
        return [tool.definition for tool in self._tools.values()]

    async def call(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult.error(f"Unknown tool: {name}")

        arguments = arguments or {}
        try:
            jsonschema.validate(arguments, tool.definition.input_schema)
        except jsonschema.ValidationError as e:
            return ToolResult.error(f"Invalid arguments for {name}: {e.message}")

        try:
            return await tool.binding(self.context, **arguments)
        except Exception as e:
            logger.warning(f"Tool {name} failed for agent {self.context.agent_id}: {e}")
            return ToolResult.error(str(e))


__all__ = ["TOOL_NAMES", "BusTools", "ToolContext", "ToolDefinition", "get_tool"]
