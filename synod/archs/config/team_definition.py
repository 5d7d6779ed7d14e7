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

"""Team definition files.

A team YAML describes a team and its members; ``synod run`` seeds the store
from it.

Example::

    team_id: launch
    name: Launch Crew
    goal: Ship the landing page
    max_budget_usd: 5
    agents:
      - name: Ada
        role: pm
        system_prompt: You own the roadmap.
      - name: Linus
        role: engineer
        model: claude-haiku-4-5
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .settings import ConfigError


class AgentDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    role: str = "member"
    agent_id: str | None = None
    description: str = ""
    system_prompt: str = ""
    model: str | None = None


class TeamDefinition(BaseModel):
    """Schema for team YAML files."""

    model_config = ConfigDict(extra="forbid")

    team_id: str = Field(min_length=1)
    name: str
    goal: str = ""
    max_budget_usd: float | None = Field(default=None, gt=0)
    max_runtime_minutes: int | None = Field(default=None, ge=0)
    agents: list[AgentDefinition] = Field(min_length=1)

    @classmethod
    def from_yaml(cls, path: str | Path) -> TeamDefinition:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Team file not found: {path}")
        try:
            with open(path, encoding="utf-8") as f:
                raw: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parsing error in {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Empty or invalid team file: {path}")
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid team definition in {path}: {exc}") from exc
