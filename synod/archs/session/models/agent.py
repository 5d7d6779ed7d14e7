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

"""Agent and persona data models."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel


class PersonaModel(SQLModel, table=True):
    """Reusable character definition an agent is instantiated from."""

    __tablename__ = "personas"  # type: ignore[assignment]

    persona_id: str = Field(primary_key=True)

    name: str
    role: str
    description: str = Field(default="")
    system_prompt: str = Field(default="")

    created_at: datetime = Field(default_factory=datetime.now)


class AgentModel(SQLModel, table=True):
    """One team member.

    Attributes:
        agent_id: Agent identifier (primary key).
        team_id: Owning team.
        name: Display name used as message author name.
        role: Short role label (e.g. "pm", "engineer").
        persona_id: Optional persona reference.
        status: idle | running | thinking | tool_use | paused | stopped | error | restarting.
        session_token: Inference session identifier of the last run, if any.
        model_override: Per-agent model, overriding the configured default.
    """

    __tablename__ = "agents"  # type: ignore[assignment]

    agent_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)

    name: str
    role: str = Field(default="member")
    persona_id: str | None = Field(default=None)
    status: str = Field(default="idle")
    session_token: str | None = Field(default=None)
    model_override: str | None = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
