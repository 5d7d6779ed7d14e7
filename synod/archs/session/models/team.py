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

"""Team data models.

A team owns its agents, channels, task board and budget ceiling.
"""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel


class TeamModel(SQLModel, table=True):
    """Team model.

    Attributes:
        team_id: Team identifier (primary key).
        name: Display name.
        goal: The team's current goal, quoted in every opening message.
        status: idle | running | paused | stopped | error. Written only by the supervisor.
        max_budget_usd: Budget ceiling; None falls back to the configured default.
        max_runtime_minutes: Runtime cap; None falls back to the configured default, 0 disables.
        workspace_path: Shared working directory; defaults to ``<data_dir>/workspaces/<team_id>``.
    """

    __tablename__ = "teams"  # type: ignore[assignment]

    team_id: str = Field(primary_key=True)

    name: str
    goal: str = Field(default="")
    status: str = Field(default="idle")
    max_budget_usd: float | None = Field(default=None)
    max_runtime_minutes: int | None = Field(default=None)
    workspace_path: str | None = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
