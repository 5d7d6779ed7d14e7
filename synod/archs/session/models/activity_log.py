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

"""Team activity log data model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class ActivityLogModel(SQLModel, table=True):
    """One lifecycle event of a team or one of its agents.

    Attributes:
        level: debug | info | warning | error.
        event: Dotted event name, e.g. ``agent.restarting`` or ``team.stopped``.
        data: Event details (reason, attempt, delay, ...).
    """

    __tablename__ = "activity_logs"  # type: ignore[assignment]

    log_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)
    agent_id: str | None = Field(default=None)

    level: str = Field(default="info")
    event: str
    data: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.now)
