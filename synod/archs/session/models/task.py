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

"""Task board data model."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel


class TaskModel(SQLModel, table=True):
    """Task board entry.

    Attributes:
        status: backlog | todo | in_progress | review | done | blocked.
        priority: low | medium | high | critical.
    """

    __tablename__ = "tasks"  # type: ignore[assignment]

    task_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)

    title: str
    description: str = Field(default="")
    status: str = Field(default="todo")
    priority: str = Field(default="medium")
    assignee_id: str | None = Field(default=None)
    created_by: str | None = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
