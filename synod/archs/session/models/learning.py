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

"""Team learning data model."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel


class LearningModel(SQLModel, table=True):
    """Something the team learned and wants to remember across context rotations."""

    __tablename__ = "learnings"  # type: ignore[assignment]

    learning_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)
    agent_id: str | None = Field(default=None)

    category: str = Field(default="general")
    content: str

    created_at: datetime = Field(default_factory=datetime.now)
