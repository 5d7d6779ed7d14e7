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

"""Team learnings: notes agents keep across context rotations."""

from __future__ import annotations

import uuid

from synod.archs.session.models import LearningModel
from synod.archs.session.orm import DatabaseEngine, where


class LearningStore:
    def __init__(self, *, engine: DatabaseEngine) -> None:
        self._engine = engine

    async def save(self, *, team_id: str, content: str, category: str = "general", agent_id: str | None = None) -> LearningModel:
        if not content.strip():
            raise ValueError("content is required")
        row = LearningModel(
            learning_id=str(uuid.uuid4()),
            team_id=team_id,
            agent_id=agent_id,
            category=category.strip() or "general",
            content=content.strip(),
        )
        return await self._engine.create(row)

    async def list_for_team(self, team_id: str, category: str | None = None) -> list[LearningModel]:
        filters = where(team_id=team_id, category=category) if category else where(team_id=team_id)
        return await self._engine.find_many(LearningModel, filters=filters, order_by="created_at")
