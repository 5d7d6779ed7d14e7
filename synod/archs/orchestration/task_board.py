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

"""Team task board backed by ``TaskModel`` rows."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from synod.archs.session.models import TaskModel
from synod.archs.session.orm import DatabaseEngine, where

from .types import TASK_PRIORITIES, TASK_STATUSES, TaskNotFoundError

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("title", "description", "status", "priority", "assignee_id")


def _check_vocabulary(status: str | None, priority: str | None) -> None:
    if status is not None and status not in TASK_STATUSES:
        raise ValueError(f"Invalid status '{status}'. Use one of: {', '.join(TASK_STATUSES)}")
    if priority is not None and priority not in TASK_PRIORITIES:
        raise ValueError(f"Invalid priority '{priority}'. Use one of: {', '.join(TASK_PRIORITIES)}")


class TaskBoard:
    def __init__(self, *, engine: DatabaseEngine) -> None:
        self._engine = engine

    async def create_task(
        self,
        *,
        team_id: str,
        title: str,
        description: str = "",
        status: str = "todo",
        priority: str = "medium",
        assignee_id: str | None = None,
        created_by: str | None = None,
    ) -> TaskModel:
        if not title.strip():
            raise ValueError("title is required")
        _check_vocabulary(status, priority)

        task = TaskModel(
            task_id=str(uuid.uuid4()),
            team_id=team_id,
            title=title.strip(),
            description=description,
            status=status,
            priority=priority,
            assignee_id=assignee_id,
            created_by=created_by,
        )
        await self._engine.create(task)
        logger.info(f"Created task {task.task_id} in team {team_id}: {task.title}")
        return task

    async def get_task(self, task_id: str) -> TaskModel | None:
        return await self._engine.find_first(TaskModel, filters=where(task_id=task_id))

    async def update_task(self, *, team_id: str, task_id: str, **changes: str | None) -> TaskModel:
        """Apply field changes to a task of ``team_id``.

        Only title, description, status, priority and assignee_id can change;
        ``None`` values are ignored.

        Raises:
            TaskNotFoundError: no such task.
            ValueError: the task belongs to another team, or a value is invalid.
        """
        task = await self.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        if task.team_id != team_id:
            raise ValueError(f"Task {task_id} does not belong to this team")

        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        updates = {k: v for k, v in changes.items() if v is not None}
        _check_vocabulary(updates.get("status"), updates.get("priority"))

        for name, value in updates.items():
            setattr(task, name, value)
        task.updated_at = datetime.now()
        return await self._engine.update(task)

    async def list_tasks(self, team_id: str) -> list[TaskModel]:
        return await self._engine.find_many(TaskModel, filters=where(team_id=team_id), order_by="created_at")
