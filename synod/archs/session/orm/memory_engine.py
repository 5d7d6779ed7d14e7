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

"""In-memory database engine.

Ephemeral storage with Filter DSL support using Python evaluation. Used by
tests and by ``synod run --database-url memory://``.
"""

from __future__ import annotations

import threading
from typing import TypeVar

from sqlmodel import SQLModel

from .engine import DatabaseEngine, get_pk_fields, get_table_name
from .filters import Filter, evaluate

T = TypeVar("T", bound=SQLModel)


class InMemoryDatabaseEngine(DatabaseEngine):
    """Thread-safe in-memory storage engine using pure Python objects.

    Example:
        >>> engine = InMemoryDatabaseEngine()
        >>> await engine.setup_models([MessageModel])
        >>> await engine.find_many(MessageModel, filters=where(channel_id="c1"), order_by="sequence")
    """

    def __init__(self) -> None:
        # Storage: {table_name: {pk_tuple: model_instance}}
        self._storage: dict[str, dict[tuple[object, ...], SQLModel]] = {}
        self._lock = threading.RLock()

    async def setup_models(self, model_classes: list[type[SQLModel]]) -> None:
        with self._lock:
            for model_class in model_classes:
                self._storage.setdefault(get_table_name(model_class), {})

    def _get_pk_tuple(self, model: SQLModel) -> tuple[object, ...]:
        return tuple(getattr(model, f) for f in get_pk_fields(type(model)))

    def _get_table(self, model_class: type[SQLModel]) -> dict[tuple[object, ...], SQLModel]:
        return self._storage.setdefault(get_table_name(model_class), {})

    async def find_first(self, model_class: type[T], *, filters: Filter) -> T | None:
        with self._lock:
            for model in self._get_table(model_class).values():
                if evaluate(filters, model):
                    return model  # type: ignore[return-value]
            return None

    async def find_many(
        self,
        model_class: type[T],
        *,
        filters: Filter | None = None,
        limit: int | None = None,
        order_by: str | tuple[str, ...] | None = None,
    ) -> list[T]:
        with self._lock:
            table = self._get_table(model_class)
            if filters is not None:
                results = [model for model in table.values() if evaluate(filters, model)]
            else:
                results = list(table.values())

            if order_by:
                fields = (order_by,) if isinstance(order_by, str) else order_by
                # Stable sorts applied last-key-first give multi-key ordering
                for field in reversed(fields):
                    reverse = field.startswith("-")
                    field_name = field[1:] if reverse else field
                    results.sort(key=lambda m: getattr(m, field_name), reverse=reverse)

            if limit:
                results = results[:limit]
            return results  # type: ignore[return-value]

    async def create(self, model: T) -> T:
        """Create a new record.

        Raises:
            ValueError: If a record with the same primary key already exists
        """
        with self._lock:
            table = self._get_table(type(model))
            pk = self._get_pk_tuple(model)
            if pk in table:
                pk_values = dict(zip(get_pk_fields(type(model)), pk))
                raise ValueError(f"Duplicate primary key: {pk_values}")
            table[pk] = model
            return model

    async def update(self, model: T) -> T:
        with self._lock:
            self._get_table(type(model))[self._get_pk_tuple(model)] = model
            return model

    async def delete(self, model_class: type[T], *, filters: Filter) -> int:
        with self._lock:
            table = self._get_table(model_class)
            to_delete = [pk for pk, model in table.items() if evaluate(filters, model)]
            for pk in to_delete:
                del table[pk]
            return len(to_delete)

    async def count(self, model_class: type[T], *, filters: Filter | None = None) -> int:
        with self._lock:
            table = self._get_table(model_class)
            if filters is None:
                return len(table)
            return sum(1 for model in table.values() if evaluate(filters, model))
