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

"""SQL database engine using SQLModel/SQLAlchemy async sessions.

Filter DSL expressions are compiled with ``to_sqlalchemy()`` before being
passed to ``where()`` clauses.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from sqlalchemy import func, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlmodel import SQLModel, select

from .engine import DatabaseEngine
from .filters import Filter, to_sqlalchemy

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SQLModel)

_ASYNC_DRIVERS = ("+aiosqlite", "+asyncpg", "+aiomysql")


class SQLDatabaseEngine(DatabaseEngine):
    """Async SQL database engine supporting SQLite, PostgreSQL, MySQL."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False, **kwargs: Any) -> SQLDatabaseEngine:
        """Create engine from database URL.

        Raises:
            ValueError: If the URL does not name an async driver.
        """
        if not any(driver in url for driver in _ASYNC_DRIVERS):
            raise ValueError(f"URL must contain async driver (+aiosqlite, +asyncpg, or +aiomysql): {url}")

        if "sqlite" in url:
            connect_args = kwargs.pop("connect_args", {})
            connect_args.setdefault("check_same_thread", False)
            connect_args.setdefault("timeout", 30)
            engine = create_async_engine(url, echo=echo, connect_args=connect_args, **kwargs)
        else:
            engine = create_async_engine(url, echo=echo, **kwargs)
        return cls(engine)

    async def setup_models(self, model_classes: list[type[SQLModel]]) -> None:
        """Create tables for the given model classes."""
        tables = [model_class.__table__ for model_class in model_classes]  # type: ignore[attr-defined]
        async with self._engine.begin() as conn:
            if "sqlite" in str(self._engine.url.drivername):
                await conn.execute(text("PRAGMA journal_mode=WAL"))
                await conn.execute(text("PRAGMA busy_timeout=30000"))
                await conn.execute(text("PRAGMA synchronous=NORMAL"))
            await conn.run_sync(lambda sync_conn: SQLModel.metadata.create_all(sync_conn, tables=tables))
        logger.debug(f"Created tables: {[t.name for t in tables]}")

    async def find_first(self, model_class: type[T], *, filters: Filter) -> T | None:
        stmt = select(model_class).where(to_sqlalchemy(filters, model_class)).limit(1)
        async with AsyncSession(self._engine, expire_on_commit=False) as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def find_many(
        self,
        model_class: type[T],
        *,
        filters: Filter | None = None,
        limit: int | None = None,
        order_by: str | tuple[str, ...] | None = None,
    ) -> list[T]:
        stmt = select(model_class)
        if filters is not None:
            stmt = stmt.where(to_sqlalchemy(filters, model_class))

        if order_by:
            fields = (order_by,) if isinstance(order_by, str) else order_by
            for field in fields:
                if field.startswith("-"):
                    stmt = stmt.order_by(getattr(model_class, field[1:]).desc())
                else:
                    stmt = stmt.order_by(getattr(model_class, field))

        if limit:
            stmt = stmt.limit(limit)

        async with AsyncSession(self._engine, expire_on_commit=False) as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def create(self, model: T) -> T:
        async with AsyncSession(self._engine, expire_on_commit=False) as session:
            session.add(model)
            try:
                await session.flush()
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            return model

    async def update(self, model: T) -> T:
        async with AsyncSession(self._engine, expire_on_commit=False) as session:
            merged = await session.merge(model)
            await session.commit()
            return merged

    async def delete(self, model_class: type[T], *, filters: Filter) -> int:
        async with AsyncSession(self._engine) as session:
            result = await session.execute(select(model_class).where(to_sqlalchemy(filters, model_class)))
            models = list(result.scalars().all())
            for model in models:
                await session.delete(model)
            await session.commit()
            return len(models)

    async def count(self, model_class: type[T], *, filters: Filter | None = None) -> int:
        stmt = select(func.count()).select_from(model_class)
        if filters is not None:
            stmt = stmt.where(to_sqlalchemy(filters, model_class))
        async with AsyncSession(self._engine) as session:
            result = await session.execute(stmt)
            return result.scalar() or 0

    async def close(self) -> None:
        await self._engine.dispose()
