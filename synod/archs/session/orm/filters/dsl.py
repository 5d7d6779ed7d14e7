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

"""Filter DSL models for store queries.

PostgREST-style comparison operators plus AND composition, evaluated in
Python by the in-memory engine and compiled to SQL by the SQL engine.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Literal

from pydantic import BaseModel


class FilterOperator(str, Enum):
    """比较操作符"""

    EQ = "eq"
    NEQ = "neq"
    GTE = "gte"
    LTE = "lte"
    IN = "in"


class ComparisonFilter(BaseModel):
    """单字段比较过滤器"""

    type: Literal["comparison"] = "comparison"
    field: str
    op: FilterOperator
    value: str | int | float | bool | None | list[str | int | float]

    @classmethod
    def eq(cls, field: str, value: str | int | float | bool | None) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.EQ, value=value)

    @classmethod
    def neq(cls, field: str, value: str | int | float | bool | None) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.NEQ, value=value)

    @classmethod
    def gte(cls, field: str, value: str | int | float) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.GTE, value=value)

    @classmethod
    def lte(cls, field: str, value: str | int | float) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.LTE, value=value)

    @classmethod
    def in_(cls, field: str, value: list[str | int | float]) -> ComparisonFilter:
        return cls(field=field, op=FilterOperator.IN, value=value)


class AndFilter(BaseModel):
    """AND 逻辑组合过滤器"""

    type: Literal["and"] = "and"
    filters: Sequence[ComparisonFilter | AndFilter]


Filter = ComparisonFilter | AndFilter

AndFilter.model_rebuild()


def where(**fields: str | int | float | bool | None) -> Filter:
    """Build an equality filter over one or more fields.

    ``where(team_id="t1", status="open")`` is shorthand for an AndFilter of
    ``ComparisonFilter.eq`` clauses.
    """
    clauses = [ComparisonFilter.eq(name, value) for name, value in fields.items()]
    if len(clauses) == 1:
        return clauses[0]
    return AndFilter(filters=clauses)
