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

"""Filter DSL evaluation: SQLAlchemy compilation and in-memory matching."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from sqlalchemy import ColumnElement, and_, literal
from sqlmodel import SQLModel

from .dsl import AndFilter, ComparisonFilter, Filter, FilterOperator


def to_sqlalchemy(filter_: Filter, model_class: type[SQLModel]) -> ColumnElement[bool]:
    """将 Filter DSL 转换为 SQLAlchemy 表达式.

    Raises:
        ValueError: 如果字段名在 model_class 中不存在
    """
    if isinstance(filter_, AndFilter):
        if not filter_.filters:
            return literal(True)
        return and_(*(to_sqlalchemy(sub, model_class) for sub in filter_.filters))

    if not hasattr(model_class, filter_.field):
        raise ValueError(f"Field '{filter_.field}' not found in model {model_class.__name__}")
    column: ColumnElement[Any] = getattr(model_class, filter_.field)
    op = filter_.op
    value = filter_.value

    if op == FilterOperator.EQ:
        return column.is_(None) if value is None else column == value
    if op == FilterOperator.NEQ:
        return column.is_not(None) if value is None else column != value
    if op == FilterOperator.GTE:
        return column >= value
    if op == FilterOperator.LTE:
        return column <= value
    if op == FilterOperator.IN:
        if not isinstance(value, list):
            raise ValueError(f"Invalid value type for operator {op}: expected list, got {type(value).__name__}")
        return column.in_(value)
    raise ValueError(f"Unsupported operator: {op}")


def evaluate(filter_: Filter, record: Mapping[str, Any] | BaseModel) -> bool:
    """在 Python 中评估 Filter DSL."""
    if isinstance(filter_, AndFilter):
        return all(evaluate(sub, record) for sub in filter_.filters)

    if isinstance(record, BaseModel):
        field_value = getattr(record, filter_.field, None)
    else:
        field_value = record.get(filter_.field)
    op = filter_.op
    value = filter_.value

    if op == FilterOperator.EQ:
        return field_value == value
    if op == FilterOperator.NEQ:
        return field_value != value
    if op == FilterOperator.IN:
        if not isinstance(value, list):
            raise ValueError(f"Invalid value type for operator {op}: expected list, got {type(value).__name__}")
        return field_value in value
    if field_value is None or value is None:
        return False
    try:
        if op == FilterOperator.GTE:
            return field_value >= value
        if op == FilterOperator.LTE:
            return field_value <= value
    except TypeError:
        return False
    raise ValueError(f"Unsupported operator: {op}")
