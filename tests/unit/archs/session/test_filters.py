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

"""Unit tests for the filter DSL and its two evaluators."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st
from sqlalchemy.dialects import sqlite

from synod.archs.session.models import MessageModel, TaskModel
from synod.archs.session.orm import AndFilter, ComparisonFilter, FilterOperator, evaluate, to_sqlalchemy, where


class TestWhere:
    def test_single_field_is_plain_comparison(self):
        f = where(team_id="t1")
        assert isinstance(f, ComparisonFilter)
        assert f.op == FilterOperator.EQ

    def test_multiple_fields_are_anded(self):
        f = where(team_id="t1", status="todo")
        assert isinstance(f, AndFilter)
        assert len(f.filters) == 2


class TestEvaluate:
    def test_eq_and_neq(self):
        task = TaskModel(task_id="x", team_id="t1", title="Write docs")
        assert evaluate(ComparisonFilter.eq("team_id", "t1"), task)
        assert not evaluate(ComparisonFilter.neq("team_id", "t1"), task)

    def test_in_and_range(self):
        record = {"sequence": 5, "status": "open"}
        assert evaluate(ComparisonFilter.in_("status", ["open", "in_review"]), record)
        assert evaluate(AndFilter(filters=[ComparisonFilter.gte("sequence", 5), ComparisonFilter.lte("sequence", 5)]), record)
        assert not evaluate(ComparisonFilter.gte("sequence", 6), record)

    def test_empty_and_matches_everything(self):
        assert evaluate(AndFilter(filters=[]), {"anything": 1})

    @given(st.integers(), st.integers())
    def test_gte_matches_python_comparison(self, value, bound):
        assert evaluate(ComparisonFilter.gte("n", bound), {"n": value}) == (value >= bound)


class TestToSqlalchemy:
    def test_compiles_and_filter(self):
        clause = to_sqlalchemy(where(team_id="t1", channel_id="c1"), MessageModel)
        sql = str(clause.compile(dialect=sqlite.dialect()))
        assert "team_id" in sql
        assert "channel_id" in sql

    def test_eq_none_becomes_is_null(self):
        clause = to_sqlalchemy(ComparisonFilter.eq("thread_id", None), MessageModel)
        assert "IS NULL" in str(clause.compile(dialect=sqlite.dialect()))

    def test_unknown_field_raises(self):
        with pytest.raises(ValueError, match="not found"):
            to_sqlalchemy(ComparisonFilter.eq("nope", 1), MessageModel)
