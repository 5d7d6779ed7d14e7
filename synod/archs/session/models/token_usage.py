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

"""Token usage data model. Append-only."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel


class TokenUsageModel(SQLModel, table=True):
    """One inference turn's token and cost accounting."""

    __tablename__ = "token_usage"  # type: ignore[assignment]

    usage_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)
    agent_id: str = Field(index=True)
    task_id: str | None = Field(default=None)

    model: str
    input_tokens: int = Field(default=0)
    output_tokens: int = Field(default=0)
    cost_usd: float = Field(default=0.0)

    created_at: datetime = Field(default_factory=datetime.now)
