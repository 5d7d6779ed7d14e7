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

"""Escalation data model.

An escalation is either a plain request for human attention or the durable
side of a vote. While a vote is being collected the row is ``in_review``;
the ballots themselves live in memory until the vote completes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class EscalationModel(SQLModel, table=True):
    """Escalation / vote record.

    Attributes:
        agent_id: Agent (or human) that raised the escalation or called the vote.
        reason: Free text; votes use ``Vote: <topic>``.
        status: open | in_review | resolved | dismissed.
        vote_options: Options offered when this escalation is a vote.
        votes: Final ballots (voter id -> option), written when the vote completes.
        resolution: Resolution text once resolved.
    """

    __tablename__ = "escalations"  # type: ignore[assignment]

    escalation_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)
    channel_id: str
    agent_id: str

    reason: str
    message_id: str | None = Field(default=None)
    status: str = Field(default="open")
    vote_options: list[str] | None = Field(default=None, sa_column=Column(JSON))
    votes: dict[str, str] | None = Field(default=None, sa_column=Column(JSON))
    resolution: str | None = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.now)
    resolved_at: datetime | None = Field(default=None)
