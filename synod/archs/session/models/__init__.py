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

"""Store models.

All models inherit directly from SQLModel:
- TeamModel: team configuration and status
- PersonaModel / AgentModel: team members
- ChannelModel / MessageModel: message bus log
- TaskModel: task board
- EscalationModel: escalations and votes
- TokenUsageModel: usage ledger
- LearningModel: team learnings
- ActivityLogModel: team activity log
"""

from .activity_log import ActivityLogModel
from .agent import AgentModel, PersonaModel
from .channel import ChannelModel, MessageModel
from .escalation import EscalationModel
from .learning import LearningModel
from .task import TaskModel
from .team import TeamModel
from .token_usage import TokenUsageModel

ALL_MODELS = [
    TeamModel,
    PersonaModel,
    AgentModel,
    ChannelModel,
    MessageModel,
    TaskModel,
    EscalationModel,
    TokenUsageModel,
    LearningModel,
    ActivityLogModel,
]

__all__ = [
    "ALL_MODELS",
    "TeamModel",
    "PersonaModel",
    "AgentModel",
    "ChannelModel",
    "MessageModel",
    "TaskModel",
    "EscalationModel",
    "TokenUsageModel",
    "LearningModel",
    "ActivityLogModel",
]
