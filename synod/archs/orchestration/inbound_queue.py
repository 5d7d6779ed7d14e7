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

"""Bounded inbound queue for one worker.

Entries past ``max_size`` evict the oldest. When a consumer drains a
backlog longer than ``aggregation_threshold``, the backlog is collapsed:
system and escalation entries are delivered one by one, older regular
messages become a single catch-up digest, and the newest ``keep_recent``
regular messages are delivered verbatim.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime

from .types import QueueKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueEntry:
    content: str
    kind: QueueKind = "message"
    enqueued_at: datetime = field(default_factory=datetime.now)


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


class InboundQueue:
    def __init__(
        self,
        *,
        max_size: int = 50,
        aggregation_threshold: int = 10,
        keep_recent: int = 3,
        truncate_length: int = 100,
    ) -> None:
        self._max_size = max_size
        self._aggregation_threshold = aggregation_threshold
        self._keep_recent = keep_recent
        self._truncate_length = truncate_length
        self._entries: deque[QueueEntry] = deque()
        self.evicted = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def push(self, content: str, kind: QueueKind = "message") -> None:
        self._entries.append(QueueEntry(content=content, kind=kind))
        while len(self._entries) > self._max_size:
            dropped = self._entries.popleft()
            self.evicted += 1
            logger.debug(f"Inbound queue full; evicted {dropped.kind} entry from {dropped.enqueued_at:%H:%M:%S}")

    def peek(self) -> list[QueueEntry]:
        return list(self._entries)

    def drain(self) -> list[str]:
        """Remove every pending entry and return the texts to deliver, in order."""
        entries = list(self._entries)
        self._entries.clear()
        if len(entries) <= self._aggregation_threshold:
            return [entry.content for entry in entries]

        priority = [e for e in entries if e.kind != "message"]
        regular = [e for e in entries if e.kind == "message"]
        split = max(len(regular) - self._keep_recent, 0)
        older, recent = regular[:split], regular[split:]

        deliveries = [e.content for e in priority]
        if older:
            deliveries.append(self._digest(older))
        deliveries.extend(e.content for e in recent)
        logger.debug(
            f"Collapsed {len(entries)} queued entries into {len(deliveries)} deliveries "
            f"({len(priority)} priority, {len(older)} digested)"
        )
        return deliveries

    def _digest(self, entries: list[QueueEntry]) -> str:
        lines = [f"- {_truncate(e.content, self._truncate_length)}" for e in entries]
        header = f"[Catch-up] {len(entries)} earlier messages arrived while you were busy (truncated):"
        return "\n".join([header, *lines])
