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

"""Inference sessions backed by the Anthropic Messages API.

Each pulled user message starts a turn. A turn streams one response at a
time; while the model asks for tools, tool results are sent back and the
turn continues. Usage from every response in the turn is summed into one
``TurnResultEvent``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

import anthropic
from anthropic.types import Message

from synod.archs.config import ConfigError, ModelPrice, SynodConfig
from synod.archs.orchestration.types import ToolResult

from .session import (
    AssistantTurnEvent,
    InferenceEvent,
    InferenceProvider,
    InferenceSession,
    MessageCursor,
    SessionContext,
    StreamDeltaEvent,
    TurnResultEvent,
)

logger = logging.getLogger(__name__)


def compute_cost(prices: dict[str, ModelPrice], model: str, input_tokens: int, output_tokens: int) -> float:
    price = prices.get(model)
    if price is None:
        logger.debug(f"No price configured for model {model}; recording zero cost")
        return 0.0
    return (input_tokens * price.input_per_mtok + output_tokens * price.output_per_mtok) / 1_000_000


def _content_param(message: Message) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = []
    for block in message.content:
        if block.type == "text":
            blocks.append({"type": "text", "text": block.text})
        elif block.type == "tool_use":
            blocks.append({"type": "tool_use", "id": block.id, "name": block.name, "input": block.input})
    return blocks


class AnthropicSession(InferenceSession):
    def __init__(
        self,
        *,
        client: anthropic.AsyncAnthropic,
        context: SessionContext,
        cursor: MessageCursor,
        max_tokens: int,
        prices: dict[str, ModelPrice],
    ) -> None:
        self.session_token = str(uuid.uuid4())
        self._client = client
        self._context = context
        self._cursor = cursor
        self._max_tokens = max_tokens
        self._prices = prices
        self._messages: list[dict[str, Any]] = []
        self._request: asyncio.Task[Message] | None = None
        self._deltas: asyncio.Queue[str | None] | None = None
        self._aborted = False

    def abort(self) -> None:
        if self._aborted:
            return
        self._aborted = True
        if self._request is not None and not self._request.done():
            self._request.cancel()
        # A request cancelled before its first step never closes the delta stream
        if self._deltas is not None:
            self._deltas.put_nowait(None)

    async def events(self) -> AsyncIterator[InferenceEvent]:
        while not self._aborted:
            content = await self._cursor.next_message()
            if content is None or self._aborted:
                return
            self._messages.append({"role": "user", "content": content})

            input_tokens = output_tokens = 0
            while True:
                deltas: asyncio.Queue[str | None] = asyncio.Queue()
                self._deltas = deltas
                self._request = asyncio.get_running_loop().create_task(self._stream(deltas))
                while (delta := await deltas.get()) is not None:
                    yield StreamDeltaEvent(text=delta)

                try:
                    message = await self._request
                except asyncio.CancelledError:
                    if self._aborted:
                        return
                    raise
                except anthropic.APIError as e:
                    yield TurnResultEvent(success=False, model=self._context.model, errors=[str(e)])
                    return

                input_tokens += message.usage.input_tokens
                output_tokens += message.usage.output_tokens
                tool_uses = [b for b in message.content if b.type == "tool_use"]
                yield AssistantTurnEvent(
                    text_blocks=[b.text for b in message.content if b.type == "text"],
                    tool_calls=[b.name for b in tool_uses],
                )
                self._messages.append({"role": "assistant", "content": _content_param(message)})
                if not tool_uses or self._aborted:
                    break

                results = []
                for block in tool_uses:
                    result = await self._call_tool(block.name, block.input)
                    results.append(
                        {
                            "type": "tool_result",
                            "tool_use_id": block.id,
                            "content": result.text,
                            "is_error": result.is_error,
                        }
                    )
                self._messages.append({"role": "user", "content": results})

            yield TurnResultEvent(
                success=True,
                model=self._context.model,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost_usd=compute_cost(self._prices, self._context.model, input_tokens, output_tokens),
            )

    async def _stream(self, deltas: asyncio.Queue[str | None]) -> Message:
        request: dict[str, Any] = {
            "model": self._context.model,
            "max_tokens": self._max_tokens,
            "system": self._context.system_prompt,
            "messages": self._messages,
        }
        if self._context.tools is not None:
            request["tools"] = [d.to_anthropic() for d in self._context.tools.definitions()]
        try:
            async with self._client.messages.stream(**request) as stream:
                async for text in stream.text_stream:
                    deltas.put_nowait(text)
                return await stream.get_final_message()
        finally:
            deltas.put_nowait(None)

    async def _call_tool(self, name: str, arguments: object) -> ToolResult:
        if self._context.tools is None:
            return ToolResult.error(f"Unknown tool: {name}")
        if not isinstance(arguments, dict):
            return ToolResult.error(f"Invalid arguments for {name}")
        logger.debug(f"Agent {self._context.agent_id} calling {name}")
        return await self._context.tools.call(name, arguments)


class AnthropicInferenceProvider(InferenceProvider):
    """Opens one ``AnthropicSession`` per worker; the client is shared."""

    def __init__(self, config: SynodConfig, client: anthropic.AsyncAnthropic | None = None) -> None:
        self._config = config
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            api_key = self._config.resolve_api_key()
            if not api_key:
                raise ConfigError("No Anthropic API key configured (set api_key or ANTHROPIC_API_KEY)")
            self._client = anthropic.AsyncAnthropic(api_key=api_key)
        return self._client

    def open_session(self, context: SessionContext, cursor: MessageCursor) -> InferenceSession:
        return AnthropicSession(
            client=self.client,
            context=context,
            cursor=cursor,
            max_tokens=self._config.max_output_tokens,
            prices=self._config.model_prices,
        )
