"""Ollama responder - streams chat replies into the event channel."""

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from aura.config import Config, get_config
from aura.events import ActionRequest, ActionSignal, EventChannel, FragmentReceived, TurnCompleted
from aura.exceptions import ConfigurationError, ResponderAPIError
from aura.logging import get_logger
from aura.tool_intent import DEFAULT_ACTION_FIELDS, extract_action

log = get_logger(__name__)


OLLAMA_NATIVE_BASE_URL = "http://127.0.0.1:11434"


@dataclass
class ChatMessage:
    """A message in the responder's chat history."""

    role: str  # "system", "user", "assistant"
    content: str


class Responder(ABC):
    """Generates assistant turns.

    ``submit`` returns once the request has been accepted; the reply arrives
    later as FragmentReceived / ActionSignal / TurnCompleted events.
    """

    @abstractmethod
    async def submit(self, message: str) -> None:
        """Start a turn for ``message``.

        Raises:
            ResponderError if the request cannot be delivered
        """
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None


class OllamaResponder(Responder):
    """Streaming responder backed by the Ollama chat API."""

    def __init__(
        self,
        channel: EventChannel,
        model: str = "qwen2.5:0.5b",
        base_url: str = OLLAMA_NATIVE_BASE_URL,
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 120.0,
        api_key: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        action_fields: Sequence[str] = DEFAULT_ACTION_FIELDS,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the responder.

        Args:
            channel: Channel receiving the turn events
            model: Ollama model name (e.g., 'qwen2.5:0.5b', 'llama3.2')
            base_url: Ollama API base URL
            system_prompt: First message of the chat history
            temperature: Sampling temperature
            max_tokens: Max tokens to generate
            timeout: HTTP timeout in seconds
            api_key: Optional API key (Ollama usually doesn't need one locally)
            tools: Optional function definitions offered to the model
            action_fields: Record fields naming the tool in a JSON reply
            client: Optional preconfigured HTTP client
        """
        self.channel = channel
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = api_key
        self.tools = list(tools or [])
        self.action_fields = tuple(action_fields)
        self.history: list[ChatMessage] = []
        if system_prompt:
            self.history.append(ChatMessage(role="system", content=system_prompt))

        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
        )
        self._relay_task: asyncio.Task[None] | None = None

    def _build_body(self) -> dict[str, Any]:
        options: dict[str, Any] = {"temperature": self.temperature}
        if self.max_tokens:
            options["num_predict"] = self.max_tokens

        body: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in self.history],
            "stream": True,
            "options": options,
        }
        if self.tools:
            body["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.get("name", ""),
                        "description": tool.get("description", ""),
                        "parameters": tool.get("parameters", {}),
                    },
                }
                for tool in self.tools
                if tool.get("name")
            ]
        return body

    async def submit(self, message: str) -> None:
        """Open the chat stream and hand it to a background relay."""
        if self._relay_task is not None and not self._relay_task.done():
            raise ResponderAPIError("A reply is already streaming")

        self.history.append(ChatMessage(role="user", content=message))
        url = f"{self.base_url}/api/chat"
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        request = self.client.build_request("POST", url, json=self._build_body(), headers=headers)
        try:
            log.debug("Calling Ollama", model=self.model, url=url, msg_count=len(self.history))
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            self.history.pop()
            raise ResponderAPIError(f"Ollama connection error: {e}") from e

        if not response.is_success:
            error_text = (await response.aread()).decode("utf-8", errors="replace")
            await response.aclose()
            self.history.pop()
            raise ResponderAPIError(
                f"Ollama API error {response.status_code}: {error_text}",
                status_code=response.status_code,
            )

        self._relay_task = asyncio.create_task(self._relay(response))

    @staticmethod
    def _native_tool_call(message: dict[str, Any]) -> ActionRequest | None:
        tool_calls = message.get("tool_calls") or []
        if not isinstance(tool_calls, list):
            return None
        for call in tool_calls:
            function = call.get("function") if isinstance(call, dict) else None
            if not isinstance(function, dict):
                continue
            name = function.get("name")
            if not isinstance(name, str) or not name:
                continue
            arguments = function.get("arguments") or {}
            if isinstance(arguments, str):
                try:
                    arguments = json.loads(arguments)
                except json.JSONDecodeError:
                    pass
            if not isinstance(arguments, dict):
                arguments = {"raw": arguments}
            return ActionRequest(tool_name=name, params=dict(arguments))
        return None

    async def _relay(self, response: httpx.Response) -> None:
        """Emit one turn's events from an open streaming response."""
        content = ""
        action: ActionRequest | None = None
        try:
            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                try:
                    chunk = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(chunk, dict):
                    log.debug("Skipping non-object stream line", line=line[:200])
                    continue
                message = chunk.get("message") or {}
                if not isinstance(message, dict):
                    message = {}
                text = message.get("content") or ""
                if text and isinstance(text, str):
                    content += text
                    self.channel.emit(FragmentReceived(text))
                if action is None:
                    action = self._native_tool_call(message)
                if chunk.get("done"):
                    break
        except httpx.HTTPError as e:
            log.warning("Ollama stream interrupted", error=str(e))
        except Exception as e:
            log.error("Ollama stream relay failed", error=str(e))
        finally:
            await response.aclose()
            self.history.append(ChatMessage(role="assistant", content=content))
            if action is None:
                action = extract_action(content, self.action_fields)
            if action is not None:
                self.channel.emit(ActionSignal(action.tool_name, action.params))
            self.channel.emit(TurnCompleted())

    async def wait_for_reply(self) -> None:
        """Wait for the reply currently streaming, if any."""
        if self._relay_task is not None:
            await self._relay_task

    async def close(self) -> None:
        """Cancel any streaming reply and close the HTTP client."""
        if self._relay_task is not None and not self._relay_task.done():
            self._relay_task.cancel()
            try:
                await self._relay_task
            except asyncio.CancelledError:
                pass
        await self.client.aclose()


def create_responder(
    channel: EventChannel,
    config: Config | None = None,
    tools: list[dict[str, Any]] | None = None,
) -> Responder:
    """Create the configured responder.

    Raises:
        ConfigurationError for providers other than ollama
    """
    cfg = config or get_config()
    provider = cfg.model.provider.strip().lower()
    if provider != "ollama":
        raise ConfigurationError(f"Provider '{cfg.model.provider}' not supported. Use 'ollama'.")

    return OllamaResponder(
        channel,
        model=cfg.model.model,
        base_url=cfg.model.base_url or OLLAMA_NATIVE_BASE_URL,
        system_prompt=cfg.model.system_prompt,
        temperature=cfg.model.temperature,
        max_tokens=cfg.model.max_tokens,
        timeout=cfg.model.timeout,
        api_key=cfg.model.api_key or None,
        tools=tools,
        action_fields=cfg.tools.action_fields,
    )
