"""
Thin client for an OpenAI-compatible chat-completions gateway.

Both the classifier and outlet discovery talk to the same gateway. This
module only handles transport and extraction of the assistant message;
callers own prompt construction and payload validation.
"""

import json
import logging
from typing import Any

from jet_tracker.config.settings import Settings
from jet_tracker.errors import ClassificationError, ConfigurationError
from jet_tracker.ingestion.http_client import HTTPClient, RetryConfig

logger = logging.getLogger(__name__)


class ChatGateway:
    """
    Async chat-completions client.

    Must be used as an async context manager; the underlying HTTPClient is
    opened on enter and closed on exit.

    Args:
        api_url: Chat-completions endpoint
        api_key: Bearer token
        model: Model identifier sent with every request
        timeout: Per-request timeout in seconds
        retry_config: Backoff policy for 429/5xx/transport errors
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self._api_url = api_url
        self._api_key = api_key
        self.model = model
        self._http = HTTPClient(retry_config, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatGateway":
        """
        Build a gateway from settings.

        Raises:
            ConfigurationError: If no gateway API key is configured.
        """
        if settings.classifier_api_key is None:
            raise ConfigurationError("CLASSIFIER_API_KEY is not configured")
        return cls(
            api_url=settings.classifier_api_url,
            api_key=settings.classifier_api_key.get_secret_value(),
            model=settings.classifier_model,
            timeout=settings.classifier_timeout_seconds,
            retry_config=RetryConfig.from_settings(settings),
        )

    async def __aenter__(self) -> "ChatGateway":
        await self._http.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self._http.__aexit__(exc_type, exc_val, exc_tb)

    async def chat(
        self,
        messages: list[dict[str, str]],
        tools: list[dict[str, Any]] | None = None,
        tool_name: str | None = None,
    ) -> dict[str, Any]:
        """
        Send one chat request and return the first choice's message.

        Args:
            messages: Chat messages
            tools: Tool definitions
            tool_name: Force a call to this tool

        Raises:
            HTTPClientError / RateLimitError / QuotaExceededError: transport
            ClassificationError: Response has no message
        """
        body: dict[str, Any] = {"model": self.model, "messages": messages}
        if tools:
            body["tools"] = tools
        if tool_name:
            body["tool_choice"] = {"type": "function", "function": {"name": tool_name}}

        response = await self._http.post(
            self._api_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            json_body=body,
        )

        try:
            return response.json()["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ClassificationError(f"Malformed gateway response: {e}") from e

    async def call_tool(
        self,
        messages: list[dict[str, str]],
        tool: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Force a single tool call and return its decoded arguments.

        Raises:
            ClassificationError: No tool call, or arguments are not a JSON object
        """
        name = tool["function"]["name"]
        message = await self.chat(messages, tools=[tool], tool_name=name)

        try:
            arguments = message["tool_calls"][0]["function"]["arguments"]
        except (KeyError, IndexError, TypeError) as e:
            raise ClassificationError(f"No {name} tool call in response") from e

        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except json.JSONDecodeError as e:
                raise ClassificationError(f"{name} arguments are not valid JSON") from e

        if not isinstance(arguments, dict):
            raise ClassificationError(f"{name} arguments must be an object")
        return arguments
