"""Transport for OpenAI-compatible chat completion endpoints."""

from typing import Any

import httpx
import structlog

from ..exceptions import ProviderError
from ..models import FunctionCallReply, ProviderRequest
from .schema import JSON_ONLY_INSTRUCTION, RENAME_FUNCTION_NAME, RENAME_TOOL

logger = structlog.get_logger()


def _mapping(value: Any, part: str) -> dict[str, Any]:
    """Return a reply part as a dict; a missing part is an empty dict.

    Raises:
        ProviderError: If the part is present but not a JSON object
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProviderError(f"Unexpected {part} structure from OpenAI API")
    return value


class OpenAITransport:
    """Chat completions with OpenAI-style function calling."""

    name = "openai"

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str,
        max_tokens: int = 30,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: API root, e.g. https://api.openai.com/v1
            model: Vision-capable chat model name
            api_key: Bearer token for the endpoint
            max_tokens: Completion token limit per request
            timeout: Per-request timeout in seconds
            client: Preconfigured client (used by tests)

        """
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=httpx.Timeout(timeout),
            headers={"Authorization": f"Bearer {api_key}"},
        )
        logger.info("Initialized OpenAI provider", model=model, base_url=base_url)

    def _messages(self, prompt: str, request: ProviderRequest) -> list[dict[str, Any]]:
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": request.data_url, "detail": request.detail_level.value},
                    },
                ],
            },
        ]

    async def _complete(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.post("chat/completions", json=payload)
            response.raise_for_status()
            choice = response.json()["choices"][0]
        except httpx.HTTPError as e:
            raise ProviderError(f"OpenAI API error: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Unexpected response from OpenAI API: {e}") from e

        if not isinstance(choice, dict):
            raise ProviderError("Unexpected choice structure from OpenAI API")
        return choice

    async def request_function_call(self, request: ProviderRequest) -> FunctionCallReply:
        payload = {
            "model": self.model,
            "messages": self._messages(request.prompt_text, request),
            "tools": [RENAME_TOOL],
            "tool_choice": {"type": "function", "function": {"name": RENAME_FUNCTION_NAME}},
            "max_tokens": self.max_tokens,
        }
        choice = await self._complete(payload)
        message = _mapping(choice.get("message"), "message")

        tool_calls = message.get("tool_calls") or []
        if not isinstance(tool_calls, list):
            raise ProviderError("Unexpected tool_calls structure from OpenAI API")
        if tool_calls:
            function = _mapping(_mapping(tool_calls[0], "tool call").get("function"), "function")
        else:
            # legacy "functions" API shape
            function = _mapping(message.get("function_call"), "function_call")

        return FunctionCallReply(
            finish_reason=choice.get("finish_reason"),
            function_name=function.get("name"),
            arguments=function.get("arguments"),
        )

    async def request_text(self, request: ProviderRequest) -> str | None:
        payload = {
            "model": self.model,
            "messages": self._messages(f"{request.prompt_text}\n{JSON_ONLY_INSTRUCTION}", request),
            "max_tokens": self.max_tokens,
        }
        choice = await self._complete(payload)
        content = _mapping(choice.get("message"), "message").get("content")
        return content if isinstance(content, str) else None

    async def aclose(self) -> None:
        await self.client.aclose()
