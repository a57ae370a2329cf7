"""Transport for the Ollama chat API."""

from typing import Any

import httpx
import structlog

from ..exceptions import ProviderError
from ..models import FunctionCallReply, ProviderRequest
from .schema import JSON_ONLY_INSTRUCTION, RENAME_TOOL

logger = structlog.get_logger()

FUNCTION_CALL_SYSTEM_PROMPT = (
    "Please analyze this image and suggest a filename. You MUST use the rename_screenshot function to return your answer."
)
FREE_TEXT_SYSTEM_PROMPT = (
    "Please analyze this image and respond with JSON containing 'filename' and optionally 'category'."
)


def _mapping(value: Any, part: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProviderError(f"Unexpected {part} structure from Ollama API")
    return value


class OllamaTransport:
    """Ollama ``/api/chat`` with a system, user and image message triple.

    Ollama takes raw base64 images instead of data URLs and has no notion of
    a detail level, so ``request.detail_level`` is ignored here.
    """

    name = "ollama"

    def __init__(
        self,
        base_url: str,
        model: str,
        max_tokens: int = 30,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Ollama host, e.g. http://localhost:11434
            model: Vision-capable model name
            max_tokens: Value for ``options.num_predict``
            timeout: Per-request timeout in seconds
            client: Preconfigured client (used by tests)

        """
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=httpx.Timeout(timeout),
        )
        logger.info("Initialized Ollama provider", model=model, base_url=base_url)

    def _messages(self, system_prompt: str, prompt: str, request: ProviderRequest) -> list[dict[str, Any]]:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
            {"role": "user", "content": "", "images": [request.image_data]},
        ]

    async def _chat(self, payload: dict[str, Any]) -> dict[str, Any]:
        payload = {
            "model": self.model,
            "stream": False,
            "options": {"num_predict": self.max_tokens},
            **payload,
        }
        try:
            response = await self.client.post("api/chat", json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise ProviderError(f"Ollama API error: {e}") from e
        except ValueError as e:
            raise ProviderError(f"Unexpected response from Ollama API: {e}") from e

        if not isinstance(body, dict):
            raise ProviderError("Unexpected response structure from Ollama API")
        return body

    async def request_function_call(self, request: ProviderRequest) -> FunctionCallReply:
        body = await self._chat(
            {
                "messages": self._messages(FUNCTION_CALL_SYSTEM_PROMPT, request.prompt_text, request),
                "tools": [RENAME_TOOL],
            },
        )
        message = _mapping(body.get("message"), "message")
        tool_calls = message.get("tool_calls") or []
        if not isinstance(tool_calls, list):
            raise ProviderError("Unexpected tool_calls structure from Ollama API")
        function = _mapping(_mapping(tool_calls[0], "tool call").get("function"), "function") if tool_calls else {}

        # tool calls are reported with done_reason "stop"
        return FunctionCallReply(
            finish_reason=body.get("done_reason", "stop" if body.get("done") else None),
            function_name=function.get("name"),
            arguments=function.get("arguments"),
        )

    async def request_text(self, request: ProviderRequest) -> str | None:
        body = await self._chat(
            {
                "messages": self._messages(
                    FREE_TEXT_SYSTEM_PROMPT,
                    f"{request.prompt_text}\n{JSON_ONLY_INSTRUCTION}",
                    request,
                ),
            },
        )
        content = _mapping(body.get("message"), "message").get("content")
        return content if isinstance(content, str) else None

    async def aclose(self) -> None:
        await self.client.aclose()
