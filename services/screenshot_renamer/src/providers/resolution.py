"""Fallback chain that reduces chat replies to a classification result."""

import json
from collections.abc import Mapping
from typing import Any, Protocol

import structlog

from ..exceptions import ProviderError
from ..models import FAILURE_SENTINEL, ClassificationResult, FunctionCallReply, ProviderRequest
from .extraction import extract_json_record, is_valid_classification
from .schema import RENAME_FUNCTION_NAME

logger = structlog.get_logger()

# finish reasons that mean the model completed its answer
ACCEPTED_FINISH_REASONS = frozenset({"stop", "tool_calls", "function_call"})


class ChatTransport(Protocol):
    """Request/response shape of one AI chat endpoint."""

    name: str

    async def request_function_call(self, request: ProviderRequest) -> FunctionCallReply:
        """Ask the model to call the rename function."""
        ...

    async def request_text(self, request: ProviderRequest) -> str | None:
        """Ask the model for a plain-text JSON answer."""
        ...


def _parse_arguments(arguments: str | Mapping[str, Any] | None) -> dict[str, Any] | None:
    if isinstance(arguments, Mapping):
        return dict(arguments)
    if not isinstance(arguments, str):
        return None
    try:
        parsed = json.loads(arguments)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


class ClassificationResolver:
    """Two-stage resolution: structured function call, then free text.

    Each stage only runs when the one before it failed. The outcome is either
    the first validated record or ``FAILURE_SENTINEL``; provider errors are
    absorbed here and never raised to the caller.
    """

    async def resolve(self, transport: ChatTransport, request: ProviderRequest) -> ClassificationResult:
        """Resolve a classification for one request.

        Args:
            transport: Endpoint adapter issuing the chat requests
            request: Image and prompt to classify

        Returns:
            The model's record, or FAILURE_SENTINEL
        """
        result = await self._structured_stage(transport, request)
        if result is not None:
            return result

        logger.info("Function calling failed, trying free-text fallback", provider=transport.name)
        return await self._free_text_stage(transport, request)

    async def _structured_stage(
        self,
        transport: ChatTransport,
        request: ProviderRequest,
    ) -> ClassificationResult | None:
        try:
            reply = await transport.request_function_call(request)
        except ProviderError as e:
            logger.warning("Function call request failed", provider=transport.name, error=str(e))
            return None

        if reply.finish_reason not in ACCEPTED_FINISH_REASONS:
            logger.warning("Model stopped generating", provider=transport.name, finish_reason=reply.finish_reason)
            return None

        if reply.function_name != RENAME_FUNCTION_NAME:
            logger.warning(
                "Function call not triggered or has wrong name",
                provider=transport.name,
                function_name=reply.function_name,
            )
            return None

        record = _parse_arguments(reply.arguments)
        if record is None:
            logger.warning("Function arguments are not a JSON object", provider=transport.name)
            return None

        if not is_valid_classification(record):
            logger.warning("Invalid function call result", provider=transport.name, record=record)
            return None

        return ClassificationResult.from_record(record)

    async def _free_text_stage(self, transport: ChatTransport, request: ProviderRequest) -> ClassificationResult:
        try:
            text = await transport.request_text(request)
        except ProviderError as e:
            logger.warning("Free-text request failed", provider=transport.name, error=str(e))
            return FAILURE_SENTINEL

        if not text or not text.strip():
            logger.warning("Model returned no content", provider=transport.name)
            return FAILURE_SENTINEL

        logger.debug("Received free-text reply", provider=transport.name, reply=text[:100])

        record = extract_json_record(text)
        if record is None:
            logger.warning("Failed to extract JSON from model reply", provider=transport.name)
            return FAILURE_SENTINEL

        if not is_valid_classification(record):
            logger.warning("Extracted JSON is invalid", provider=transport.name, record=record)
            return FAILURE_SENTINEL

        return ClassificationResult.from_record(record)
