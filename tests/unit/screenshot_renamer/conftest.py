"""Fixtures for screenshot renamer unit tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from services.screenshot_renamer.src.exceptions import ProviderError
from services.screenshot_renamer.src.models import DetailLevel, FunctionCallReply, ProviderRequest


class CannedTransport:
    """Transport returning prepared replies instead of calling an endpoint."""

    name = "canned"

    def __init__(self, function_reply=None, text_reply=None):
        self.function_reply = function_reply
        self.text_reply = text_reply
        self.function_calls = 0
        self.text_calls = 0
        self.aclose = AsyncMock()

    async def request_function_call(self, request):
        self.function_calls += 1
        if isinstance(self.function_reply, Exception):
            raise self.function_reply
        return self.function_reply

    async def request_text(self, request):
        self.text_calls += 1
        if isinstance(self.text_reply, Exception):
            raise self.text_reply
        return self.text_reply


@pytest.fixture
def canned_transport():
    """Factory for canned transports."""

    def _make(function_reply=None, text_reply=None):
        if function_reply is None:
            function_reply = FunctionCallReply(finish_reason="stop")
        return CannedTransport(function_reply=function_reply, text_reply=text_reply)

    return _make


@pytest.fixture
def provider_request(categories):
    """Provide a classification request with a tiny image."""
    return ProviderRequest(
        image_data="aW1hZ2U=",
        detail_level=DetailLevel.LOW,
        prompt_text="Suggest a short file name",
        category_descriptions=categories,
    )


@pytest.fixture
def provider_error():
    """Provide a transport failure."""
    return ProviderError("connection refused")


@pytest.fixture
def mock_provider():
    """Create a mock rename provider."""
    provider = MagicMock()
    provider.name = "mock"
    provider.classify = AsyncMock()
    provider.aclose = AsyncMock()
    return provider
