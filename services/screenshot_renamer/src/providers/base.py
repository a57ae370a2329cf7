"""Rename provider combining a chat transport with the shared resolver."""

from collections.abc import Mapping
from typing import Protocol

import structlog

from ..models import ClassificationResult, DetailLevel, ProviderRequest
from .resolution import ChatTransport, ClassificationResolver

logger = structlog.get_logger()


class ClosableTransport(ChatTransport, Protocol):
    """Transport owning network resources."""

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""
        ...


class RenameProvider:
    """Classifies screenshots through one AI chat endpoint."""

    def __init__(
        self,
        transport: ClosableTransport,
        prompt: str,
        categories: Mapping[str, str],
        resolver: ClassificationResolver | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            transport: Endpoint adapter (OpenAI-compatible or Ollama)
            prompt: Final prompt sent with every image
            categories: Category names mapped to their descriptions
            resolver: Fallback chain; a default one is created when omitted

        """
        self.transport = transport
        self.prompt = prompt
        self.categories = dict(categories)
        self.resolver = resolver or ClassificationResolver()

    @property
    def name(self) -> str:
        """Name of the underlying transport."""
        return self.transport.name

    async def classify(
        self,
        image_data: str,
        detail_level: DetailLevel,
        media_type: str = "image/png",
    ) -> ClassificationResult:
        """Suggest a category and filename for an image.

        Args:
            image_data: Base64 encoded image bytes
            detail_level: Image resolution for the vision model
            media_type: MIME type of the image

        Returns:
            The model's result, or FAILURE_SENTINEL when nothing usable came back

        """
        request = ProviderRequest(
            image_data=image_data,
            detail_level=detail_level,
            prompt_text=self.prompt,
            category_descriptions=self.categories,
            media_type=media_type,
        )
        logger.info("Requesting classification", provider=self.name)
        return await self.resolver.resolve(self.transport, request)

    async def aclose(self) -> None:
        """Close the transport's HTTP client."""
        await self.transport.aclose()
