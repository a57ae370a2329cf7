"""AI rename providers."""

from ..config import Settings
from ..exceptions import ConfigurationError
from .base import RenameProvider
from .ollama_provider import OllamaTransport
from .openai_provider import OpenAITransport
from .resolution import ClassificationResolver

__all__ = [
    "ClassificationResolver",
    "OllamaTransport",
    "OpenAITransport",
    "RenameProvider",
    "create_provider",
]


def create_provider(settings: Settings) -> RenameProvider:
    """Build the provider selected in the settings.

    Raises:
        ConfigurationError: If the OpenAI provider is selected without an API key
    """
    options = settings.provider_settings
    transport: OpenAITransport | OllamaTransport

    if settings.provider == "openai":
        if settings.openai_api_key is None or not settings.openai_api_key.get_secret_value():
            raise ConfigurationError(
                "OPENAI_API_KEY not found. Set it in your shell or in a .env file with OPENAI_API_KEY=your_key",
            )
        transport = OpenAITransport(
            base_url=options.base_url,
            model=options.model,
            api_key=settings.openai_api_key.get_secret_value(),
            max_tokens=options.max_tokens,
            timeout=settings.request_timeout_seconds,
        )
    else:
        transport = OllamaTransport(
            base_url=options.base_url,
            model=options.model,
            max_tokens=options.max_tokens,
            timeout=settings.request_timeout_seconds,
        )

    return RenameProvider(transport, prompt=settings.final_prompt, categories=settings.categories)
