"""Configuration management for the screenshot renamer.

Settings come from, in order of precedence: CLI overrides, the JSON user config
file, ``SCREENSHOT_RENAMER_*`` environment variables (and ``.env``), and the
defaults below.
"""

import json
import re
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import AliasChoices, BaseModel, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .models import DetailLevel

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = Path("~/.config/screenshot-renamer/config.json")

DEFAULT_PROMPT = """Suggest a short and concise file name in 1-3 words.
If you can identify the software or website being used, add that as part of the new name.
For example, terminal, youtube, photoshop, etc.
Do not include file extension such as .png, .jpg or .txt. Use dash to connect words."""

JSON_FORMAT_PROMPT = "Return as structured json in the format { category, filename } and nothing else."

# macOS default screenshot naming
DEFAULT_FILE_NAME_REGEX = r"/^Screenshot.*\.png$/i"

DEFAULT_CATEGORIES: dict[str, str] = {
    "code": "the majority of the text is computer code",
    "reference": "the image is a photograph",
    "text": "the image is text-heavy paragraph(s)",
    "web": "the image shows a webpage",
    "youtube": "the image has youtube interface",
    "other": "the image doesn't belong to other categories",
}

BACKUP_DIR_NAME = "original"

# camelCase keys accepted in user config files
_KEY_ALIASES = {
    "fileNameRegex": "file_name_regex",
    "baseURL": "base_url",
    "baseUrl": "base_url",
    "maxTokens": "max_tokens",
}

_REGEX_LITERAL = re.compile(r"^/(.+)/([gimyus]*)$", re.DOTALL)
_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": re.UNICODE,
    # global and sticky have no meaning for a single search
    "g": 0,
    "y": 0,
}

ProviderName = Literal["openai", "ollama"]


class ProviderSettings(BaseModel):
    """Connection options shared by both providers."""

    base_url: str
    model: str
    max_tokens: int = Field(default=30, gt=0)


class OllamaSettings(ProviderSettings):
    base_url: str = "http://localhost:11434"
    model: str = "llava"


class OpenAISettings(ProviderSettings):
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SCREENSHOT_RENAMER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    detail: DetailLevel = Field(default=DetailLevel.LOW, description="Image resolution used for inference")
    provider: ProviderName = Field(default="ollama", description="AI provider")
    watchdir: Path = Field(default=Path("~/Desktop"), description="Folder to watch screenshots from")
    outdir: Path | None = Field(default=None, description="Folder renamed screenshots are saved to")
    prompt: str = Field(default=DEFAULT_PROMPT, description="Filename suggestion prompt")
    file_name_regex: str = Field(default=DEFAULT_FILE_NAME_REGEX, description="Pattern as '/pattern/flags'")
    categories: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_CATEGORIES))

    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("openai_api_key", "SCREENSHOT_RENAMER_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )

    request_timeout_seconds: float = Field(default=60.0, gt=0, description="HTTP timeout per provider request")
    classify_timeout_seconds: float = Field(default=120.0, gt=0, description="Upper bound for one classification")
    write_stability_seconds: float = Field(default=2.0, ge=0, description="Size must be stable this long")
    write_poll_interval_seconds: float = Field(default=0.5, gt=0)
    log_level: str = Field(default="INFO")

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("watchdir", "outdir")
    @classmethod
    def _expand_user(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None

    @property
    def output_dir(self) -> Path:
        """Output folder, ``<watchdir>/Screenshots`` unless configured."""
        return self.outdir or self.watchdir / "Screenshots"

    @property
    def backup_dir(self) -> Path:
        return self.output_dir / BACKUP_DIR_NAME

    @property
    def provider_settings(self) -> ProviderSettings:
        return self.openai if self.provider == "openai" else self.ollama

    @property
    def final_prompt(self) -> str:
        """Filename prompt followed by the category rules and the JSON instruction."""
        rules = "\n".join(
            f'If {description}, set it to "{name}"' for name, description in self.categories.items()
        )
        category_prompt = f"Identify the image's category from the following rule:\n{rules}"
        return f"{self.prompt or DEFAULT_PROMPT}\n{category_prompt}\n{JSON_FORMAT_PROMPT}"


def compile_filename_pattern(regex_string: str) -> re.Pattern[str]:
    """Compile a ``/pattern/flags`` string.

    Args:
        regex_string: Pattern literal, e.g. ``/^Screenshot.*\\.png$/i``

    Returns:
        The compiled pattern

    Raises:
        ConfigurationError: If the literal is malformed or does not compile
    """
    match = _REGEX_LITERAL.match(regex_string)
    if not match:
        raise ConfigurationError(f"Invalid fileNameRegex format: {regex_string!r}. Expected '/pattern/flags'.")

    pattern, flag_letters = match.groups()
    flags = 0
    for letter in flag_letters:
        flags |= _REGEX_FLAGS[letter]

    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise ConfigurationError(
            f"Failed to compile regex pattern {pattern!r} with flags {flag_letters!r}: {e}",
        ) from e


def _normalize_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_KEY_ALIASES.get(key, key): _normalize_keys(item) for key, item in value.items()}
    return value


def default_user_config() -> dict[str, Any]:
    """Values written to a freshly created user config file."""
    return {
        "detail": DetailLevel.LOW.value,
        "provider": "ollama",
        "watchdir": "~/Desktop",
        "outdir": None,
        "prompt": DEFAULT_PROMPT,
        "file_name_regex": DEFAULT_FILE_NAME_REGEX,
        "categories": dict(DEFAULT_CATEGORIES),
        "ollama": OllamaSettings().model_dump(),
        "openai": OpenAISettings().model_dump(),
    }


def ensure_user_config(path: Path) -> None:
    """Create the user config file from defaults when it does not exist."""
    if path.exists():
        return
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(default_user_config(), indent=2), encoding="utf-8")
        logger.info("Created user config from default values", path=str(path))
    except OSError as e:
        logger.warning("Failed to create user config", path=str(path), error=str(e))


def read_user_config(path: Path) -> dict[str, Any]:
    """Read a JSON user config file.

    Raises:
        ConfigurationError: If the file cannot be read or is not a JSON object
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return _normalize_keys(data)


def load_settings(config_path: Path | None = None, overrides: dict[str, Any] | None = None) -> Settings:
    """Load settings from the user config file, environment and overrides.

    Args:
        config_path: Explicit config file; the default location is used (and
            created) when omitted
        overrides: Values from the command line; None entries are ignored

    Returns:
        Validated settings

    Raises:
        ConfigurationError: If the config file or any value is invalid
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH.expanduser()
        ensure_user_config(config_path)
    else:
        config_path = config_path.expanduser()
        if not config_path.exists():
            raise ConfigurationError(f"Config file {config_path} does not exist")

    values: dict[str, Any] = read_user_config(config_path) if config_path.exists() else {}
    values.update({key: value for key, value in (overrides or {}).items() if value is not None})

    try:
        settings = Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    logger.debug("Configuration loaded", config_path=str(config_path), provider=settings.provider)
    return settings
