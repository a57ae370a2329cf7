"""Unit tests for configuration loading."""

import json
import re
from pathlib import Path

import pytest

from services.screenshot_renamer.src import config
from services.screenshot_renamer.src.config import (
    DEFAULT_CATEGORIES,
    DEFAULT_FILE_NAME_REGEX,
    JSON_FORMAT_PROMPT,
    Settings,
    compile_filename_pattern,
    load_settings,
    read_user_config,
)
from services.screenshot_renamer.src.exceptions import ConfigurationError
from services.screenshot_renamer.src.models import DetailLevel


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep environment variables from leaking into settings."""
    for name in ("OPENAI_API_KEY", "SCREENSHOT_RENAMER_OPENAI_API_KEY", "SCREENSHOT_RENAMER_PROVIDER"):
        monkeypatch.delenv(name, raising=False)


def write_config(path: Path, data: dict) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestCompileFilenamePattern:
    """Test suite for compile_filename_pattern."""

    def test_default_pattern(self):
        """Test the default macOS screenshot pattern."""
        pattern = compile_filename_pattern(DEFAULT_FILE_NAME_REGEX)

        assert pattern.flags & re.IGNORECASE
        assert pattern.search("Screenshot 2024-01-02 at 10.00.00.png")
        assert pattern.search("screenshot.PNG")
        assert not pattern.search("Screenshot.jpg")
        assert not pattern.search("My Screenshot.png")

    def test_flags(self):
        """Test that m and s flags are mapped and g/y are ignored."""
        pattern = compile_filename_pattern("/^a.b$/gmsy")

        assert pattern.flags & re.MULTILINE
        assert pattern.flags & re.DOTALL
        assert not pattern.flags & re.IGNORECASE

    def test_slash_inside_pattern(self):
        """Test that the last slash separates the flags."""
        assert compile_filename_pattern("/a/b/").pattern == "a/b"

    @pytest.mark.parametrize("literal", ["^Screenshot.*$", "/missing-end", "/abc/x", "//i"])
    def test_malformed_literal(self, literal):
        """Test that malformed literals are rejected."""
        with pytest.raises(ConfigurationError, match="Invalid fileNameRegex format"):
            compile_filename_pattern(literal)

    def test_invalid_regex(self):
        """Test that a pattern that does not compile is rejected."""
        with pytest.raises(ConfigurationError, match="Failed to compile"):
            compile_filename_pattern("/(unclosed/")


class TestSettings:
    """Test suite for Settings."""

    def test_defaults(self, tmp_path):
        """Test derived defaults."""
        settings = Settings(watchdir=tmp_path)

        assert settings.provider == "ollama"
        assert settings.detail is DetailLevel.LOW
        assert settings.output_dir == tmp_path / "Screenshots"
        assert settings.backup_dir == tmp_path / "Screenshots" / "original"
        assert settings.categories == DEFAULT_CATEGORIES
        assert settings.provider_settings.model == "llava"

    def test_outdir_and_provider(self, tmp_path):
        """Test that an explicit outdir and provider are honored."""
        settings = Settings(watchdir=tmp_path, outdir=tmp_path / "out", provider="OpenAI")

        assert settings.output_dir == tmp_path / "out"
        assert settings.provider == "openai"
        assert settings.provider_settings.base_url == "https://api.openai.com/v1"

    def test_home_is_expanded(self):
        """Test that ~ in folders is expanded."""
        settings = Settings(watchdir="~/Desktop")

        assert settings.watchdir == Path("~/Desktop").expanduser()

    def test_final_prompt(self, tmp_path):
        """Test that the category rules and JSON instruction follow the prompt."""
        settings = Settings(watchdir=tmp_path, prompt="Name it", categories={"code": "the image shows code"})

        assert settings.final_prompt == (
            "Name it\n"
            "Identify the image's category from the following rule:\n"
            'If the image shows code, set it to "code"\n'
            f"{JSON_FORMAT_PROMPT}"
        )

    def test_api_key_from_environment(self, tmp_path, monkeypatch):
        """Test that OPENAI_API_KEY is picked up."""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

        settings = Settings(watchdir=tmp_path)

        assert settings.openai_api_key is not None
        assert settings.openai_api_key.get_secret_value() == "sk-env"


class TestLoadSettings:
    """Test suite for load_settings."""

    def test_camel_case_keys(self, tmp_path):
        """Test that camelCase keys from config files are accepted."""
        path = write_config(
            tmp_path / "config.json",
            {
                "provider": "openai",
                "watchdir": str(tmp_path),
                "fileNameRegex": "/^Capture.*$/",
                "openai": {"baseURL": "http://localhost:1234/v1", "model": "local", "maxTokens": 50},
                "categories": {"code": "there is code"},
            },
        )

        settings = load_settings(path)

        assert settings.file_name_regex == "/^Capture.*$/"
        assert settings.openai.base_url == "http://localhost:1234/v1"
        assert settings.openai.max_tokens == 50
        assert settings.categories == {"code": "there is code"}

    def test_overrides_take_precedence(self, tmp_path):
        """Test that CLI values beat the config file and None is ignored."""
        path = write_config(tmp_path / "config.json", {"watchdir": str(tmp_path), "detail": "low"})

        settings = load_settings(path, {"detail": "high", "provider": None})

        assert settings.detail is DetailLevel.HIGH
        assert settings.provider == "ollama"

    def test_default_path_is_created(self, tmp_path, monkeypatch):
        """Test that a missing default config file is written from defaults."""
        default_path = tmp_path / "home" / "config.json"
        monkeypatch.setattr(config, "DEFAULT_CONFIG_PATH", default_path)

        settings = load_settings(overrides={"watchdir": tmp_path})

        assert default_path.exists()
        assert json.loads(default_path.read_text())["provider"] == "ollama"
        assert settings.watchdir == tmp_path

    def test_explicit_missing_file(self, tmp_path):
        """Test that a missing explicit config file is an error."""
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_settings(tmp_path / "nope.json")

    def test_invalid_value(self, tmp_path):
        """Test that invalid values are reported as configuration errors."""
        path = write_config(tmp_path / "config.json", {"provider": "anthropic"})

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_settings(path)

    def test_invalid_json(self, tmp_path):
        """Test that a broken config file is reported."""
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            read_user_config(path)

    def test_non_object_json(self, tmp_path):
        """Test that a JSON array config is rejected."""
        path = write_config(tmp_path / "config.json", [])

        with pytest.raises(ConfigurationError, match="must contain a JSON object"):
            read_user_config(path)
