"""Command line interface for the screenshot renamer."""

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import __version__
from .exceptions import ConfigurationError
from .models import DetailLevel


@dataclass
class CliOptions:
    """Parsed command line options."""

    watch: bool = False
    retroactive: bool = False
    config: Path | None = None
    detail: str | None = None
    provider: str | None = None
    outdir: Path | None = None
    watchdir: Path | None = None
    file_name_regex: str | None = None
    log_level: str | None = None

    def settings_overrides(self) -> dict[str, Any]:
        """Options that override configured settings (unset ones are None)."""
        return {
            "detail": self.detail,
            "provider": self.provider,
            "outdir": self.outdir,
            "watchdir": self.watchdir,
            "file_name_regex": self.file_name_regex,
            "log_level": self.log_level,
        }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screenshot-renamer",
        description="Rename and organize screenshots by their contents with the help of AI.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, help="Path to the JSON user config file")
    parser.add_argument(
        "--detail",
        choices=[level.value for level in DetailLevel],
        help="What image resolution to use for inference",
    )
    parser.add_argument(
        "--provider",
        type=str.lower,
        choices=["openai", "ollama"],
        help="Choose supported API provider - openai or ollama",
    )
    parser.add_argument("--outdir", type=Path, help="Path to save renamed images to")
    parser.add_argument("--watchdir", type=Path, help="Folder to watch screenshots from")
    parser.add_argument("--retroactive", action="store_true", help="Process already existing screenshots")
    parser.add_argument("--watch", action="store_true", help="Watch for new screenshots")
    parser.add_argument(
        "--file-name-regex",
        "--fileNameRegex",
        dest="file_name_regex",
        help="Regex for matching filenames (e.g., '/pattern/flags')",
    )
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    return parser


def parse_cli_options(argv: list[str] | None = None) -> CliOptions:
    """Parse command line arguments.

    Raises:
        ConfigurationError: If neither --watch nor --retroactive is given
    """
    namespace = build_parser().parse_args(argv)
    options = CliOptions(**vars(namespace))

    if not options.watch and not options.retroactive:
        raise ConfigurationError("Missing options. Add --watch and/or --retroactive")

    return options
