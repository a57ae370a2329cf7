"""Per-file processing: classify a screenshot and move it into place."""

import asyncio
import base64
import mimetypes
import re
from collections.abc import Mapping
from pathlib import Path

import aiofiles
import structlog

from .date_inference import infer_date
from .file_operator import FileOperator
from .models import ClassificationResult, DetailLevel, RenameDecision
from .providers import RenameProvider

logger = structlog.get_logger()

# separators and whitespace collapse to a single dash
_UNSAFE_FILENAME_CHARS = re.compile(r"[\s/\\:]+")


def sanitize_filename(filename: str) -> str:
    """Reduce a suggested name to a single path component."""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("-", filename.strip()).strip("-.")
    return cleaned or "unknown"


def resolve_category(category: str | None, categories: Mapping[str, str]) -> str | None:
    """Return the category if it is configured, otherwise None."""
    if category and category in categories:
        return category
    return None


def build_rename_decision(
    source_path: Path,
    result: ClassificationResult,
    date: str,
    output_dir: Path,
    backup_dir: Path,
    categories: Mapping[str, str],
) -> RenameDecision:
    """Compute backup and target paths for a classified screenshot.

    The target is ``<output_dir>[/<category>]/<date>-<filename><ext>``; files
    with an unknown category stay in ``output_dir`` itself.
    """
    name = sanitize_filename(result.filename)
    new_filename = f"{date}-{name}{source_path.suffix}" if date else f"{name}{source_path.suffix}"

    category = resolve_category(result.category, categories)
    target_dir = output_dir / category if category else output_dir

    return RenameDecision(
        source_path=source_path,
        backup_path=backup_dir / source_path.name,
        target_path=target_dir / new_filename,
    )


class ScreenshotProcessor:
    """Queue handler renaming one screenshot per call."""

    def __init__(
        self,
        provider: RenameProvider,
        categories: Mapping[str, str],
        output_dir: Path,
        backup_dir: Path,
        detail: DetailLevel = DetailLevel.LOW,
        classify_timeout: float = 120.0,
        file_operator: FileOperator | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            provider: AI provider used for classification
            categories: Configured category names and descriptions
            output_dir: Base folder for renamed screenshots
            backup_dir: Folder receiving copies of the originals
            detail: Image detail level sent to the model
            classify_timeout: Seconds allowed for one classification
            file_operator: Backup/move implementation

        """
        self.provider = provider
        self.categories = dict(categories)
        self.output_dir = output_dir
        self.backup_dir = backup_dir
        self.detail = detail
        self.classify_timeout = classify_timeout
        self.file_operator = file_operator or FileOperator()

    async def __call__(self, path: Path) -> Path | None:
        return await self.process(path)

    async def process(self, path: Path) -> Path | None:
        """Classify, back up and move one screenshot.

        Expected failures (unreadable file, timeout, unusable model reply,
        failed move) are logged and leave the file where it is.

        Args:
            path: Screenshot to process

        Returns:
            Final path of the renamed file, or None when it was left in place
        """
        log = logger.bind(path=str(path))

        if not path.is_file():
            log.warning("File no longer exists, skipping")
            return None

        log.info("Processing screenshot")

        try:
            async with aiofiles.open(path, "rb") as f:
                image_bytes = await f.read()
        except OSError as e:
            log.error("Could not read file", error=str(e))
            return None

        media_type = mimetypes.guess_type(path.name)[0] or "image/png"
        try:
            result = await asyncio.wait_for(
                self.provider.classify(base64.b64encode(image_bytes).decode("ascii"), self.detail, media_type),
                timeout=self.classify_timeout,
            )
        except TimeoutError:
            log.error("Classification timed out, leaving file in place", timeout=self.classify_timeout)
            return None

        if result.is_failure:
            log.warning("Could not generate a filename, skipping rename")
            return None

        if result.category and resolve_category(result.category, self.categories) is None:
            log.warning("Unknown category, using base output folder", category=result.category)

        date = await asyncio.to_thread(infer_date, path)
        decision = build_rename_decision(
            path,
            result,
            date,
            self.output_dir,
            self.backup_dir,
            self.categories,
        )

        final_path = await asyncio.to_thread(self.file_operator.backup_and_rename, decision)
        if final_path is not None:
            log.info("Screenshot renamed", category=result.category, target=str(final_path))
        return final_path
