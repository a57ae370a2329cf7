"""Backup and collision-safe move of screenshot files."""

import logging
import shutil
from pathlib import Path

from .models import RenameDecision

logger = logging.getLogger(__name__)


def resolve_unique_path(target_path: Path) -> Path:
    """Find a path that does not exist yet.

    Appends ``-1``, ``-2``, ... before the extension until the name is free.

    Args:
        target_path: Desired destination

    Returns:
        ``target_path`` itself when free, otherwise the first free suffixed path
    """
    candidate = target_path
    counter = 0
    while candidate.exists():
        counter += 1
        candidate = target_path.with_name(f"{target_path.stem}-{counter}{target_path.suffix}")
    return candidate


class FileOperator:
    """Copies originals to the backup folder and moves files without overwriting."""

    def backup(self, source_path: Path, backup_path: Path) -> bool:
        """Copy the original file, unmodified, to the backup location.

        Failures are logged and reported through the return value only.

        Returns:
            True if the backup was written
        """
        try:
            shutil.copy2(source_path, backup_path)
        except OSError as e:
            logger.error(f"Failed to backup original file {source_path.name} to {backup_path}: {e}")
            return False

        logger.debug(f"Backed up {source_path} to {backup_path}")
        return True

    def move(self, source_path: Path, target_path: Path) -> Path | None:
        """Move a file to a free path derived from ``target_path``.

        On failure the source is left in place and any partially written
        destination is removed.

        Returns:
            The final destination, or None if the move failed
        """
        final_path = resolve_unique_path(target_path)
        try:
            shutil.move(str(source_path), str(final_path))
        except OSError as e:
            logger.error(f"Error renaming the file {source_path} to {final_path}: {e}")
            if source_path.exists() and final_path.exists():
                final_path.unlink(missing_ok=True)
            return None

        logger.info(f"File renamed to {final_path}")
        return final_path

    def backup_and_rename(self, decision: RenameDecision) -> Path | None:
        """Back up the source, then move it to the decided target.

        A failed backup does not stop the move.

        Args:
            decision: Source, backup and target paths

        Returns:
            Final path of the moved file, or None if the move failed
        """
        self.backup(decision.source_path, decision.backup_path)
        return self.move(decision.source_path, decision.target_path)
