"""Data models shared by the screenshot renamer components."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

UNKNOWN_FILENAME = "unknown"


class DetailLevel(str, Enum):
    """Image resolution requested from the vision model."""

    LOW = "low"
    HIGH = "high"
    AUTO = "auto"


@dataclass(frozen=True)
class ClassificationResult:
    """Category and suggested filename for one screenshot."""

    filename: str
    category: str | None = None

    @property
    def is_failure(self) -> bool:
        """True when this is the failure sentinel."""
        return self == FAILURE_SENTINEL

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ClassificationResult":
        """Build a result from a validated record, keeping values verbatim."""
        return cls(filename=record["filename"], category=record.get("category"))


# Returned when every resolution strategy has failed
FAILURE_SENTINEL = ClassificationResult(filename=UNKNOWN_FILENAME)


@dataclass(frozen=True)
class ProviderRequest:
    """Immutable input of a single classification call."""

    image_data: str
    detail_level: DetailLevel
    prompt_text: str
    category_descriptions: Mapping[str, str] = field(default_factory=dict)
    media_type: str = "image/png"

    @property
    def data_url(self) -> str:
        """Image as a base64 data URL."""
        return f"data:{self.media_type};base64,{self.image_data}"


@dataclass(frozen=True)
class FunctionCallReply:
    """Transport-neutral view of a structured (tool call) reply."""

    finish_reason: str | None
    function_name: str | None = None
    arguments: str | Mapping[str, Any] | None = None


@dataclass(frozen=True)
class RenameDecision:
    """Where a screenshot is backed up and moved to."""

    source_path: Path
    backup_path: Path
    target_path: Path
