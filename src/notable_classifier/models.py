"""Data models for notable-file classification."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Iterator, Optional


class Label(str, Enum):
    """Fixed classification labels, in output order."""

    NOTABLE = "notable"
    NONNOTABLE = "nonnotable"


@dataclass
class SourceFile:
    """A file submitted by the ingest pipeline.

    Attributes:
        path: Location of the file content on disk.
        mime_type: Type metadata already attached to the file, if any.
        display_name: Name to report instead of the on-disk file name.
    """

    path: Path
    mime_type: Optional[str] = None
    display_name: Optional[str] = None

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    @property
    def name(self) -> str:
        return self.display_name or self.path.name

    @property
    def size(self) -> int:
        """Size of the file content in bytes."""
        return self.path.stat().st_size

    @contextmanager
    def open_bytes(self) -> Iterator[BinaryIO]:
        """Open the file content for binary reading."""
        with open(self.path, "rb") as handle:
            yield handle

    def read_bytes(self, limit: int = -1) -> bytes:
        """Read up to ``limit`` bytes (all bytes when negative)."""
        with self.open_bytes() as handle:
            return handle.read(limit)


@dataclass
class ClassificationResult:
    """Result of classifying a single token sequence.

    Attributes:
        label: The label with the highest posterior probability.
        probabilities: Posterior probability per label, in label order.
        token_count: Number of tokens that were scored.
    """

    label: str
    probabilities: dict[str, float] = field(default_factory=dict)
    token_count: int = 0

    @property
    def confidence(self) -> float:
        """Posterior probability of the winning label."""
        return self.probabilities.get(self.label, 0.0)

    @property
    def is_notable(self) -> bool:
        return self.label == Label.NOTABLE.value

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "confidence": round(self.confidence, 4),
            "probabilities": {k: round(v, 4) for k, v in self.probabilities.items()},
            "token_count": self.token_count,
        }
