"""Models for visual body-composition assessment."""

from dataclasses import dataclass
from enum import StrEnum


class ImageRole(StrEnum):
    """Which physique an uploaded photo shows."""

    CURRENT = "current"
    GOAL = "goal"


@dataclass(frozen=True)
class ImageAsset:
    """Uploaded photo held only for the lifetime of one request."""

    data: bytes
    mime_type: str | None
    role: ImageRole

    def __repr__(self) -> str:
        return (
            f"ImageAsset(role={self.role.value!r}, mime_type={self.mime_type!r}, "
            f"size={len(self.data)})"
        )


@dataclass(frozen=True)
class VisualAssessment:
    """Model analysis of current versus goal physique."""

    analysis: str
    weight: float
    height: float
    usage: dict[str, object] | None = None
