from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from pagecapture.models.page import PageRef


class CaptureLevel(IntEnum):
    """Depth of a capture. Each level holds everything of the levels below it."""

    META = 1  # References, elements and attributes only
    PAGE = 2  # Full page model
    BODY = 3  # Page plus rendered body; never cached


@dataclass(frozen=True, slots=True)
class CaptureKey:
    """Cache key of a captured page: its reference plus the captured depth."""

    page_ref: PageRef
    level: CaptureLevel

    def __post_init__(self) -> None:
        if self.level is CaptureLevel.BODY:
            raise ValueError("Body captures are not cached")

    def __str__(self) -> str:
        return f"({self.level.name}, {self.page_ref})"
