from __future__ import annotations

from pagecapture.models.capture import CaptureKey, CaptureLevel
from pagecapture.models.page import (
    INHERIT,
    Book,
    Copyright,
    Element,
    Inherit,
    Page,
    PageRef,
)

__all__ = [
    # page graph
    "Book",
    "PageRef",
    "Page",
    "Element",
    "Copyright",
    "Inherit",
    "INHERIT",
    # capture
    "CaptureLevel",
    "CaptureKey",
]
