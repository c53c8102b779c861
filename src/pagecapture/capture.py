"""Page capture engine.

Resolves a page reference to a ``Page`` at a requested depth, consulting the
cache first and storing the result on a miss. BODY captures always rebuild
and are never stored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pagecapture.errors import MissingBookError
from pagecapture.inheritance import DEFAULT_MAX_INHERITANCE_DEPTH
from pagecapture.models.capture import CaptureKey, CaptureLevel

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pagecapture.models.page import Page, PageRef
    from pagecapture.protocols import CacheProtocol, PageSourceProtocol

log = structlog.get_logger()


class CapturePage:
    """Memoising capture engine implementing CaptureEngineProtocol."""

    def __init__(
        self,
        cache: CacheProtocol,
        source: PageSourceProtocol,
        *,
        max_inheritance_depth: int = DEFAULT_MAX_INHERITANCE_DEPTH,
    ) -> None:
        self._cache = cache
        self._source = source
        self._max_inheritance_depth = max_inheritance_depth

    @property
    def cache(self) -> CacheProtocol:
        return self._cache

    @property
    def max_inheritance_depth(self) -> int:
        """Ancestor levels the inheritance resolvers may climb from a page."""
        return self._max_inheritance_depth

    def capture_page(self, page_ref: PageRef, level: CaptureLevel) -> Page:
        """Capture *page_ref* at *level*.

        Repeated captures of a cached key return the identical page object.
        A PAGE capture is never satisfied by a META entry: the META probe is
        only logged, and the page is rebuilt and stored at PAGE level.
        """
        if page_ref.is_missing_book:
            raise MissingBookError(page_ref)

        if level is CaptureLevel.BODY:
            log.debug("capture_body", page_ref=str(page_ref))
            return self._build(page_ref, level)

        key = CaptureKey(page_ref, level)
        page = self._cache.get(key, exact=True)
        if page is not None:
            log.debug("capture_cache_hit", key=str(key))
            return page

        if level is CaptureLevel.PAGE:
            shallow = self._cache.get(key)
            log.debug("capture_cache_miss", key=str(key), meta_available=shallow is not None)
        else:
            log.debug("capture_cache_miss", key=str(key))

        page = self._build(page_ref, level)
        self._cache.put(key, page)
        # Another thread may have stored first; everyone sees the stored page
        stored = self._cache.get(key, exact=True)
        return stored if stored is not None else page

    def capture_pages(self, page_refs: Iterable[PageRef], level: CaptureLevel) -> list[Page]:
        """Capture each reference in order, skipping links into missing books."""
        return [
            self.capture_page(page_ref, level)
            for page_ref in page_refs
            if not page_ref.is_missing_book
        ]

    def _build(self, page_ref: PageRef, level: CaptureLevel) -> Page:
        page = self._source.build_page(page_ref, level)
        if page.page_ref != page_ref:
            # Surfaced by Cache.put too, but BODY captures never reach it
            log.warning(
                "capture_page_ref_mismatch",
                requested=str(page_ref),
                built=str(page.page_ref),
            )
        return page
