"""Unit tests for pagecapture.capture."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from pagegraph import InMemoryPageSource, build_graph, ref

from pagecapture.errors import ErrorCode, MissingBookError
from pagecapture.models.capture import CaptureKey, CaptureLevel
from pagecapture.models.page import Book, PageRef

if TYPE_CHECKING:
    from pagecapture.cache import Cache
    from pagecapture.capture import CapturePage


@pytest.fixture()
def tree(source: InMemoryPageSource, book: Book) -> dict:
    return build_graph(
        source,
        {
            ref(book, "/"): {"title": "Home", "children": [ref(book, "/a"), PageRef.missing("absent", "/")]},
            ref(book, "/a"): {"title": "A"},
        },
    )


class TestCapturePage:
    def test_miss_builds_and_caches(
        self, capture: CapturePage, cache: Cache, source: InMemoryPageSource, book: Book, tree: dict
    ) -> None:
        page = capture.capture_page(ref(book, "/"), CaptureLevel.PAGE)
        assert page.title == "Home"
        assert source.build_count(ref(book, "/"), CaptureLevel.PAGE) == 1
        assert cache.get(CaptureKey(ref(book, "/"), CaptureLevel.PAGE)) is page

    def test_warm_cache_is_idempotent(
        self, capture: CapturePage, source: InMemoryPageSource, book: Book, tree: dict
    ) -> None:
        first = capture.capture_page(ref(book, "/a"), CaptureLevel.META)
        second = capture.capture_page(ref(book, "/a"), CaptureLevel.META)
        assert first is second
        assert source.build_count(ref(book, "/a")) == 1

    def test_body_never_cached(
        self, capture: CapturePage, cache: Cache, source: InMemoryPageSource, book: Book, tree: dict
    ) -> None:
        first = capture.capture_page(ref(book, "/a"), CaptureLevel.BODY)
        second = capture.capture_page(ref(book, "/a"), CaptureLevel.BODY)
        assert first is not second
        assert source.build_count(ref(book, "/a"), CaptureLevel.BODY) == 2
        assert cache.get(CaptureKey(ref(book, "/a"), CaptureLevel.PAGE)) is None

    def test_meta_fallback_then_true_page_capture(
        self, capture: CapturePage, cache: Cache, source: InMemoryPageSource, book: Book, tree: dict
    ) -> None:
        meta = capture.capture_page(ref(book, "/a"), CaptureLevel.META)
        page_key = CaptureKey(ref(book, "/a"), CaptureLevel.PAGE)
        assert cache.get(page_key) is meta

        page = capture.capture_page(ref(book, "/a"), CaptureLevel.PAGE)
        assert page is not meta
        assert source.build_count(ref(book, "/a"), CaptureLevel.PAGE) == 1
        assert cache.get(page_key, exact=True) is page
        assert cache.get(CaptureKey(ref(book, "/a"), CaptureLevel.META)) is meta

    def test_missing_book_raises(self, capture: CapturePage) -> None:
        with pytest.raises(MissingBookError) as exc_info:
            capture.capture_page(PageRef.missing("absent", "/"), CaptureLevel.META)
        assert exc_info.value.code == ErrorCode.MISSING_BOOK

    def test_capture_pages_skips_missing_books(
        self, capture: CapturePage, book: Book, tree: dict
    ) -> None:
        root = capture.capture_page(ref(book, "/"), CaptureLevel.PAGE)
        children = capture.capture_pages(root.child_pages, CaptureLevel.META)
        assert [child.page_ref for child in children] == [ref(book, "/a")]

    def test_cache_property(self, capture: CapturePage, cache: Cache) -> None:
        assert capture.cache is cache
