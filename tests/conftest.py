"""Shared test fixtures for the pagecapture test suite."""

from __future__ import annotations

import pytest
from pagegraph import InMemoryPageSource

from pagecapture.cache import Cache, CacheScope
from pagecapture.capture import CapturePage
from pagecapture.models.page import Book, Copyright


@pytest.fixture()
def book() -> Book:
    """Book with a default copyright that allows robots."""
    return Book(
        name="manual",
        allow_robots=True,
        copyright=Copyright(
            rights_holder="AO Industries",
            rights="All rights reserved",
            date_copyrighted="2016",
        ),
    )


@pytest.fixture()
def other_book() -> Book:
    return Book(name="appendix", allow_robots=False)


@pytest.fixture()
def source() -> InMemoryPageSource:
    return InMemoryPageSource()


@pytest.fixture(params=list(CacheScope), ids=lambda scope: scope.value)
def cache(request: pytest.FixtureRequest) -> Cache:
    """A cache of every thread-safety tier in turn."""
    return Cache(request.param)


@pytest.fixture()
def capture(cache: Cache, source: InMemoryPageSource) -> CapturePage:
    return CapturePage(cache, source)
