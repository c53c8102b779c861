"""Protocol interfaces for swappable components.

Resolvers and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory page sources
- Callers to pick a cache thread-safety tier without changing resolver code
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, TypeVar, overload

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, MutableMapping

    from pagecapture.models.capture import CaptureKey, CaptureLevel
    from pagecapture.models.page import Page, PageRef

V = TypeVar("V")


class CacheProtocol(Protocol):
    """Interface for a capture cache of any thread-safety tier."""

    def get(self, key: CaptureKey, *, exact: bool = False) -> Page | None: ...

    def get_page(
        self, page_ref: PageRef, level: CaptureLevel, *, exact: bool = False
    ) -> Page | None: ...

    def put(self, key: CaptureKey, page: Page) -> None: ...

    def new_map(self, size: int | None = None) -> MutableMapping[Any, Any]: ...

    @overload
    def get_attribute(self, key: str) -> Any: ...

    @overload
    def get_attribute(self, key: str, expected_type: type[V]) -> V | None: ...

    @overload
    def get_attribute(
        self, key: str, expected_type: type[V], supplier: Callable[[], V]
    ) -> V: ...

    def get_attribute(
        self,
        key: str,
        expected_type: type[Any] | None = None,
        supplier: Callable[[], Any] | None = None,
    ) -> Any: ...

    def set_attribute(self, key: str, value: Any) -> None: ...

    def remove_attribute(self, key: str) -> None: ...


class PageSourceProtocol(Protocol):
    """Builds a page from its underlying content. Knows nothing about caching."""

    def build_page(self, page_ref: PageRef, level: CaptureLevel) -> Page: ...


class CaptureEngineProtocol(Protocol):
    """Interface resolvers use to materialise parents and children on demand."""

    @property
    def cache(self) -> CacheProtocol: ...

    @property
    def max_inheritance_depth(self) -> int: ...

    def capture_page(self, page_ref: PageRef, level: CaptureLevel) -> Page: ...

    def capture_pages(
        self, page_refs: Iterable[PageRef], level: CaptureLevel
    ) -> list[Page]: ...
