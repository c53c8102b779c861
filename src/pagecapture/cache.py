"""In-memory capture cache with three thread-safety tiers.

The thread safety is the minimum needed for the scope the cache was created
for, chosen once at construction:

* ``SHARED``: shared between unrelated requests. Every structure sits behind
  a re-entrant lock. Attribute suppliers run outside the lock, so a supplier
  may run more than once under contention; only the first stored result is
  ever visible.
* ``SUBREQUEST``: one request whose subrequests may run on worker threads.
  Same locking, but an attribute supplier runs under a re-entrant per-key
  lock and therefore runs once across threads. A supplier that asks for its
  own key again runs nested on the same thread, and the first stored result
  wins.
* ``REQUEST``: one sequential request. Plain dicts, no locking; much like
  request attributes.

Entries are add-only. There is no eviction: a cache lives exactly as long as
the scope that created it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, MutableMapping
from contextlib import AbstractContextManager, nullcontext
from enum import StrEnum
from typing import Any

import structlog

from pagecapture.errors import AttributeTypeError, StructuralConsistencyError
from pagecapture.models.capture import CaptureKey, CaptureLevel
from pagecapture.models.page import Page, PageRef

log = structlog.get_logger()


class CacheScope(StrEnum):
    SHARED = "shared"
    SUBREQUEST = "subrequest"
    REQUEST = "request"


class SynchronizedDict(MutableMapping[Any, Any]):
    """Dict whose every operation holds one re-entrant lock."""

    def __init__(self) -> None:
        self._data: dict[Any, Any] = {}
        self._lock = threading.RLock()

    def __getitem__(self, key: Any) -> Any:
        with self._lock:
            return self._data[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def __delitem__(self, key: Any) -> None:
        with self._lock:
            del self._data[key]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __iter__(self) -> Iterator[Any]:
        # Iterate a snapshot so concurrent writers cannot break the iterator
        with self._lock:
            return iter(list(self._data))

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get(self, key: Any, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def setdefault(self, key: Any, default: Any = None) -> Any:
        with self._lock:
            return self._data.setdefault(key, default)

    def pop(self, key: Any, *args: Any) -> Any:
        with self._lock:
            return self._data.pop(key, *args)

    def __repr__(self) -> str:
        with self._lock:
            return f"{type(self).__name__}({self._data!r})"


class Cache:
    """Capture cache plus a generic attribute store, implementing CacheProtocol."""

    def __init__(self, scope: CacheScope, *, verify_parent_child: bool = True) -> None:
        self.scope = scope
        self.verify_parent_child = verify_parent_child
        self._lock: AbstractContextManager[Any] = (
            nullcontext() if scope is CacheScope.REQUEST else threading.RLock()
        )
        self._pages: dict[CaptureKey, Page] = {}
        self._attributes: dict[str, Any] = {}
        self._attribute_locks: dict[str, threading.RLock] = {}

    def __repr__(self) -> str:
        return f"Cache(scope={self.scope.value!r}, pages={len(self._pages)})"

    # ------------------------------------------------------------------
    # Captured pages
    # ------------------------------------------------------------------

    def get(self, key: CaptureKey, *, exact: bool = False) -> Page | None:
        """Return the page cached under *key*, or ``None``.

        A PAGE lookup that misses falls back to the META capture of the same
        reference, so the returned page may be shallower than requested.
        Pass ``exact=True`` when only a true PAGE capture will do.
        """
        with self._lock:
            page = self._pages.get(key)
            if page is None and not exact and key.level is CaptureLevel.PAGE:
                page = self._pages.get(CaptureKey(key.page_ref, CaptureLevel.META))
                if page is not None:
                    log.debug("cache_meta_fallback", page_ref=str(key.page_ref))
        return page

    def get_page(
        self, page_ref: PageRef, level: CaptureLevel, *, exact: bool = False
    ) -> Page | None:
        return self.get(CaptureKey(page_ref, level), exact=exact)

    def put(self, key: CaptureKey, page: Page) -> None:
        """Add *page* under *key*. An existing entry is kept, never replaced.

        Raises StructuralConsistencyError when parent/child verification is
        on and the page's links contradict pages already cached.
        """
        if page.page_ref != key.page_ref:
            raise StructuralConsistencyError(
                f"Captured page {page.page_ref} stored under key {key}"
            )
        with self._lock:
            if key in self._pages:
                log.debug("cache_put_kept_existing", key=str(key))
                return
            if self.verify_parent_child:
                self._verify_parent_child(page)
            self._pages[key] = page
        log.debug("cache_put", key=str(key), scope=self.scope.value)

    def _cached_any_level(self, page_ref: PageRef) -> Page | None:
        page = self._pages.get(CaptureKey(page_ref, CaptureLevel.PAGE))
        if page is None:
            page = self._pages.get(CaptureKey(page_ref, CaptureLevel.META))
        return page

    def _verify_parent_child(self, page: Page) -> None:
        """Check each link of *page* against the cached page on its other end.

        Only pages already in the cache are consulted, so the cost is one
        lookup per parent and child of *page*.
        """
        page_ref = page.page_ref
        for parent_ref in page.parent_pages:
            if parent_ref.is_missing_book:
                continue
            parent = self._cached_any_level(parent_ref)
            if parent is not None and page_ref not in parent.child_pages:
                log.warning(
                    "cache_parent_child_mismatch",
                    page_ref=str(page_ref),
                    parent_ref=str(parent_ref),
                )
                raise StructuralConsistencyError(
                    f"{page_ref} lists {parent_ref} as a parent, "
                    f"but {parent_ref} does not list it as a child"
                )
        for child_ref in page.child_pages:
            if child_ref.is_missing_book:
                continue
            child = self._cached_any_level(child_ref)
            if child is not None and page_ref not in child.parent_pages:
                log.warning(
                    "cache_parent_child_mismatch",
                    page_ref=str(page_ref),
                    child_ref=str(child_ref),
                )
                raise StructuralConsistencyError(
                    f"{page_ref} lists {child_ref} as a child, "
                    f"but {child_ref} does not list it as a parent"
                )

    # ------------------------------------------------------------------
    # Auxiliary maps
    # ------------------------------------------------------------------

    def new_map(self, size: int | None = None) -> MutableMapping[Any, Any]:
        """Create a mapping with the same thread-safety guarantees as this cache.

        Python dicts grow on demand, so *size* is only a hint.
        """
        if self.scope is CacheScope.REQUEST:
            return {}
        return SynchronizedDict()

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def get_attribute(
        self,
        key: str,
        expected_type: type[Any] | None = None,
        supplier: Callable[[], Any] | None = None,
    ) -> Any:
        """Return the attribute stored under *key*, or ``None``.

        With *expected_type*, a stored value of another type raises
        AttributeTypeError. With *supplier*, a missing value is computed,
        stored and returned; exceptions from the supplier propagate as they
        are and nothing is stored.
        """
        if supplier is not None:
            return self._get_or_compute(key, expected_type, supplier)
        with self._lock:
            value = self._attributes.get(key)
        return _check_type(key, expected_type, value)

    def _get_or_compute(
        self,
        key: str,
        expected_type: type[Any] | None,
        supplier: Callable[[], Any],
    ) -> Any:
        with self._lock:
            value = self._attributes.get(key)
        if value is not None:
            return _check_type(key, expected_type, value)

        if self.scope is CacheScope.SUBREQUEST:
            with self._lock:
                key_lock = self._attribute_locks.setdefault(key, threading.RLock())
            with key_lock:
                with self._lock:
                    value = self._attributes.get(key)
                if value is None:
                    value = _check_type(key, expected_type, supplier())
                    if value is not None:
                        # A supplier that re-entered for its own key stored first
                        with self._lock:
                            value = self._attributes.setdefault(key, value)
            return _check_type(key, expected_type, value)

        # SHARED and REQUEST: compute without holding the lock, first store wins
        computed = _check_type(key, expected_type, supplier())
        if computed is None:
            return None
        with self._lock:
            value = self._attributes.setdefault(key, computed)
        if value is not computed:
            log.debug("cache_attribute_discarded", key=key)
        return _check_type(key, expected_type, value)

    def set_attribute(self, key: str, value: Any) -> None:
        """Set an attribute. Setting ``None`` is the same as removing it."""
        if value is None:
            self.remove_attribute(key)
            return
        with self._lock:
            self._attributes[key] = value

    def remove_attribute(self, key: str) -> None:
        with self._lock:
            self._attributes.pop(key, None)


def _check_type(key: str, expected_type: type[Any] | None, value: Any) -> Any:
    if expected_type is not None and value is not None and not isinstance(value, expected_type):
        raise AttributeTypeError(key, expected_type, value)
    return value


def new_cache(scope: CacheScope, *, verify_parent_child: bool = True) -> Cache:
    """Create a cache for *scope*. Called once per scope, torn down with it."""
    log.debug("cache_created", scope=scope.value, verify_parent_child=verify_parent_child)
    return Cache(scope, verify_parent_child=verify_parent_child)
