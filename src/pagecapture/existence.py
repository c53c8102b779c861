"""Existence search over a page and its descendants.

Missing books and cycles are ordinary graph shapes here: links into missing
books are skipped and every page is visited at most once per search, so the
search never raises for either.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pagecapture.models.capture import CaptureLevel

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, MutableMapping

    from pagecapture.models.page import Element, Page, PageRef
    from pagecapture.protocols import CaptureEngineProtocol

    ElementMatcher = type[Element] | Callable[[Element], bool]

log = structlog.get_logger()


def has_child(page: Page) -> bool:
    """True when *page* links at least one child in a present book."""
    return page.has_child()


def _matcher(element_type: ElementMatcher) -> Callable[[Element], bool]:
    if isinstance(element_type, type):
        return lambda element: isinstance(element, element_type)
    return element_type


def _has_match(page: Page, matches: Callable[[Element], bool]) -> bool:
    return any(matches(element) for element in page.elements)


def has_element(
    capture: CaptureEngineProtocol,
    page: Page,
    element_type: ElementMatcher,
    *,
    recursive: bool = False,
) -> bool:
    """Check whether *page* holds an element of *element_type*.

    *element_type* is an ``Element`` subclass or a predicate. With
    *recursive*, the search continues depth-first through the child pages in
    their declared order, capturing each at META level. Any match ends the
    search.
    """
    matches = _matcher(element_type)
    if _has_match(page, matches):
        return True
    if not recursive:
        return False

    seen: MutableMapping[PageRef, bool] = capture.cache.new_map()
    seen[page.page_ref] = True
    # Explicit stack of child iterators keeps deep graphs off the call stack
    stack: list[Iterator[PageRef]] = [iter(page.child_pages)]
    while stack:
        child_ref = next(stack[-1], None)
        if child_ref is None:
            stack.pop()
            continue
        if child_ref.is_missing_book or child_ref in seen:
            continue
        child = capture.capture_page(child_ref, CaptureLevel.META)
        if _has_match(child, matches):
            log.debug(
                "element_found",
                page_ref=str(page.page_ref),
                found_in=str(child_ref),
                pages_searched=len(seen) + 1,
            )
            return True
        seen[child_ref] = True
        stack.append(iter(child.child_pages))
    return False
