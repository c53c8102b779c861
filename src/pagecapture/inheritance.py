"""Attribute inheritance over the parent graph.

Pure business logic: receives a capture engine and a page, returns the
effective attribute. Any field a page leaves as ``INHERIT`` is taken from its
parents in the same book, which must all agree exactly. A page with no
same-book parents (a book root) takes the book's default. ``""`` is a real
value meaning "nothing", and stops inheritance.

Each top-level call keeps a ``finished`` map (from ``cache.new_map()``) of
resolved fields per page, so shared ancestors are resolved once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from pagecapture.errors import (
    InheritanceConflictError,
    InheritanceCycleError,
    RecursionLimitError,
)
from pagecapture.models.capture import CaptureLevel
from pagecapture.models.page import INHERIT, Copyright

if TYPE_CHECKING:
    from collections.abc import Callable, MutableMapping

    from pagecapture.models.page import Book, Page, PageRef
    from pagecapture.protocols import CaptureEngineProtocol

log = structlog.get_logger()

# Each ancestor level costs one Python stack frame
DEFAULT_MAX_INHERITANCE_DEPTH = 200

Fields = dict[str, Any]


@dataclass(frozen=True)
class InheritedAttribute:
    """How to read one inheritable attribute from pages and books.

    ``page_fields`` returns every field, ``INHERIT`` where unset.
    ``book_fields`` returns the book defaults, never ``INHERIT``.
    """

    name: str
    fields: tuple[str, ...]
    page_fields: Callable[[Page], Fields]
    book_fields: Callable[[Book], Fields]


_COPYRIGHT_FIELDS = ("rights_holder", "rights", "date_copyrighted")


def _page_copyright_fields(page: Page) -> Fields:
    if page.copyright is None:
        return dict.fromkeys(_COPYRIGHT_FIELDS, INHERIT)
    return {field: getattr(page.copyright, field) for field in _COPYRIGHT_FIELDS}


def _book_copyright_fields(book: Book) -> Fields:
    if book.copyright is None:
        return dict.fromkeys(_COPYRIGHT_FIELDS, "")
    fields = {}
    for field in _COPYRIGHT_FIELDS:
        value = getattr(book.copyright, field)
        fields[field] = "" if value is INHERIT else value
    return fields


COPYRIGHT = InheritedAttribute(
    name="copyright",
    fields=_COPYRIGHT_FIELDS,
    page_fields=_page_copyright_fields,
    book_fields=_book_copyright_fields,
)

ALLOW_ROBOTS = InheritedAttribute(
    name="allow_robots",
    fields=("allow_robots",),
    page_fields=lambda page: {"allow_robots": page.allow_robots},
    book_fields=lambda book: {"allow_robots": book.allow_robots},
)


def resolve_inherited(
    capture: CaptureEngineProtocol,
    page: Page,
    attribute: InheritedAttribute,
    *,
    max_depth: int | None = None,
) -> Fields:
    """Resolve every field of *attribute* for *page*.

    Raises InheritanceConflictError when same-book parents disagree,
    InheritanceCycleError on a same-book parent cycle and RecursionLimitError
    past *max_depth* ancestor levels, which defaults to the engine's
    ``max_inheritance_depth``. No partial result is ever returned.
    """
    if max_depth is None:
        max_depth = capture.max_inheritance_depth
    finished: MutableMapping[PageRef, Fields] = capture.cache.new_map()
    resolved = _resolve(capture, page, attribute, finished, set(), 0, max_depth)
    log.debug(
        "inheritance_resolved",
        attribute=attribute.name,
        page_ref=str(page.page_ref),
        pages_resolved=len(finished),
    )
    return resolved


def _resolve(
    capture: CaptureEngineProtocol,
    page: Page,
    attribute: InheritedAttribute,
    finished: MutableMapping[PageRef, Fields],
    visiting: set[PageRef],
    depth: int,
    max_depth: int,
) -> Fields:
    page_ref = page.page_ref
    resolved = attribute.page_fields(page)
    unset = [field for field in attribute.fields if resolved[field] is INHERIT]

    if unset:
        inherited: Fields = {}
        visiting.add(page_ref)
        for parent_ref in page.parent_pages:
            # Only parents in the same book take part in inheritance
            if parent_ref.is_missing_book or parent_ref.book_name != page_ref.book_name:
                continue
            parent_fields = finished.get(parent_ref)
            if parent_fields is None:
                if parent_ref in visiting:
                    raise InheritanceCycleError(attribute.name, parent_ref)
                if depth + 1 > max_depth:
                    raise RecursionLimitError(attribute.name, page_ref, max_depth)
                parent = capture.capture_page(parent_ref, CaptureLevel.PAGE)
                parent_fields = _resolve(
                    capture, parent, attribute, finished, visiting, depth + 1, max_depth
                )
            for field in unset:
                value = parent_fields[field]
                if field not in inherited:
                    inherited[field] = value
                elif inherited[field] != value:
                    raise InheritanceConflictError(
                        attribute.name, field, inherited[field], value, page_ref
                    )
        visiting.discard(page_ref)

        defaults = attribute.book_fields(page.book)
        for field in unset:
            resolved[field] = inherited[field] if field in inherited else defaults[field]

    finished[page_ref] = resolved
    return resolved


def find_copyright(
    capture: CaptureEngineProtocol,
    page: Page,
    *,
    max_depth: int | None = None,
) -> Copyright | None:
    """Find the effective copyright of *page*, or ``None`` if it has none.

    Every field of a returned copyright is a string; an all-empty result is
    reported as ``None``.
    """
    fields = resolve_inherited(capture, page, COPYRIGHT, max_depth=max_depth)
    copyright = Copyright(**fields)
    if copyright.is_empty:
        return None
    return copyright


def find_allow_robots(
    capture: CaptureEngineProtocol,
    page: Page,
    *,
    max_depth: int | None = None,
) -> bool:
    """Find whether robots may index *page*."""
    fields = resolve_inherited(capture, page, ALLOW_ROBOTS, max_depth=max_depth)
    return fields["allow_robots"]
