from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pagecapture.models.page import PageRef


class ErrorCode(StrEnum):
    INHERITANCE_CONFLICT = "INHERITANCE_CONFLICT"
    INHERITANCE_CYCLE = "INHERITANCE_CYCLE"
    RECURSION_LIMIT = "RECURSION_LIMIT"
    STRUCTURAL_INCONSISTENCY = "STRUCTURAL_INCONSISTENCY"
    ATTRIBUTE_TYPE_MISMATCH = "ATTRIBUTE_TYPE_MISMATCH"
    MISSING_BOOK = "MISSING_BOOK"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"


class PageCaptureError(Exception):
    """Base class for every expected failure raised by pagecapture.

    These model misconfigured content or programming errors, so none of them
    are retried. Resolvers let them propagate to the top-level caller.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }


class InheritanceConflictError(PageCaptureError):
    """Two same-book parents resolved different values for an inherited field."""

    def __init__(
        self,
        attribute: str,
        field: str,
        first: object,
        second: object,
        page_ref: PageRef,
    ) -> None:
        super().__init__(
            ErrorCode.INHERITANCE_CONFLICT,
            f"Mismatched {field} inherited from different parents of {page_ref}: "
            f"{first!r} does not match {second!r}",
            f"Set {attribute} on {page_ref} directly, or make its parents agree.",
        )
        self.attribute = attribute
        self.field = field
        self.first = first
        self.second = second
        self.page_ref = page_ref


class InheritanceCycleError(PageCaptureError):
    def __init__(self, attribute: str, page_ref: PageRef) -> None:
        super().__init__(
            ErrorCode.INHERITANCE_CYCLE,
            f"Parent cycle reached {page_ref} again while resolving {attribute}",
            "Remove the cycle from the parent links of the pages in this book.",
        )
        self.attribute = attribute
        self.page_ref = page_ref


class RecursionLimitError(PageCaptureError):
    def __init__(self, attribute: str, page_ref: PageRef, limit: int) -> None:
        super().__init__(
            ErrorCode.RECURSION_LIMIT,
            f"Resolving {attribute} for {page_ref} exceeded {limit} ancestor levels",
            "Raise capture.max_inheritance_depth or flatten the page hierarchy.",
        )
        self.attribute = attribute
        self.page_ref = page_ref
        self.limit = limit


class StructuralConsistencyError(PageCaptureError):
    """A page's parent/child links contradict pages already in the cache."""

    def __init__(self, message: str) -> None:
        super().__init__(
            ErrorCode.STRUCTURAL_INCONSISTENCY,
            message,
            "Make parent and child declarations agree on both pages.",
        )


class AttributeTypeError(PageCaptureError, TypeError):
    def __init__(self, key: str, expected: type, actual: object) -> None:
        super().__init__(
            ErrorCode.ATTRIBUTE_TYPE_MISMATCH,
            f"Cache attribute {key!r} is {type(actual).__name__}, "
            f"expected {expected.__name__}",
            "Use a distinct attribute key for each value type.",
        )
        self.key = key
        self.expected = expected
        self.actual = actual


class MissingBookError(PageCaptureError):
    def __init__(self, page_ref: PageRef) -> None:
        super().__init__(
            ErrorCode.MISSING_BOOK,
            f"Cannot capture {page_ref}: its book is not part of this deployment",
            "Skip references where PageRef.is_missing_book is true before capturing.",
        )
        self.page_ref = page_ref


class UnsupportedOperationError(PageCaptureError, NotImplementedError):
    def __init__(self, operation: str) -> None:
        super().__init__(
            ErrorCode.UNSUPPORTED_OPERATION,
            f"{operation} is not supported on a subrequest",
            "Perform this operation on the top-level request instead.",
        )
        self.operation = operation
