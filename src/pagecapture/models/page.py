from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class Inherit(Enum):
    """Tag for a field that is not set on the page itself."""

    INHERIT = "inherit"

    def __repr__(self) -> str:
        return "INHERIT"


INHERIT = Inherit.INHERIT


class Copyright(BaseModel):
    """Copyright metadata with three tri-state fields.

    Each field is ``INHERIT`` (take it from the parents), ``""`` (explicitly no
    value, stops inheritance) or the value itself.
    """

    model_config = ConfigDict(frozen=True)

    rights_holder: str | Inherit = INHERIT
    rights: str | Inherit = INHERIT
    date_copyrighted: str | Inherit = INHERIT

    @property
    def has_all_fields(self) -> bool:
        return INHERIT not in (self.rights_holder, self.rights, self.date_copyrighted)

    @property
    def is_empty(self) -> bool:
        return self.rights_holder == "" and self.rights == "" and self.date_copyrighted == ""


class Book(BaseModel):
    """A named collection of pages sharing default attribute values."""

    model_config = ConfigDict(frozen=True)

    name: str
    allow_robots: bool = True
    copyright: Copyright | None = None


class PageRef(BaseModel):
    """Identity of a page: its book plus the path within that book.

    ``book`` is ``None`` when the link targets a book that is not part of this
    deployment; such references are never captured.
    """

    model_config = ConfigDict(frozen=True)

    book_name: str
    path: str
    book: Book | None = None

    @model_validator(mode="before")
    @classmethod
    def fill_book_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("book") is not None and "book_name" not in data:
            book = data["book"]
            name = book.name if isinstance(book, Book) else book["name"]
            return {**data, "book_name": name}
        return data

    @model_validator(mode="after")
    def check_book_name(self) -> PageRef:
        if self.book is not None and self.book.name != self.book_name:
            raise ValueError(
                f"book_name {self.book_name!r} does not match book {self.book.name!r}"
            )
        return self

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Page path must start with '/': {v!r}")
        return v

    @classmethod
    def missing(cls, book_name: str, path: str) -> PageRef:
        """Reference into a book that is not present."""
        return cls(book_name=book_name, path=path)

    @property
    def is_missing_book(self) -> bool:
        return self.book is None

    def __str__(self) -> str:
        return f"{self.book_name}:{self.path}"


class Element(BaseModel):
    """Base class for typed content nodes on a page."""

    id: str | None = None
    label: str | None = None


class Page(BaseModel):
    """A captured node in the content graph."""

    model_config = ConfigDict(frozen=True)

    page_ref: PageRef
    title: str = ""
    parent_pages: tuple[PageRef, ...] = ()
    child_pages: tuple[PageRef, ...] = ()
    elements: tuple[Element, ...] = ()
    allow_robots: bool | Inherit = INHERIT
    copyright: Copyright | None = None

    @field_validator("page_ref")
    @classmethod
    def validate_page_ref(cls, v: PageRef) -> PageRef:
        if v.is_missing_book:
            raise ValueError(f"A page cannot belong to a missing book: {v}")
        return v

    @property
    def book(self) -> Book:
        book = self.page_ref.book
        if book is None:
            raise ValueError(f"Page {self.page_ref} has no book")
        return book

    def has_child(self) -> bool:
        """True when at least one child is in a book present in this deployment."""
        return any(not child.is_missing_book for child in self.child_pages)
