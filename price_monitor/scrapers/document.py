# price_monitor/scrapers/document.py

"""Rendered-document handles consumed by the offer extractor.

The extractor only needs "query all elements" on a document and
"get attribute / text / inner HTML / sub-query" on an element.  The
protocols below describe that surface; :class:`SoupDocument` and
:class:`SoupElement` implement it on top of BeautifulSoup.
"""

from typing import Protocol

from bs4 import BeautifulSoup, NavigableString, Tag


class ElementHandle(Protocol):
    """A single DOM element."""

    def get_attribute(self, name: str) -> str | None: ...

    def text(self) -> str: ...

    def direct_text(self) -> str: ...

    def inner_html(self) -> str: ...

    def query_all(self, selector: str) -> list["ElementHandle"]: ...

    def query_one(self, selector: str) -> "ElementHandle | None": ...


class DocumentHandle(Protocol):
    """A rendered page."""

    def query_all(self, selector: str) -> list[ElementHandle]: ...


class SoupElement:
    """:class:`ElementHandle` backed by a BeautifulSoup ``Tag``."""

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    def get_attribute(self, name: str) -> str | None:
        """Return the attribute value, joining multi-valued ones."""
        value = self._tag.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return " ".join(str(v) for v in value)
        return str(value)

    def text(self) -> str:
        """Return all descendant text."""
        return self._tag.get_text()

    def direct_text(self) -> str:
        """Return only the element's own text nodes, skipping children."""
        return "".join(
            str(node)
            for node in self._tag.children
            if isinstance(node, NavigableString)
        )

    def inner_html(self) -> str:
        """Return the serialised child markup."""
        return self._tag.decode_contents()

    def query_all(self, selector: str) -> list[ElementHandle]:
        return [SoupElement(t) for t in self._tag.select(selector)]

    def query_one(self, selector: str) -> ElementHandle | None:
        found = self._tag.select_one(selector)
        return SoupElement(found) if found is not None else None


class SoupDocument:
    """:class:`DocumentHandle` backed by a parsed BeautifulSoup tree."""

    def __init__(self, soup: BeautifulSoup) -> None:
        self.soup = soup

    @classmethod
    def from_html(cls, html: str) -> "SoupDocument":
        """Parse raw HTML with lxml."""
        return cls(BeautifulSoup(html, "lxml"))

    def query_all(self, selector: str) -> list[ElementHandle]:
        return [SoupElement(t) for t in self.soup.select(selector)]

    def has(self, selector: str) -> bool:
        """True if at least one element matches *selector*."""
        return self.soup.select_one(selector) is not None
