"""
Parse-document capability used by the HTML extractor.

The extractor only talks to the Node protocol below, so any parser can be
plugged in; parse_html is the BeautifulSoup-backed default.
"""

from typing import Callable, List, Optional, Protocol

from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError


class Node(Protocol):
    def select(self, selector: str) -> List["Node"]: ...

    def attr(self, name: str) -> Optional[str]: ...

    def text(self, separator: str = " ") -> str: ...

    def raw(self) -> str: ...

    def remove(self) -> None: ...


ParseDocument = Callable[[str], Node]


class SoupNode:
    def __init__(self, tag):
        self._tag = tag

    def select(self, selector: str) -> List["SoupNode"]:
        try:
            return [SoupNode(tag) for tag in self._tag.select(selector)]
        except SelectorSyntaxError:
            return []

    def attr(self, name: str) -> Optional[str]:
        value = self._tag.get(name)
        if isinstance(value, list):  # class, rel
            return " ".join(value)
        return value

    def text(self, separator: str = " ") -> str:
        return self._tag.get_text(separator)

    def raw(self) -> str:
        return self._tag.string if self._tag.string is not None else self._tag.get_text()

    def remove(self) -> None:
        # Already gone when an ancestor was removed first
        if not self._tag.decomposed:
            self._tag.decompose()


def parse_html(html: str) -> SoupNode:
    return SoupNode(BeautifulSoup(html or "", "html.parser"))
