"""Minimal element tree used as the ad container contract.

Only the parts of a document the ad engine touches are modelled:
attributes, parent/child links, ancestor and descendant lookup by tag or
attribute, and a bounding rectangle supplied by the host's layout.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

_handles = itertools.count(1)


@dataclass(frozen=True)
class Rect:
    """Viewport-relative bounding box in CSS pixels."""

    top: float = 0.0
    left: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def right(self) -> float:
        return self.left + self.width


class Element:
    """A node of the page with attributes and children.

    Every element carries an opaque ``handle``. Registries key their
    per-element state by this handle rather than by the element itself.
    """

    def __init__(
        self,
        tag: str,
        attributes: dict[str, str] | None = None,
        children: Iterable[Element] = (),
        *,
        rect: Rect | None = None,
        handle: str | None = None,
    ) -> None:
        self.tag = tag.lower()
        self.attributes: dict[str, str] = dict(attributes or {})
        self.parent: Element | None = None
        self.children: list[Element] = []
        self.handle = handle or f"{self.tag}-{next(_handles)}"
        self._rect = rect or Rect()
        for child in children:
            self.append(child)

    def __repr__(self) -> str:
        return f"<Element {self.tag} handle={self.handle!r}>"

    def append(self, child: Element) -> Element:
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove(self, child: Element) -> None:
        if child in self.children:
            self.children.remove(child)
            child.parent = None

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def set_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = value

    def remove_attribute(self, name: str) -> None:
        self.attributes.pop(name, None)

    def ancestors(self) -> Iterator[Element]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def descendants(self) -> Iterator[Element]:
        """Depth-first, document order, excluding the element itself."""
        for child in self.children:
            yield child
            yield from child.descendants()

    def closest(self, attribute: str, value: str | None = None) -> Element | None:
        """Nearest of self and ancestors carrying *attribute* (with *value* if given)."""
        for node in itertools.chain((self,), self.ancestors()):
            current = node.attributes.get(attribute)
            if current is None:
                continue
            if value is None or current == value:
                return node
        return None

    def query_selector(self, tag: str) -> Element | None:
        """First descendant with the given tag name."""
        wanted = tag.lower()
        return next((node for node in self.descendants() if node.tag == wanted), None)

    def get_bounding_client_rect(self) -> Rect:
        return self._rect

    def set_rect(self, rect: Rect) -> None:
        self._rect = rect
