"""
Document access - read-only views over a rendered page.

Two backends share one small async surface:

- ``HtmlDocument``: a static HTML snapshot parsed with BeautifulSoup,
  resolved with soupsieve CSS selectors.
- ``PlaywrightDocument``: a live Playwright page; traversal and selector
  construction run in the browser via ``page.evaluate``.

Selectors are built the same way in both: walk up to ``MAX_SELECTOR_DEPTH``
ancestors below ``<body>``, stop at the first element with an id, otherwise
use up to three classes plus ``:nth-of-type()`` when same-tag siblings exist.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import soupsieve
from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

SCAN_TAGS = ("div", "span", "p", "section", "article", "td", "th")
MAX_SELECTOR_DEPTH = 5
MAX_SELECTOR_CLASSES = 3
INVISIBLE_TAGS = ("script", "style", "noscript", "template")


@dataclass
class Selector:
    """Re-resolvable locator for one element."""
    selector: str
    id: Optional[str] = None
    class_name: Optional[str] = None
    tag_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Selector":
        return cls(
            selector=str(data.get("selector") or ""),
            id=data.get("id") or None,
            class_name=data.get("class_name") or None,
            tag_name=data.get("tag_name") or None,
        )


@dataclass
class ElementSnapshot:
    """What the core reads from one element."""
    tag_name: str
    text: str
    selector: str
    id: Optional[str] = None
    class_name: Optional[str] = None

    def to_selector(self) -> Selector:
        return Selector(
            selector=self.selector,
            id=self.id,
            class_name=self.class_name,
            tag_name=self.tag_name,
        )


class Document(ABC):
    """Read-only document query interface."""

    @abstractmethod
    async def elements(self, tags: Iterable[str] = SCAN_TAGS) -> List[ElementSnapshot]:
        """All elements of the given tag kinds, in document order."""

    @abstractmethod
    async def resolve(self, selector: Selector) -> Optional[ElementSnapshot]:
        """Resolve a selector back to an element; None when it does not match."""

    @abstractmethod
    async def page_info(self) -> Dict[str, str]:
        """``{"url": ..., "title": ...}``"""


def visible_text(element: Tag) -> str:
    return " ".join(element.get_text(" ").split())


def build_selector(element: Tag, max_depth: int = MAX_SELECTOR_DEPTH) -> str:
    parts: List[str] = []
    current: Optional[Tag] = element
    while (
        isinstance(current, Tag)
        and current.name not in ("body", "html", "[document]")
        and len(parts) < max_depth
    ):
        part = current.name
        element_id = current.get("id")
        if element_id:
            parts.insert(0, f"{part}#{soupsieve.escape(element_id)}")
            break

        classes = [c for c in current.get("class", []) if c][:MAX_SELECTOR_CLASSES]
        if classes:
            part += "." + ".".join(soupsieve.escape(c) for c in classes)

        parent = current.parent
        if parent is not None:
            siblings = parent.find_all(current.name, recursive=False)
            if len(siblings) > 1:
                position = next(i for i, s in enumerate(siblings) if s is current) + 1
                part += f":nth-of-type({position})"

        parts.insert(0, part)
        current = parent
    return " > ".join(parts)


class HtmlDocument(Document):
    """Static HTML snapshot."""

    def __init__(self, html: str, url: str = "", title: Optional[str] = None):
        self.soup = BeautifulSoup(html, "html.parser")
        for hidden in self.soup(list(INVISIBLE_TAGS)):
            hidden.decompose()
        self.url = url
        if title is None:
            title = self.soup.title.get_text(strip=True) if self.soup.title else ""
        self.title = title

    @classmethod
    def from_file(cls, path, url: str = "") -> "HtmlDocument":
        return cls(Path(path).read_text(encoding="utf-8", errors="replace"), url=url)

    def _snapshot(self, element: Tag) -> ElementSnapshot:
        classes = [c for c in element.get("class", []) if c]
        return ElementSnapshot(
            tag_name=element.name,
            text=visible_text(element),
            selector=build_selector(element),
            id=element.get("id") or None,
            class_name=" ".join(classes) or None,
        )

    async def elements(self, tags: Iterable[str] = SCAN_TAGS) -> List[ElementSnapshot]:
        return [self._snapshot(el) for el in self.soup.find_all(list(tags))]

    async def resolve(self, selector: Selector) -> Optional[ElementSnapshot]:
        if selector.id:
            element = self.soup.find(id=selector.id)
            if element is not None:
                return self._snapshot(element)
        if selector.selector:
            try:
                element = self.soup.select_one(selector.selector)
            except soupsieve.SelectorSyntaxError:
                logger.warning(f"Invalid cached selector: {selector.selector}")
                return None
            if element is not None:
                return self._snapshot(element)
        return None

    async def page_info(self) -> Dict[str, str]:
        return {"url": self.url, "title": self.title}


_ELEMENTS_JS = """
({tags, maxDepth, maxClasses}) => {
    const esc = (s) => (window.CSS && CSS.escape) ? CSS.escape(s) : s;
    const buildSelector = (element) => {
        const parts = [];
        let current = element;
        while (current && current !== document.body && current !== document.documentElement
               && parts.length < maxDepth) {
            let part = current.tagName.toLowerCase();
            if (current.id) {
                parts.unshift(part + '#' + esc(current.id));
                break;
            }
            const classes = (typeof current.className === 'string' ? current.className : '')
                .split(/\\s+/).filter(c => c.length > 0).slice(0, maxClasses);
            if (classes.length > 0) {
                part += '.' + classes.map(esc).join('.');
            }
            const parent = current.parentElement;
            if (parent) {
                const siblings = Array.from(parent.children)
                    .filter(el => el.tagName === current.tagName);
                if (siblings.length > 1) {
                    part += ':nth-of-type(' + (siblings.indexOf(current) + 1) + ')';
                }
            }
            parts.unshift(part);
            current = parent;
        }
        return parts.join(' > ');
    };

    return Array.from(document.querySelectorAll(tags.join(','))).map(el => ({
        tag_name: el.tagName.toLowerCase(),
        text: (el.innerText || el.textContent || '').replace(/\\s+/g, ' ').trim(),
        selector: buildSelector(el),
        id: el.id || null,
        class_name: (typeof el.className === 'string' && el.className.trim()) || null,
    }));
}
"""

_RESOLVE_JS = """
({id, selector}) => {
    const describe = (el) => ({
        tag_name: el.tagName.toLowerCase(),
        text: (el.innerText || el.textContent || '').replace(/\\s+/g, ' ').trim(),
        selector: selector || '',
        id: el.id || null,
        class_name: (typeof el.className === 'string' && el.className.trim()) || null,
    });
    if (id) {
        const byId = document.getElementById(id);
        if (byId) return describe(byId);
    }
    if (selector) {
        try {
            const el = document.querySelector(selector);
            if (el) return describe(el);
        } catch (e) {
            return {invalid: true};
        }
    }
    return null;
}
"""


class PlaywrightDocument(Document):
    """Live Playwright page."""

    def __init__(self, page):
        self.page = page

    async def elements(self, tags: Iterable[str] = SCAN_TAGS) -> List[ElementSnapshot]:
        rows = await self.page.evaluate(_ELEMENTS_JS, {
            "tags": list(tags),
            "maxDepth": MAX_SELECTOR_DEPTH,
            "maxClasses": MAX_SELECTOR_CLASSES,
        })
        return [ElementSnapshot(**row) for row in rows or []]

    async def resolve(self, selector: Selector) -> Optional[ElementSnapshot]:
        row = await self.page.evaluate(_RESOLVE_JS, {
            "id": selector.id,
            "selector": selector.selector,
        })
        if not row:
            return None
        if row.get("invalid"):
            logger.warning(f"Invalid cached selector: {selector.selector}")
            return None
        return ElementSnapshot(**row)

    async def page_info(self) -> Dict[str, str]:
        return {"url": self.page.url, "title": await self.page.title()}
