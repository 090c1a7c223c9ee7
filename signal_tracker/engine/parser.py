"""HTML helpers turning fetched pages into text units."""

from __future__ import annotations

import re
from dataclasses import dataclass
from html import unescape
from urllib.parse import urljoin

from selectolax.parser import HTMLParser

_MARKUP = re.compile(r"<\s*(?:html|body|div|p|li|a|span|h[1-6]|section|article|br)\b", re.IGNORECASE)
_SPACES = re.compile(r"[ \t\r\f\v]+")
NOISE_TAGS = ["script", "style", "noscript", "svg", "iframe", "template"]
BLOCK_SELECTOR = "h1, h2, h3, h4, h5, h6, p, li, dt, dd, td, blockquote, a"


@dataclass(frozen=True, slots=True)
class PageLink:
    text: str
    url: str


def looks_like_html(text: str) -> bool:
    return bool(text) and bool(_MARKUP.search(text))


def _clean(value: str) -> str:
    return _SPACES.sub(" ", unescape(value or "")).strip()


def html_to_units(html: str, selector: str = BLOCK_SELECTOR, min_length: int = 3) -> list[str]:
    """Return the de-duplicated text of block-level nodes, in document order."""

    tree = HTMLParser(html)
    tree.strip_tags(NOISE_TAGS)
    units: list[str] = []
    seen: set[str] = set()
    for node in tree.css(selector):
        text = _clean(node.text(separator=" "))
        if len(text) < min_length or text in seen:
            continue
        seen.add(text)
        units.append(text)
    if not units:
        root = tree.body or tree.root
        if root is not None:
            units = [
                line for line in (_clean(part) for part in root.text(separator="\n").splitlines()) if line
            ]
    return units


def html_to_text(html: str, selector: str = BLOCK_SELECTOR) -> str:
    return "\n".join(html_to_units(html, selector))


def extract_links(html: str, base_url: str, selector: str = "a[href]") -> list[PageLink]:
    tree = HTMLParser(html)
    links: list[PageLink] = []
    seen: set[str] = set()
    for node in tree.css(selector):
        href = (node.attributes.get("href") or "").strip()
        if not href or href.startswith(("javascript:", "#", "mailto:")):
            continue
        full_url = urljoin(base_url, href)
        if full_url in seen:
            continue
        seen.add(full_url)
        links.append(PageLink(text=_clean(node.text(separator=" ")), url=full_url))
    return links


__all__ = [
    "BLOCK_SELECTOR",
    "PageLink",
    "extract_links",
    "html_to_text",
    "html_to_units",
    "looks_like_html",
]
