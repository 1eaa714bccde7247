"""
Rule-based HTML extraction.
Validates that a fetch produced usable content and pre-digests it for the
downstream job extractor. Parsing is best effort and never raises.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from loguru import logger

from app.fetch.dom import Node, ParseDocument, parse_html

# Visible-text phrases of bot challenges and block pages
BLOCK_TEXT_MARKERS = (
    "verify you are human",
    "are you a robot",
    "access denied",
    "unusual traffic from your computer",
    "enable javascript and cookies to continue",
    "request unsuccessful. incapsula",
    "pardon our interruption",
)
# Markup-only markers of challenge pages
BLOCK_HTML_MARKERS = ("cf-chl-", "challenge-platform", "px-captcha", "_incapsula_resource")


@dataclass(frozen=True)
class ExtractedSignals:
    text: str = ""
    metadata: Dict[str, str] = field(default_factory=dict)
    links: List[str] = field(default_factory=list)
    structured_data: List[Any] = field(default_factory=list)
    tables: List[List[Dict[str, str]]] = field(default_factory=list)


class HtmlExtractor:
    def __init__(self, parse: ParseDocument = parse_html):
        self._parse = parse

    def _load(self, html: str) -> Node:
        try:
            return self._parse(html or "")
        except Exception as e:
            logger.debug(f"HTML parser rejected markup ({e}), using an empty document")
            return self._parse("")

    def extract(self, html: str, base_url: Optional[str] = None) -> ExtractedSignals:
        doc = self._load(html)
        metadata = self._metadata(doc)
        links = self._links(doc, base_url)
        structured = self._structured_data(doc)
        tables = [self._table(table) for table in doc.select("table")]
        # text removes nodes, so it runs last
        text = self._text(doc)
        return ExtractedSignals(
            text=text,
            metadata=metadata,
            links=links,
            structured_data=structured,
            tables=tables,
        )

    def extract_text(self, html: str) -> str:
        return self._text(self._load(html))

    def extract_metadata(self, html: str) -> Dict[str, str]:
        return self._metadata(self._load(html))

    def extract_links(self, html: str, base_url: Optional[str] = None) -> List[str]:
        return self._links(self._load(html), base_url)

    def extract_structured_data(self, html: str) -> List[Any]:
        return self._structured_data(self._load(html))

    def extract_table(self, html: str, selector: str = "table") -> List[Dict[str, str]]:
        tables = self._load(html).select(selector)
        return self._table(tables[0]) if tables else []

    def detect_block(self, html: str) -> Optional[str]:
        """Return the marker if the page looks like a bot challenge or block page."""
        lowered = (html or "").lower()
        for marker in BLOCK_HTML_MARKERS:
            if marker in lowered:
                return marker
        text = self.extract_text(html).lower()
        for marker in BLOCK_TEXT_MARKERS:
            if marker in text:
                return marker
        return None

    def is_usable(self, html: str, min_chars: int) -> bool:
        return self.detect_block(html) is None and len(self.extract_text(html)) >= min_chars

    def clean_body_text(self, html: str, max_length: int = 8000) -> str:
        """
        Compact body text for the downstream extractor.
        Drops non-content tags and cookie/consent/ad noise, keeps line breaks.
        """
        doc = self._load(html)
        bodies = doc.select("body")
        body = bodies[0] if bodies else doc

        drop = (
            "script, style, nav, header, footer, aside, noscript, svg, canvas, iframe, "
            "link, meta, form, picture, source, video, audio, button, input, select, textarea, dialog"
        )
        for node in body.select(drop):
            node.remove()

        noise = (
            '[class*="cookie" i], [id*="cookie" i], [class*="consent" i], [id*="consent" i], '
            '[class*="gdpr" i], [id*="gdpr" i], [class*="advert" i], [id*="advert" i], '
            '[class*="banner" i], [id*="banner" i], .social, .share, .newsletter, .breadcrumb, .breadcrumbs'
        )
        for node in body.select(noise):
            node.remove()

        lines = [line.strip() for line in body.text("\n").splitlines()]
        text = "\n".join(line for line in lines if line)
        text = re.sub(r"[ \t]{2,}", " ", text)

        if len(text) > max_length:
            text = text[:max_length] + "..."
        return text

    def _text(self, doc: Node) -> str:
        for node in doc.select("script, style, noscript"):
            node.remove()
        bodies = doc.select("body")
        target = bodies[0] if bodies else doc
        return re.sub(r"\s+", " ", target.text(" ")).strip()

    def _metadata(self, doc: Node) -> Dict[str, str]:
        metadata: Dict[str, str] = {}

        titles = doc.select("title")
        if titles:
            title = titles[0].text().strip()
            if title:
                metadata["title"] = title

        # Covers og:* properties and twitter:* names alike
        for meta in doc.select("meta"):
            key = meta.attr("name") or meta.attr("property")
            content = meta.attr("content")
            if key and content:
                metadata[key.strip()] = content.strip()

        return metadata

    def _links(self, doc: Node, base_url: Optional[str]) -> List[str]:
        links: List[str] = []
        seen = set()
        for node, attr in [(a, "href") for a in doc.select("a[href]")] + [(img, "src") for img in doc.select("img[src]")]:
            value = (node.attr(attr) or "").strip()
            if not value:
                continue
            try:
                resolved = urljoin(base_url, value) if base_url else value
            except ValueError:
                continue
            if resolved not in seen:
                seen.add(resolved)
                links.append(resolved)
        return links

    def _structured_data(self, doc: Node) -> List[Any]:
        data = []
        for script in doc.select('script[type="application/ld+json"]'):
            try:
                data.append(json.loads(script.raw()))
            except (ValueError, TypeError):
                continue
        return data

    def _table(self, table: Node) -> List[Dict[str, str]]:
        headers = [cell.text().strip() for cell in table.select(":scope > thead > tr > th, :scope > thead > tr > td")]
        rows = table.select(":scope > tbody > tr, :scope > tr")

        if not headers and rows:
            first = rows[0]
            if first.select(":scope > th") and not first.select(":scope > td"):
                headers = [cell.text().strip() for cell in first.select(":scope > th")]
                rows = rows[1:]

        data = []
        for row in rows:
            cells = [cell.text().strip() for cell in row.select(":scope > th, :scope > td")]
            if not cells:
                continue
            if headers and len(headers) == len(cells):
                keys = headers
            else:
                keys = [f"column_{i}" for i in range(len(cells))]
            data.append(dict(zip(keys, cells)))
        return data
