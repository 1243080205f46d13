"""URL and file content extraction with BeautifulSoup."""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
import re
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from ..constants import DEFAULT_HTTP_TIMEOUT
from ..contracts import utcnow
from ..errors import ContentExtractionError
from ..utils.retry import retry_async
from .base import ContentExtractor

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; flowrunner/0.1; +content-extractor)"

# Tried in order; the first one with text wins.
CONTENT_SELECTORS = [
    "main, article, [role=main], .content, #content",
    ".markdown-body, .documentation, .docs-content",
    "[class*=content], [id*=content]",
]

STRIPPED_TAGS = ["script", "style", "noscript", "iframe"]

MIN_CONTENT_LENGTH = 10


def clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _meta(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find("meta", attrs=attrs)
    return (tag.get("content") or "").strip() if tag else ""


def extract_metadata(soup: BeautifulSoup) -> Dict[str, str]:
    return {
        "title": soup.title.get_text(strip=True) if soup.title else "",
        "description": _meta(soup, name="description"),
        "ogTitle": _meta(soup, property="og:title"),
        "ogDescription": _meta(soup, property="og:description"),
        "ogImage": _meta(soup, property="og:image"),
    }


def extract_json_ld(soup: BeautifulSoup) -> List[str]:
    parts: List[str] = []
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            document = json.loads(script.string or "")
        except ValueError:
            logger.debug("Skipping unparsable JSON-LD block")
            continue
        for item in document if isinstance(document, list) else [document]:
            if not isinstance(item, dict):
                continue
            for key in ("description", "articleBody"):
                if isinstance(item.get(key), str):
                    parts.append(item[key])
    return parts


def extract_links(soup: BeautifulSoup, base_url: Optional[str] = None) -> List[Dict[str, str]]:
    links = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        text = anchor.get_text(strip=True)
        if not text or href.startswith("#"):
            continue
        links.append({"href": urljoin(base_url, href) if base_url else href, "text": text})
    return links


def find_main_content(soup: BeautifulSoup) -> str:
    for selector in CONTENT_SELECTORS:
        text = clean_text(" ".join(el.get_text(" ") for el in soup.select(selector)))
        if text:
            return text
    blocks = [
        el.get_text(" ", strip=True)
        for el in soup.select("h1, h2, h3, h4, h5, h6, p")
        if not el.find_parent(["nav", "header", "footer"])
    ]
    text = "\n\n".join(block for block in blocks if block)
    if text:
        return text
    return clean_text(soup.body.get_text(" ")) if soup.body else ""


def parse_html(html: str, url: Optional[str] = None) -> Dict[str, Any]:
    """Pull readable text, metadata and links out of an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    json_ld = extract_json_ld(soup)
    for tag in soup(STRIPPED_TAGS):
        tag.decompose()

    metadata = extract_metadata(soup)
    content = "\n\n".join(json_ld) or find_main_content(soup)
    return {
        "title": metadata["title"],
        "content": content,
        "links": extract_links(soup, url),
        "metadata": metadata,
    }


class WebContentExtractor(ContentExtractor):
    """Fetch pages over HTTP and read local files."""

    def __init__(
        self,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        attempts: int = 3,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._timeout = timeout
        self._attempts = attempts
        self._session = session or requests.Session()

    def _get(self, url: str) -> str:
        response = self._session.get(
            url,
            timeout=self._timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "text/html,*/*"},
        )
        response.raise_for_status()
        return response.text

    async def extract_from_url(self, url: str) -> Dict[str, Any]:
        if not url:
            raise ContentExtractionError("URL is required")
        try:
            html = await retry_async(
                lambda: asyncio.to_thread(self._get, url),
                attempts=self._attempts,
                retry_on=(requests.RequestException,),
                description=f"Fetching {url}",
            )
        except requests.RequestException as exc:
            raise ContentExtractionError(f"could not fetch {url}: {exc}") from exc
        if not html:
            raise ContentExtractionError(f"empty response from {url}")

        parsed = parse_html(html, url)
        content, metadata = parsed["content"], parsed["metadata"]
        if len(content) < MIN_CONTENT_LENGTH and not any(
            metadata[key] for key in ("title", "description", "ogTitle", "ogDescription")
        ):
            raise ContentExtractionError(f"no meaningful content could be extracted from {url}")

        logger.info(f"Extracted {len(content)} characters from {url}")
        return {
            "url": url,
            "title": metadata["title"] or url,
            "description": metadata["description"] or content[:200],
            "content": content,
            "links": parsed["links"],
            "metadata": metadata,
            "timestamp": utcnow().isoformat(),
        }

    async def extract_from_file(self, path: str) -> Dict[str, Any]:
        if not path:
            raise ContentExtractionError("file path is required")
        return await asyncio.to_thread(self._read_file, Path(path))

    @staticmethod
    def _read_file(path: Path) -> Dict[str, Any]:
        suffix = path.suffix.lower()
        mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ContentExtractionError(f"could not read {path}: {exc}") from exc

        base = {"filename": path.name, "metadata": {"fileSize": len(raw), "filePath": str(path)}}
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            return {**base, "content": f"Binary file ({len(raw)} bytes)", "type": mime}

        if suffix == ".json":
            try:
                return {**base, "content": json.loads(text), "type": "application/json"}
            except ValueError as exc:
                raise ContentExtractionError(f"invalid JSON in {path}: {exc}") from exc
        if suffix in (".html", ".htm"):
            parsed = parse_html(text)
            return {
                **base,
                "content": parsed["content"],
                "type": "text/html",
                "title": parsed["title"],
                "links": parsed["links"],
                "metadata": {**base["metadata"], **parsed["metadata"]},
            }
        return {**base, "content": text, "type": "text/plain" if suffix == ".txt" else mime}
