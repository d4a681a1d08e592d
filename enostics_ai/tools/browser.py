"""URL fetch-and-extract capability."""

import re
from html import unescape
from typing import Any
from urllib.parse import urljoin, urlparse

import httpx

from enostics_ai.config.schema import BrowserToolConfig
from enostics_ai.tools.base import Tool
from enostics_ai.utils.helpers import now_iso

EXTRACT_TYPES = ("text", "links", "images", "metadata")

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)
_HREF_RE = re.compile(r"<a\b[^>]*?href\s*=\s*[\"']([^\"']+)[\"'][^>]*>(.*?)</a\s*>", re.IGNORECASE | re.DOTALL)
_IMG_RE = re.compile(r"<img\b[^>]*?src\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_META_RE = re.compile(
    r"<meta\b[^>]*?name\s*=\s*[\"']([^\"']+)[\"'][^>]*?content\s*=\s*[\"']([^\"']*)[\"']",
    re.IGNORECASE,
)


def strip_tags(html: str) -> str:
    """Drop script/style blocks and markup, collapse whitespace."""
    text = _SCRIPT_STYLE_RE.sub(" ", html or "")
    text = _TAG_RE.sub(" ", text)
    return " ".join(unescape(text).split())


def extract_title(html: str) -> str:
    match = _TITLE_RE.search(html or "")
    return " ".join(unescape(match.group(1)).split()) if match else ""


def extract_links(html: str, base_url: str, max_links: int = 100) -> list[dict[str, str]]:
    links: list[dict[str, str]] = []
    seen: set[str] = set()
    for href, inner in _HREF_RE.findall(html or ""):
        absolute = urljoin(base_url, href.strip())
        key = absolute.lower()
        if key in seen:
            continue
        seen.add(key)
        links.append({"url": absolute, "text": strip_tags(inner)[:140]})
        if len(links) >= max_links:
            break
    return links


def _host_matches(host: str, domain_rule: str) -> bool:
    host_l = host.lower().strip(".")
    rule_l = domain_rule.lower().strip().strip(".")
    if not host_l or not rule_l:
        return False
    return host_l == rule_l or host_l.endswith(f".{rule_l}")


class BrowseWebTool(Tool):
    """Fetch a URL and return extracted content."""

    name = "browse_web"
    description = "Browse a website and extract content for analysis"
    parameters = {
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "The URL to browse"},
            "extract_type": {
                "type": "string",
                "enum": list(EXTRACT_TYPES),
                "description": "Type of content to extract",
            },
        },
        "required": ["url"],
    }

    def __init__(self, config: BrowserToolConfig | None = None):
        self.config = config or BrowserToolConfig()

    def _check_url(self, url: str) -> str | None:
        try:
            parsed = urlparse(url)
            host = (parsed.hostname or "").lower()
        except ValueError as e:
            return f"Invalid URL: {e}"
        if parsed.scheme not in {"http", "https"}:
            return f"Unsupported URL scheme: {parsed.scheme or '(none)'}"
        if not host:
            return "URL host is missing."
        for denied in self.config.deny_domains:
            if _host_matches(host, denied):
                return f"Domain blocked by deny list: {denied}"
        return None

    async def execute(self, url: str | None = None, extract_type: str = "text", **kwargs: Any) -> dict[str, Any]:
        target = (url or "").strip()
        kind = extract_type if extract_type in EXTRACT_TYPES else "text"
        reason = self._check_url(target)
        if reason:
            return {"error": f"Failed to browse {target}: {reason}"}

        try:
            async with httpx.AsyncClient(follow_redirects=True, timeout=self.config.timeout_seconds) as client:
                response = await client.get(target)
        except Exception as e:
            return {"error": f"Failed to browse {target}: {e}"}

        final_url = str(response.url)
        reason = self._check_url(final_url)
        if reason:
            return {"error": f"Failed to browse {target}: {reason}"}

        html = response.text or ""
        cap = self.config.max_content_chars
        result: dict[str, Any] = {
            "url": final_url,
            "status": response.status_code,
            "extract_type": kind,
            "metadata": {"title": extract_title(html), "timestamp": now_iso()},
        }
        if kind == "links":
            result["links"] = extract_links(html, final_url)
        elif kind == "images":
            result["images"] = [urljoin(final_url, src) for src in _IMG_RE.findall(html)][:100]
        elif kind == "metadata":
            result["metadata"]["meta"] = {name.lower(): content for name, content in _META_RE.findall(html)}
        else:
            result["content"] = strip_tags(html)[:cap]
        return result
