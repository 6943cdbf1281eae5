"""Trailing "Sources" block extraction."""

import re
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlsplit

from ..models import Citation

# ---
# **Sources:**
# - [Title](https://example.com) — description
SOURCES_BLOCK = re.compile(
    r"^[ \t]*-{3,}[ \t]*\n\s*\*\*Sources:\*\*[ \t]*(?:\n(?P<body>.*))?\Z",
    re.MULTILINE | re.DOTALL,
)
ENTRY_LINE = re.compile(r"^\s*(?:[-*]|\d+\.)\s+")
LINK = re.compile(r"\[(?P<title>[^\]]+)\]\((?P<url>[^)\s]+)\)(?:\s*[—–-]\s*(?P<description>.+))?")


@dataclass(frozen=True)
class ParsedSources:
    """Citations plus the text left for display."""

    citations: tuple[Citation, ...]
    display_text: str


def extract_domain(url: str) -> str:
    """Host of ``url`` without a leading ``www.``; the raw url if it has none."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return url
    if not host:
        return url
    return host.removeprefix("www.")


def parse_source_line(line: str) -> Citation | None:
    """Parse one list entry. Returns None for anything that is not a link entry."""
    if not ENTRY_LINE.match(line):
        return None
    match = LINK.search(line)
    if not match:
        return None

    description = match.group("description")
    description = description.strip() if description else None
    url = match.group("url")
    return Citation(
        title=match.group("title").strip(),
        url=url,
        domain=extract_domain(url),
        description=description or None,
    )


@lru_cache(maxsize=512)
def parse_sources(text: str) -> ParsedSources:
    """Strip the trailing sources block from ``text`` and parse its entries.

    Entries keep their written order. Lines that are not well-formed link
    entries are skipped.
    """
    match = SOURCES_BLOCK.search(text)
    if not match:
        return ParsedSources(citations=(), display_text=text)

    body = match.group("body") or ""
    citations = []
    for line in body.splitlines():
        citation = parse_source_line(line)
        if citation is not None:
            citations.append(citation)

    return ParsedSources(
        citations=tuple(citations),
        display_text=text[: match.start()].rstrip(),
    )
