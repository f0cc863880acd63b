"""README text preparation ahead of summarization.

Uses ``tiktoken`` so the README handed to the model is bounded in tokens,
not characters.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

import tiktoken

_ENCODING_NAME = "cl100k_base"  # GPT-4o family

_IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
_HTML_IMG_RE = re.compile(r"<img[^>]*>", re.IGNORECASE)
_LABELED_LINK_RE = re.compile(
    r"\b(?:Website|Demo|Docs?|Homepage|Site|Project)\b[^:\n]*:\s*(https?://[^\s)]+)",
    re.IGNORECASE,
)
_MARKDOWN_LINK_RE = re.compile(r"\[[^\]]*\]\((https?://[^\s)]+)\)")
_BARE_URL_RE = re.compile(r"https?://[^\s<>\"')]+")

_HOSTING_DOMAINS = ("github.com", "githubusercontent.com")

_TRUNCATION_MARKER = "\n\n[… README truncated]"

_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    global _encoder  # noqa: PLW0603
    if _encoder is None:
        _encoder = tiktoken.get_encoding(_ENCODING_NAME)
    return _encoder


def strip_badges(markdown: str) -> str:
    """Drop image embeds (shields, screenshots) that carry no prose."""
    return _HTML_IMG_RE.sub("", _IMAGE_RE.sub("", markdown))


def truncate_tokens(text: str, max_tokens: int) -> str:
    """Cut *text* to *max_tokens*, backing off to the last paragraph break."""
    tokens = _get_encoder().encode(text)
    if len(tokens) <= max_tokens:
        return text

    truncated = _get_encoder().decode(tokens[:max_tokens])
    last_para = truncated.rfind("\n\n")
    if last_para > 0:
        truncated = truncated[:last_para]
    return truncated + _TRUNCATION_MARKER


def prepare_readme(markdown: str, max_tokens: int) -> str:
    return truncate_tokens(strip_badges(markdown).strip(), max_tokens)


def website_from_readme(markdown: str) -> str | None:
    """First project website mentioned in the README, preferring non-GitHub links.

    Labelled links (``Website: https://…``) win over markdown links, which
    win over bare URLs.
    """
    candidates: list[str] = []
    for pattern in (_LABELED_LINK_RE, _MARKDOWN_LINK_RE, _BARE_URL_RE):
        for match in pattern.finditer(strip_badges(markdown)):
            url = match.group(1) if match.groups() else match.group(0)
            if _is_website(url) and url not in candidates:
                candidates.append(url)

    for url in candidates:
        if not _on_hosting_domain(url):
            return url
    return None


def _is_website(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    host = parts.hostname or ""
    return parts.scheme in ("http", "https") and "." in host and host != "localhost"


def _on_hosting_domain(url: str) -> bool:
    host = (urlsplit(url).hostname or "").lower()
    return any(host == d or host.endswith(f".{d}") for d in _HOSTING_DOMAINS)
