"""
URL canonicalization for the crawler.

The normalized string is the crawl's only dedup key: two URLs differing
only in fragment or trailing slash are one page, URLs differing in query
string are not.
"""

from __future__ import annotations

from urllib.parse import urljoin, urlsplit, urlunsplit

DEFAULT_PORTS = {"http": 80, "https": 443}


class URLNormalizer:
    """Canonicalizes URLs for deduplication and same-origin checks."""

    SKIPPED_SCHEMES = ("javascript:", "mailto:", "tel:")
    IGNORED_EXTENSIONS = (
        ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".ico", ".bmp", ".avif",
        ".pdf", ".zip", ".tar", ".gz", ".rar", ".7z",
        ".css", ".js", ".mjs",
        ".woff", ".woff2", ".ttf", ".otf", ".eot",
        ".mp4", ".mp3", ".wav", ".webm",
    )

    @classmethod
    def origin(cls, url: str) -> str | None:
        """scheme://host[:port] with the default port elided, or None if not http(s)."""
        try:
            parts = urlsplit(url.strip())
            port = parts.port
        except ValueError:
            return None
        scheme = parts.scheme.lower()
        host = (parts.hostname or "").lower()
        if scheme not in DEFAULT_PORTS or not host:
            return None
        if ":" in host:
            host = f"[{host}]"
        if port is None or port == DEFAULT_PORTS[scheme]:
            return f"{scheme}://{host}"
        return f"{scheme}://{host}:{port}"

    @classmethod
    def is_same_origin(cls, url: str, origin: str) -> bool:
        return cls.origin(url) == origin

    @classmethod
    def normalize(cls, url: str, base_url: str, origin: str | None = None) -> str | None:
        """
        Resolve url against base_url and canonicalize it.
        Returns None if the URL should not be crawled.
        """
        raw = (url or "").strip()
        if not raw or raw.startswith("#"):
            return None
        if raw.lower().startswith(cls.SKIPPED_SCHEMES):
            return None

        try:
            parts = urlsplit(urljoin(base_url, raw))
        except ValueError:
            return None

        url_origin = cls.origin(urlunsplit((parts.scheme, parts.netloc, "", "", "")))
        if url_origin is None:
            return None
        if origin is not None and url_origin != origin:
            return None

        if parts.path.lower().endswith(cls.IGNORED_EXTENSIONS):
            return None

        # Trailing slashes are dropped except on the origin root
        path = parts.path.rstrip("/") or "/"

        return urlunsplit((*urlsplit(url_origin)[:2], path, parts.query, ""))
