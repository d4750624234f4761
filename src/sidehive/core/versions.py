"""
SideHive Core - Version counters for cache-busting regenerated assets.
"""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


class VersionCounter:
    """Monotonic per-key counters. Start at 0 (never bumped)."""

    def __init__(self):
        self._versions: dict[str, int] = {}

    def bump(self, key: str) -> int:
        self._versions[key] = self._versions.get(key, 0) + 1
        return self._versions[key]

    def get(self, key: str) -> int:
        return self._versions.get(key, 0)

    def append(self, url: str, key: str) -> str:
        """
        Append `v=<version>` to a URL.

        Unbumped keys leave the URL alone. Data URLs are never rewritten
        because a query string would corrupt the payload.
        """
        version = self.get(key)
        if not version or not url or url.startswith("data:"):
            return url

        parts = urlsplit(url)
        query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "v"]
        query.append(("v", str(version)))
        return urlunsplit(parts._replace(query=urlencode(query)))

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._versions.clear()
        else:
            self._versions.pop(key, None)
