"""
SideHive Telemetry - Current location.

Holds the URL the client is "on" and rewrites its query string in place,
the way history.replaceState would (no reload).
"""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


class Location:
    """Mutable current URL with query helpers."""

    def __init__(self, url: str):
        self.href = url
        self.history: list[str] = []

    def _query(self) -> list[tuple[str, str]]:
        return parse_qsl(urlsplit(self.href).query, keep_blank_values=True)

    def get_param(self, name: str) -> str | None:
        for key, value in self._query():
            if key == name:
                return value or None
        return None

    def _replace_query(self, query: list[tuple[str, str]]) -> None:
        parts = urlsplit(self.href)
        self.history.append(self.href)
        self.href = urlunsplit(parts._replace(query=urlencode(query)))

    def set_param(self, name: str, value: str) -> None:
        """Set (or replace) one query parameter."""
        query = [(k, v) for k, v in self._query() if k != name]
        query.append((name, value))
        self._replace_query(query)

    def remove_param(self, name: str) -> None:
        query = self._query()
        if any(k == name for k, _ in query):
            self._replace_query([(k, v) for k, v in query if k != name])
