from typing import Any, Dict, List

import requests

from ..logging import get_logger


class SyncError(Exception):
    """A pull or push against the remote store failed."""


class RemoteStoreClient:
    """Thin client for a remote JSON collection endpoint.

    The endpoint answers ``GET`` with a JSON array of reports and accepts the
    full array back via ``PUT`` (or ``POST``). No auth, no paging, no partial
    updates. Every transport or decoding problem is raised as SyncError.
    """

    def __init__(
        self,
        *,
        timeout: int = 30,
        verify_tls: bool = True,
        method: str = "PUT",
    ) -> None:
        self.timeout = int(timeout)
        self.verify = bool(verify_tls)
        self.method = method.upper()
        if self.method not in {"PUT", "POST"}:
            raise ValueError(f"Unsupported upload method: {method}")
        self.log = get_logger("remote-client")
        self.s = requests.Session()
        self.s.headers.update({"Accept": "application/json"})

    def fetch_records(self, url: str) -> List[Any]:
        """GET the remote collection; an empty or null body means no records."""
        self.log.info(f"GET {url}")
        try:
            r = self.s.get(url, timeout=self.timeout, verify=self.verify)
            r.raise_for_status()
        except requests.RequestException as e:
            raise SyncError(f"GET {url} failed: {e}") from e

        if not r.content or not r.content.strip():
            return []
        try:
            body = r.json()
        except ValueError as e:
            raise SyncError(f"GET {url} returned invalid JSON: {e}") from e
        if body is None:
            return []
        if not isinstance(body, list):
            raise SyncError(f"GET {url} returned {type(body).__name__}, expected a JSON array")
        return body

    def save_records(self, url: str, payload: List[Dict[str, Any]]) -> None:
        """Upload the full collection, overwriting the remote copy."""
        self.log.info(f"{self.method} {url} ({len(payload)} report(s))")
        try:
            r = self.s.request(self.method, url, json=payload, timeout=self.timeout, verify=self.verify)
            r.raise_for_status()
        except requests.RequestException as e:
            raise SyncError(f"{self.method} {url} failed: {e}") from e
