"""
Client for the import backend's discovery endpoints.

  POST {base}/admin/discovery/check   {"events": [{"id", "venueSlug"}]}
       -> {"events": {<id>: {exists, showId, status, currentData}}}
  POST {base}/admin/discovery/import  {"events": [...], "dryRun": bool}
       -> {total, imported, duplicates, rejected, pending_review, updated,
           errors, messages}

Import messages start with a fixed prefix vocabulary that callers match on;
classify_message() maps a message to its outcome.
"""

import logging
from typing import Iterable, Optional

import requests

from venuediscovery.errors import BackendError, ConfigurationError
from venuediscovery.models import DiscoveredEvent, ImportResult, ImportStatus

logger = logging.getLogger(__name__)

# Longest prefixes first: "WOULD FLAG FOR REVIEW" must not match as "WOULD ..."
_MESSAGE_PREFIXES: tuple[tuple[str, str], ...] = (
    ("WOULD FLAG FOR REVIEW", "review"),
    ("FLAGGED FOR REVIEW", "review"),
    ("WOULD IMPORT", "imported"),
    ("WOULD UPDATE", "updated"),
    ("IMPORTED", "imported"),
    ("UPDATED", "updated"),
    ("DUPLICATE", "duplicate"),
    ("REJECTED", "rejected"),
    ("ERROR", "error"),
    ("SKIP", "error"),
)


def classify_message(message: str) -> str:
    """imported | updated | duplicate | review | rejected | error | info"""
    for prefix, kind in _MESSAGE_PREFIXES:
        if message.startswith(prefix):
            return kind
    return "info"


class ImportClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        http: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.http = http or requests.Session()
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}

    def check_status(self, events: Iterable[tuple[str, str]]) -> dict[str, ImportStatus]:
        """
        Look up (event_id, venue_slug) pairs on the backend.

        Status badges are advisory, so a missing token or a failed request
        returns an empty map instead of raising.
        """
        pairs = [{"id": event_id, "venueSlug": slug} for event_id, slug in events if event_id and slug]
        if not pairs:
            return {}
        if not self.token:
            logger.info("No backend token configured; skipping import status check")
            return {}

        try:
            r = self.http.post(
                f"{self.base_url}/admin/discovery/check",
                json={"events": pairs},
                headers=self._headers(),
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Failed to check import status: %s", exc)
            return {}

        return {
            str(event_id): ImportStatus.from_payload(entry)
            for event_id, entry in (data.get("events") or {}).items()
        }

    def import_events(self, events: list[DiscoveredEvent], dry_run: bool = False) -> ImportResult:
        if not self.token:
            raise ConfigurationError("Backend API token not configured")

        try:
            r = self.http.post(
                f"{self.base_url}/admin/discovery/import",
                json={"events": [e.to_payload() for e in events], "dryRun": dry_run},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BackendError(f"Import request failed: {exc}") from exc

        if not r.ok:
            raise BackendError(_error_detail(r), status_code=r.status_code)
        try:
            return ImportResult.from_payload(r.json())
        except ValueError as exc:
            raise BackendError(f"Invalid import response: {exc}", status_code=r.status_code) from exc


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Failed to import events ({response.status_code})"
    if isinstance(body, dict):
        return body.get("detail") or body.get("message") or f"Failed to import events ({response.status_code})"
    return f"Failed to import events ({response.status_code})"
