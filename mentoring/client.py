"""
Matching Client

HTTP client for mentors working through their pending match requests.
After every accept/reject the pending list is re-fetched so the caller always
holds the server's view.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from mentoring.logic.constants import DEFAULT_REJECTION_REASON
from mentoring.logic.deadlines import can_respond, get_days_remaining, is_expired

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/matching"


class MatchingClientError(Exception):
    """Raised when the matching API answers with an error envelope."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class MatchingClient:
    """
    Thin wrapper over the matching API for the mentor request screen.

    Args:
        base_url: API root, e.g. https://api.example.com
        token: Bearer token of the signed-in mentor
        transport: Optional httpx transport (used in tests)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
    ):
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + API_PREFIX,
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
            timeout=timeout,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Matching API request failed: {method} {path}: {e}")
            raise MatchingClientError(0, str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error or not body.get("success", False):
            message = body.get("message") or response.reason_phrase or "Request failed"
            raise MatchingClientError(response.status_code, message)
        return body.get("data")

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def list_my_requests(self) -> List[Dict[str, Any]]:
        """Pending requests for the signed-in mentor, newest first."""
        data = self._request("GET", "/my-requests") or {}
        return data.get("matches", [])

    def accept(self, match_id: str) -> List[Dict[str, Any]]:
        """Accept a request and return the refreshed pending list."""
        self._request("PUT", f"/{match_id}/accept")
        return self.list_my_requests()

    def reject(self, match_id: str, reason: Optional[str] = None) -> List[Dict[str, Any]]:
        """Reject a request and return the refreshed pending list."""
        reason = reason.strip() if reason else ""
        self._request("PUT", f"/{match_id}/reject", json={"reason": reason or DEFAULT_REJECTION_REASON})
        return self.list_my_requests()

    def list_my_mentees(self, program_id: str) -> List[Dict[str, Any]]:
        data = self._request("GET", f"/{program_id}/my-mentees") or {}
        return data.get("mentees", [])


__all__ = [
    "MatchingClient",
    "MatchingClientError",
    "get_days_remaining",
    "is_expired",
    "can_respond",
]
