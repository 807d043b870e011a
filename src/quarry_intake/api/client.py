from __future__ import annotations

import logging
import os
import time
from typing import Any

import requests

from ..models.period import Period
from ..models.row_schema import RowSchema

"""REST client for the dashboard backend's monthly input endpoints.

Three calls per domain:
- GET  {exists}?month=MM&year=YYYY  -> JSON boolean
- GET  {listing}                    -> JSON array of persisted records
- POST {submit}  body=[dto, ...]    -> 200 on success, {"message": ...} on error

No retries are configured: a failed call is a terminal outcome for that
attempt and the caller decides whether to try again.
"""

__all__ = [
    "BackendClient",
    "BackendError",
]

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Network failure, timeout, unexpected status or undecodable body.

    Attributes:
        status_code: HTTP status when the backend answered, else None
        backend_message: The ``message`` field of an error body, when present
    """

    def __init__(self, message: str, status_code: int | None = None, backend_message: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.backend_message = backend_message


def _error_message(resp: requests.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return None


class BackendClient:
    """Thin wrapper over a ``requests.Session`` bound to one backend base URL."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        token: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.setdefault("Accept", "application/json")
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_config(cls, api_cfg: Any, session: requests.Session | None = None) -> BackendClient:
        """Build from an ``ApiConfig``; the token is read from ``api_cfg.token_env``."""
        token = os.getenv(api_cfg.token_env) if api_cfg.token_env else None
        return cls(api_cfg.base_url, timeout=api_cfg.timeout_seconds, token=token, session=session)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self._url(path)
        start = time.time()
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.debug(f"{method} {url} failed: {exc}")
            raise BackendError(f"{method} {path} failed: {exc}") from exc
        elapsed = time.time() - start
        if resp.status_code != 200:
            backend_message = _error_message(resp)
            logger.debug(f"{method} {url} -> HTTP {resp.status_code} ({elapsed:.2f}s) {backend_message or ''}")
            raise BackendError(
                f"{method} {path} returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                backend_message=backend_message,
            )
        logger.debug(f"{method} {url} -> 200 ({elapsed:.2f}s)")
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise BackendError(f"{method} {path} returned a non-JSON body", status_code=200) from exc

    def exists(self, schema: RowSchema, period: Period) -> bool:
        """Ask whether ``schema.domain`` data already exists for ``period``."""
        body = self._request("GET", schema.endpoints.exists, params=period.as_params())
        if isinstance(body, bool):
            return body
        if isinstance(body, str) and body.lower() in ("true", "false"):
            return body.lower() == "true"
        raise BackendError(f"existence check for {schema.domain} returned {body!r}, expected a boolean")

    def fetch_committed(self, schema: RowSchema) -> list[dict[str, Any]]:
        body = self._request("GET", schema.endpoints.listing)
        if body is None:
            return []
        if not isinstance(body, list):
            raise BackendError(f"{schema.endpoints.listing} returned {type(body).__name__}, expected a list")
        return body

    def submit(self, schema: RowSchema, records: list[dict[str, Any]]) -> Any:
        """POST the batch as one JSON array; returns the decoded response body (if any)."""
        return self._request("POST", schema.endpoints.submit, json=records)

    def close(self) -> None:
        self.session.close()
