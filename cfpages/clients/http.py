"""Authenticated JSON-over-HTTPS requests against management APIs.

This is the only place that touches the network. It performs no retries:
whether an operation is safe to repeat is the caller's decision.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from cfpages.errors import CfPagesError
from cfpages.metrics import api_requests_total

logger = structlog.get_logger()

_TIMEOUT = httpx.Timeout(30.0)

JsonValue = Any

# Cloudflare error codes meaning "the thing you asked about does not exist"
_NOT_FOUND_CODES = frozenset({7003, 8000007, 8000009})
_TOO_MANY_DEPLOYMENTS_CODE = 8000076


class ApiError(CfPagesError):
    """A remote call failed.

    ``status_code`` is None for transport failures (DNS, TLS, timeout), in
    which case ``cause`` carries the underlying exception.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        raw_body: str = "",
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.raw_body = raw_body
        self.cause = cause
        self.errors = _parse_errors(raw_body)

    @property
    def error_codes(self) -> list[int]:
        return [e["code"] for e in self.errors if isinstance(e.get("code"), int)]

    @property
    def error_messages(self) -> list[str]:
        return [str(e.get("message", "")) for e in self.errors]

    @property
    def is_not_found(self) -> bool:
        if self.status_code == 404:
            return True
        return any(code in _NOT_FOUND_CODES for code in self.error_codes)

    @property
    def is_too_many_deployments(self) -> bool:
        if _TOO_MANY_DEPLOYMENTS_CODE in self.error_codes:
            return True
        return any("too many deployments" in m.lower() for m in self.error_messages)

    def __str__(self) -> str:
        base = super().__str__()
        if self.error_messages:
            return f"{base}: {'; '.join(self.error_messages)}"
        return base


def _parse_errors(raw_body: str) -> list[dict[str, Any]]:
    """Extract ``errors`` (Cloudflare) or ``message`` (GitHub) from an error body."""
    if not raw_body:
        return []
    try:
        data = json.loads(raw_body)
    except ValueError:
        return []
    if not isinstance(data, dict):
        return []
    raw_errors = data.get("errors")
    if isinstance(raw_errors, list) and raw_errors:
        return [e for e in raw_errors if isinstance(e, dict)]
    if isinstance(data.get("message"), str):
        return [{"message": data["message"]}]
    return []


class RemoteClient:
    """Base for API clients: bearer auth, JSON bodies, structured failures."""

    api_name = "remote"

    def __init__(self, base_url: str, auth_token: str) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token

    @property
    def is_available(self) -> bool:
        return bool(self.auth_token)

    def _headers(self, auth_token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {auth_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def request(
        self,
        method: str,
        resource_path: str,
        auth_token: str | None = None,
        body: JsonValue | None = None,
        params: dict[str, str | int] | None = None,
    ) -> JsonValue:
        """Issue one request and return the decoded JSON body.

        Raises:
            ApiError: on a non-2xx response or a transport failure.
        """
        url = f"{self.base_url}/{resource_path.lstrip('/')}"
        token = auth_token if auth_token is not None else self.auth_token
        try:
            async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
                resp = await client.request(
                    method,
                    url,
                    headers=self._headers(token),
                    json=body,
                    params=params,
                )
        except httpx.TransportError as exc:
            api_requests_total.labels(api=self.api_name, status="transport_error").inc()
            logger.debug("Transport failure", api=self.api_name, method=method, url=url)
            raise ApiError(
                f"{method} {resource_path} failed: {exc.__class__.__name__}",
                cause=exc,
            ) from exc

        api_requests_total.labels(api=self.api_name, status=str(resp.status_code)).inc()
        if not resp.is_success:
            raise ApiError(
                f"{method} {resource_path} returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                raw_body=resp.text,
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise ApiError(
                f"{method} {resource_path} returned a non-JSON body",
                status_code=resp.status_code,
                raw_body=resp.text,
                cause=exc,
            ) from exc
