"""Yield API client.

This intentionally wraps a `requests.Session` to keep HTTP calls out of the
workflow code and make tests easy (inject a session double).
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from shieldgate.gateway.errors import (
    UpstreamBadRequest,
    UpstreamError,
    UpstreamForbidden,
    UpstreamNotFound,
    UpstreamRateLimited,
    UpstreamTimeout,
    UpstreamUnauthorized,
)

logger = logging.getLogger(__name__)

_STATUS_ERRORS: dict[int, type[UpstreamError]] = {
    400: UpstreamBadRequest,
    401: UpstreamUnauthorized,
    403: UpstreamForbidden,
    404: UpstreamNotFound,
}


class YieldClient:
    """Small wrapper around the Yield REST API for the calls we need."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Yield base URL is required")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "x-api-key": api_key,
                "content-type": "application/json",
                "User-Agent": "shieldgate",
            }
        )

    def get_yield(self, yield_id: str) -> dict[str, Any]:
        return self._request("GET", f"/v1/yields/{yield_id}")

    def enter(
        self, *, yield_id: str, address: str, arguments: dict[str, Any]
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "/v1/actions/enter",
            {"yieldId": yield_id, "address": address, "arguments": arguments},
        )

    def exit(
        self, *, yield_id: str, address: str, arguments: dict[str, Any]
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "/v1/actions/exit",
            {"yieldId": yield_id, "address": address, "arguments": arguments},
        )

    def manage(
        self,
        *,
        yield_id: str,
        address: str,
        arguments: dict[str, Any],
        action: str | None = None,
        passthrough: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"yieldId": yield_id, "address": address, "arguments": arguments}
        if action:
            body["action"] = action
        if passthrough:
            body["passthrough"] = passthrough
        return self._request("POST", "/v1/actions/manage", body)

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.request(method, url, json=body, timeout=self._timeout)
        except requests.Timeout as e:
            logger.warning("Yield API request timed out", extra={"method": method, "path": path})
            raise UpstreamTimeout() from e
        except requests.RequestException as e:
            logger.error(
                "Yield API request failed",
                extra={"method": method, "path": path, "error": str(e)},
            )
            raise UpstreamError() from e

        if not resp.ok:
            self._raise_for_upstream_status(resp, path=path)

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError("Upstream returned a non-JSON response") from e

    @staticmethod
    def _upstream_message(resp: requests.Response) -> str | None:
        try:
            payload = resp.json()
        except ValueError:
            return None
        if isinstance(payload, dict):
            message = payload.get("message")
            if isinstance(message, str) and message:
                return message
            error = payload.get("error")
            if isinstance(error, dict):
                nested = error.get("message")
                if isinstance(nested, str) and nested:
                    return nested
        return json.dumps(payload)

    def _raise_for_upstream_status(self, resp: requests.Response, *, path: str) -> None:
        status = resp.status_code
        upstream_message = self._upstream_message(resp)
        logger.warning(
            "Yield API returned an error",
            extra={"status_code": status, "path": path, "upstream_message": upstream_message},
        )

        if status == 429:
            retry_after_raw = resp.headers.get("retry-after")
            retry_after: int | None = None
            if retry_after_raw:
                try:
                    retry_after = int(retry_after_raw)
                except ValueError:
                    retry_after = None
            raise UpstreamRateLimited(
                retry_after=retry_after,
                rate_limit={
                    "limit": resp.headers.get("x-ratelimit-limit"),
                    "remaining": resp.headers.get("x-ratelimit-remaining"),
                    "reset": resp.headers.get("x-ratelimit-reset"),
                },
                upstream_message=upstream_message,
                retry_after_header=retry_after_raw,
            )

        error_cls = _STATUS_ERRORS.get(status, UpstreamError)
        raise error_cls(upstream_message or f"Upstream returned {status}")
