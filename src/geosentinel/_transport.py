"""JSON-over-HTTPS transport for the collection service."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from geosentinel._constants import UNAUTHORIZED_STATUSES, USER_AGENT
from geosentinel._redact import redact_for_log
from geosentinel.exceptions import SentinelTransportError, SentinelUnauthorizedError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (:class:`HttpTransport`) concrete.
    """

    async def post_json(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        token: str | None = None,
        expect_json: bool = False,
    ) -> dict[str, Any]:
        ...


class HttpTransport:
    """POST JSON bodies and decode JSON replies.

    Every call carries a fixed total timeout. Timeouts, connection errors,
    non-2xx statuses and undecodable bodies all surface as
    :class:`SentinelTransportError`; HTTP 401/403 as the
    :class:`SentinelUnauthorizedError` subclass.
    """

    def __init__(
        self,
        base_url: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def post_json(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        token: str | None = None,
        expect_json: bool = False,
    ) -> dict[str, Any]:
        """POST *payload* as JSON and return the decoded reply.

        With *expect_json* an empty or non-JSON 2xx body is an error;
        otherwise it reads as an empty acknowledgement.
        """
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if token is not None:
            headers["authorization"] = token

        url = f"{self._base_url}{endpoint}"
        body = json.dumps(dict(payload), separators=(",", ":"))

        _logger.debug("POST %s body=%s", url, redact_for_log(payload))

        try:
            async with self._http.post(url, data=body, headers=headers, timeout=self._timeout) as resp:
                raw = await resp.read()
                status = resp.status
                charset = resp.charset or "utf-8"
        except (asyncio.TimeoutError, TimeoutError) as exc:
            raise SentinelTransportError(
                f"Request to {endpoint} timed out after {self._timeout.total}s",
                endpoint=endpoint,
            ) from exc
        except aiohttp.ClientError as exc:
            raise SentinelTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        if not 200 <= status < 300:
            preview = raw[:200].decode("utf-8", errors="replace")
            error_cls = SentinelUnauthorizedError if status in UNAUTHORIZED_STATUSES else SentinelTransportError
            raise error_cls(
                f"HTTP {status} from {endpoint}: {preview}",
                status_code=status,
                endpoint=endpoint,
            )

        try:
            text = raw.decode(charset)
        except (LookupError, UnicodeDecodeError) as exc:
            if not expect_json:
                _logger.debug("Undecodable acknowledgement from %s (%d bytes)", endpoint, len(raw))
                return {}
            raise SentinelTransportError(
                f"Undecodable {charset} response from {endpoint}",
                status_code=status,
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            if expect_json:
                raise SentinelTransportError(f"Empty response from {endpoint}", status_code=status, endpoint=endpoint)
            return {}

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            if not expect_json:
                _logger.debug("Non-JSON acknowledgement from %s: %s", endpoint, text[:64])
                return {}
            raise SentinelTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from exc

        if not isinstance(decoded, dict):
            # Acknowledgement-only endpoints may answer with a bare value.
            return {"result": decoded}

        _logger.debug("HTTP %d from %s response=%s", status, endpoint, redact_for_log(decoded))
        return decoded
