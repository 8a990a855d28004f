"""HTTP transport with caller-identity headers and JSON decoding."""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyschoolbus._constants import OPERATOR_HEADER, ROLE_HEADER, SESSION_HEADER, USER_AGENT
from pyschoolbus._redact import redact_for_log
from pyschoolbus.config import SchoolBusConfig
from pyschoolbus.exceptions import SchoolBusTransportError

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class TransportResponse:
    """Decoded HTTP reply.

    ``body`` is ``None`` for an empty body and the raw text of a non-JSON
    error body.
    """

    status: int
    body: Any = None


class Transport(Protocol):
    """Structural transport interface used by the resource layer.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        payload: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        ...


class HttpTransport:
    """aiohttp transport that attaches the caller identity to every request.

    Any HTTP status is returned to the caller; only network failures and
    non-JSON success bodies raise here.
    """

    def __init__(self, config: SchoolBusConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._headers = self._build_headers(config)

    @staticmethod
    def _build_headers(config: SchoolBusConfig) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        identity = config.identity
        if identity.operator_id:
            headers[OPERATOR_HEADER] = identity.operator_id
        if identity.role_id:
            headers[ROLE_HEADER] = identity.role_id
        if identity.session_id:
            headers[SESSION_HEADER] = identity.session_id
        if config.api_token:
            headers["authorization"] = f"Bearer {config.api_token}"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        payload: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        url = f"{self._config.base_url}{endpoint}"
        data = json.dumps(payload, separators=(",", ":")) if payload is not None else None

        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug(
                "%s %s headers=%s payload=%s",
                method,
                url,
                redact_for_log(self._headers),
                redact_for_log(payload),
            )

        try:
            async with self._http.request(method, url, data=data, headers=self._headers) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise SchoolBusTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            _logger.debug("%s %s -> %d (empty body)", method, endpoint, status)
            return TransportResponse(status=status)

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            if not 200 <= status < 300:
                # Plain-text error bodies are passed on as a string.
                _logger.debug("%s %s -> %d (non-JSON body)", method, endpoint, status)
                return TransportResponse(status=status, body=text)
            raise SchoolBusTransportError(
                f"Invalid JSON from {endpoint} (HTTP {status}): {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from exc

        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("%s %s -> %d body=%s", method, endpoint, status, redact_for_log(body))
        return TransportResponse(status=status, body=body)
