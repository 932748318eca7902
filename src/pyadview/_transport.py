"""HTTP delivery of analytics batches."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyadview._constants import USER_AGENT
from pyadview.config import AdViewConfig
from pyadview.exceptions import AnalyticsTransportError

_logger = logging.getLogger(__name__)


class EventSender(Protocol):
    """Structural sender interface used by :class:`pyadview.analytics.AdAnalytics`."""

    async def send(self, payload: Mapping[str, Any], *, keepalive: bool = False) -> None: ...


class AnalyticsTransport:
    """Posts JSON event batches to the collector endpoint."""

    def __init__(self, config: AdViewConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def send(self, payload: Mapping[str, Any], *, keepalive: bool = False) -> None:
        endpoint = self._config.analytics_endpoint
        url = self._config.analytics_url
        headers: dict[str, str] = {
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if keepalive:
            headers["connection"] = "keep-alive"
        body = json.dumps(payload, separators=(",", ":"))

        _logger.debug("POST %s (%d bytes)", url, len(body))

        try:
            async with self._http.post(url, data=body, headers=headers) as resp:
                if not 200 <= resp.status < 300:
                    text = await resp.text()
                    raise AnalyticsTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except AnalyticsTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise AnalyticsTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc
