"""
Forwarding to the upstream notes API.

The caller's own credential is never forwarded; the gateway injects the
upstream key and the first-party origin instead.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import httpx

from ..core.config import Settings
from ..core.errors import UpstreamError

logger = logging.getLogger(__name__)

Params = List[Tuple[str, str]]


def map_api_path(api_path: str, params: Params) -> Params:
    """Translate gateway paths into the upstream's ``type`` query parameters."""
    api_path = api_path.strip("/")
    overrides: Dict[str, str] = {}
    if api_path in ("notes", "search"):
        overrides = {"type": "list"}
    elif api_path.startswith("notes/"):
        overrides = {"type": "note", "noteId": api_path[len("notes/"):]}
    return [(k, v) for k, v in params if k not in overrides] + list(overrides.items())


@dataclass
class UpstreamResponse:
    status_code: int
    body: bytes


class UpstreamClient:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = settings.UPSTREAM_API_URL
        self.timeout = settings.UPSTREAM_TIMEOUT_SECONDS
        self.transport = transport
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": settings.UPSTREAM_API_KEY.get_secret_value(),
            "Origin": settings.UPSTREAM_ORIGIN,
            "Referer": settings.UPSTREAM_REFERER,
        }

    async def forward(
        self,
        method: str,
        api_path: str,
        params: Params,
        body: Optional[bytes] = None,
    ) -> UpstreamResponse:
        query = map_api_path(api_path, params)
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    self.base_url,
                    params=query,
                    headers=self._headers,
                    content=body if method.upper() == "POST" else None,
                )
        except httpx.TimeoutException:
            logger.warning("Upstream timed out after %ss for /api/%s", self.timeout, api_path)
            raise UpstreamError("Upstream API timed out")
        except httpx.HTTPError as exc:
            logger.error("Upstream request failed for /api/%s: %s", api_path, exc.__class__.__name__)
            raise UpstreamError("Upstream API unreachable")
        return UpstreamResponse(status_code=response.status_code, body=response.content)
