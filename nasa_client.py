"""
Bridge to NASA's public APIs.
One configured client, one request at a time, no retries.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from config import Settings, get_settings

logger = logging.getLogger("mission_control.nasa_client")


class UpstreamError(Exception):
    """An upstream call failed: transport, timeout, non-2xx or bad body.

    ``status_code`` carries the upstream HTTP status when one was received.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _upstream_message(response: httpx.Response) -> Optional[str]:
    """NASA error bodies put the human message under 'msg' or 'error.message'."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None

    if isinstance(body.get("msg"), str):
        return body["msg"]
    error = body.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(body.get("errors"), str):
        return body["errors"]
    return None


class NASAClient:
    """Client for api.nasa.gov and the few feeds living elsewhere.
    Respectful consumer of public data."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = self.settings.nasa_base_url
        self.api_key = self.settings.nasa_api_key
        self.timeout = self.settings.request_timeout
        self._transport = transport

    async def _request(
        self, url: str, params: Optional[Dict[str, Any]], timeout: Optional[float]
    ) -> Any:
        async with httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            try:
                response = await client.get(url, params=params)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                logger.error(f"Upstream error: {status} from {e.request.url.host}")
                raise UpstreamError(
                    _upstream_message(e.response) or "Failed to fetch data from NASA API",
                    status_code=status,
                ) from e
            except httpx.TimeoutException as e:
                logger.error(f"Upstream timeout calling {url}")
                raise UpstreamError("Upstream request timed out") from e
            except httpx.HTTPError as e:
                logger.error(f"Upstream transport failure calling {url}: {e}")
                raise UpstreamError("Failed to fetch data from NASA API") from e
            except ValueError as e:
                logger.error(f"Upstream returned an undecodable body for {url}")
                raise UpstreamError("Upstream returned malformed data") from e

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """GET a path on the NASA API host with the api_key attached."""
        query = dict(params or {})
        query["api_key"] = self.api_key
        return await self._request(f"{self.base_url}{endpoint}", query, timeout)

    async def get_external(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """GET an absolute URL outside api.nasa.gov. No key is sent."""
        return await self._request(url, params, timeout)

    async def check_health(self) -> bool:
        """Ping APOD with the short health timeout."""
        try:
            await self.get(
                self.settings.apod_endpoint,
                timeout=self.settings.health_check_timeout,
            )
        except UpstreamError:
            return False
        return True
