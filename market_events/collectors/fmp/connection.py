"""Financial Modeling Prep HTTP client using aiohttp."""
import asyncio
import logging
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)


class FMPClient:
    """Manages the HTTP session used to call the FMP REST API.

    The client is constructed explicitly, opened with connect() and closed
    with close(). Requests never raise: any non-2xx status, transport error,
    timeout or undecodable body is logged and reported as None.

    Attributes:
        base_url: API root, e.g. https://financialmodelingprep.com/api/v3
        timeout_seconds: Per-request timeout
        max_concurrency: Cap on in-flight requests
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://financialmodelingprep.com/api/v3",
        timeout_seconds: float = 30.0,
        max_concurrency: int = 10,
    ):
        """Initialize the client.

        Args:
            api_key: FMP API key, sent as the apikey query parameter
            base_url: API root URL
            timeout_seconds: Per-request timeout in seconds
            max_concurrency: Maximum number of concurrent requests
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_concurrency = max_concurrency

        self._session: aiohttp.ClientSession | None = None
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._request_count = 0

        logger.debug(
            "INIT: FMPClient initialized",
            extra={
                "extra_data": {
                    "action": "client_init",
                    "base_url": self.base_url,
                    "timeout_seconds": timeout_seconds,
                    "max_concurrency": max_concurrency,
                    "api_key_set": bool(api_key),
                }
            },
        )

    @property
    def request_count(self) -> int:
        return self._request_count

    def is_connected(self) -> bool:
        """Check if the HTTP session is open."""
        return self._session is not None and not self._session.closed

    async def connect(self) -> None:
        """Open the HTTP session."""
        if self.is_connected():
            return
        if not self.api_key:
            logger.warning("FMP API key not set; live requests will return no data")
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            headers={"Accept": "application/json"},
        )
        logger.info(f"FMP client connected to {self.base_url}")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.info("FMP client closed")

    async def __aenter__(self) -> "FMPClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any | None:
        """GET an API path and return the decoded JSON body.

        Args:
            path: Path below base_url, e.g. "/stock/list"
            params: Extra query parameters

        Returns:
            Decoded JSON, or None on any failure
        """
        if not self.api_key:
            return None
        if not self.is_connected():
            logger.warning(f"FMP client not connected; skipping {path}")
            return None

        url = f"{self.base_url}/{path.lstrip('/')}"
        query = dict(params or {})
        query["apikey"] = self.api_key

        async with self._semaphore:
            self._request_count += 1
            try:
                async with self._session.get(url, params=query) as response:
                    if response.status < 200 or response.status >= 300:
                        logger.warning(f"FMP request {path} failed: HTTP {response.status}")
                        return None
                    data = await response.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                logger.warning(f"FMP request {path} failed: {type(e).__name__}: {e}")
                return None

        if isinstance(data, dict) and "Error Message" in data:
            logger.warning(f"FMP request {path} rejected: {data['Error Message']}")
            return None

        logger.debug(
            "FETCH: FMP response received",
            extra={
                "extra_data": {
                    "action": "fmp_get",
                    "path": path,
                    "items": len(data) if isinstance(data, (list, dict)) else None,
                }
            },
        )
        return data
