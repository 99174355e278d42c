"""HTTP client service for the Chill Gamer JSON API."""

import json
from typing import Any

import httpx
import structlog

from .errors import ErrorHandlingService, NetworkError

log = structlog.stdlib.get_logger()


class HttpClientService:
    """Async JSON client with a bounded timeout.

    Every failure (transport error, timeout, non-2xx status, unreadable body)
    surfaces as a `NetworkError` carrying the status code when there is one.
    Requests are never retried automatically.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client service.

        Args:
            base_url: API root every request path is joined to
            timeout: Request timeout in seconds
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers={
                "User-Agent": "ChillGamer-Client/0.1",
                "Accept": "application/json",
            },
            follow_redirects=True,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            transport=transport,
        )

        log.info("HTTP client service initialized", base_url=self.base_url, timeout=timeout)

    async def get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        """GET `path` and return the decoded JSON body."""
        return await self.request("GET", path, params=params)

    async def post_json(self, path: str, body: dict[str, Any]) -> Any:
        return await self.request("POST", path, body=body)

    async def put_json(self, path: str, body: dict[str, Any]) -> Any:
        return await self.request("PUT", path, body=body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and decode the JSON response.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            params: Optional query parameters
            body: Optional JSON body

        Returns:
            The decoded JSON body, or None for an empty body

        Raises:
            NetworkError: On transport failure, timeout, non-2xx or malformed JSON
        """
        url = f"{self.base_url}{path}"
        log.debug("Making HTTP request", method=method, url=url, params=params)

        try:
            response = await self._client.request(method, path, params=params, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            log.warning(
                "HTTP request returned error status",
                method=method,
                url=url,
                status_code=status_code,
            )
            raise NetworkError(
                message=ErrorHandlingService.http_error_message(status_code),
                original_error=e,
                url=url,
                status_code=status_code,
            ) from e
        except httpx.TimeoutException as e:
            log.warning("HTTP request timed out", method=method, url=url, timeout=self.timeout)
            raise NetworkError(
                message="The request timed out. The server may be slow or unavailable.",
                original_error=e,
                url=url,
            ) from e
        except httpx.RequestError as e:
            log.warning(
                "HTTP request failed",
                method=method,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise NetworkError(
                message="Unable to reach the server. Please check your connection.",
                original_error=e,
                url=url,
            ) from e

        log.info(
            "HTTP request successful",
            method=method,
            url=url,
            status_code=response.status_code,
            content_length=len(response.content),
        )

        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            log.warning("Malformed JSON response", method=method, url=url, error=str(e))
            raise NetworkError(
                message="The server sent a response that could not be read.",
                original_error=e,
                url=url,
                status_code=response.status_code,
            ) from e

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._client.aclose()
        log.info("HTTP client closed")

    async def __aenter__(self) -> "HttpClientService":
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.close()
