"""
HTTP client for a browser bookmark bridge.

A companion browser extension exposes the browser's bookmark and storage
APIs as named tools over local HTTP (``POST {server}/tools/{name}`` with a
``{"arguments": {...}}`` body). This client performs exactly one request per
call: the sync layer never retries, it degrades to local-only state instead.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx


class BridgeClientError(Exception):
    """
    Base exception for bridge client errors.

    Attributes:
        message: Error description
        status_code: HTTP status code if applicable
        original_error: The underlying exception if any
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.status_code = status_code
        self.original_error = original_error
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"(HTTP {self.status_code})")
        if self.original_error:
            parts.append(f"Caused by: {type(self.original_error).__name__}: {self.original_error}")
        return " ".join(parts)


class BridgeConnectionError(BridgeClientError):
    """Exception raised when the bridge cannot be reached."""
    pass


class BridgeTimeoutError(BridgeClientError):
    """Exception raised when a bridge request times out."""
    pass


class BridgeToolError(BridgeClientError):
    """Exception raised when the browser reports a tool failure."""
    pass


class BridgeAuthenticationError(BridgeClientError):
    """Exception raised when the bridge rejects the access token."""
    pass


class BridgeClient:
    """
    Async client for the browser bookmark bridge.

    The client is designed to be used as an async context manager:

        async with BridgeClient("http://127.0.0.1:8765") as client:
            tree = await client.call_tool("bookmarks.getTree", {})

    Attributes:
        server_url: Base URL of the bridge
        timeout: Transport timeout in seconds
        access_token: Optional bearer token shared with the extension
    """

    DEFAULT_HEADERS = {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }

    def __init__(
        self,
        server_url: str,
        timeout: float = 10.0,
        access_token: Optional[str] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self.access_token = access_token
        self._client: Optional[httpx.AsyncClient] = None
        self.logger = logging.getLogger(__name__)

    async def __aenter__(self) -> "BridgeClient":
        headers = self.DEFAULT_HEADERS.copy()
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers=headers,
        )
        self.logger.debug(f"Bridge client opened for {self.server_url}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
        self.logger.debug("Bridge client closed")

    def _ensure_connected(self) -> None:
        """
        Raises:
            BridgeConnectionError: If the client has not been opened
        """
        if self._client is None:
            raise BridgeConnectionError(
                "Bridge client not connected. Use 'async with' context manager."
            )

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._ensure_connected()
        url = f"{self.server_url}/{endpoint.lstrip('/')}"

        try:
            response = await self._client.post(url, json=payload)
        except httpx.ConnectError as e:
            raise BridgeConnectionError(
                f"Failed to connect to {self.server_url}", original_error=e
            )
        except httpx.TimeoutException as e:
            raise BridgeTimeoutError(
                f"Request to {url} timed out after {self.timeout}s", original_error=e
            )
        except httpx.HTTPError as e:
            raise BridgeClientError(f"Request to {url} failed", original_error=e)

        if response.status_code in (401, 403):
            raise BridgeAuthenticationError(
                "Bridge rejected the access token", status_code=response.status_code
            )
        if response.status_code >= 400:
            raise BridgeClientError(
                f"HTTP error: {response.text}", status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise BridgeClientError(f"Invalid JSON from {url}", original_error=e)

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Invoke a bridge tool and return its JSON result.

        Raises:
            BridgeToolError: If the browser reported an error for the tool
            BridgeConnectionError: If the bridge cannot be reached
            BridgeTimeoutError: If the request times out
        """
        self.logger.debug(f"Calling bridge tool: {tool_name}")

        try:
            response = await self._post(f"tools/{tool_name}", {"arguments": arguments})
        except (BridgeConnectionError, BridgeTimeoutError, BridgeAuthenticationError):
            raise
        except BridgeClientError as e:
            raise BridgeToolError(
                f"Failed to execute tool '{tool_name}': {e.message}",
                status_code=e.status_code,
                original_error=e.original_error,
            )

        if "error" in response:
            raise BridgeToolError(f"Tool '{tool_name}' error: {response['error']}")

        return response

    async def list_tools(self) -> List[Dict[str, Any]]:
        response = await self._post("tools", {})
        return response.get("tools", [])

    async def health_check(self) -> bool:
        try:
            await self.list_tools()
            return True
        except BridgeClientError as e:
            self.logger.warning(f"Health check failed: {e}")
            return False

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def __repr__(self) -> str:
        return (
            f"BridgeClient(server_url={self.server_url!r}, "
            f"timeout={self.timeout}, "
            f"connected={self.is_connected})"
        )
