"""Shared HTTP plumbing for the bearer-token providers."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..exceptions import (
    AzimuthAuthenticationError,
    AzimuthInvalidArgumentError,
    AzimuthInvalidResponseError,
    AzimuthNetworkError,
    AzimuthNotFoundError,
    AzimuthPermissionError,
    AzimuthRateLimitError,
    AzimuthRemoteError,
)
from .base import RemoteProvider

logger = logging.getLogger(__name__)


class HttpProvider(RemoteProvider):
    """Base class for providers that talk REST with a bearer token.

    Every request is attempted once; failures are mapped to the
    ``AzimuthRemoteError`` hierarchy and propagated.
    """

    def __init__(
        self,
        access_token: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the provider.

        Args:
            access_token: OAuth bearer token
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (used by tests)
        """
        if not access_token:
            raise AzimuthInvalidArgumentError(
                f"{self.name} sync requires an access token"
            )
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _error_message(self, response: httpx.Response) -> str | None:
        """Extract a human-readable error message from a response body."""
        try:
            if not response.content:
                return None
            data = response.json()
        except ValueError:
            text = response.text.strip()
            return text[:200] or None

        if isinstance(data, dict):
            # Dropbox puts a machine-readable summary next to a tagged error
            if data.get("error_summary"):
                return data["error_summary"]
            error = data.get("error")
            if isinstance(error, dict):
                # Microsoft Graph and Google wrap the message in an object
                return error.get("message") or error.get("code")
            return data.get("message") or (error if isinstance(error, str) else None)
        return None

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Map a non-2xx response to an exception.

        Raises:
            AzimuthRemoteError: Or one of its subclasses
        """
        status_code = response.status_code
        if 200 <= status_code < 300:
            return

        detail = self._error_message(response)
        suffix = f": {detail}" if detail else ""

        if status_code == 401:
            raise AzimuthAuthenticationError(
                f"{self.name}: invalid or expired access token{suffix}"
            )
        elif status_code == 403:
            raise AzimuthPermissionError(
                f"{self.name}: access forbidden - check your permissions{suffix}"
            )
        elif status_code == 404:
            raise AzimuthNotFoundError(f"{self.name}: resource not found{suffix}")
        elif status_code == 429:
            raise AzimuthRateLimitError(
                f"{self.name}: rate limit exceeded - please try again later"
            )
        raise AzimuthRemoteError(
            f"{self.name}: request failed with status {status_code}{suffix}"
        )

    def _send(
        self, method: str, url: str, check: bool = True, **kwargs: Any
    ) -> httpx.Response:
        """Send a request and check its status.

        Args:
            method: HTTP method
            url: Absolute URL
            check: If False, return non-2xx responses instead of raising
            **kwargs: Additional arguments passed to httpx

        Returns:
            The successful response

        Raises:
            AzimuthRemoteError: If the request fails
        """
        logger.debug(f"{method} {url}")
        try:
            response = self._get_client().request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise AzimuthNetworkError(f"{self.name}: network error: {e}") from e

        if check:
            self._raise_for_status(response)
        return response

    def _request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and decode a JSON object response."""
        return self._decode_json(self._send(method, url, **kwargs))

    def _decode_json(self, response: httpx.Response) -> dict[str, Any]:
        """Decode a JSON object response body (empty body gives {})."""
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise AzimuthInvalidResponseError(
                f"{self.name}: invalid JSON response from server"
            ) from e
        if not isinstance(data, dict):
            raise AzimuthInvalidResponseError(
                f"{self.name}: expected a JSON object, got {type(data).__name__}"
            )
        return data
