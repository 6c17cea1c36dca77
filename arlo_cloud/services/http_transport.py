"""HTTP transport for the Arlo cloud API.

Every Arlo endpoint wraps its payload in the same envelope::

    {"success": bool, "meta": {"code": int, "message": str}, "data": ...}

The transport sends the request, unwraps the envelope and maps failures to
:class:`RemoteError` (vendor said no) or :class:`TransportError` (network).
A single cookie jar is shared by every request so the cookies set during
login are replayed for the lifetime of the client.
"""
import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from arlo_cloud.core.config import settings
from arlo_cloud.core.exceptions import RemoteError, TransportError

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = ("password", "token", "otp", "authorization", "factorAuthCode")


def unwrap_envelope(payload: Any) -> Any:
    """
    Return the ``data`` member of a vendor envelope.

    Success is ``success == True`` or ``meta.code == 200``.

    Raises:
        RemoteError: If the envelope reports a failure or is malformed
    """
    if not isinstance(payload, dict):
        raise RemoteError(
            None,
            "Malformed response envelope",
            {"response": str(payload)[:200]}
        )

    meta = payload.get("meta") or {}
    if payload.get("success") is True or meta.get("code") == 200:
        return payload.get("data")

    raise RemoteError(
        meta.get("code"),
        meta.get("message") or "Unknown error",
        {"meta": meta, "data": payload.get("data")}
    )


def sanitize_log_data(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Remove sensitive data from logs."""
    sanitized = dict(data or {})
    for key in list(sanitized):
        if key.lower() in (k.lower() for k in SENSITIVE_KEYS):
            sanitized[key] = "***"
    return sanitized


class HttpTransport:
    """
    Thin aiohttp wrapper that speaks the Arlo envelope.

    There is no automatic retry: envelope failures raise immediately.
    """

    def __init__(self, timeout: Optional[int] = None):
        """Initialize the transport."""
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.HTTP_TIMEOUT)
        self._session: Optional[aiohttp.ClientSession] = None
        self._cookie_jar: Optional[aiohttp.CookieJar] = None

    @property
    def cookie_jar(self) -> Optional[aiohttp.CookieJar]:
        """Cookie store shared across every request of this transport."""
        return self._cookie_jar

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            if self._cookie_jar is None:
                self._cookie_jar = aiohttp.CookieJar()
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                cookie_jar=self._cookie_jar
            )
        return self._session

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def request(
        self,
        verb: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Send a request and return the unwrapped envelope data.

        Args:
            verb: HTTP method (GET, POST, PUT)
            url: Absolute URL
            headers: Full header set for this request
            body: JSON body, if any

        Returns:
            The envelope's ``data`` member

        Raises:
            RemoteError: If the envelope reports a failure
            TransportError: If the connection fails
        """
        session = await self._get_session()
        logger.debug(f"Request: {verb} {url} data={sanitize_log_data(body)}")

        try:
            async with session.request(
                method=verb,
                url=url,
                headers=headers,
                json=body
            ) as response:
                response_text = await response.text()
                logger.debug(f"Response: {response.status} {response_text[:500]}")
                status = response.status

        except aiohttp.ClientError as e:
            logger.error(f"Connection error: {e}")
            raise TransportError(f"Failed to connect to API: {e}", {"url": url})
        except asyncio.TimeoutError as e:
            logger.error(f"Request timeout: {url}")
            raise TransportError(f"Request timed out: {e}", {"url": url})

        try:
            payload = json.loads(response_text) if response_text.strip() else None
        except json.JSONDecodeError:
            raise RemoteError(
                status,
                "Response is not a JSON envelope",
                {"status": status, "body": response_text[:200]}
            )

        return unwrap_envelope(payload)

    @asynccontextmanager
    async def stream(self, url: str, headers: Dict[str, str]) -> AsyncIterator[aiohttp.ClientResponse]:
        """
        Open a long-lived streaming GET and yield the raw response.

        The total timeout is disabled; the caller reads ``response.content``
        until the server ends the stream.

        Raises:
            RemoteError: If the server refuses the subscription
            TransportError: If the connection fails
        """
        session = await self._get_session()
        logger.debug(f"Opening stream: GET {url}")

        try:
            async with session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=None, sock_read=None)
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise RemoteError(
                        response.status,
                        "Event stream subscription refused",
                        {"status": response.status, "body": body[:200]}
                    )
                yield response
        except aiohttp.ClientError as e:
            raise TransportError(f"Event stream connection failed: {e}", {"url": url})
