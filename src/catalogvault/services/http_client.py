"""Async HTTP transport for upstream calls.

UpstreamHTTPClient manages one aiohttp.ClientSession shared by every
scheduler and executes FetchTask objects. Responses are decoded with orjson;
transport failures and non-2xx statuses become UpstreamError.
"""

from __future__ import annotations

import asyncio
import logging
import time
import types
from typing import Any
from urllib.parse import urlsplit

import aiohttp
import orjson
from typing_extensions import Self

from catalogvault.services.fetch_scheduler import FetchTask
from catalogvault.shared.constants import NetworkConfig
from catalogvault.shared.errors import ErrorCode, ErrorContext, UpstreamError, create_upstream_error
from catalogvault.shared.logging import log_api_call

logger = logging.getLogger(__name__)


def redact_url(url: str) -> str:
    """Drop the query string so credentials never reach logs or errors."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


class UpstreamHTTPClient:
    """Lazily created aiohttp session plus the FetchTask executor."""

    def __init__(
        self,
        user_agent: str = NetworkConfig.USER_AGENT,
        timeout: float = NetworkConfig.TOTAL_TIMEOUT,
    ) -> None:
        self._user_agent = user_agent
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        async with self._session_lock:
            if self._session is None or self._session.closed:
                connector = aiohttp.TCPConnector(
                    limit=NetworkConfig.CONNECTION_LIMIT,
                    limit_per_host=NetworkConfig.CONNECTION_LIMIT_PER_HOST,
                    enable_cleanup_closed=True,
                )
                timeout = aiohttp.ClientTimeout(
                    total=self._timeout,
                    connect=NetworkConfig.CONNECT_TIMEOUT,
                    sock_read=NetworkConfig.READ_TIMEOUT,
                )
                self._session = aiohttp.ClientSession(
                    connector=connector,
                    timeout=timeout,
                    headers={
                        "User-Agent": self._user_agent,
                        "Accept": NetworkConfig.ACCEPT_JSON,
                    },
                )
                logger.debug("aiohttp.ClientSession created")
            return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        async with self._session_lock:
            if self._session is not None and not self._session.closed:
                await self._session.close()
                logger.debug("aiohttp.ClientSession closed")
            self._session = None

    @staticmethod
    def _prepare(task: FetchTask) -> tuple[dict[str, Any], dict[str, str]]:
        params = {
            key: str(value).lower() if isinstance(value, bool) else str(value)
            for key, value in task.params.items()
            if value is not None
        }
        headers: dict[str, str] = {}

        credentials = task.credentials
        if credentials is not None:
            if credentials.api_key:
                params["api_key"] = credentials.api_key
            if credentials.bearer_token:
                headers["Authorization"] = f"Bearer {credentials.bearer_token}"
            headers.update(credentials.headers)
        if task.json_body is not None:
            headers["Content-Type"] = "application/json"

        return params, headers

    async def execute(self, task: FetchTask) -> Any:
        """Perform the request described by ``task`` and return decoded JSON.

        Raises:
            UpstreamError: On transport failure, timeout, non-2xx status or
                an undecodable body
        """
        session = await self.get_session()
        params, headers = self._prepare(task)
        endpoint = redact_url(task.url)
        data = orjson.dumps(task.json_body) if task.json_body is not None else None

        start_time = time.time()
        try:
            async with session.request(
                task.method,
                task.url,
                params=params,
                headers=headers,
                data=data,
            ) as response:
                body = await response.read()
                duration_ms = (time.time() - start_time) * 1000
                log_api_call(
                    logger,
                    endpoint,
                    method=task.method,
                    status_code=response.status,
                    duration_ms=duration_ms,
                )
                if response.status >= 400:
                    raise create_upstream_error(
                        f"{task.method} {endpoint} returned HTTP {response.status}",
                        url=endpoint,
                        status_code=response.status,
                        operation="upstream_request",
                    )
        except asyncio.TimeoutError as e:
            raise UpstreamError(
                code=ErrorCode.UPSTREAM_TIMEOUT,
                message=f"{task.method} {endpoint} timed out",
                context=ErrorContext(
                    operation="upstream_request",
                    additional_data={"url": endpoint},
                ),
                original_error=e,
                url=endpoint,
            ) from e
        except aiohttp.ClientError as e:
            raise create_upstream_error(
                f"{task.method} {endpoint} failed: {e}",
                url=endpoint,
                operation="upstream_request",
                original_error=e,
            ) from e

        if not body:
            return None

        try:
            return orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise UpstreamError(
                code=ErrorCode.UPSTREAM_INVALID_RESPONSE,
                message=f"{task.method} {endpoint} returned invalid JSON",
                context=ErrorContext(
                    operation="upstream_request",
                    additional_data={"url": endpoint},
                ),
                original_error=e,
                url=endpoint,
            ) from e

    async def __aenter__(self) -> Self:
        await self.get_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.close()
