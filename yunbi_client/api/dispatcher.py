"""
Request dispatch for public and signed calls.

The HTTP transport is injected so tests can substitute a fake. The default
transport issues every call on the running event loop through an
``aiohttp.ClientSession``.
"""

import json
import logging
from typing import Any, Mapping, Optional, Protocol

import aiohttp

from .errors import YunbiAPIError
from .params import canonicalize
from .signer import API_PREFIX, RequestSigner

logger = logging.getLogger(__name__)

BASE_URL = 'https://yunbi.com'
END_POINT = f"{BASE_URL}{API_PREFIX}"

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'


class Transport(Protocol):
    """HTTP collaborator. Paths are relative to the API endpoint."""

    async def get(self, path: str) -> Any:
        ...

    async def post(self, path: str, body: str) -> Any:
        ...

    async def close(self) -> None:
        ...


def decode_body(text: str) -> Any:
    """Decoded JSON body, or the raw text when the body is not JSON."""
    if not text:
        return text
    try:
        return json.loads(text)
    except ValueError:
        return text


class AiohttpTransport:
    """Transport backed by an aiohttp client session."""

    def __init__(self, base_url: str = END_POINT, timeout: float = 10.0,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the transport.

        The session is created on first use so the transport can be built
        outside a running event loop.

        Args:
            base_url: Absolute endpoint including the API prefix
            timeout: Total per-request timeout in seconds
            session: Optional preconfigured session
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers={'Accept': 'application/json'},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self.session

    async def _request(self, method: str, path: str, body: Optional[str] = None) -> Any:
        url = f"{self.base_url}{path}"
        headers = None
        if body is not None:
            headers = {'Content-Type': FORM_CONTENT_TYPE}

        async with self._get_session().request(method, url, data=body, headers=headers) as response:
            response.raise_for_status()
            return decode_body(await response.text())

    async def get(self, path: str) -> Any:
        return await self._request('GET', path)

    async def post(self, path: str, body: str) -> Any:
        return await self._request('POST', path, body)

    async def close(self) -> None:
        if self.session is not None and not self.session.closed:
            await self.session.close()


def handle_data_invalid(body: Any) -> Any:
    """
    Shallow response check shared by every call.

    Raises:
        YunbiAPIError: If the body is absent or a plain string
    """
    if body is None or isinstance(body, str):
        raise YunbiAPIError()
    return body


def with_query(path: str, query: str) -> str:
    return f"{path}?{query}" if query else path


class RequestDispatcher:
    """Issues public and signed requests and validates their responses."""

    def __init__(self, transport: Transport, signer: RequestSigner):
        self.transport = transport
        self.signer = signer

    async def get_public(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        logger.debug(f"GET {path} (public)")
        body = await self.transport.get(with_query(path, canonicalize(params)))
        return handle_data_invalid(body)

    async def get_private(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        query = self.signer.sign('GET', path, params)
        logger.debug(f"GET {path} (signed)")
        body = await self.transport.get(with_query(path, query))
        return handle_data_invalid(body)

    async def post_private(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        query = self.signer.sign('POST', path, params)
        logger.debug(f"POST {path} (signed)")
        body = await self.transport.post(path, query)
        return handle_data_invalid(body)
