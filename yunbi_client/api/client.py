"""
Yunbi API client.

This module exposes the exchange's REST endpoints as coroutine methods on top
of the request dispatcher, together with encrypted credential storage.
API reference: https://yunbi.com/swagger/#/default
"""

import asyncio
import base64
import json
import logging
import os
from typing import Any, Callable, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..data.models import Credential
from .clock import ClockSkewTracker
from .dispatcher import BASE_URL, AiohttpTransport, RequestDispatcher, Transport
from .errors import YunbiAPIError
from .params import ParameterSet
from .signer import API_PREFIX, RequestSigner


logger = logging.getLogger(__name__)


class CredentialManager:
    """Secure credential storage and encryption manager."""

    def __init__(self, password: Optional[str] = None):
        """
        Initialize credential manager with optional password for encryption.

        Args:
            password: Password for encryption. If None, uses environment variable.
        """
        self.password = password or os.getenv('YUNBI_CREDENTIAL_PASSWORD', 'default_password')
        self._key = self._derive_key(self.password)
        self._cipher = Fernet(self._key)

    def _derive_key(self, password: str) -> bytes:
        """Derive encryption key from password using PBKDF2."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=b'yunbi_client_salt',
            iterations=100000,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode()))

    def encrypt_credentials(self, credential: Credential) -> Dict[str, str]:
        """
        Encrypt an API credential.

        Returns:
            Dict containing encrypted access and secret keys
        """
        return {
            'encrypted_access_key': self._cipher.encrypt(credential.access_key.encode()).decode(),
            'encrypted_secret_key': self._cipher.encrypt(credential.secret_key.encode()).decode(),
        }

    def decrypt_credentials(self, encrypted_data: Dict[str, str]) -> Credential:
        """
        Decrypt an API credential.

        Raises:
            YunbiAPIError: If the data is incomplete or the password is wrong
        """
        try:
            access_key = self._cipher.decrypt(encrypted_data['encrypted_access_key'].encode()).decode()
            secret_key = self._cipher.decrypt(encrypted_data['encrypted_secret_key'].encode()).decode()
        except (KeyError, AttributeError, InvalidToken) as e:
            logger.error(f"Failed to decrypt credentials: {type(e).__name__}")
            raise YunbiAPIError("Failed to decrypt credentials", error_code='credential_error') from e

        return Credential(access_key=access_key, secret_key=secret_key)


class YunbiAPIClient:
    """
    Coroutine client for the Yunbi REST API (v2).

    Public endpoints are plain GETs. Private endpoints are signed with the
    credential given at construction; their ``tonce`` is corrected by the
    server clock offset once a clock sync has completed.

    Construction never blocks on the network. When created inside a running
    event loop with ``sync_on_start`` enabled, a clock sync is started in the
    background and not awaited, so calls signed before it finishes use a zero
    offset. Await initialize() (or use ``async with``) to sync explicitly.
    """

    def __init__(self, access_key: Optional[str] = '', secret_key: Optional[str] = '',
                 transport: Optional[Transport] = None,
                 clock: Optional[Callable[[], int]] = None,
                 base_url: str = BASE_URL,
                 api_prefix: str = API_PREFIX,
                 timeout: float = 10.0,
                 sync_on_start: bool = True):
        """
        Initialize Yunbi API client.

        Args:
            access_key: Yunbi API access key
            secret_key: Yunbi API secret key
            transport: HTTP transport, defaults to an aiohttp-backed one
            clock: Local millisecond clock used for nonces
            base_url: Exchange origin
            api_prefix: API path prefix, used in URLs and signed payloads
            timeout: Request timeout in seconds for the default transport
            sync_on_start: Schedule a background clock sync when a loop is running
        """
        self._credential = Credential(access_key=access_key or '', secret_key=secret_key or '')
        self.api_prefix = api_prefix
        self.transport = transport or AiohttpTransport(f"{base_url.rstrip('/')}{api_prefix}", timeout)
        self.clock = ClockSkewTracker(self.get_timestamp, clock)
        self.signer = RequestSigner(self._credential, self.clock, api_prefix)
        self.dispatcher = RequestDispatcher(self.transport, self.signer)

        if sync_on_start:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running event loop, clock sync deferred to initialize()")
            else:
                self.clock.schedule_refresh()

    @classmethod
    def from_config(cls, config_manager, **kwargs) -> 'YunbiAPIClient':
        """Build a client from a loaded ConfigManager."""
        api_config = config_manager.get_section('api')
        clock_config = config_manager.get_config().get('clock', {})
        credential = config_manager.get_credentials()

        options = {
            'base_url': api_config['base_url'],
            'api_prefix': api_config['api_prefix'],
            'timeout': api_config['timeout'],
            'sync_on_start': clock_config.get('sync_on_start', True),
        }
        options.update(kwargs)
        return cls(credential.access_key, credential.secret_key, **options)

    @classmethod
    def from_encrypted_credentials(cls, storage_path: str = 'credentials.json',
                                   password: Optional[str] = None, **kwargs) -> 'YunbiAPIClient':
        """
        Build a client from an encrypted credentials file.

        Args:
            storage_path: Path to encrypted credentials file
            password: Encryption password
        """
        with open(storage_path, 'r') as f:
            encrypted_data = json.load(f)

        credential = CredentialManager(password).decrypt_credentials(encrypted_data)
        logger.info(f"Credentials loaded from {storage_path}")
        return cls(credential.access_key, credential.secret_key, **kwargs)

    @property
    def access_key(self) -> str:
        return self._credential.access_key

    def store_encrypted_credentials(self, storage_path: str = 'credentials.json',
                                    password: Optional[str] = None) -> None:
        """
        Store this client's credential encrypted to file.

        Args:
            storage_path: Path to store encrypted credentials
            password: Encryption password
        """
        encrypted_data = CredentialManager(password).encrypt_credentials(self._credential)

        with open(storage_path, 'w') as f:
            json.dump(encrypted_data, f)

        logger.info(f"Encrypted credentials stored to {storage_path}")

    async def initialize(self) -> int:
        """
        Sync the clock offset with the server and wait for the result.

        Returns:
            int: Offset in milliseconds after the sync attempt
        """
        offset = await self.clock.refresh()
        logger.info(f"Clock offset against server: {offset}ms")
        return offset

    async def close(self) -> None:
        pending = self.clock.pending
        if pending is not None and not pending.done():
            pending.cancel()
        await self.transport.close()

    async def __aenter__(self) -> 'YunbiAPIClient':
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Public endpoints

    async def get_timestamp(self) -> Any:
        """Get server current time, in seconds since Unix epoch."""
        return await self.dispatcher.get_public('/timestamp')

    async def get_markets(self) -> Any:
        """Get all available markets."""
        return await self.dispatcher.get_public('/markets')

    async def get_tickers(self) -> Any:
        """Get ticker of all markets."""
        return await self.dispatcher.get_public('/tickers')

    async def get_ticker(self, market: str) -> Any:
        """
        Get ticker of a specific market.

        Args:
            market: Market identifier (e.g., 'ethcny')
        """
        return await self.dispatcher.get_public(f"/tickers/{market}")

    async def get_order_book(self, market: str, limit: int = 100) -> Any:
        """Get the order book of a market, limiting both sides to ``limit`` entries."""
        params = ParameterSet(market=market, asks_limit=limit, bids_limit=limit)
        return await self.dispatcher.get_public('/order_book', params)

    async def get_k(self, market: str, limit: Optional[int] = None, period: Optional[int] = None,
                    timestamp: Optional[int] = None) -> Any:
        """Get OHLC (k line) data of a market."""
        params = ParameterSet(market=market, limit=limit, period=period, timestamp=timestamp)
        return await self.dispatcher.get_public('/k', params)

    async def get_k_pending_trades(self, market: str, trade_id: Optional[int] = None,
                                   limit: Optional[int] = None, period: Optional[int] = None,
                                   timestamp: Optional[int] = None) -> Any:
        """
        Get k line data together with the trades not yet folded into it.

        Args:
            market: Market identifier
            trade_id: Id of the first trade to return
            limit: Number of k line points
            period: Minutes per k line point
            timestamp: Start of the k line range, seconds since epoch
        """
        params = ParameterSet(market=market, trade_id=trade_id, limit=limit,
                              period=period, timestamp=timestamp)
        return await self.dispatcher.get_public('/k_with_pending_trades', params)

    async def get_depth(self, market: str, limit: int = 100) -> Any:
        """Get depth of a market. Asks and bids are sorted from highest to lowest price."""
        return await self.dispatcher.get_public('/depth', ParameterSet(market=market, limit=limit))

    async def get_recent_trades(self, market: str, limit: Optional[int] = None,
                                timestamp: Optional[int] = None, from_id: Optional[int] = None,
                                to_id: Optional[int] = None, order_by: Optional[str] = None) -> Any:
        """Get recent trades on a market, sorted in reverse creation order."""
        params = ParameterSet({'market': market, 'limit': limit, 'timestamp': timestamp,
                               'from': from_id, 'to': to_id, 'order_by': order_by})
        return await self.dispatcher.get_public('/trades', params)

    # Private endpoints

    async def get_member(self) -> Any:
        """Get your profile and accounts info."""
        return await self.dispatcher.get_private('/members/me')

    async def get_orders(self, market: Optional[str] = None, state: str = 'wait', limit: int = 20,
                         page: int = 0, order_by: str = 'asc') -> Any:
        """Get your orders, paginated."""
        params = ParameterSet(market=market, state=state, limit=limit, page=page, order_by=order_by)
        return await self.dispatcher.get_private('/orders', params)

    async def get_order(self, order_id: int) -> Any:
        """Get information of a single order."""
        return await self.dispatcher.get_private('/order', ParameterSet(id=order_id))

    async def create_order(self, market: str, side: str, *, volume: Any, price: Any = None) -> Any:
        """
        Create an order.

        Args:
            market: Market identifier
            side: 'buy' or 'sell'
            volume: Amount to trade
            price: Limit price; omitted for a market order
        """
        params = ParameterSet(market=market, price=price, volume=volume, side=side)
        return await self.dispatcher.post_private('/orders', params)

    async def buy(self, market: str, *, volume: Any, price: Any = None) -> Any:
        return await self.create_order(market, 'buy', volume=volume, price=price)

    async def sell(self, market: str, *, volume: Any, price: Any = None) -> Any:
        return await self.create_order(market, 'sell', volume=volume, price=price)

    async def cancel_order(self, order_id: int) -> Any:
        return await self.dispatcher.post_private('/order/delete', ParameterSet(id=order_id))

    async def cancel_all_orders(self, side: Optional[str] = 'buy') -> Any:
        """Cancel all your orders on one side; pass side=None to cancel both sides."""
        return await self.dispatcher.post_private('/orders/clear', ParameterSet(side=side))

    async def get_deposits(self, currency: str, state: Optional[str] = None, limit: int = 100) -> Any:
        """
        Get your deposits history.

        Args:
            currency: Currency code (cny, btc, eth, ...)
            state: Filter by deposit state
            limit: Maximum number of records
        """
        params = ParameterSet(currency=currency, state=state, limit=limit)
        return await self.dispatcher.get_private('/deposits', params)

    async def get_my_trades(self, market: str, limit: Optional[int] = None,
                            timestamp: Optional[int] = None, from_id: Optional[int] = None,
                            to_id: Optional[int] = None, order_by: Optional[str] = None) -> Any:
        """Get your executed trades, sorted in reverse creation order."""
        params = ParameterSet({'market': market, 'limit': limit, 'timestamp': timestamp,
                               'from': from_id, 'to': to_id, 'order_by': order_by})
        return await self.dispatcher.get_private('/trades/my', params)

    async def get_deposit_address(self, currency: str) -> Any:
        return await self.dispatcher.get_private('/deposit_address', ParameterSet(currency=currency))
