"""
Connection ownership.

ConnectionManager is the only component that builds or destroys the backend
handle: a SQL driver for the local backends or an httpx client for Supabase.
Every operation runs through run(), which applies the timeout and serialises
access when the handle is not safe for concurrent use.
"""

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from fleetguard.config import DatabaseConfig
from fleetguard.db.errors import DatabaseError, ErrorKind, classify
from fleetguard.db.interface import SQLDriver
from fleetguard.db.remote import raise_for_response
from fleetguard.models.query import ClientType

logger = logging.getLogger(__name__)

T = TypeVar("T")

APPLICATION_NAME = "fleetguard"


def _build_driver(config: DatabaseConfig, client_type: ClientType) -> SQLDriver:
    if client_type is ClientType.SQLITE:
        from fleetguard.db.sqlite import SQLiteDriver

        return SQLiteDriver(config.sqlite_path)

    from fleetguard.db.postgres import PostgresDriver

    if not config.postgres_url:
        raise ValueError(
            "PostgreSQL URL not configured. "
            "Set database.postgres.url in config or DATABASE_URL env var."
        )
    return PostgresDriver(config.postgres_url, timeout=config.timeout)


class ConnectionManager:
    """
    Owns the backend client for one process (or one test).

    Usage:
        async with ConnectionManager(config) as manager:
            adapter = DatabaseAdapter(manager)
            ...
    """

    def __init__(
        self,
        config: DatabaseConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            config: Database settings; the backend is resolved here, once
            transport: Optional httpx transport for the Supabase client (tests)
        """
        try:
            self._client_type = ClientType(config.resolve_type())
        except ValueError:
            raise ValueError(
                f"Unknown database type: {config.type}. "
                "Use 'sqlite', 'postgres' or 'supabase'."
            ) from None

        self.config = config
        self.timeout = config.timeout
        self._transport = transport
        self._driver: Optional[SQLDriver] = None
        self._http: Optional[httpx.AsyncClient] = None
        self._lock: Optional[asyncio.Lock] = None
        self._closed = False

    def get_client_type(self) -> ClientType:
        """Backend every operation dispatches to."""
        return self._client_type

    @property
    def client_type(self) -> ClientType:
        return self._client_type

    @property
    def is_connected(self) -> bool:
        return self._driver is not None or self._http is not None

    def _check_open(self) -> None:
        if self._closed:
            raise DatabaseError(
                ErrorKind.CONNECTION_FAILED,
                "Connection manager has been torn down; create a new one to reconnect",
            )

    async def connect(self) -> None:
        """
        Create the backend handle. Calling it again is a no-op.

        Raises:
            DatabaseError: CONNECTION_FAILED after teardown(), or the classified
                driver error when the backend cannot be reached
        """
        self._check_open()
        if self.is_connected:
            return

        if self._client_type is ClientType.SUPABASE:
            self._http = self._build_http_client()
            logger.info(f"Supabase REST client initialized: {self.config.supabase_url}")
            return

        driver = _build_driver(self.config, self._client_type)
        try:
            await asyncio.wait_for(driver.connect(), timeout=self.timeout)
        except Exception as e:
            error = classify(e, self._client_type)
            await self._discard(driver)
            raise error from e

        self._driver = driver
        if not driver.concurrent_safe:
            self._lock = asyncio.Lock()
        logger.info(f"Database connection initialized with client: {self._client_type.value}")

    async def _discard(self, driver: SQLDriver) -> None:
        """Close a driver that failed to connect, keeping the connect error primary."""
        try:
            await driver.close()
        except Exception as e:
            logger.warning(f"Closing {self._client_type.value} driver after failed connect: {e}")

    def _build_http_client(self) -> httpx.AsyncClient:
        url = self.config.supabase_url
        key = self.config.supabase_key
        if not url or not key:
            raise ValueError(
                "Supabase URL and key not configured. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY)."
            )

        kwargs = {}
        if self._transport is not None:
            kwargs["transport"] = self._transport

        return httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "x-application-name": APPLICATION_NAME,
            },
            timeout=httpx.Timeout(self.timeout),
            **kwargs,
        )

    def _guard(self):
        if self._lock is None:
            return contextlib.nullcontext()
        return self._lock

    async def run(self, operation: Callable[[Any], Awaitable[T]]) -> T:
        """
        Run operation(handle) under the configured timeout.

        The handle is the SQL driver for local backends and the httpx client
        for Supabase. Connects lazily if needed.

        Raises:
            DatabaseError: CONNECTION_FAILED when the timeout expires or the
                manager has been torn down
        """
        self._check_open()
        if not self.is_connected:
            await self.connect()

        handle = self._driver if self._driver is not None else self._http

        async with self._guard():
            try:
                return await asyncio.wait_for(operation(handle), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise DatabaseError(
                    ErrorKind.CONNECTION_FAILED,
                    f"Operation did not finish within {self.timeout}s",
                ) from e

    async def test_connection(self) -> bool:
        """
        Do a lightweight round trip against the active backend.

        Never raises; failures are logged and reported as False.
        """
        try:
            if self._client_type.is_local:
                await self.run(lambda driver: driver.fetchval("SELECT 1"))
            else:
                await self._probe_rest()
        except Exception as e:
            logger.error(f"Database connection failed ({self._client_type.value}): {e}")
            return False

        logger.info(f"Database connection successful ({self._client_type.value})")
        return True

    async def _probe_rest(self) -> None:
        table = self.config.health_table

        async def probe(http: httpx.AsyncClient) -> None:
            response = await http.get(f"/{table}", params={"select": "*", "limit": "1"})
            raise_for_response(response)

        try:
            await self.run(probe)
        except DatabaseError:
            raise
        except Exception as e:
            error = classify(e, self._client_type)
            # The API answered; an absent health table still proves connectivity
            if error.kind is not ErrorKind.RELATION_MISSING:
                raise error from e
            logger.warning(f"Health table {table!r} missing, but Supabase is reachable")

    async def teardown(self) -> None:
        """
        Release the backend handle. Safe to call more than once.

        The manager cannot be used afterwards; run() and connect() raise
        CONNECTION_FAILED instead of silently reconnecting.
        """
        self._closed = True
        driver, self._driver = self._driver, None
        http, self._http = self._http, None
        self._lock = None

        if driver is not None:
            await driver.close()
        if http is not None:
            await http.aclose()
            logger.info("Supabase REST client closed")

    async def __aenter__(self) -> "ConnectionManager":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.teardown()
