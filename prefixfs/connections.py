import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from prefixfs.cache import Cache
from prefixfs.config import get_settings
from prefixfs.namespace import Namespace
from prefixfs.objectstore.gateway import ObjectStoreGateway


class PrefixfsConnections:
    client: httpx.AsyncClient | None
    gateway: ObjectStoreGateway | None
    cache: Cache | None

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        gateway: ObjectStoreGateway | None = None,
        cache: Cache | None = None,
    ):
        self.client = client
        self.gateway = gateway
        self.cache = cache


CONNECTIONS = PrefixfsConnections()


@asynccontextmanager
async def prefixfs_connections(transport: httpx.AsyncBaseTransport | None = None) -> AsyncGenerator[None, None]:
    """
    The main context manager to start and stop the object store client and the session cache.
    Always use this once (and only once):
        - For running the server: in the FastAPI lifespan
        - For tests: in a fixture (pass a transport to talk to a fake object store)
        - For CLI commands: within the CLI command
    """
    try:
        await start_connections(transport)
        yield
    finally:
        await close_connections()


async def start_connections(transport: httpx.AsyncBaseTransport | None = None) -> None:
    settings = get_settings()
    logging.debug(f"Connecting with object store at {settings.gateway_url}, token? {'yes' if settings.gateway_token else 'no'}")
    headers = {"Authorization": f"Bearer {settings.gateway_token}"} if settings.gateway_token else {}
    CONNECTIONS.client = httpx.AsyncClient(
        base_url=settings.gateway_url,
        headers=headers,
        timeout=settings.gateway_timeout,
        transport=transport,
    )
    CONNECTIONS.gateway = ObjectStoreGateway(CONNECTIONS.client)
    CONNECTIONS.cache = Cache()


async def close_connections() -> None:
    if CONNECTIONS.cache is not None:
        await CONNECTIONS.cache.wait_for_refreshes()
        CONNECTIONS.cache = None
    if CONNECTIONS.client is not None:
        await CONNECTIONS.client.aclose()
        CONNECTIONS.client = None
        CONNECTIONS.gateway = None


def gateway() -> ObjectStoreGateway:
    """
    Use this function to access the object store gateway.
    """
    if CONNECTIONS.gateway is None:
        raise ConnectionError("Object store client not started")
    return CONNECTIONS.gateway


def cache() -> Cache:
    if CONNECTIONS.cache is None:
        raise ConnectionError("Cache not started")
    return CONNECTIONS.cache


def namespace() -> Namespace:
    """A Namespace over the shared gateway and session cache"""
    settings = get_settings()
    return Namespace(gateway(), cache(), ttl=settings.listing_ttl, search_scan_cap=settings.search_scan_cap)
