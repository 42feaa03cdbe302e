import pytest
from httpx import ASGITransport, AsyncClient

from prefixfs import api
from prefixfs.cache import Cache
from prefixfs.connections import prefixfs_connections
from prefixfs.namespace import Namespace
from prefixfs.objectstore.gateway import ObjectStoreGateway
from tests.fake_store import FakeObjectStore


class FakeClock:
    """A monotonic clock that only moves when told to"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store():
    return FakeObjectStore()


@pytest.fixture()
async def gateway(store):
    async with AsyncClient(transport=ASGITransport(app=store.app), base_url="http://store/api") as client:
        yield ObjectStoreGateway(client)


@pytest.fixture()
def cache(clock):
    return Cache(clock=clock)


@pytest.fixture()
def ns(gateway, cache):
    return Namespace(gateway, cache, ttl=60)


@pytest.fixture()
async def connections(store):
    """Start the app connections against the fake store (the lifespan is not run by ASGITransport)"""
    async with prefixfs_connections(transport=ASGITransport(app=store.app)):
        yield


@pytest.fixture()
async def client(connections):
    async with AsyncClient(transport=ASGITransport(app=api.app), base_url="http://test", follow_redirects=False) as client:
        yield client
