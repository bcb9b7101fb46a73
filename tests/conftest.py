"""Test configuration: anyio on asyncio, fetchers wired to in-memory transports."""

import httpx
import pytest

from couchlayer.client import CouchClient
from couchlayer.fetcher import CouchFetcher

from fake_couch import BASE_URL, FakeCouch


# Make anyio run on asyncio (so @pytest.mark.anyio tests work everywhere)
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_fetcher():
    """Build a CouchFetcher whose requests go to ``handler`` instead of the network."""
    def factory(handler, **kwargs):
        return CouchFetcher(transport=httpx.MockTransport(handler), trust_env=False, **kwargs)
    return factory


@pytest.fixture
def fake_couch():
    return FakeCouch()


@pytest.fixture
def client(fake_couch, make_fetcher):
    return CouchClient(BASE_URL, fetcher=make_fetcher(fake_couch))
