"""
Pytest configuration and fixtures for the Yunbi client test suite.
"""

import inspect
import os
import tempfile
from pathlib import Path

import pytest


class FakeTransport:
    """In-memory transport keyed by path (query string stripped).

    A response may be a body, an exception instance to raise, or a callable
    (sync or async) producing the body.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.closed = False

    async def _respond(self, method, path, body=None):
        self.calls.append((method, path, body))
        result = self.responses.get(path.split('?', 1)[0])
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            result = result()
            if inspect.isawaitable(result):
                result = await result
        return result

    async def get(self, path):
        return await self._respond('GET', path)

    async def post(self, path, body):
        return await self._respond('POST', path, body)

    async def close(self):
        self.closed = True


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now=1_500_000_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def fake_transport():
    return FakeTransport({'/timestamp': 1_500_000_000})


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def temp_config_dir():
    """Create a temporary directory for test configurations."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_config():
    return {
        'api': {
            'base_url': 'https://yunbi.com',
            'api_prefix': '/api/v2',
            'timeout': 10,
        },
        'credentials': {
            'access_key': 'file_access_key',
            'secret_key': 'file_secret_key',
        },
        'clock': {
            'sync_on_start': False,
        },
    }


@pytest.fixture(autouse=True)
def clear_credential_environment():
    """Keep real credentials in the environment out of the tests."""
    keys = ('YUNBI_ACCESS_KEY', 'YUNBI_SECRET_KEY', 'YUNBI_CREDENTIAL_PASSWORD')
    original_env = {key: os.environ.pop(key, None) for key in keys}

    yield

    for key, value in original_env.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
