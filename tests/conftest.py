import pytest

from pubmed_gateway.utils.config import reset_settings

ENV_VARS = ("PUBMED_GATEWAY_BASE_URL", "PUBMED_GATEWAY_TOOL", "PUBMED_EMAIL", "PUBMED_GATEWAY_TEST")


class FakeResponse:
    """Stand-in for aiohttp.ClientResponse used as an async context manager"""

    def __init__(self, status: int, body: str):
        self.status = status
        self._body = body

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:
    """Stand-in for aiohttp.ClientSession that records requested URLs"""

    def __init__(self, status: int = 200, body: str = "", error: Exception = None):
        self.status = status
        self.body = body
        self.error = error
        self.requested = []
        self.closed = False

    def get(self, url):
        self.requested.append(url)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status, self.body)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True
        return False


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Keep gateway settings independent of the developer's environment"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def fake_session():
    return FakeSession
