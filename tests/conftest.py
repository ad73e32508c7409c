from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import settings

# Override settings for tests
settings.gemini_api_keys = "test-key-1,test-key-2"
settings.default_system_prompt = "You are a test assistant."
settings.dispatch_deadline_seconds = 0

from app.gateway.credentials import CredentialPool  # noqa: E402
from app.gateway.gateway import GeminiGateway  # noqa: E402
from app.gateway.transport import GeminiTransport  # noqa: E402
from app.gateway.types import DispatcherConfig  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture
def transport() -> AsyncMock:
    mock = AsyncMock(spec=GeminiTransport)
    mock.model = "gemini-test"
    return mock


@pytest.fixture
def gateway(transport: AsyncMock):
    """Gateway with a mocked transport, installed on the app for API tests."""
    gw = GeminiGateway(
        pool=CredentialPool.load(settings.gemini_api_keys),
        transport=transport,
        config=DispatcherConfig(deadline_seconds=None),
        sleep=AsyncMock(),
    )
    app.state.gateway = gw
    yield gw
    app.state.gateway = None


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
