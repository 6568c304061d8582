"""
Shared fixtures: fake repository and platforms, plus an ASGI client wired to
them through dependency overrides.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from ads_optimizer.platforms import PlatformRegistry
from tests.helpers import FakePlatform, FakeRepository, make_config


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def meta_platform():
    return FakePlatform("meta", "ACTIVE")


@pytest.fixture
def google_platform():
    return FakePlatform("google", "ENABLED")


@pytest.fixture
def registry(meta_platform, google_platform):
    return PlatformRegistry.from_instances({"meta": meta_platform, "google": google_platform})


@pytest.fixture
def repo():
    return FakeRepository(config=make_config())


@pytest.fixture
async def client(repo, registry):
    from ads_optimizer.dependencies import get_platform_registry, get_repository
    from ads_optimizer.main import app

    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_platform_registry] = lambda: registry
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
