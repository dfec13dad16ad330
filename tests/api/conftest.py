import pytest
from httpx import ASGITransport, AsyncClient

from themisscan.analyzer import AnalysisBackend, ContractAnalyzer
from themisscan.api import create_app
from themisscan.api.routes.analyze import get_analyzer


class DummyBackend(AnalysisBackend):
    """Backend double: returns `result` or raises `error`, recording requests."""

    def __init__(self):
        self.result = None
        self.error = None
        self.requests = []
        self.request_ids = []

    async def analyze(self, request, logger):
        self.requests.append(request)
        self.request_ids.append(logger.request_id)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def backend():
    return DummyBackend()


@pytest.fixture
def app(make_config, backend):
    config = make_config(ALLOWED_ORIGIN="https://app.themisscan.example")
    application = create_app(config)
    application.dependency_overrides[get_analyzer] = lambda: ContractAnalyzer(config, backend=backend)
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client
