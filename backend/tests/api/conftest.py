"""API test fixtures — FastAPI app wired to the in-memory network.

Invariants:
    - Ledger, governance, busy registry and settings are swapped via dependency_overrides
    - Lifespan never runs: no gateway client is created
    - Settlement delay is zero so SSE streams finish immediately

Design Decisions:
    - httpx AsyncClient over ASGITransport: same client the app's gateway uses,
      SSE bodies are buffered whole for assertions
"""


import pytest
from httpx import ASGITransport, AsyncClient

from neuronkeeper.api.dependencies import get_busy_registry, get_governance, get_ledger
from neuronkeeper.config import Settings, get_settings
from neuronkeeper.main import app
from neuronkeeper.services.operation_scope import NeuronBusyRegistry
from tests.services.fake_network import ALICE


@pytest.fixture
def busy() -> NeuronBusyRegistry:
    return NeuronBusyRegistry()


@pytest.fixture
async def client(ledger, governance, busy):
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_governance] = lambda: governance
    app.dependency_overrides[get_busy_registry] = lambda: busy
    app.dependency_overrides[get_settings] = lambda: Settings(settlement_delay_seconds=0)
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test",
        headers={"X-Principal": ALICE.to_text()},
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
