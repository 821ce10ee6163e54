"""Root conftest — shared test configuration and in-memory network fixtures."""

import os

import pytest

from tests.services.fake_network import FakeGovernance, FakeLedger

# Never reach a real gateway from tests
os.environ.setdefault("GATEWAY_URL", "http://gateway.invalid")
os.environ.setdefault("LOG_FORMAT", "text")


@pytest.fixture
def governance() -> FakeGovernance:
    return FakeGovernance()


@pytest.fixture
def ledger(governance) -> FakeLedger:
    return FakeLedger(governance)
