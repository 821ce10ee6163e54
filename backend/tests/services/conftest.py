"""Service test fixtures — workflows wired to the in-memory network.

Invariants:
    - Every test gets a fresh FakeGovernance/FakeLedger pair (root conftest)
    - Workflows never sleep and read a fixed clock (NOW)
    - The busy registry is shared per test so concurrency tests can pre-hold a neuron

Design Decisions:
    - Factories as fixtures over module-level instances: no state leaks between tests
"""

import pytest

from neuronkeeper.services.create_neuron import NeuronCreationWorkflow
from neuronkeeper.services.neuron_actions import NeuronActionHandlers
from neuronkeeper.services.operation_scope import NeuronBusyRegistry
from neuronkeeper.services.send_neuron import OwnershipTransferProtocol
from neuronkeeper.services.split_neuron import SplitWorkflow
from neuronkeeper.services.stake_top_up import StakeTopUpWorkflow
from tests.services.fake_network import NOW, no_sleep


@pytest.fixture
def busy() -> NeuronBusyRegistry:
    return NeuronBusyRegistry()


@pytest.fixture
def creation(ledger, governance, busy) -> NeuronCreationWorkflow:
    return NeuronCreationWorkflow(
        ledger, governance, busy=busy, sleep=no_sleep, clock=lambda: NOW,
    )


@pytest.fixture
def top_up(ledger, governance, busy) -> StakeTopUpWorkflow:
    return StakeTopUpWorkflow(ledger, governance, busy=busy, sleep=no_sleep)


@pytest.fixture
def splitter(governance, busy) -> SplitWorkflow:
    return SplitWorkflow(governance, busy=busy)


@pytest.fixture
def protocol(governance, busy) -> OwnershipTransferProtocol:
    return OwnershipTransferProtocol(governance, busy=busy)


@pytest.fixture
def actions(governance, busy) -> NeuronActionHandlers:
    return NeuronActionHandlers(governance, busy=busy, clock=lambda: NOW)
