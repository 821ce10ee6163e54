"""Neuron Action Handlers — tests for dissolve-gated single commands.

Tests cover:
    - Start/stop dissolving allowed only from Locked/Dissolving
    - Increase delay: positive only, total capped at the maximum
    - Disburse only when Dissolved, amount within the stake
    - Disburse maturity percentage and empty-maturity checks
    - Governance rejection → GovernancePermissionError; busy neuron → NeuronBusyError
    - A committed command whose read-back fails returns None instead of raising
"""

import pytest

from neuronkeeper.core.domain_types import SECONDS_PER_DAY, Account
from neuronkeeper.core.errors import (
    GovernanceError, GovernancePermissionError, NetworkError, NeuronBusyError,
    ResourceNotFoundError, ValidationError,
)
from neuronkeeper.core.governance_commands import (
    Disburse, IncreaseDissolveDelay, StartDissolving,
)
from neuronkeeper.core.neuron import DissolveMetadata
from tests.services.fake_network import ALICE, BOB, NOW

DELAY = 180 * SECONDS_PER_DAY
MAX_DELAY = 8 * 365 * SECONDS_PER_DAY


@pytest.fixture
def locked(governance):
    return governance.add_neuron(
        ALICE, 0, dissolve=DissolveMetadata(dissolve_delay_seconds=DELAY),
    )


@pytest.fixture
def dissolved(governance):
    return governance.add_neuron(ALICE, 1, stake_e8s=1_000, maturity_e8s_equivalent=1_000)


# ─── Dissolve transitions ────────────────────────────────────────

async def test_start_dissolving_from_locked(actions, locked):
    neuron = await actions.start_dissolving(locked.id)
    assert neuron.dissolve_state == DissolveMetadata(
        when_dissolved_timestamp_seconds=NOW + DELAY,
    )


async def test_stop_dissolving_requires_dissolving(actions, governance, locked):
    with pytest.raises(ValidationError) as exc_info:
        await actions.stop_dissolving(locked.id)
    assert exc_info.value.code == "ACTION_NOT_ALLOWED"
    assert governance.calls == []


async def test_stop_dissolving_relocks(actions, locked):
    await actions.start_dissolving(locked.id)
    neuron = await actions.stop_dissolving(locked.id)
    assert neuron.dissolve_state == DissolveMetadata(dissolve_delay_seconds=DELAY)


async def test_start_dissolving_rejected_by_governance(actions, governance, locked):
    governance.fail_next(StartDissolving, GovernanceError("not a controller", 3))
    with pytest.raises(GovernancePermissionError) as exc_info:
        await actions.start_dissolving(locked.id)
    assert exc_info.value.context.step == "configuring"


async def test_busy_neuron_rejected(actions, busy, governance, locked):
    async with busy.hold(locked.id.hex()):
        with pytest.raises(NeuronBusyError):
            await actions.start_dissolving(locked.id)
    assert governance.calls == []


async def test_missing_neuron(actions):
    with pytest.raises(ResourceNotFoundError):
        await actions.start_dissolving(b"\x03" * 32)


# ─── Dissolve delay ──────────────────────────────────────────────

async def test_increase_delay_adds_to_current(actions, locked):
    neuron = await actions.increase_dissolve_delay(locked.id, 30 * SECONDS_PER_DAY)
    assert neuron.dissolve_state.dissolve_delay_seconds == DELAY + 30 * SECONDS_PER_DAY


async def test_increase_delay_must_be_positive(actions, governance, locked):
    with pytest.raises(ValidationError) as exc_info:
        await actions.increase_dissolve_delay(locked.id, 0)
    assert exc_info.value.code == "INVALID_DISSOLVE_DELAY"
    assert governance.calls == []


async def test_increase_delay_capped_at_maximum(actions, governance):
    neuron = governance.add_neuron(
        ALICE, 2, dissolve=DissolveMetadata(dissolve_delay_seconds=MAX_DELAY),
    )
    with pytest.raises(ValidationError) as exc_info:
        await actions.increase_dissolve_delay(neuron.id, SECONDS_PER_DAY)
    assert exc_info.value.code == "INVALID_DISSOLVE_DELAY"
    assert governance.calls == []


async def test_increase_delay_reopens_dissolved_neuron(actions, dissolved):
    neuron = await actions.increase_dissolve_delay(dissolved.id, DELAY)
    assert neuron.dissolve_state == DissolveMetadata(dissolve_delay_seconds=DELAY)


# ─── Disbursement ────────────────────────────────────────────────

async def test_disburse_requires_dissolved(actions, locked):
    with pytest.raises(ValidationError) as exc_info:
        await actions.disburse(locked.id)
    assert exc_info.value.code == "ACTION_NOT_ALLOWED"


async def test_disburse_whole_stake(actions, governance, dissolved):
    account = Account(BOB)
    neuron = await actions.disburse(dissolved.id, to_account=account)
    assert governance.calls[-1][1] == Disburse(account, None)
    assert neuron.cached_neuron_stake_e8s == 0


async def test_disburse_amount_above_stake_rejected(actions, governance, dissolved):
    with pytest.raises(ValidationError) as exc_info:
        await actions.disburse(dissolved.id, amount_e8s=2_000)
    assert exc_info.value.code == "INVALID_AMOUNT"
    assert governance.calls == []


async def test_disburse_maturity(actions, dissolved):
    neuron = await actions.disburse_maturity(dissolved.id, 50)
    assert neuron.maturity_e8s_equivalent == 500
    assert neuron.disburse_maturity_in_progress[0].amount_e8s == 500


@pytest.mark.parametrize("percentage", [0, 101])
async def test_disburse_maturity_percentage_bounds(actions, dissolved, percentage):
    with pytest.raises(ValidationError) as exc_info:
        await actions.disburse_maturity(dissolved.id, percentage)
    assert exc_info.value.code == "INVALID_PERCENTAGE"


async def test_disburse_maturity_requires_maturity(actions, locked):
    with pytest.raises(ValidationError) as exc_info:
        await actions.disburse_maturity(locked.id, 50)
    assert exc_info.value.code == "NO_MATURITY"


async def test_auto_stake_toggle(actions, locked):
    neuron = await actions.set_auto_stake_maturity(locked.id, True)
    assert neuron.auto_stake_maturity is True


# ─── Read-back after commit ──────────────────────────────────────

async def test_increase_delay_committed_but_read_back_fails(
    actions, governance, locked,
):
    governance.after_applied(
        IncreaseDissolveDelay,
        lambda: governance.fail_reads(NetworkError("timeout", "get_neuron")),
    )

    neuron = await actions.increase_dissolve_delay(locked.id, DELAY)

    assert neuron is None
    assert len(governance.calls) == 1
    stored = governance.neurons[bytes(locked.id)]
    assert stored.dissolve_state == DissolveMetadata(dissolve_delay_seconds=2 * DELAY)


async def test_start_dissolving_committed_but_read_back_fails(
    actions, governance, locked,
):
    governance.after_applied(
        StartDissolving,
        lambda: governance.fail_reads(NetworkError("timeout", "get_neuron")),
    )
    assert await actions.start_dissolving(locked.id) is None
    assert governance.calls == [(bytes(locked.id), StartDissolving())]
