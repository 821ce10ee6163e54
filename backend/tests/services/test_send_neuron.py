"""Ownership Transfer Protocol — tests for grant → verify → revoke → confirm.

Tests cover:
    - Completed handoff: recipient sole full holder, sender revoked last
    - Self-transfer, unconfirmed request, and non-manager sender rejected before any call
    - Grant that does not verify: error, nothing revoked
    - Failed revocation: PARTIAL outcome naming the remaining holder
    - Recipient already holding everything: no grant submitted
    - A holder added by another session after the first read is still revoked
"""

import pytest

from neuronkeeper.core.capabilities import FULL_CAPABILITIES, Permission
from neuronkeeper.core.domain_types import TransferStatus
from neuronkeeper.core.errors import (
    GovernanceError, GovernancePermissionError, ValidationError,
)
from neuronkeeper.core.governance_commands import (
    AddNeuronPermissions, RemoveNeuronPermissions,
)
from neuronkeeper.core.neuron import PermissionGrant
from tests.services.fake_network import ALICE, BOB, CAROL, grant


@pytest.fixture
def shared_neuron(governance):
    """ALICE owns the neuron; CAROL holds a voting hotkey."""
    return governance.add_neuron(
        ALICE, 0, extra=[grant(CAROL, Permission.SUBMIT_PROPOSAL, Permission.VOTE)],
    )


# ─── Completed handoff ───────────────────────────────────────────

async def test_send_completes_with_recipient_sole_holder(protocol, shared_neuron):
    outcome = await protocol.send(ALICE, shared_neuron.id, BOB, confirmed=True)

    assert outcome.status is TransferStatus.COMPLETED
    assert outcome.granted == FULL_CAPABILITIES
    assert outcome.neuron.holders() == [BOB]
    assert outcome.failed_principal is None
    assert outcome.to_dict()["status"] == "completed"


async def test_send_grants_before_revoking_and_revokes_sender_last(
    protocol, governance, shared_neuron,
):
    await protocol.send(ALICE, shared_neuron.id, BOB, confirmed=True)

    commands = [command for _, command in governance.calls]
    assert isinstance(commands[0], AddNeuronPermissions)
    assert commands[0].principal == BOB
    assert [c.principal for c in commands[1:]] == [CAROL, ALICE]
    assert all(isinstance(c, RemoveNeuronPermissions) for c in commands[1:])


# ─── Rejected requests ───────────────────────────────────────────

async def test_self_transfer_rejected(protocol, governance, shared_neuron):
    with pytest.raises(ValidationError) as exc_info:
        await protocol.send(ALICE, shared_neuron.id, ALICE, confirmed=True)
    assert exc_info.value.code == "SELF_TRANSFER"
    assert governance.calls == []


async def test_unconfirmed_send_rejected(protocol, governance, shared_neuron):
    with pytest.raises(ValidationError) as exc_info:
        await protocol.send(ALICE, shared_neuron.id, BOB)
    assert exc_info.value.code == "CONFIRMATION_REQUIRED"
    assert governance.calls == []


async def test_sender_without_manage_principals_rejected(protocol, governance, shared_neuron):
    with pytest.raises(GovernancePermissionError):
        await protocol.send(CAROL, shared_neuron.id, BOB, confirmed=True)
    assert governance.calls == []


# ─── Unverified grant & partial revocation ───────────────────────

async def test_unverified_grant_revokes_nothing(protocol, governance, shared_neuron):
    governance.ignore.add(AddNeuronPermissions)

    with pytest.raises(GovernancePermissionError) as exc_info:
        await protocol.send(ALICE, shared_neuron.id, BOB, confirmed=True)

    assert exc_info.value.context.step == "verifying"
    assert len(governance.calls) == 1
    neuron = governance.neurons[bytes(shared_neuron.id)]
    assert neuron.holders() == [ALICE, CAROL]


async def test_rejected_grant_revokes_nothing(protocol, governance, shared_neuron):
    governance.fail_next(AddNeuronPermissions, GovernanceError("denied", 3))

    with pytest.raises(GovernancePermissionError) as exc_info:
        await protocol.send(ALICE, shared_neuron.id, BOB, confirmed=True)

    assert exc_info.value.context.step == "granting"
    assert len(governance.calls) == 1


async def test_failed_revocation_is_partial(protocol, governance, shared_neuron):
    governance.fail_next(
        RemoveNeuronPermissions, GovernanceError("not now", 2), principal=CAROL,
    )

    outcome = await protocol.send(ALICE, shared_neuron.id, BOB, confirmed=True)

    assert outcome.status is TransferStatus.PARTIAL
    assert outcome.failed_principal == CAROL
    assert outcome.revoked == []
    assert outcome.warning.context.step == "revoking"
    assert outcome.to_dict()["failed_principal"] == CAROL.to_text()
    # Recipient already holds everything; the sender was never revoked
    assert BOB in outcome.neuron.full_holders()
    assert ALICE in outcome.neuron.holders()


async def test_failed_sender_revocation_keeps_earlier_removals(
    protocol, governance, shared_neuron,
):
    governance.fail_next(
        RemoveNeuronPermissions, GovernanceError("not now", 2), principal=ALICE,
    )

    outcome = await protocol.send(ALICE, shared_neuron.id, BOB, confirmed=True)

    assert outcome.status is TransferStatus.PARTIAL
    assert outcome.failed_principal == ALICE
    assert [r.principal for r in outcome.revoked] == [CAROL]


async def test_recipient_already_full_skips_grant(protocol, governance):
    neuron = governance.add_neuron(
        ALICE, 0, extra=[PermissionGrant(BOB, FULL_CAPABILITIES)],
    )

    outcome = await protocol.send(ALICE, neuron.id, BOB, confirmed=True)

    assert outcome.granted.is_empty()
    assert not any(isinstance(c, AddNeuronPermissions) for _, c in governance.calls)
    assert outcome.status is TransferStatus.COMPLETED


async def test_holder_added_during_handoff_is_revoked(protocol, governance):
    neuron = governance.add_neuron(ALICE, 0)

    def concurrent_hotkey():
        governance.neurons[bytes(neuron.id)].permissions.append(
            grant(CAROL, Permission.VOTE),
        )
    governance.after_applied(AddNeuronPermissions, concurrent_hotkey)

    outcome = await protocol.send(ALICE, neuron.id, BOB, confirmed=True)

    removed = [
        command.principal for _, command in governance.calls
        if isinstance(command, RemoveNeuronPermissions)
    ]
    assert removed == [CAROL, ALICE]
    assert outcome.status is TransferStatus.COMPLETED
    assert outcome.neuron.holders() == [BOB]
