"""Neuron Management Routes — reads, nonce slots, split, send, and actions.

Tests cover:
    - List and get return NeuronResponse with holder roles and dissolve view
    - Unknown neuron is a 404 envelope
    - Nonce slot lookup and next free nonce
    - Split and send return their outcomes; unconfirmed send is a 400
    - Dissolve-gated actions surface ACTION_NOT_ALLOWED
    - An applied action whose read-back fails answers 202 with neuron=null
"""

from neuronkeeper.core.capabilities import Permission
from neuronkeeper.core.domain_types import SECONDS_PER_DAY
from neuronkeeper.core.errors import NetworkError
from neuronkeeper.core.governance_commands import StartDissolving
from neuronkeeper.core.neuron import DissolveMetadata
from tests.services.fake_network import ALICE, BOB, CAROL, grant


async def test_list_neurons(client, governance):
    governance.add_neuron(ALICE, 0, extra=[grant(CAROL, Permission.SUBMIT_PROPOSAL, Permission.VOTE)])
    governance.add_neuron(BOB, 0)

    res = await client.get("/api/v1/neurons/")

    assert res.status_code == 200
    body = res.json()
    assert len(body) == 1
    roles = {h["principal"]: h["role"] for h in body[0]["holders"]}
    assert roles == {ALICE.to_text(): "full_owner", CAROL.to_text(): "hotkey"}


async def test_get_neuron(client, governance):
    neuron = governance.add_neuron(
        ALICE, 0, stake_e8s=500,
        dissolve=DissolveMetadata(dissolve_delay_seconds=180 * SECONDS_PER_DAY),
    )

    res = await client.get(f"/api/v1/neurons/{neuron.id.hex()}")

    body = res.json()
    assert body["stake_e8s"] == 500
    assert body["dissolve_state"] == {
        "state": "locked", "description": "Locked for 180 days",
        "delay_seconds": 180 * SECONDS_PER_DAY, "target_timestamp_seconds": None,
    }
    assert body["voting_power"] > 0


async def test_get_unknown_neuron_is_404(client):
    res = await client.get(f"/api/v1/neurons/{'ab' * 32}")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_nonce_routes(client, governance):
    governance.add_neuron(ALICE, 0)

    taken = (await client.get("/api/v1/neurons/nonces/0")).json()
    nxt = (await client.get("/api/v1/neurons/nonces/next")).json()

    assert taken["status"] == "taken"
    assert nxt["nonce"] == 1
    assert nxt["status"] == "free"


async def test_split_route(client, governance):
    parent = governance.add_neuron(ALICE, 0, stake_e8s=1_000)

    res = await client.post(
        f"/api/v1/neurons/{parent.id.hex()}/split", json={"amount": "0.000003"},
    )

    assert res.status_code == 200
    assert res.json()["amount_e8s"] == 300
    assert res.json()["child"]["cached_neuron_stake_e8s"] == 299


async def test_split_below_minimum_is_400(client, governance):
    parent = governance.add_neuron(ALICE, 0, stake_e8s=1_000)
    res = await client.post(
        f"/api/v1/neurons/{parent.id.hex()}/split", json={"amount": "0.0000005"},
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "SPLIT_BELOW_MINIMUM"


async def test_send_route(client, governance):
    neuron = governance.add_neuron(ALICE, 0)

    res = await client.post(f"/api/v1/neurons/{neuron.id.hex()}/send", json={
        "recipient": BOB.to_text(), "confirmed": True,
    })

    assert res.status_code == 200
    assert res.json()["status"] == "completed"
    assert [h.principal for h in governance.neurons[bytes(neuron.id)].permissions] == [BOB]


async def test_send_unconfirmed_is_400(client, governance):
    neuron = governance.add_neuron(ALICE, 0)
    res = await client.post(f"/api/v1/neurons/{neuron.id.hex()}/send", json={
        "recipient": BOB.to_text(),
    })
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "CONFIRMATION_REQUIRED"
    assert governance.calls == []


async def test_disburse_locked_neuron_not_allowed(client, governance):
    neuron = governance.add_neuron(
        ALICE, 0, dissolve=DissolveMetadata(dissolve_delay_seconds=SECONDS_PER_DAY),
    )
    res = await client.post(f"/api/v1/neurons/{neuron.id.hex()}/disburse", json={})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "ACTION_NOT_ALLOWED"


async def test_start_dissolving_route(client, governance):
    neuron = governance.add_neuron(
        ALICE, 0, dissolve=DissolveMetadata(dissolve_delay_seconds=SECONDS_PER_DAY),
    )
    res = await client.post(f"/api/v1/neurons/{neuron.id.hex()}/start-dissolving")
    assert res.status_code == 200
    assert res.json()["dissolve_state"]["state"] in {"dissolving", "dissolved"}


async def test_action_applied_without_read_back(client, governance):
    neuron = governance.add_neuron(
        ALICE, 0, dissolve=DissolveMetadata(dissolve_delay_seconds=180 * SECONDS_PER_DAY),
    )
    governance.after_applied(
        StartDissolving,
        lambda: governance.fail_reads(NetworkError("timeout", "get_neuron")),
    )

    res = await client.post(f"/api/v1/neurons/{neuron.id.hex()}/start-dissolving")

    assert res.status_code == 202
    assert res.json() == {"applied": True, "neuron_id": neuron.id.hex(), "neuron": None}
