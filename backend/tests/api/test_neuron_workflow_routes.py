"""Neuron Workflow Routes — SSE streams for create, claim retry, and top-up.

Tests cover:
    - Create streams step events then one done event, and funds stake + fee
    - Bad amounts and missing caller are 400s before any stream opens
    - Claim failure ends the stream with a retry_step error; /claim recovers
    - Top-up streams through refresh
"""

from neuronkeeper.core.domain_types import E8S
from neuronkeeper.core.errors import GovernanceError
from neuronkeeper.core.governance_commands import ClaimByMemoAndController
from neuronkeeper.core.subaccount import derive_neuron_subaccount
from tests.api.sse_helpers import sse_events
from tests.services.fake_network import ALICE


async def test_create_streams_steps_then_done(client, ledger):
    res = await client.post("/api/v1/neurons/", json={
        "amount": "5", "nonce": 3, "dissolve_delay_days": 180,
    })

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/event-stream")
    events = sse_events(res.text)
    assert [e["data"].get("step") for e in events[:5]] == [
        "deriving", "transferring", "awaiting_settlement", "claiming", "configuring",
    ]
    assert events[-1]["type"] == "done"
    outcome = events[-1]["data"]["outcome"]
    assert outcome["neuron_id"] == derive_neuron_subaccount(ALICE, 3).hex()
    assert outcome["dissolve_state"]["state"] == "locked"
    assert ledger.transfers[0]["amount_e8s"] == 5 * E8S + 1


async def test_create_rejects_bad_amount(client, ledger):
    res = await client.post("/api/v1/neurons/", json={"amount": "1.123456789"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_AMOUNT"
    assert ledger.transfers == []


async def test_create_requires_caller(client):
    res = await client.post(
        "/api/v1/neurons/", json={"amount": "5"}, headers={"X-Principal": "not-a-principal"},
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_PRINCIPAL"


async def test_create_rejects_negative_delay(client):
    res = await client.post("/api/v1/neurons/", json={"amount": "5", "dissolve_delay_days": -1})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_claim_failure_then_claim_route(client, governance, ledger):
    governance.fail_next(ClaimByMemoAndController, GovernanceError("not ready", 7))

    failed = sse_events((await client.post(
        "/api/v1/neurons/", json={"amount": "5", "nonce": 0},
    )).text)[-1]
    assert failed["type"] == "error"
    assert failed["data"]["code"] == "CLAIM_FAILED"
    assert failed["data"]["recovery"] == "retry_step"
    assert failed["data"]["step"] == "claiming"

    done = sse_events((await client.post(
        "/api/v1/neurons/claim", json={"nonce": 0},
    )).text)[-1]
    assert done["type"] == "done"
    assert len(ledger.transfers) == 1


async def test_top_up_stream(client, governance):
    neuron = governance.add_neuron(ALICE, 0, stake_e8s=1_000)

    res = await client.post(
        f"/api/v1/neurons/{neuron.id.hex()}/top-up", json={"amount": "0.00000250"},
    )

    done = sse_events(res.text)[-1]
    assert done["type"] == "done"
    assert done["data"]["outcome"]["neuron"]["cached_neuron_stake_e8s"] == 1_250


async def test_top_up_bad_neuron_id(client):
    res = await client.post("/api/v1/neurons/zz/top-up", json={"amount": "1"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_NEURON_ID"
