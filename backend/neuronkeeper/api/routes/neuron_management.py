"""Neuron Management Routes — reads, nonce slots, split, send, and single-command actions.

Invariants:
    - Reads never mutate; list follows owner links from the caller
    - Every mutating route returns the refreshed neuron or the workflow outcome
    - An action that committed but could not be read back answers 202 with
      neuron=null, never an error
    - Sending requires confirmed=true in the body; the service enforces it

Design Decisions:
    - NeuronResponse built per request with fresh parameters: voting power and
      dissolve description depend on `now`
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from neuronkeeper.api.dependencies import (
    get_busy_registry, get_caller, get_governance, parse_neuron_id,
)
from neuronkeeper.config import Settings, get_settings
from neuronkeeper.core.domain_types import NeuronId, Principal
from neuronkeeper.core.enforce_amounts import days_to_seconds, parse_token_amount
from neuronkeeper.core.errors import NetworkError
from neuronkeeper.core.neuron import Neuron
from neuronkeeper.core.service_protocols import GovernanceService
from neuronkeeper.core.subaccount import validate_nonce
from neuronkeeper.schemas.neuron import (
    AutoStakeRequest, DisburseMaturityRequest, DisburseRequest,
    IncreaseDelayRequest, NeuronResponse, NonceSlotResponse, SendNeuronRequest,
    SplitRequest,
)
from neuronkeeper.services.neuron_actions import NeuronActionHandlers
from neuronkeeper.services.neuron_directory import NeuronDirectory
from neuronkeeper.services.nonce_allocator import NonceSlot, allocate_nonce, check_nonce
from neuronkeeper.services.operation_scope import NeuronBusyRegistry
from neuronkeeper.services.send_neuron import OwnershipTransferProtocol
from neuronkeeper.services.split_neuron import SplitWorkflow
from neuronkeeper.services.workflow_helpers import unix_now

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/neurons", tags=["neurons"])


async def _present(governance: GovernanceService, neuron: Neuron) -> NeuronResponse:
    params = await governance.get_nervous_system_parameters()
    return NeuronResponse.from_neuron(neuron, params, unix_now())


async def _present_applied(
    governance: GovernanceService, neuron_id: NeuronId, neuron: Neuron | None,
):
    if neuron is not None:
        try:
            return await _present(governance, neuron)
        except NetworkError as e:
            logger.warning("Action applied but parameters unavailable: %s", e.message,
                extra={"neuron_id": neuron_id.hex()})
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={"applied": True, "neuron_id": neuron_id.hex(), "neuron": None},
    )


def _present_slot(slot: NonceSlot) -> NonceSlotResponse:
    return NonceSlotResponse(
        nonce=slot.nonce, subaccount=slot.subaccount.hex(), status=slot.status.value,
    )


def _actions(
    governance: GovernanceService = Depends(get_governance),
    busy: NeuronBusyRegistry = Depends(get_busy_registry),
) -> NeuronActionHandlers:
    return NeuronActionHandlers(governance, busy=busy)


# ─── Reads ───────────────────────────────────────────────────────

@router.get("/", response_model=list[NeuronResponse])
async def list_neurons(
    caller: Principal = Depends(get_caller),
    governance: GovernanceService = Depends(get_governance),
    settings: Settings = Depends(get_settings),
):
    """Neurons the caller holds, plus those reachable through their owners."""
    directory = NeuronDirectory(governance, limit=settings.list_neurons_limit)
    neurons = await directory.list_neurons(caller)
    params = await governance.get_nervous_system_parameters()
    now = unix_now()
    return [NeuronResponse.from_neuron(n, params, now) for n in neurons]


@router.get("/nonces/next", response_model=NonceSlotResponse)
async def next_free_nonce(
    caller: Principal = Depends(get_caller),
    governance: GovernanceService = Depends(get_governance),
    settings: Settings = Depends(get_settings),
):
    slot = await allocate_nonce(governance, caller, limit=settings.nonce_scan_limit)
    return _present_slot(slot)


@router.get("/nonces/{nonce}", response_model=NonceSlotResponse)
async def get_nonce_slot(
    nonce: int,
    caller: Principal = Depends(get_caller),
    governance: GovernanceService = Depends(get_governance),
):
    slot = await check_nonce(governance, caller, validate_nonce(nonce))
    return _present_slot(slot)


@router.get("/{neuron_id}", response_model=NeuronResponse)
async def get_neuron(
    neuron_id: NeuronId = Depends(parse_neuron_id),
    governance: GovernanceService = Depends(get_governance),
):
    neuron = await NeuronDirectory(governance).get_neuron(neuron_id)
    return await _present(governance, neuron)


# ─── Split & send ────────────────────────────────────────────────

@router.post("/{neuron_id}/split")
async def split_neuron(
    body: SplitRequest,
    neuron_id: NeuronId = Depends(parse_neuron_id),
    caller: Principal = Depends(get_caller),
    governance: GovernanceService = Depends(get_governance),
    busy: NeuronBusyRegistry = Depends(get_busy_registry),
    settings: Settings = Depends(get_settings),
):
    """Split part of the stake into a new neuron owned by the caller."""
    amount_e8s = parse_token_amount(body.amount)
    workflow = SplitWorkflow(
        governance, nonce_scan_limit=settings.nonce_scan_limit, busy=busy,
    )
    outcome = await workflow.split(caller, neuron_id, amount_e8s, memo=body.memo)
    return outcome.to_dict()


@router.post("/{neuron_id}/send")
async def send_neuron(
    body: SendNeuronRequest,
    neuron_id: NeuronId = Depends(parse_neuron_id),
    caller: Principal = Depends(get_caller),
    governance: GovernanceService = Depends(get_governance),
    busy: NeuronBusyRegistry = Depends(get_busy_registry),
):
    """Transfer full control of the neuron to another principal."""
    protocol = OwnershipTransferProtocol(governance, busy=busy)
    outcome = await protocol.send(
        caller, neuron_id, Principal.from_text(body.recipient), confirmed=body.confirmed,
    )
    return outcome.to_dict()


# ─── Single-command actions ──────────────────────────────────────

@router.post("/{neuron_id}/start-dissolving", response_model=NeuronResponse)
async def start_dissolving(
    neuron_id: NeuronId = Depends(parse_neuron_id),
    actions: NeuronActionHandlers = Depends(_actions),
):
    neuron = await actions.start_dissolving(neuron_id)
    return await _present_applied(actions.governance, neuron_id, neuron)


@router.post("/{neuron_id}/stop-dissolving", response_model=NeuronResponse)
async def stop_dissolving(
    neuron_id: NeuronId = Depends(parse_neuron_id),
    actions: NeuronActionHandlers = Depends(_actions),
):
    neuron = await actions.stop_dissolving(neuron_id)
    return await _present_applied(actions.governance, neuron_id, neuron)


@router.post("/{neuron_id}/dissolve-delay", response_model=NeuronResponse)
async def increase_dissolve_delay(
    body: IncreaseDelayRequest,
    neuron_id: NeuronId = Depends(parse_neuron_id),
    actions: NeuronActionHandlers = Depends(_actions),
):
    neuron = await actions.increase_dissolve_delay(
        neuron_id, days_to_seconds(body.additional_days),
    )
    return await _present_applied(actions.governance, neuron_id, neuron)


@router.post("/{neuron_id}/auto-stake", response_model=NeuronResponse)
async def set_auto_stake(
    body: AutoStakeRequest,
    neuron_id: NeuronId = Depends(parse_neuron_id),
    actions: NeuronActionHandlers = Depends(_actions),
):
    neuron = await actions.set_auto_stake_maturity(neuron_id, body.enabled)
    return await _present_applied(actions.governance, neuron_id, neuron)


@router.post("/{neuron_id}/disburse", response_model=NeuronResponse)
async def disburse(
    body: DisburseRequest,
    neuron_id: NeuronId = Depends(parse_neuron_id),
    actions: NeuronActionHandlers = Depends(_actions),
):
    amount_e8s = parse_token_amount(body.amount) if body.amount is not None else None
    neuron = await actions.disburse(
        neuron_id, to_account=body.destination(), amount_e8s=amount_e8s,
    )
    return await _present_applied(actions.governance, neuron_id, neuron)


@router.post("/{neuron_id}/disburse-maturity", response_model=NeuronResponse)
async def disburse_maturity(
    body: DisburseMaturityRequest,
    neuron_id: NeuronId = Depends(parse_neuron_id),
    actions: NeuronActionHandlers = Depends(_actions),
):
    neuron = await actions.disburse_maturity(
        neuron_id, body.percentage, to_account=body.destination(),
    )
    return await _present_applied(actions.governance, neuron_id, neuron)
