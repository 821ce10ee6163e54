"""Neuron Workflow Routes — SSE streams for create, claim retry, top-up, and refresh retry.

Invariants:
    - Amounts and delays are validated BEFORE the stream opens (errors are plain 400s)
    - Each stream relays typed workflow events and ends with one done or error event
    - Retry routes re-enter at the claim/refresh step and never transfer again
"""

import logging

from fastapi import APIRouter, Depends

from neuronkeeper.api.dependencies import (
    get_busy_registry, get_caller, get_governance, get_ledger, parse_neuron_id,
)
from neuronkeeper.api.routes.workflow_stream import stream_workflow
from neuronkeeper.config import Settings, get_settings
from neuronkeeper.core.domain_types import NeuronId, Principal
from neuronkeeper.core.enforce_amounts import days_to_seconds, parse_token_amount
from neuronkeeper.core.service_protocols import GovernanceService, LedgerService
from neuronkeeper.schemas.neuron import (
    ClaimRetryRequest, CreateNeuronRequest, TopUpRequest,
)
from neuronkeeper.services.create_neuron import NeuronCreationWorkflow
from neuronkeeper.services.operation_scope import NeuronBusyRegistry
from neuronkeeper.services.stake_top_up import StakeTopUpWorkflow

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/neurons", tags=["neuron-workflows"])


def _creation_workflow(
    ledger: LedgerService = Depends(get_ledger),
    governance: GovernanceService = Depends(get_governance),
    busy: NeuronBusyRegistry = Depends(get_busy_registry),
    settings: Settings = Depends(get_settings),
) -> NeuronCreationWorkflow:
    return NeuronCreationWorkflow(
        ledger, governance,
        settlement_delay_seconds=settings.settlement_delay_seconds,
        nonce_scan_limit=settings.nonce_scan_limit,
        busy=busy,
    )


def _top_up_workflow(
    ledger: LedgerService = Depends(get_ledger),
    governance: GovernanceService = Depends(get_governance),
    busy: NeuronBusyRegistry = Depends(get_busy_registry),
    settings: Settings = Depends(get_settings),
) -> StakeTopUpWorkflow:
    return StakeTopUpWorkflow(
        ledger, governance,
        settlement_delay_seconds=settings.settlement_delay_seconds,
        busy=busy,
    )


@router.post("/")
async def create_neuron(
    body: CreateNeuronRequest,
    caller: Principal = Depends(get_caller),
    workflow: NeuronCreationWorkflow = Depends(_creation_workflow),
):
    """Stake a new neuron — SSE stream of workflow steps."""
    stake_e8s = parse_token_amount(body.amount)
    logger.info("Neuron creation requested", extra={
        "principal": caller.to_text(), "nonce": body.nonce,
    })
    events = workflow.run(
        caller, stake_e8s,
        nonce=body.nonce,
        dissolve_delay_seconds=days_to_seconds(body.dissolve_delay_days),
    )
    return stream_workflow(events, "create")


@router.post("/claim")
async def retry_claim(
    body: ClaimRetryRequest,
    caller: Principal = Depends(get_caller),
    workflow: NeuronCreationWorkflow = Depends(_creation_workflow),
):
    """Claim a neuron whose funding transfer already landed."""
    events = workflow.retry_claim(
        caller, body.nonce,
        dissolve_delay_seconds=days_to_seconds(body.dissolve_delay_days),
    )
    return stream_workflow(events, "claim")


@router.post("/{neuron_id}/top-up")
async def top_up_neuron(
    body: TopUpRequest,
    neuron_id: NeuronId = Depends(parse_neuron_id),
    caller: Principal = Depends(get_caller),
    workflow: StakeTopUpWorkflow = Depends(_top_up_workflow),
):
    """Add stake to an existing neuron — SSE stream of workflow steps."""
    amount_e8s = parse_token_amount(body.amount)
    logger.info("Top-up requested", extra={
        "principal": caller.to_text(), "neuron_id": neuron_id.hex(),
    })
    return stream_workflow(workflow.run(neuron_id, amount_e8s), "top-up")


@router.post("/{neuron_id}/refresh")
async def retry_refresh(
    neuron_id: NeuronId = Depends(parse_neuron_id),
    caller: Principal = Depends(get_caller),
    workflow: StakeTopUpWorkflow = Depends(_top_up_workflow),
):
    """Refresh a neuron's stake after a top-up transfer already landed."""
    return stream_workflow(workflow.retry_refresh(neuron_id), "refresh")
