"""API Dependencies — per-request access to the caller, gateway services, and workflow objects.

Invariants:
    - Ledger, governance and the busy registry live on app.state, set once in lifespan
    - The caller is the principal in the X-Principal header; bad text is a 400, not a 500
    - Workflow objects are built per request from settings; they hold no request state

Design Decisions:
    - FastAPI Depends over module singletons: tests swap services via dependency_overrides
"""

from fastapi import Header, Request

from neuronkeeper.core.domain_types import NeuronId, Principal, neuron_id_from_hex
from neuronkeeper.core.errors import ValidationError
from neuronkeeper.core.service_protocols import GovernanceService, LedgerService
from neuronkeeper.services.operation_scope import NeuronBusyRegistry


def get_ledger(request: Request) -> LedgerService:
    return request.app.state.ledger


def get_governance(request: Request) -> GovernanceService:
    return request.app.state.governance


def get_busy_registry(request: Request) -> NeuronBusyRegistry:
    return request.app.state.busy


def get_caller(x_principal: str = Header(...)) -> Principal:
    try:
        return Principal.from_text(x_principal)
    except ValueError as e:
        raise ValidationError(str(e), "X-Principal", code="INVALID_PRINCIPAL") from e


def parse_neuron_id(neuron_id: str) -> NeuronId:
    try:
        return neuron_id_from_hex(neuron_id)
    except ValueError as e:
        raise ValidationError(str(e), "neuron_id", code="INVALID_NEURON_ID") from e
