"""Nonce Allocator — finds a nonce whose derived neuron address is still unused.

Invariants:
    - allocate_nonce scans 0, 1, ..., limit-1 in order and returns the FIRST free slot
    - The scan is bounded: exhausting it raises NonceExhaustedError, it never widens itself
    - "Free" means governance reports no neuron at the derived address right now
    - Every probe result is recorded in the caller's OperationScope

Design Decisions:
    - Sequential probing (not concurrent): the first free nonce must be the lowest one,
      and 100 cheap queries is acceptable for an interactive flow
"""

import logging
from dataclasses import dataclass

from neuronkeeper.core.domain_types import (
    NeuronId, NonceSlotStatus, Principal, Subaccount,
)
from neuronkeeper.core.errors import ErrorContext, NonceExhaustedError
from neuronkeeper.core.service_protocols import GovernanceService
from neuronkeeper.core.subaccount import derive_neuron_subaccount, validate_nonce
from neuronkeeper.services.operation_scope import OperationScope

logger = logging.getLogger(__name__)

DEFAULT_SCAN_LIMIT: int = 100


@dataclass(frozen=True)
class NonceSlot:
    owner: Principal
    nonce: int
    subaccount: Subaccount
    status: NonceSlotStatus

    @property
    def is_free(self) -> bool:
        return self.status is NonceSlotStatus.FREE


async def check_nonce(
    governance: GovernanceService,
    owner: Principal,
    nonce: int,
    *,
    scope: OperationScope | None = None,
) -> NonceSlot:
    """Report whether owner's nonce-th address is free or already holds a neuron."""
    validate_nonce(nonce)
    subaccount = derive_neuron_subaccount(owner, nonce)
    existing = await governance.get_neuron(NeuronId(subaccount))
    status = NonceSlotStatus.FREE if existing is None else NonceSlotStatus.TAKEN
    if scope is not None:
        scope.record_nonce(nonce, status)
    return NonceSlot(owner, nonce, subaccount, status)


async def allocate_nonce(
    governance: GovernanceService,
    owner: Principal,
    *,
    limit: int = DEFAULT_SCAN_LIMIT,
    scope: OperationScope | None = None,
) -> NonceSlot:
    """Return the lowest free nonce slot below `limit`."""
    for nonce in range(limit):
        slot = await check_nonce(governance, owner, nonce, scope=scope)
        if slot.is_free:
            logger.info(
                "Allocated neuron nonce",
                extra={"principal": owner.to_text(), "nonce": nonce},
            )
            return slot
    raise NonceExhaustedError(
        limit, ErrorContext(principal=owner.to_text()),
    )
