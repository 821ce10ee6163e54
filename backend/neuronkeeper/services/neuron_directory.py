"""Neuron Directory — read-side lookups: one neuron by id, all neurons reachable from a principal.

Invariants:
    - Breadth-first over principals, starting at the caller; each principal is
      listed at most once per call
    - A neuron's owners (holders tied for the largest capability set) are queued next
    - Result is deduplicated by neuron id, first-seen order preserved
    - Read-only: never submits manage_neuron

Design Decisions:
    - Following owners surfaces neurons the caller controls through a shared owner
      (e.g. a wallet that also holds the neuron), matching what the wallet shows
"""

import logging
from collections import deque

from neuronkeeper.core.domain_types import NeuronId, Principal
from neuronkeeper.core.errors import ResourceNotFoundError
from neuronkeeper.core.neuron import Neuron
from neuronkeeper.core.ownership import owner_principals
from neuronkeeper.core.service_protocols import GovernanceService

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT: int = 100


class NeuronDirectory:
    def __init__(self, governance: GovernanceService, *, limit: int = DEFAULT_LIST_LIMIT):
        self.governance = governance
        self.limit = limit

    async def get_neuron(self, neuron_id: NeuronId) -> Neuron:
        neuron = await self.governance.get_neuron(neuron_id)
        if neuron is None:
            raise ResourceNotFoundError("Neuron", neuron_id.hex())
        return neuron

    async def list_neurons(self, principal: Principal) -> list[Neuron]:
        """Neurons of `principal` plus those reachable through their owners."""
        seen_principals = {principal}
        queue = deque([principal])
        found: dict[bytes, Neuron] = {}

        while queue:
            current = queue.popleft()
            for neuron in await self.governance.list_neurons(current, self.limit):
                found.setdefault(bytes(neuron.id), neuron)
                for owner in owner_principals(neuron):
                    if owner not in seen_principals:
                        seen_principals.add(owner)
                        queue.append(owner)

        logger.info("Listed neurons", extra={
            "principal": principal.to_text(), "count": len(found),
        })
        return list(found.values())
