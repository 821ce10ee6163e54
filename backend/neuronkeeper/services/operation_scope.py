"""Operation Scope — per-invocation caches and the advisory per-neuron busy flag.

Invariants:
    - OperationScope lives for one workflow invocation (or an explicit session) — never module state
    - Nervous-system parameters are fetched at most once per scope
    - Nonce checks recorded in a scope are only trusted within that scope
    - NeuronBusyRegistry is ADVISORY: it stops this client from double-submitting,
      it cannot stop another session or device from mutating the same neuron

Design Decisions:
    - Scope passed in and handed back on outcomes instead of ambient caches (no stale
      reads across unrelated workflows)
    - Busy flag as an async context manager: released on success, failure, and cancellation
"""

import logging
from contextlib import asynccontextmanager, nullcontext
from dataclasses import dataclass, field

from neuronkeeper.core.domain_types import NonceSlotStatus
from neuronkeeper.core.errors import NeuronBusyError
from neuronkeeper.core.neuron import NervousSystemParameters
from neuronkeeper.core.service_protocols import GovernanceService

logger = logging.getLogger(__name__)


@dataclass
class OperationScope:
    """Caches shared by the steps of one workflow invocation."""
    parameters: NervousSystemParameters | None = None
    nonce_checks: dict[int, NonceSlotStatus] = field(default_factory=dict)

    async def get_parameters(
        self, governance: GovernanceService,
    ) -> NervousSystemParameters:
        if self.parameters is None:
            self.parameters = await governance.get_nervous_system_parameters()
        return self.parameters

    def record_nonce(self, nonce: int, status: NonceSlotStatus) -> None:
        self.nonce_checks[nonce] = status

    def nonce_verified_free(self, nonce: int) -> bool:
        return self.nonce_checks.get(nonce) is NonceSlotStatus.FREE


class NeuronBusyRegistry:
    """Soft busy flags keyed by neuron id hex (or derived address for new neurons)."""

    def __init__(self) -> None:
        self._busy: set[str] = set()

    def is_busy(self, neuron_key: str) -> bool:
        return neuron_key in self._busy

    @asynccontextmanager
    async def hold(self, neuron_key: str):
        if neuron_key in self._busy:
            logger.warning(
                "Rejected concurrent operation", extra={"neuron_id": neuron_key},
            )
            raise NeuronBusyError(neuron_key)
        self._busy.add(neuron_key)
        try:
            yield
        finally:
            self._busy.discard(neuron_key)


def hold_neuron(busy: NeuronBusyRegistry | None, neuron_key: str):
    """busy.hold(neuron_key), or a no-op when no registry is in play."""
    if busy is None:
        return nullcontext()
    return busy.hold(neuron_key)


def busy_conflict(
    busy: NeuronBusyRegistry | None, neuron_key: str,
) -> NeuronBusyError | None:
    """Error to report when neuron_key is already held, else None."""
    if busy is not None and busy.is_busy(neuron_key):
        return NeuronBusyError(neuron_key)
    return None
