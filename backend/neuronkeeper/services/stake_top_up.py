"""Stake Top-Up Workflow — transfer to an existing neuron's address, then refresh its stake.

Invariants:
    - The neuron must exist before any transfer; its address is its id (no nonce involved)
    - Refresh is ClaimOrRefresh addressed by NeuronId, submitted only after a confirmed transfer
    - Transfer failure: nothing changed. Refresh failure: ClaimError, retry refresh only
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

from neuronkeeper.core.domain_types import Account, NeuronId, WorkflowStep
from neuronkeeper.core.errors import (
    ClaimError, ErrorContext, GovernanceError, NetworkError,
    NeuronKeeperError, ResourceNotFoundError, TransferError,
    ValidationError,
)
from neuronkeeper.core.governance_commands import RefreshByNeuronId
from neuronkeeper.core.service_protocols import GovernanceService, LedgerService
from neuronkeeper.core.workflow_events import (
    AwaitingSettlement, Claiming, Done, Failed, TopUpOutcome, Transferring,
    WorkflowEvent,
)
from neuronkeeper.services.operation_scope import (
    NeuronBusyRegistry, OperationScope, busy_conflict, hold_neuron,
)
from neuronkeeper.services.workflow_helpers import annotate

logger = logging.getLogger(__name__)


class StakeTopUpWorkflow:
    """Adds stake to an existing neuron."""

    def __init__(
        self,
        ledger: LedgerService,
        governance: GovernanceService,
        *,
        settlement_delay_seconds: float = 2.0,
        busy: NeuronBusyRegistry | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.ledger = ledger
        self.governance = governance
        self.settlement_delay_seconds = settlement_delay_seconds
        self.busy = busy
        self._sleep = sleep

    async def run(
        self,
        neuron_id: NeuronId,
        amount_e8s: int,
        *,
        scope: OperationScope | None = None,
    ) -> AsyncIterator[WorkflowEvent]:
        scope = scope or OperationScope()
        try:
            fee_e8s = await self._validate(neuron_id, amount_e8s, scope)
        except NeuronKeeperError as e:
            annotate(e, WorkflowStep.VALIDATING, neuron_id=neuron_id)
            yield Failed(WorkflowStep.VALIDATING, e)
            return

        key = neuron_id.hex()
        conflict = busy_conflict(self.busy, key)
        if conflict is not None:
            yield Failed(WorkflowStep.VALIDATING, conflict)
            return

        async with hold_neuron(self.busy, key):
            yield Transferring(amount_e8s)
            try:
                block_index = await self.ledger.transfer(
                    Account(self.governance.canister_id, bytes(neuron_id)),
                    amount_e8s,
                    fee_e8s=fee_e8s,
                )
            except (TransferError, NetworkError) as e:
                annotate(e, WorkflowStep.TRANSFERRING, neuron_id=neuron_id)
                logger.error("Top-up transfer failed: %s", e.message,
                    extra={"neuron_id": key, "error_code": e.code})
                yield Failed(WorkflowStep.TRANSFERRING, e)
                return

            yield AwaitingSettlement(self.settlement_delay_seconds)
            await self._sleep(self.settlement_delay_seconds)

            async for event in self._refresh(neuron_id, block_index):
                yield event

    async def retry_refresh(self, neuron_id: NeuronId) -> AsyncIterator[WorkflowEvent]:
        """Re-run only the stake refresh after a transfer already landed."""
        async for event in self._refresh(neuron_id, None):
            yield event

    async def _validate(
        self, neuron_id: NeuronId, amount_e8s: int, scope: OperationScope,
    ) -> int:
        if amount_e8s <= 0:
            raise ValidationError(
                f"Top-up amount must be positive, got {amount_e8s}", "amount_e8s",
                code="INVALID_AMOUNT",
            )
        if await self.governance.get_neuron(neuron_id) is None:
            raise ResourceNotFoundError("Neuron", neuron_id.hex())
        params = await scope.get_parameters(self.governance)
        return params.transaction_fee_e8s

    async def _refresh(
        self, neuron_id: NeuronId, block_index: int | None,
    ) -> AsyncIterator[WorkflowEvent]:
        yield Claiming()
        try:
            await self.governance.manage_neuron(neuron_id, RefreshByNeuronId())
        except GovernanceError as e:
            error = ClaimError(e.error_message, block_index, ErrorContext(
                user_message=(
                    "Funds reached the neuron address but its stake was not "
                    "refreshed. Retry the refresh only — do not transfer again."
                ),
            ))
            annotate(error, WorkflowStep.CLAIMING, neuron_id=neuron_id)
            yield Failed(WorkflowStep.CLAIMING, error)
            return
        except NetworkError as e:
            annotate(e, WorkflowStep.CLAIMING, neuron_id=neuron_id)
            yield Failed(WorkflowStep.CLAIMING, e)
            return

        outcome = TopUpOutcome(neuron_id, block_index)
        try:
            outcome.neuron = await self.governance.get_neuron(neuron_id)
        except NetworkError as e:
            logger.warning("Could not read back refreshed neuron: %s", e.message,
                extra={"neuron_id": neuron_id.hex()})
        logger.info("Neuron stake refreshed", extra={"neuron_id": neuron_id.hex()})
        yield Done(outcome)
