"""Split Workflow — carve part of a neuron's stake into a new child neuron.

Invariants:
    - Bounds (check_split_bounds) are enforced before any governance call
    - Exactly one Split command is submitted; governance applies it atomically
    - The child's id is the caller's subaccount for the split memo, so it is
      known before submission and the memo is allocated like a creation nonce
    - Governance rejection surfaces as GovernancePermissionError; the parent is unchanged
    - Once Split commits the outcome is returned even if the read-back fails;
      parent and child are then None

Design Decisions:
    - Memo picked from the caller's free nonce slots: a memo colliding with an
      existing neuron address would make governance refuse the split
"""

import logging
from dataclasses import dataclass

from neuronkeeper.core.domain_types import NeuronId, Principal, WorkflowStep
from neuronkeeper.core.enforce_split import check_split_bounds
from neuronkeeper.core.errors import (
    GovernanceError, NetworkError, ResourceNotFoundError, ValidationError,
)
from neuronkeeper.core.governance_commands import Split
from neuronkeeper.core.neuron import Neuron, neuron_to_wire
from neuronkeeper.core.service_protocols import GovernanceService
from neuronkeeper.core.subaccount import derive_neuron_subaccount
from neuronkeeper.services.nonce_allocator import (
    DEFAULT_SCAN_LIMIT, allocate_nonce, check_nonce,
)
from neuronkeeper.services.operation_scope import (
    NeuronBusyRegistry, OperationScope, hold_neuron,
)
from neuronkeeper.services.workflow_helpers import annotate, as_permission_error

logger = logging.getLogger(__name__)


@dataclass
class SplitOutcome:
    parent_id: NeuronId
    child_id: NeuronId
    amount_e8s: int
    memo: int
    parent: Neuron | None = None
    child: Neuron | None = None

    def to_dict(self) -> dict:
        return {
            "parent_id": self.parent_id.hex(),
            "child_id": self.child_id.hex(),
            "amount_e8s": self.amount_e8s,
            "memo": self.memo,
            "parent": neuron_to_wire(self.parent) if self.parent else None,
            "child": neuron_to_wire(self.child) if self.child else None,
        }


class SplitWorkflow:
    """Validates and submits a neuron split."""

    def __init__(
        self,
        governance: GovernanceService,
        *,
        nonce_scan_limit: int = DEFAULT_SCAN_LIMIT,
        busy: NeuronBusyRegistry | None = None,
    ):
        self.governance = governance
        self.nonce_scan_limit = nonce_scan_limit
        self.busy = busy

    async def split(
        self,
        caller: Principal,
        neuron_id: NeuronId,
        amount_e8s: int,
        *,
        memo: int | None = None,
        scope: OperationScope | None = None,
    ) -> SplitOutcome:
        scope = scope or OperationScope()
        neuron = await self.governance.get_neuron(neuron_id)
        if neuron is None:
            raise ResourceNotFoundError("Neuron", neuron_id.hex())
        params = await scope.get_parameters(self.governance)

        violation = check_split_bounds(
            neuron.cached_neuron_stake_e8s, amount_e8s, params,
        )
        if violation is not None:
            error = ValidationError(
                violation["message"], violation["field"], code=violation["error_code"],
            )
            raise annotate(error, WorkflowStep.VALIDATING, neuron_id=neuron_id)

        memo = await self._choose_memo(caller, memo, scope)
        child_id = NeuronId(derive_neuron_subaccount(caller, memo))

        async with hold_neuron(self.busy, neuron_id.hex()):
            try:
                await self.governance.manage_neuron(neuron_id, Split(amount_e8s, memo))
            except GovernanceError as e:
                error = as_permission_error(e, "split", neuron_id)
                logger.warning("Split rejected: %s", e.error_message,
                    extra={"neuron_id": neuron_id.hex(), "error_code": error.code})
                raise annotate(error, WorkflowStep.SPLITTING, neuron_id=neuron_id) from e
            except NetworkError as e:
                raise annotate(e, WorkflowStep.SPLITTING, neuron_id=neuron_id)

        logger.info("Neuron split", extra={"neuron_id": neuron_id.hex(), "nonce": memo})
        outcome = SplitOutcome(
            parent_id=neuron_id, child_id=child_id, amount_e8s=amount_e8s, memo=memo,
        )
        await self._refresh_outcome(outcome)
        return outcome

    async def _refresh_outcome(self, outcome: SplitOutcome) -> None:
        try:
            outcome.parent = await self.governance.get_neuron(outcome.parent_id)
            outcome.child = await self.governance.get_neuron(outcome.child_id)
        except NetworkError as e:
            logger.warning("Could not read back split neurons: %s", e.message,
                extra={"neuron_id": outcome.parent_id.hex()})
            outcome.parent = outcome.child = None

    async def _choose_memo(
        self, caller: Principal, memo: int | None, scope: OperationScope,
    ) -> int:
        if memo is None:
            slot = await allocate_nonce(
                self.governance, caller, limit=self.nonce_scan_limit, scope=scope,
            )
            return slot.nonce
        slot = await check_nonce(self.governance, caller, memo, scope=scope)
        if not slot.is_free:
            raise ValidationError(
                f"Memo {memo} already addresses a neuron", "memo", code="NONCE_TAKEN",
            )
        return memo
