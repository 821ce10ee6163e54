"""Neuron Action Handlers — single-command neuron management gated by dissolve state.

Invariants:
    - Every handler reads the neuron first; a missing neuron is ResourceNotFoundError
    - Dissolve-dependent actions are checked against allowed_actions(state) BEFORE the call
    - Exactly one manage_neuron command per handler; the refreshed neuron is returned,
      or None when the command committed but the read-back failed
    - GovernanceError becomes GovernancePermissionError; NetworkError passes through

Design Decisions:
    - One handler class with constructor-injected governance instead of free
      functions threading the same arguments
    - Auto-stake and disburse-maturity are not dissolve-gated: governance allows them
      in every state
"""

import logging
from typing import Callable

from neuronkeeper.core.dissolve_state import (
    allowed_actions, classify_dissolve_state, effective_dissolve_delay,
)
from neuronkeeper.core.domain_types import (
    Account, NeuronAction, NeuronId, WorkflowStep,
)
from neuronkeeper.core.enforce_amounts import validate_dissolve_delay
from neuronkeeper.core.errors import (
    GovernanceError, NetworkError, ResourceNotFoundError, ValidationError,
)
from neuronkeeper.core.governance_commands import (
    ChangeAutoStakeMaturity, Disburse, DisburseMaturity, GovernanceCommand,
    IncreaseDissolveDelay, StartDissolving, StopDissolving,
)
from neuronkeeper.core.neuron import Neuron
from neuronkeeper.core.service_protocols import GovernanceService
from neuronkeeper.services.operation_scope import (
    NeuronBusyRegistry, OperationScope, hold_neuron,
)
from neuronkeeper.services.workflow_helpers import (
    annotate, as_permission_error, unix_now,
)

logger = logging.getLogger(__name__)


class NeuronActionHandlers:
    """Dissolve, delay, auto-stake and disbursement commands for one caller."""

    def __init__(
        self,
        governance: GovernanceService,
        *,
        busy: NeuronBusyRegistry | None = None,
        clock: Callable[[], int] = unix_now,
    ):
        self.governance = governance
        self.busy = busy
        self._clock = clock

    async def start_dissolving(self, neuron_id: NeuronId) -> Neuron | None:
        await self._require(neuron_id, NeuronAction.START_DISSOLVING)
        return await self._submit(neuron_id, StartDissolving(), "start dissolving")

    async def stop_dissolving(self, neuron_id: NeuronId) -> Neuron | None:
        await self._require(neuron_id, NeuronAction.STOP_DISSOLVING)
        return await self._submit(neuron_id, StopDissolving(), "stop dissolving")

    async def increase_dissolve_delay(
        self,
        neuron_id: NeuronId,
        additional_seconds: int,
        *,
        scope: OperationScope | None = None,
    ) -> Neuron | None:
        """Extend the delay by additional_seconds; total stays within the maximum."""
        neuron = await self._require(neuron_id, NeuronAction.INCREASE_DELAY)
        if additional_seconds <= 0:
            raise ValidationError(
                f"Additional delay must be positive, got {additional_seconds}",
                "additional_seconds", code="INVALID_DISSOLVE_DELAY",
            )
        scope = scope or OperationScope()
        params = await scope.get_parameters(self.governance)
        now = self._clock()
        current = effective_dissolve_delay(
            classify_dissolve_state(neuron.dissolve_state, now), now,
        )
        validate_dissolve_delay(current + additional_seconds, params)
        return await self._submit(
            neuron_id, IncreaseDissolveDelay(additional_seconds), "dissolve delay",
        )

    async def set_auto_stake_maturity(
        self, neuron_id: NeuronId, enabled: bool,
    ) -> Neuron | None:
        await self._read(neuron_id)
        return await self._submit(
            neuron_id, ChangeAutoStakeMaturity(enabled), "auto-stake maturity",
        )

    async def disburse(
        self,
        neuron_id: NeuronId,
        *,
        to_account: Account | None = None,
        amount_e8s: int | None = None,
    ) -> Neuron | None:
        """Withdraw stake from a dissolved neuron (all of it when amount is None)."""
        neuron = await self._require(neuron_id, NeuronAction.DISBURSE)
        if amount_e8s is not None and not 0 < amount_e8s <= neuron.cached_neuron_stake_e8s:
            raise ValidationError(
                f"Disburse amount must be between 1 and "
                f"{neuron.cached_neuron_stake_e8s} e8s, got {amount_e8s}",
                "amount_e8s", code="INVALID_AMOUNT",
            )
        return await self._submit(
            neuron_id, Disburse(to_account, amount_e8s), "disburse",
        )

    async def disburse_maturity(
        self,
        neuron_id: NeuronId,
        percentage: int,
        *,
        to_account: Account | None = None,
    ) -> Neuron | None:
        neuron = await self._read(neuron_id)
        if not 1 <= percentage <= 100:
            raise ValidationError(
                f"Percentage must be between 1 and 100, got {percentage}",
                "percentage", code="INVALID_PERCENTAGE",
            )
        if neuron.maturity_e8s_equivalent <= 0:
            raise ValidationError(
                "Neuron has no maturity to disburse", "percentage",
                code="NO_MATURITY",
            )
        return await self._submit(
            neuron_id, DisburseMaturity(percentage, to_account), "disburse maturity",
        )

    # ─── Helpers ─────────────────────────────────────────────────

    async def _read(self, neuron_id: NeuronId) -> Neuron:
        neuron = await self.governance.get_neuron(neuron_id)
        if neuron is None:
            raise ResourceNotFoundError("Neuron", neuron_id.hex())
        return neuron

    async def _require(self, neuron_id: NeuronId, action: NeuronAction) -> Neuron:
        neuron = await self._read(neuron_id)
        state = classify_dissolve_state(neuron.dissolve_state, self._clock())
        if action not in allowed_actions(state):
            raise annotate(ValidationError(
                f"Cannot {action.value.replace('_', ' ')} a {state.name} neuron",
                "action", code="ACTION_NOT_ALLOWED",
            ), WorkflowStep.VALIDATING, neuron_id=neuron_id)
        return neuron

    async def _submit(
        self, neuron_id: NeuronId, command: GovernanceCommand, action: str,
    ) -> Neuron | None:
        async with hold_neuron(self.busy, neuron_id.hex()):
            try:
                await self.governance.manage_neuron(neuron_id, command)
            except GovernanceError as e:
                error = as_permission_error(e, action, neuron_id)
                logger.warning("Neuron action rejected: %s", e.error_message,
                    extra={"neuron_id": neuron_id.hex(), "error_code": error.code})
                raise annotate(error, WorkflowStep.CONFIGURING, neuron_id=neuron_id) from e
            except NetworkError as e:
                raise annotate(e, WorkflowStep.CONFIGURING, neuron_id=neuron_id)
        logger.info("Neuron action applied: %s", action,
            extra={"neuron_id": neuron_id.hex()})
        try:
            return await self.governance.get_neuron(neuron_id)
        except NetworkError as e:
            logger.warning("Could not read back neuron after %s: %s", action, e.message,
                extra={"neuron_id": neuron_id.hex()})
            return None
