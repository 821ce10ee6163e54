"""Neuron Creation Workflow — derive address → transfer → settle → claim → [set delay].

Invariants:
    - Steps run strictly in order; claim is NEVER submitted before the transfer returned a block
    - Validation (stake, delay, nonce verified free) completes before any side effect
    - Transfer failure is terminal and fully retryable: nothing changed remotely
    - Claim failure is reported as ClaimError (funds in limbo, retry claim only) —
      distinct from a transfer failure
    - Dissolve-delay failure is soft: the neuron exists; Done carries a warning
    - Exactly one terminal event (Done | Failed) ends every run
    - Submitted steps are never cancelled or rolled back; a consumer that stops
      iterating only stops observing

Design Decisions:
    - Async generator of typed events: routes stream them, scripts collect
      them with run_to_completion
    - retry_claim re-enters at the Claiming step for the funds-in-limbo recovery path
    - Funding amount = stake + transaction fee, ledger fee passed explicitly
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

from neuronkeeper.core.dissolve_state import classify_dissolve_state
from neuronkeeper.core.domain_types import (
    Account, NeuronId, Principal, Subaccount, WorkflowStep,
)
from neuronkeeper.core.enforce_amounts import (
    validate_dissolve_delay, validate_minimum_stake,
)
from neuronkeeper.core.errors import (
    ClaimError, ErrorContext, GovernanceError, NetworkError,
    NeuronKeeperError, TransferError, ValidationError,
)
from neuronkeeper.core.governance_commands import (
    ClaimByMemoAndController, IncreaseDissolveDelay,
)
from neuronkeeper.core.service_protocols import GovernanceService, LedgerService
from neuronkeeper.core.subaccount import derive_neuron_subaccount, encode_nonce_memo
from neuronkeeper.core.workflow_events import (
    AwaitingSettlement, Claiming, Configuring, CreationOutcome, Deriving,
    Done, Failed, Transferring, WorkflowEvent,
)
from neuronkeeper.services.nonce_allocator import (
    DEFAULT_SCAN_LIMIT, allocate_nonce, check_nonce,
)
from neuronkeeper.services.operation_scope import (
    NeuronBusyRegistry, OperationScope, busy_conflict, hold_neuron,
)
from neuronkeeper.services.workflow_helpers import (
    annotate, as_permission_error, unix_now,
)

logger = logging.getLogger(__name__)

DEFAULT_SETTLEMENT_DELAY_SECONDS: float = 2.0


class NeuronCreationWorkflow:
    """Creates a neuron for `owner` and streams progress events."""

    def __init__(
        self,
        ledger: LedgerService,
        governance: GovernanceService,
        *,
        settlement_delay_seconds: float = DEFAULT_SETTLEMENT_DELAY_SECONDS,
        nonce_scan_limit: int = DEFAULT_SCAN_LIMIT,
        busy: NeuronBusyRegistry | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], int] = unix_now,
    ):
        self.ledger = ledger
        self.governance = governance
        self.settlement_delay_seconds = settlement_delay_seconds
        self.nonce_scan_limit = nonce_scan_limit
        self.busy = busy
        self._sleep = sleep
        self._clock = clock

    async def run(
        self,
        owner: Principal,
        stake_e8s: int,
        *,
        nonce: int | None = None,
        dissolve_delay_seconds: int = 0,
        scope: OperationScope | None = None,
    ) -> AsyncIterator[WorkflowEvent]:
        scope = scope or OperationScope()
        try:
            nonce, fee_e8s = await self._validate(
                owner, stake_e8s, nonce, dissolve_delay_seconds, scope,
            )
        except NeuronKeeperError as e:
            annotate(e, WorkflowStep.VALIDATING, principal=owner, nonce=nonce)
            logger.warning("Neuron creation rejected: %s", e.message,
                extra={"principal": owner.to_text(), "error_code": e.code})
            yield Failed(WorkflowStep.VALIDATING, e)
            return

        yield Deriving(nonce)
        subaccount = derive_neuron_subaccount(owner, nonce)
        conflict = busy_conflict(self.busy, subaccount.hex())
        if conflict is not None:
            annotate(conflict, WorkflowStep.DERIVING, principal=owner, nonce=nonce)
            yield Failed(WorkflowStep.DERIVING, conflict)
            return
        async with hold_neuron(self.busy, subaccount.hex()):
            amount_e8s = stake_e8s + fee_e8s
            yield Transferring(amount_e8s)
            try:
                block_index = await self.ledger.transfer(
                    Account(self.governance.canister_id, subaccount),
                    amount_e8s,
                    fee_e8s=fee_e8s,
                    memo=encode_nonce_memo(nonce),
                )
            except (TransferError, NetworkError) as e:
                annotate(e, WorkflowStep.TRANSFERRING, neuron_id=subaccount,
                         principal=owner, nonce=nonce)
                logger.error("Funding transfer failed: %s", e.message,
                    extra={"neuron_id": subaccount.hex(), "nonce": nonce,
                           "step": "transferring", "error_code": e.code})
                yield Failed(WorkflowStep.TRANSFERRING, e)
                return
            logger.info("Funding transfer confirmed",
                extra={"neuron_id": subaccount.hex(), "nonce": nonce})

            yield AwaitingSettlement(self.settlement_delay_seconds)
            await self._sleep(self.settlement_delay_seconds)

            async for event in self._claim_and_configure(
                owner, nonce, subaccount, dissolve_delay_seconds, block_index,
            ):
                yield event

    async def retry_claim(
        self,
        owner: Principal,
        nonce: int,
        *,
        dissolve_delay_seconds: int = 0,
    ) -> AsyncIterator[WorkflowEvent]:
        """Re-run only the claim (and optional delay) for funds already transferred."""
        yield Deriving(nonce)
        subaccount = derive_neuron_subaccount(owner, nonce)
        conflict = busy_conflict(self.busy, subaccount.hex())
        if conflict is not None:
            annotate(conflict, WorkflowStep.DERIVING, principal=owner, nonce=nonce)
            yield Failed(WorkflowStep.DERIVING, conflict)
            return
        async with hold_neuron(self.busy, subaccount.hex()):
            async for event in self._claim_and_configure(
                owner, nonce, subaccount, dissolve_delay_seconds, None,
            ):
                yield event

    async def run_to_completion(self, *args, **kwargs) -> Done | Failed:
        """Drive run() and return its terminal event."""
        terminal = None
        async for event in self.run(*args, **kwargs):
            terminal = event
        return terminal

    # ─── Steps ───────────────────────────────────────────────────

    async def _validate(
        self, owner: Principal, stake_e8s: int, nonce: int | None,
        dissolve_delay_seconds: int, scope: OperationScope,
    ) -> tuple[int, int]:
        params = await scope.get_parameters(self.governance)
        validate_minimum_stake(stake_e8s, params)
        validate_dissolve_delay(dissolve_delay_seconds, params)
        if nonce is None:
            slot = await allocate_nonce(
                self.governance, owner, limit=self.nonce_scan_limit, scope=scope,
            )
            return slot.nonce, params.transaction_fee_e8s
        if not scope.nonce_verified_free(nonce):
            slot = await check_nonce(self.governance, owner, nonce, scope=scope)
            if not slot.is_free:
                raise ValidationError(
                    f"Nonce {nonce} already holds a neuron", "nonce",
                    code="NONCE_TAKEN",
                )
        return nonce, params.transaction_fee_e8s

    async def _claim_and_configure(
        self,
        owner: Principal,
        nonce: int,
        subaccount: Subaccount,
        dissolve_delay_seconds: int,
        block_index: int | None,
    ) -> AsyncIterator[WorkflowEvent]:
        neuron_id = NeuronId(subaccount)
        yield Claiming()
        try:
            await self.governance.manage_neuron(
                neuron_id, ClaimByMemoAndController(nonce, owner),
            )
        except GovernanceError as e:
            error = ClaimError(e.error_message, block_index, ErrorContext())
            annotate(error, WorkflowStep.CLAIMING, neuron_id=subaccount,
                     principal=owner, nonce=nonce)
            logger.critical("Claim failed after transfer: funds at neuron address",
                extra={"neuron_id": subaccount.hex(), "nonce": nonce,
                       "step": "claiming", "error_code": error.code})
            yield Failed(WorkflowStep.CLAIMING, error)
            return
        except NetworkError as e:
            annotate(e, WorkflowStep.CLAIMING, neuron_id=subaccount,
                     principal=owner, nonce=nonce)
            yield Failed(WorkflowStep.CLAIMING, e)
            return

        outcome = CreationOutcome(subaccount, nonce, block_index)
        if dissolve_delay_seconds > 0:
            yield Configuring(dissolve_delay_seconds)
            try:
                await self.governance.manage_neuron(
                    neuron_id, IncreaseDissolveDelay(dissolve_delay_seconds),
                )
            except (GovernanceError, NetworkError) as e:
                warning = (
                    as_permission_error(e, "dissolve delay", subaccount)
                    if isinstance(e, GovernanceError) else e
                )
                annotate(warning, WorkflowStep.CONFIGURING, neuron_id=subaccount)
                logger.warning("Neuron created without dissolve delay: %s",
                    warning.message, extra={"neuron_id": subaccount.hex()})
                outcome.warnings.append(warning)

        await self._refresh_outcome(outcome)
        logger.info("Neuron created", extra={"neuron_id": subaccount.hex(), "nonce": nonce})
        yield Done(outcome)

    async def _refresh_outcome(self, outcome: CreationOutcome) -> None:
        try:
            neuron = await self.governance.get_neuron(NeuronId(outcome.neuron_id))
        except NetworkError as e:
            logger.warning("Could not read back new neuron: %s", e.message,
                extra={"neuron_id": outcome.neuron_id.hex()})
            return
        if neuron is not None:
            outcome.neuron = neuron
            outcome.dissolve_state = classify_dissolve_state(
                neuron.dissolve_state, self._clock(),
            )

