"""Ownership Transfer — hand a neuron to another principal: grant → verify → revoke → confirm.

Invariants:
    - Self-transfer and unconfirmed requests are rejected before any governance call
    - Revocation NEVER starts until a fresh read shows recipient ⊇ FULL_CAPABILITIES
    - A failed or unverified grant leaves every existing holder untouched
    - Revocations come from a fresh read after the grant; the sender is revoked last
    - The first failed revocation stops the loop: outcome is PARTIAL, naming the
      principal that still holds capabilities (no silent retry)
    - COMPLETED only when a final read shows the recipient as the sole holder

Design Decisions:
    - Planning in core/ownership.py, calls and re-reads here (ADR: impureim sandwich)
    - Partial revocation is an outcome, not an exception: the neuron is already
      safely owned by the recipient at that point
"""

import logging
from dataclasses import dataclass, field

from neuronkeeper.core.capabilities import (
    CapabilitySet, EMPTY_CAPABILITIES, Permission,
)
from neuronkeeper.core.domain_types import (
    NeuronId, Principal, TransferStatus, WorkflowStep,
)
from neuronkeeper.core.errors import (
    ErrorContext, GovernanceError, GovernancePermissionError, NetworkError,
    NeuronKeeperError, ResourceNotFoundError, ValidationError,
)
from neuronkeeper.core.governance_commands import (
    AddNeuronPermissions, RemoveNeuronPermissions,
)
from neuronkeeper.core.neuron import Neuron, neuron_to_wire
from neuronkeeper.core.ownership import (
    Revocation, grant_verified, handoff_complete, plan_grant, plan_revocations,
)
from neuronkeeper.core.service_protocols import GovernanceService
from neuronkeeper.services.operation_scope import NeuronBusyRegistry, hold_neuron
from neuronkeeper.services.workflow_helpers import annotate, as_permission_error

logger = logging.getLogger(__name__)


@dataclass
class TransferOutcome:
    neuron_id: NeuronId
    recipient: Principal
    status: TransferStatus
    granted: CapabilitySet = EMPTY_CAPABILITIES
    revoked: list[Revocation] = field(default_factory=list)
    failed_principal: Principal | None = None
    warning: NeuronKeeperError | None = None
    neuron: Neuron | None = None

    def to_dict(self) -> dict:
        return {
            "neuron_id": self.neuron_id.hex(),
            "recipient": self.recipient.to_text(),
            "status": self.status.value,
            "granted": self.granted.to_list(),
            "revoked": [
                {"principal": r.principal.to_text(), "permissions": r.capabilities.to_list()}
                for r in self.revoked
            ],
            "failed_principal": (
                self.failed_principal.to_text() if self.failed_principal else None
            ),
            "warning": self.warning.to_sse_event()["data"] if self.warning else None,
            "neuron": neuron_to_wire(self.neuron) if self.neuron else None,
        }


class OwnershipTransferProtocol:
    """Moves full control of a neuron from the sender to a recipient."""

    def __init__(
        self, governance: GovernanceService, *, busy: NeuronBusyRegistry | None = None,
    ):
        self.governance = governance
        self.busy = busy

    async def send(
        self,
        sender: Principal,
        neuron_id: NeuronId,
        recipient: Principal,
        *,
        confirmed: bool = False,
    ) -> TransferOutcome:
        self._check_request(sender, recipient, confirmed)
        neuron = await self._read(neuron_id)
        if Permission.MANAGE_PRINCIPALS not in neuron.capabilities_of(sender):
            raise GovernancePermissionError(
                f"{sender} cannot manage principals on neuron {neuron_id.hex()}",
                ErrorContext(step=WorkflowStep.VALIDATING.value,
                             neuron_id=neuron_id.hex(), principal=sender.to_text()),
            )

        async with hold_neuron(self.busy, neuron_id.hex()):
            granted = await self._grant(neuron, recipient)
            verified = await self._verify(neuron_id, recipient)
            outcome = TransferOutcome(
                neuron_id, recipient, TransferStatus.COMPLETED, granted=granted,
            )
            await self._revoke(verified, sender, outcome)
            await self._confirm(outcome)
        return outcome

    # ─── Phases ──────────────────────────────────────────────────

    def _check_request(
        self, sender: Principal, recipient: Principal, confirmed: bool,
    ) -> None:
        if recipient == sender:
            raise ValidationError(
                "Cannot send a neuron to yourself", "recipient", code="SELF_TRANSFER",
            )
        if not confirmed:
            raise ValidationError(
                "Sending a neuron is irreversible and must be confirmed",
                "confirmed", code="CONFIRMATION_REQUIRED",
            )

    async def _read(self, neuron_id: NeuronId) -> Neuron:
        neuron = await self.governance.get_neuron(neuron_id)
        if neuron is None:
            raise ResourceNotFoundError("Neuron", neuron_id.hex())
        return neuron

    async def _grant(self, neuron: Neuron, recipient: Principal) -> CapabilitySet:
        missing = plan_grant(neuron, recipient)
        if missing.is_empty():
            return missing
        try:
            await self.governance.manage_neuron(
                neuron.id, AddNeuronPermissions(recipient, missing),
            )
        except GovernanceError as e:
            error = as_permission_error(e, "permission grant", neuron.id)
            raise annotate(error, WorkflowStep.GRANTING,
                           neuron_id=neuron.id, principal=recipient) from e
        except NetworkError as e:
            raise annotate(e, WorkflowStep.GRANTING,
                           neuron_id=neuron.id, principal=recipient)
        logger.info("Granted permissions to recipient", extra={
            "neuron_id": neuron.id_hex, "principal": recipient.to_text(),
        })
        return missing

    async def _verify(self, neuron_id: NeuronId, recipient: Principal) -> Neuron:
        refreshed = await self._read(neuron_id)
        if not grant_verified(refreshed, recipient):
            logger.error("Recipient grant did not verify; no permissions revoked", extra={
                "neuron_id": neuron_id.hex(), "principal": recipient.to_text(),
                "step": WorkflowStep.VERIFYING.value,
            })
            raise GovernancePermissionError(
                f"{recipient} does not hold full permissions after the grant; "
                "no permissions were revoked",
                ErrorContext(step=WorkflowStep.VERIFYING.value,
                             neuron_id=neuron_id.hex(), principal=recipient.to_text()),
            )
        return refreshed

    async def _revoke(
        self, neuron: Neuron, sender: Principal, outcome: TransferOutcome,
    ) -> None:
        for revocation in plan_revocations(neuron, outcome.recipient, revoker=sender):
            try:
                await self.governance.manage_neuron(
                    neuron.id,
                    RemoveNeuronPermissions(revocation.principal, revocation.capabilities),
                )
            except (GovernanceError, NetworkError) as e:
                warning = (
                    as_permission_error(e, "permission removal", neuron.id)
                    if isinstance(e, GovernanceError) else e
                )
                annotate(warning, WorkflowStep.REVOKING,
                         neuron_id=neuron.id, principal=revocation.principal)
                logger.warning("Revocation stopped; holder still has permissions", extra={
                    "neuron_id": neuron.id_hex,
                    "principal": revocation.principal.to_text(),
                    "error_code": warning.code,
                })
                outcome.status = TransferStatus.PARTIAL
                outcome.failed_principal = revocation.principal
                outcome.warning = warning
                return
            outcome.revoked.append(revocation)

    async def _confirm(self, outcome: TransferOutcome) -> None:
        try:
            outcome.neuron = await self.governance.get_neuron(outcome.neuron_id)
        except NetworkError as e:
            logger.warning("Could not read back transferred neuron: %s", e.message,
                extra={"neuron_id": outcome.neuron_id.hex()})
            return
        if outcome.status is TransferStatus.PARTIAL or outcome.neuron is None:
            return
        if not handoff_complete(outcome.neuron, outcome.recipient):
            leftover = [
                p for p in outcome.neuron.holders() if p != outcome.recipient
            ]
            outcome.status = TransferStatus.PARTIAL
            outcome.failed_principal = leftover[0] if leftover else None
            outcome.warning = GovernancePermissionError(
                "Other principals still hold permissions on the neuron",
                ErrorContext(step=WorkflowStep.REVOKING.value,
                             neuron_id=outcome.neuron_id.hex()),
            )
            return
        logger.info("Neuron ownership transferred", extra={
            "neuron_id": outcome.neuron_id.hex(),
            "principal": outcome.recipient.to_text(),
        })
