"""Workflow Helpers — shared error annotation and governance-error mapping for workflows.

Invariants:
    - annotate() only fills empty ErrorContext fields; it never overwrites what the shell set
    - GovernanceError from configure/split/permission commands becomes GovernancePermissionError
    - NetworkError is passed through untouched: its outcome is unknown, not failed
"""

import time

from neuronkeeper.core.domain_types import Principal, WorkflowStep
from neuronkeeper.core.errors import (
    ErrorContext, GovernanceError, GovernancePermissionError, NeuronKeeperError,
)


def annotate(
    error: NeuronKeeperError,
    step: WorkflowStep,
    *,
    neuron_id: bytes | None = None,
    principal: Principal | None = None,
    nonce: int | None = None,
) -> NeuronKeeperError:
    ctx = error.context
    ctx.step = ctx.step or step.value
    if neuron_id is not None and ctx.neuron_id is None:
        ctx.neuron_id = neuron_id.hex()
    if principal is not None and ctx.principal is None:
        ctx.principal = principal.to_text()
    if nonce is not None and ctx.nonce is None:
        ctx.nonce = nonce
    return error


def as_permission_error(
    error: GovernanceError, action: str, neuron_id: bytes,
) -> GovernancePermissionError:
    """Governance refused a rule-bound command (configure, split, permissions)."""
    return GovernancePermissionError(
        f"Governance rejected {action}: {error.error_message}",
        ErrorContext(neuron_id=neuron_id.hex(), debug_info={
            "error_type": error.error_type,
        }),
    )


def unix_now() -> int:
    return int(time.time())
