"""Ownership Handoff Planning — pure grant/verify/revoke decisions for sending a neuron.

Invariants:
    - plan_grant returns exactly FULL − held(recipient); empty means nothing to submit
    - grant_verified is the read-after-write gate: recipient must hold ⊇ FULL
    - plan_revocations is computed from a FRESH neuron read, never from the pre-grant copy
    - Each revocation removes exactly what that holder holds now — recipient is never touched
    - handoff_complete: recipient is the sole full holder and no other principal holds anything

Design Decisions:
    - Planning separated from execution (ADR: impureim sandwich) — the shell performs
      the governance calls and re-reads between phases; these functions only decide
"""

from dataclasses import dataclass

from neuronkeeper.core.capabilities import CapabilitySet, FULL_CAPABILITIES
from neuronkeeper.core.domain_types import Principal
from neuronkeeper.core.neuron import Neuron


@dataclass(frozen=True)
class Revocation:
    principal: Principal
    capabilities: CapabilitySet


def plan_grant(neuron: Neuron, recipient: Principal) -> CapabilitySet:
    """Capabilities the recipient still lacks."""
    return FULL_CAPABILITIES.difference(neuron.capabilities_of(recipient))


def grant_verified(neuron: Neuron, recipient: Principal) -> bool:
    return neuron.capabilities_of(recipient).is_superset(FULL_CAPABILITIES)


def plan_revocations(
    neuron: Neuron, recipient: Principal, revoker: Principal | None = None,
) -> list[Revocation]:
    """One revocation per non-recipient holder, covering its current capabilities.

    The revoker, if it is a holder, comes last: removing its own
    MANAGE_PRINCIPALS first would block the remaining removals.
    """
    revocations = [
        Revocation(holder, neuron.capabilities_of(holder))
        for holder in neuron.holders()
        if holder != recipient
    ]
    revocations.sort(key=lambda r: r.principal == revoker)
    return revocations


def handoff_complete(neuron: Neuron, recipient: Principal) -> bool:
    return neuron.holders() == [recipient] and grant_verified(neuron, recipient)


def owner_principals(neuron: Neuron) -> list[Principal]:
    """Holders tied for the largest capability set — the neuron's apparent owners."""
    sizes = {holder: len(neuron.capabilities_of(holder)) for holder in neuron.holders()}
    if not sizes:
        return []
    largest = max(sizes.values())
    return [holder for holder, size in sizes.items() if size == largest]
