"""Dissolve State Machine — classifies governance dissolve metadata and gates neuron actions.

Invariants:
    - Exactly three states: Locked(delay > 0), Dissolving(target > now), Dissolved
    - delay == 0, target <= now, and missing metadata all classify as Dissolved
    - Classification is PURE: `now` is always passed in, never read from the clock here
    - This module never performs transitions — it only decides which actions are offered
    - Dissolved is terminal until INCREASE_DELAY reopens the neuron to Locked
"""

from dataclasses import dataclass

from neuronkeeper.core.domain_types import SECONDS_PER_DAY, NeuronAction
from neuronkeeper.core.neuron import DissolveMetadata


@dataclass(frozen=True)
class Locked:
    delay_seconds: int
    name = "locked"


@dataclass(frozen=True)
class Dissolving:
    target_timestamp_seconds: int
    name = "dissolving"


@dataclass(frozen=True)
class Dissolved:
    name = "dissolved"


DissolveState = Locked | Dissolving | Dissolved


def classify_dissolve_state(
    metadata: DissolveMetadata | None, now: int,
) -> DissolveState:
    """Map raw governance metadata to one of the three states."""
    if metadata is None:
        return Dissolved()
    if metadata.dissolve_delay_seconds is not None:
        if metadata.dissolve_delay_seconds > 0:
            return Locked(metadata.dissolve_delay_seconds)
        return Dissolved()
    target = metadata.when_dissolved_timestamp_seconds
    if target is not None and target > now:
        return Dissolving(target)
    return Dissolved()


_ALLOWED: dict[type, frozenset[NeuronAction]] = {
    Locked: frozenset({NeuronAction.START_DISSOLVING, NeuronAction.INCREASE_DELAY}),
    Dissolving: frozenset({NeuronAction.STOP_DISSOLVING, NeuronAction.INCREASE_DELAY}),
    Dissolved: frozenset({NeuronAction.DISBURSE, NeuronAction.INCREASE_DELAY}),
}


def allowed_actions(state: DissolveState) -> frozenset[NeuronAction]:
    return _ALLOWED[type(state)]


def effective_dissolve_delay(state: DissolveState, now: int) -> int:
    """Seconds until the stake could be withdrawn."""
    if isinstance(state, Locked):
        return state.delay_seconds
    if isinstance(state, Dissolving):
        return max(0, state.target_timestamp_seconds - now)
    return 0


def describe_dissolve_state(state: DissolveState, now: int) -> str:
    """Human-readable summary, e.g. 'Locked for 180 days'."""
    if isinstance(state, Locked):
        return f"Locked for {state.delay_seconds // SECONDS_PER_DAY} days"
    if isinstance(state, Dissolving):
        days_left = max(0, state.target_timestamp_seconds - now) // SECONDS_PER_DAY
        return f"Dissolving ({days_left} days left)"
    return "Dissolved"
