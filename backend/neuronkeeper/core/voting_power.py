"""Voting Power — effective voting weight from stake, dissolve delay, and age.

Invariants:
    - Zero stake or delay below the minimum-to-vote yields 0
    - Delay and age saturate at max_dissolve_delay_seconds / max_neuron_age_for_age_bonus
    - Integer floor arithmetic in e8s, dissolve bonus applied before age bonus
    - Monotonically non-decreasing in stake, delay, and age (each with the others fixed)

Design Decisions:
    - Explicit (delay, age) inputs keep compute_voting_power clock-free;
      neuron_voting_power derives them from a Neuron and `now`
"""

from neuronkeeper.core.dissolve_state import (
    classify_dissolve_state, effective_dissolve_delay,
)
from neuronkeeper.core.neuron import NervousSystemParameters, Neuron


def compute_voting_power(
    stake_e8s: int,
    dissolve_delay_seconds: int,
    age_seconds: int,
    params: NervousSystemParameters,
    multiplier_percent: int = 100,
) -> int:
    if stake_e8s <= 0 or multiplier_percent <= 0:
        return 0
    if dissolve_delay_seconds < params.neuron_minimum_dissolve_delay_to_vote_seconds:
        return 0

    max_delay = params.max_dissolve_delay_seconds
    max_age = params.max_neuron_age_for_age_bonus
    delay = min(max(dissolve_delay_seconds, 0), max_delay)
    age = min(max(age_seconds, 0), max_age)

    dissolve_bonus = 0
    if max_delay > 0 and delay > 0:
        dissolve_bonus = (
            stake_e8s * delay * params.max_dissolve_delay_bonus_percentage
        ) // (100 * max_delay)
    with_dissolve = stake_e8s + dissolve_bonus

    age_bonus = 0
    if max_age > 0 and age > 0:
        age_bonus = (
            with_dissolve * age * params.max_age_bonus_percentage
        ) // (100 * max_age)

    return ((with_dissolve + age_bonus) * multiplier_percent) // 100


def neuron_voting_power(
    neuron: Neuron, params: NervousSystemParameters, now: int,
) -> int:
    """Voting power of a governance-reported neuron at time `now`."""
    stake = neuron.cached_neuron_stake_e8s + neuron.staked_maturity_e8s_equivalent
    state = classify_dissolve_state(neuron.dissolve_state, now)
    aging_since = neuron.aging_since_timestamp_seconds
    age = 0 if aging_since > now else now - aging_since
    return compute_voting_power(
        stake, effective_dissolve_delay(state, now), age, params,
        neuron.voting_power_percentage_multiplier,
    )
