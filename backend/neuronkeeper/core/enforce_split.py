"""Split Enforcement — pure minimum-stake checks run before a split is submitted.

Invariants:
    - check_split_bounds is PURE: returns an error descriptor, never raises, never calls out
    - New neuron: amount >= neuron_minimum_stake_e8s + transaction_fee_e8s
    - Parent remainder: stake - amount >= neuron_minimum_stake_e8s (equality accepted)
    - Shell raises ValidationError from the descriptor

Design Decisions:
    - Separate error codes per bound so the caller can say which one failed
"""

from neuronkeeper.core.neuron import NervousSystemParameters


def check_split_bounds(
    stake_e8s: int, amount_e8s: int, params: NervousSystemParameters,
) -> dict | None:
    """Return None when the split is allowed, else an error descriptor."""
    if amount_e8s <= 0:
        return {
            "status": "error",
            "error_code": "INVALID_AMOUNT",
            "field": "amount_e8s",
            "message": f"Split amount must be positive, got {amount_e8s}.",
        }

    minimum_split = params.minimum_split_e8s
    if amount_e8s < minimum_split:
        return {
            "status": "error",
            "error_code": "SPLIT_BELOW_MINIMUM",
            "field": "amount_e8s",
            "message": (
                f"Split amount {amount_e8s} e8s is below the minimum "
                f"{minimum_split} e8s (minimum stake + transaction fee)."
            ),
        }

    remainder = stake_e8s - amount_e8s
    if remainder < params.neuron_minimum_stake_e8s:
        return {
            "status": "error",
            "error_code": "REMAINDER_BELOW_MINIMUM",
            "field": "amount_e8s",
            "message": (
                f"Remaining stake {remainder} e8s would fall below the minimum "
                f"{params.neuron_minimum_stake_e8s} e8s."
            ),
        }

    return None


def max_split_e8s(stake_e8s: int, params: NervousSystemParameters) -> int:
    """Largest amount that still passes check_split_bounds (0 if none does)."""
    largest = stake_e8s - params.neuron_minimum_stake_e8s
    return largest if largest >= params.minimum_split_e8s else 0
