"""Split Enforcement — tests for the pure minimum-stake split bounds.

Tests cover (min stake 100, fee 1):
    - 120 from 220 accepted (remainder exactly 100)
    - 10 rejected: below minimum split
    - 121 from 220 rejected: remainder 99
    - Boundary at minimum split (101 ok, 100 rejected)
    - Non-positive amounts rejected
    - max_split_e8s
"""

from neuronkeeper.core.enforce_split import check_split_bounds, max_split_e8s
from neuronkeeper.core.neuron import NervousSystemParameters

PARAMS = NervousSystemParameters(neuron_minimum_stake_e8s=100, transaction_fee_e8s=1)


def test_split_within_bounds_passes():
    assert check_split_bounds(220, 120, PARAMS) is None


def test_split_below_minimum_rejected():
    result = check_split_bounds(220, 10, PARAMS)
    assert result["error_code"] == "SPLIT_BELOW_MINIMUM"
    assert result["field"] == "amount_e8s"


def test_remainder_below_minimum_rejected():
    result = check_split_bounds(220, 121, PARAMS)
    assert result["error_code"] == "REMAINDER_BELOW_MINIMUM"


def test_minimum_split_boundary():
    assert check_split_bounds(1_000, 101, PARAMS) is None
    assert check_split_bounds(1_000, 100, PARAMS)["error_code"] == "SPLIT_BELOW_MINIMUM"


def test_non_positive_amount_rejected():
    assert check_split_bounds(1_000, 0, PARAMS)["error_code"] == "INVALID_AMOUNT"
    assert check_split_bounds(1_000, -5, PARAMS)["error_code"] == "INVALID_AMOUNT"


def test_max_split():
    assert max_split_e8s(220, PARAMS) == 120
    assert check_split_bounds(220, max_split_e8s(220, PARAMS), PARAMS) is None
    assert max_split_e8s(150, PARAMS) == 0
