"""Amount & Delay Enforcement — pure parsing and bounds checks for user-entered values.

Invariants:
    - Token amounts are parsed with Decimal, never float: "1.1" is exactly 110_000_000 e8s
    - At most 8 fractional digits; zero, negative, and non-numeric input rejected
    - Dissolve delay must lie in [0, max_dissolve_delay_seconds] when the max is known
    - All checks raise ValidationError — they run before any network call
"""

from decimal import Decimal, InvalidOperation

from neuronkeeper.core.domain_types import E8S, SECONDS_PER_DAY
from neuronkeeper.core.errors import ValidationError
from neuronkeeper.core.neuron import NervousSystemParameters

_DECIMALS: int = 8


def parse_token_amount(text: str, field: str = "amount") -> int:
    """Parse a decimal token amount ("12.5") into e8s."""
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        raise ValidationError(
            f"'{text}' is not a valid token amount", field, code="INVALID_AMOUNT",
        )
    if not value.is_finite() or value <= 0:
        raise ValidationError(
            f"Amount must be a positive number, got '{text}'", field,
            code="INVALID_AMOUNT",
        )
    if -value.as_tuple().exponent > _DECIMALS:
        raise ValidationError(
            f"Amount '{text}' has more than {_DECIMALS} decimal places", field,
            code="INVALID_AMOUNT",
        )
    return int(value * E8S)


def format_e8s(amount_e8s: int) -> str:
    """Render e8s as a fixed 8-decimal token string."""
    sign = "-" if amount_e8s < 0 else ""
    whole, frac = divmod(abs(amount_e8s), E8S)
    return f"{sign}{whole}.{frac:08d}"


def days_to_seconds(days: int) -> int:
    return days * SECONDS_PER_DAY


def validate_dissolve_delay(
    delay_seconds: int, params: NervousSystemParameters,
) -> int:
    """Return delay_seconds or raise when it is negative or above the maximum."""
    if delay_seconds < 0:
        raise ValidationError(
            f"Dissolve delay cannot be negative, got {delay_seconds}",
            "dissolve_delay_seconds", code="INVALID_DISSOLVE_DELAY",
        )
    maximum = params.max_dissolve_delay_seconds
    if maximum and delay_seconds > maximum:
        raise ValidationError(
            f"Dissolve delay {delay_seconds}s exceeds the maximum {maximum}s",
            "dissolve_delay_seconds", code="INVALID_DISSOLVE_DELAY",
        )
    return delay_seconds


def validate_minimum_stake(
    stake_e8s: int, params: NervousSystemParameters,
) -> int:
    if stake_e8s < params.neuron_minimum_stake_e8s or stake_e8s <= 0:
        raise ValidationError(
            f"Stake {stake_e8s} e8s is below the minimum "
            f"{params.neuron_minimum_stake_e8s} e8s",
            "stake_e8s", code="STAKE_BELOW_MINIMUM",
        )
    return stake_e8s
