"""Neuron Subaccount Derivation — deterministic 32-byte neuron address from (owner, nonce).

Invariants:
    - address = SHA-256(0x0c ‖ b"neuron-stake" ‖ owner.raw ‖ nonce as u64 big-endian)
    - Pure: same (owner, nonce) always yields the same 32 bytes
    - Nonce must be an int in [0, 2**64); bool is rejected even though it is an int
    - The creation-transfer memo is the same 8-byte big-endian nonce encoding
"""

import hashlib

from neuronkeeper.core.domain_types import Principal, Subaccount
from neuronkeeper.core.errors import ValidationError

NEURON_STAKE_DOMAIN: bytes = b"neuron-stake"
_DOMAIN_LENGTH_TAG: bytes = bytes([len(NEURON_STAKE_DOMAIN)])  # 0x0c
MAX_NONCE: int = 2 ** 64 - 1


def validate_nonce(nonce: object) -> int:
    """Return the nonce unchanged or raise ValidationError."""
    if isinstance(nonce, bool) or not isinstance(nonce, int):
        raise ValidationError(
            f"Nonce must be an integer, got {type(nonce).__name__}", "nonce",
            code="INVALID_NONCE",
        )
    if nonce < 0 or nonce > MAX_NONCE:
        raise ValidationError(
            f"Nonce must be between 0 and {MAX_NONCE}, got {nonce}", "nonce",
            code="INVALID_NONCE",
        )
    return nonce


def encode_nonce_memo(nonce: int) -> bytes:
    """8-byte big-endian unsigned encoding used as the funding-transfer memo."""
    return validate_nonce(nonce).to_bytes(8, "big")


def derive_neuron_subaccount(owner: Principal, nonce: int) -> Subaccount:
    """Derive the ledger subaccount (= neuron id) for owner's nonce-th neuron."""
    digest = hashlib.sha256()
    digest.update(_DOMAIN_LENGTH_TAG)
    digest.update(NEURON_STAKE_DOMAIN)
    digest.update(owner.raw)
    digest.update(encode_nonce_memo(nonce))
    return Subaccount(digest.digest())
