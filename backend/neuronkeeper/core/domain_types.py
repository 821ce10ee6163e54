"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Principal wraps raw identity bytes (0–29 bytes) — never pass bare bytes as an identity
    - Principal text form is CRC-32 (big-endian) ‖ raw, base32 lowercase, dash-grouped by 5
    - NeuronId and Subaccount are 32 bytes — a neuron's id IS its ledger subaccount
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - Principal as frozen dataclass, not NewType: needs a text codec and must be hashable
    - NewType for byte identifiers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

import base64
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import NewType


E8S: int = 100_000_000
SECONDS_PER_DAY: int = 24 * 60 * 60
SUBACCOUNT_LENGTH: int = 32
_MAX_PRINCIPAL_BYTES: int = 29


# ─── Identity Types ──────────────────────────────────────────────

@dataclass(frozen=True)
class Principal:
    """Opaque actor identity (person, wallet, or canister)."""
    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) > _MAX_PRINCIPAL_BYTES:
            raise ValueError(
                f"principal is {len(self.raw)} bytes (max {_MAX_PRINCIPAL_BYTES})",
            )

    @classmethod
    def from_text(cls, text: str) -> "Principal":
        """Parse the dash-grouped textual form, verifying its checksum."""
        compact = text.strip().replace("-", "").upper()
        if not compact:
            raise ValueError("principal text is empty")
        padded = compact + "=" * (-len(compact) % 8)
        try:
            decoded = base64.b32decode(padded)
        except ValueError as e:
            raise ValueError(f"principal '{text}' is not valid base32") from e
        if len(decoded) < 4:
            raise ValueError(f"principal '{text}' is too short")
        checksum, raw = decoded[:4], decoded[4:]
        if zlib.crc32(raw).to_bytes(4, "big") != checksum:
            raise ValueError(f"principal '{text}' has a bad checksum")
        principal = cls(raw)
        if principal.to_text() != text.strip().lower():
            raise ValueError(f"principal '{text}' is not in canonical form")
        return principal

    def to_text(self) -> str:
        data = zlib.crc32(self.raw).to_bytes(4, "big") + self.raw
        encoded = base64.b32encode(data).decode("ascii").lower().rstrip("=")
        return "-".join(encoded[i:i + 5] for i in range(0, len(encoded), 5))

    def __str__(self) -> str:
        return self.to_text()


NeuronId = NewType("NeuronId", bytes)        # 32 bytes
Subaccount = NewType("Subaccount", bytes)    # 32 bytes


@dataclass(frozen=True)
class Account:
    """Ledger account: owner principal plus optional 32-byte subaccount."""
    owner: Principal
    subaccount: bytes | None = None


def neuron_id_from_hex(value: str) -> NeuronId:
    """Parse a hex neuron id; raises ValueError on bad length or characters."""
    raw = bytes.fromhex(value.strip())
    if len(raw) != SUBACCOUNT_LENGTH:
        raise ValueError(
            f"neuron id must be {SUBACCOUNT_LENGTH} bytes, got {len(raw)}",
        )
    return NeuronId(raw)


# ─── Enums ───────────────────────────────────────────────────────

class WorkflowStep(str, Enum):
    """Steps a multi-round-trip workflow moves through."""
    VALIDATING = "validating"
    DERIVING = "deriving"
    TRANSFERRING = "transferring"
    AWAITING_SETTLEMENT = "awaiting_settlement"
    CLAIMING = "claiming"
    CONFIGURING = "configuring"
    SPLITTING = "splitting"
    GRANTING = "granting"
    VERIFYING = "verifying"
    REVOKING = "revoking"
    DONE = "done"


class NeuronAction(str, Enum):
    """User-facing neuron actions gated by dissolve state."""
    START_DISSOLVING = "start_dissolving"
    STOP_DISSOLVING = "stop_dissolving"
    INCREASE_DELAY = "increase_delay"
    DISBURSE = "disburse"


class NonceSlotStatus(str, Enum):
    FREE = "free"
    TAKEN = "taken"


class TransferStatus(str, Enum):
    """Outcome of the ownership transfer protocol."""
    COMPLETED = "completed"
    PARTIAL = "partial"
