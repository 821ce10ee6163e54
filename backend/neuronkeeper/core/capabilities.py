"""Capability Sets — neuron permission tags as a proper set abstraction.

Invariants:
    - Permission values follow SNS governance numbering (0 = UNSPECIFIED ... 10)
    - FULL_CAPABILITIES is permissions 1..10; UNSPECIFIED is never required for ownership
    - CapabilitySet is immutable; every operation returns a new set
    - At every stable point some principal holds a superset of FULL_CAPABILITIES

Design Decisions:
    - frozenset-backed value type over list membership checks: grant/verify/revoke
      phases read as set algebra (union, difference, is_superset)
    - HolderRole is display-only; permission checks always use the set itself
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable


class Permission(IntEnum):
    UNSPECIFIED = 0
    CONFIGURE_DISSOLVE_STATE = 1
    MANAGE_PRINCIPALS = 2
    SUBMIT_PROPOSAL = 3
    VOTE = 4
    DISBURSE = 5
    SPLIT = 6
    MERGE_MATURITY = 7
    DISBURSE_MATURITY = 8
    STAKE_MATURITY = 9
    MANAGE_VOTING_PERMISSION = 10


@dataclass(frozen=True)
class CapabilitySet:
    """Immutable set of neuron permissions held by one principal."""
    permissions: frozenset[Permission] = field(default_factory=frozenset)

    @classmethod
    def of(cls, values: Iterable[int]) -> "CapabilitySet":
        """Build from raw integers; unknown values raise ValueError."""
        return cls(frozenset(Permission(int(v)) for v in values))

    def union(self, other: "CapabilitySet") -> "CapabilitySet":
        return CapabilitySet(self.permissions | other.permissions)

    def difference(self, other: "CapabilitySet") -> "CapabilitySet":
        return CapabilitySet(self.permissions - other.permissions)

    def is_superset(self, other: "CapabilitySet") -> bool:
        return self.permissions >= other.permissions

    def is_empty(self) -> bool:
        return not self.permissions

    def to_list(self) -> list[int]:
        """Sorted integer list — the wire form."""
        return sorted(int(p) for p in self.permissions)

    def __contains__(self, item: Permission) -> bool:
        return item in self.permissions

    def __len__(self) -> int:
        return len(self.permissions)

    def __iter__(self):
        return iter(sorted(self.permissions))


EMPTY_CAPABILITIES = CapabilitySet()
FULL_CAPABILITIES = CapabilitySet(frozenset(
    p for p in Permission if p is not Permission.UNSPECIFIED
))
HOTKEY_CAPABILITIES = CapabilitySet(frozenset({
    Permission.SUBMIT_PROPOSAL, Permission.VOTE,
}))


class HolderRole(str, Enum):
    """Display classification of a holder's capability set."""
    FULL_OWNER = "full_owner"
    HOTKEY = "hotkey"
    VOTER = "voter"
    MANAGER = "manager"
    FINANCIAL = "financial"
    CUSTOM = "custom"


def classify_holder(capabilities: CapabilitySet) -> HolderRole:
    """Classify a holder by what its capability set allows."""
    if capabilities.is_superset(FULL_CAPABILITIES):
        return HolderRole.FULL_OWNER
    if capabilities == HOTKEY_CAPABILITIES:
        return HolderRole.HOTKEY
    if capabilities == CapabilitySet(frozenset({Permission.VOTE})):
        return HolderRole.VOTER
    if Permission.MANAGE_PRINCIPALS in capabilities:
        return HolderRole.MANAGER
    if (Permission.DISBURSE in capabilities
            or Permission.DISBURSE_MATURITY in capabilities):
        return HolderRole.FINANCIAL
    return HolderRole.CUSTOM
