"""Governance Commands — typed manage_neuron commands and their wire form.

Invariants:
    - One frozen dataclass per command variant; to_wire() yields the tagged-record shape
      {"<Variant>": {...}} that the governance gateway expects
    - Configure operations nest under {"Configure": {"operation": {...}}}
    - Permission commands always carry an explicit CapabilitySet (never "all")

Design Decisions:
    - Plain dataclasses + to_wire over a pydantic discriminated union: core stays
      dependency-free and commands stay hashable for test assertions
"""

from dataclasses import dataclass

from neuronkeeper.core.capabilities import CapabilitySet
from neuronkeeper.core.domain_types import Account, Principal


def account_to_wire(account: Account | None) -> dict | None:
    if account is None:
        return None
    return {
        "owner": account.owner.to_text(),
        "subaccount": account.subaccount.hex() if account.subaccount else None,
    }


# ─── Configure operations ────────────────────────────────────────

@dataclass(frozen=True)
class StartDissolving:
    def to_wire(self) -> dict:
        return {"Configure": {"operation": {"StartDissolving": {}}}}


@dataclass(frozen=True)
class StopDissolving:
    def to_wire(self) -> dict:
        return {"Configure": {"operation": {"StopDissolving": {}}}}


@dataclass(frozen=True)
class IncreaseDissolveDelay:
    additional_seconds: int

    def to_wire(self) -> dict:
        return {"Configure": {"operation": {"IncreaseDissolveDelay": {
            "additional_dissolve_delay_seconds": self.additional_seconds,
        }}}}


@dataclass(frozen=True)
class ChangeAutoStakeMaturity:
    enabled: bool

    def to_wire(self) -> dict:
        return {"Configure": {"operation": {"ChangeAutoStakeMaturity": {
            "requested_setting_for_auto_stake_maturity": self.enabled,
        }}}}


# ─── Stake movement ──────────────────────────────────────────────

@dataclass(frozen=True)
class Disburse:
    to_account: Account | None = None
    amount_e8s: int | None = None

    def to_wire(self) -> dict:
        return {"Disburse": {
            "to_account": account_to_wire(self.to_account),
            "amount": (
                {"e8s": self.amount_e8s} if self.amount_e8s is not None else None
            ),
        }}


@dataclass(frozen=True)
class DisburseMaturity:
    percentage: int
    to_account: Account | None = None

    def to_wire(self) -> dict:
        return {"DisburseMaturity": {
            "to_account": account_to_wire(self.to_account),
            "percentage_to_disburse": self.percentage,
        }}


@dataclass(frozen=True)
class Split:
    amount_e8s: int
    memo: int

    def to_wire(self) -> dict:
        return {"Split": {"amount_e8s": self.amount_e8s, "memo": self.memo}}


# ─── Claim ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class ClaimByMemoAndController:
    memo: int
    controller: Principal

    def to_wire(self) -> dict:
        return {"ClaimOrRefresh": {"by": {"MemoAndController": {
            "memo": self.memo, "controller": self.controller.to_text(),
        }}}}


@dataclass(frozen=True)
class RefreshByNeuronId:
    def to_wire(self) -> dict:
        return {"ClaimOrRefresh": {"by": {"NeuronId": {}}}}


# ─── Permissions ─────────────────────────────────────────────────

@dataclass(frozen=True)
class AddNeuronPermissions:
    principal: Principal
    capabilities: CapabilitySet

    def to_wire(self) -> dict:
        return {"AddNeuronPermissions": {
            "principal_id": self.principal.to_text(),
            "permissions_to_add": {"permissions": self.capabilities.to_list()},
        }}


@dataclass(frozen=True)
class RemoveNeuronPermissions:
    principal: Principal
    capabilities: CapabilitySet

    def to_wire(self) -> dict:
        return {"RemoveNeuronPermissions": {
            "principal_id": self.principal.to_text(),
            "permissions_to_remove": {"permissions": self.capabilities.to_list()},
        }}


GovernanceCommand = (
    StartDissolving | StopDissolving | IncreaseDissolveDelay
    | ChangeAutoStakeMaturity | Disburse | DisburseMaturity | Split
    | ClaimByMemoAndController | RefreshByNeuronId
    | AddNeuronPermissions | RemoveNeuronPermissions
)
