"""Neuron Model — pure dataclasses for neurons and nervous-system parameters, plus wire codecs.

Invariants:
    - Neuron.id is the 32-byte ledger subaccount the neuron's stake sits in
    - permissions holds at most one grant per principal (the governance record shape)
    - dissolve_state is the raw governance metadata; classification needs `now`
      and lives in dissolve_state.py
    - from_wire tolerates missing optional keys (forward-compatible)
    - A missing or null voting_power_percentage_multiplier reads as 100: records
      written before the field existed vote at full weight. An explicit 0 is kept
      and yields zero voting power

Design Decisions:
    - Wire shape mirrors SNS governance field names (snake_case), bytes as hex,
      principals as text — the gateway speaks JSON, the core never sees candid
    - Snapshot-style bulk mapping for NervousSystemParameters (ADR: DRY over manual lines)
"""

from dataclasses import dataclass, field

from neuronkeeper.core.capabilities import (
    CapabilitySet, EMPTY_CAPABILITIES, FULL_CAPABILITIES,
)
from neuronkeeper.core.domain_types import NeuronId, Principal


@dataclass(frozen=True)
class PermissionGrant:
    principal: Principal
    capabilities: CapabilitySet


@dataclass(frozen=True)
class DissolveMetadata:
    """Exactly one of the two fields is set when governance reports a state."""
    dissolve_delay_seconds: int | None = None
    when_dissolved_timestamp_seconds: int | None = None


@dataclass(frozen=True)
class MaturityDisbursement:
    amount_e8s: int
    finalize_timestamp_seconds: int


@dataclass
class Neuron:
    """Stake-bearing voting account as reported by governance."""
    id: NeuronId
    permissions: list[PermissionGrant] = field(default_factory=list)
    cached_neuron_stake_e8s: int = 0
    maturity_e8s_equivalent: int = 0
    staked_maturity_e8s_equivalent: int = 0
    dissolve_state: DissolveMetadata | None = None
    aging_since_timestamp_seconds: int = 0
    created_timestamp_seconds: int = 0
    auto_stake_maturity: bool = False
    disburse_maturity_in_progress: list[MaturityDisbursement] = field(
        default_factory=list,
    )
    voting_power_percentage_multiplier: int = 100

    @property
    def id_hex(self) -> str:
        return self.id.hex()

    def capabilities_of(self, principal: Principal) -> CapabilitySet:
        """Union of everything principal holds; empty if it holds nothing."""
        held = EMPTY_CAPABILITIES
        for grant in self.permissions:
            if grant.principal == principal:
                held = held.union(grant.capabilities)
        return held

    def holders(self) -> list[Principal]:
        """Principals with at least one capability, in governance order."""
        seen: list[Principal] = []
        for grant in self.permissions:
            if grant.principal not in seen and not grant.capabilities.is_empty():
                seen.append(grant.principal)
        return seen

    def full_holders(self) -> list[Principal]:
        return [
            p for p in self.holders()
            if self.capabilities_of(p).is_superset(FULL_CAPABILITIES)
        ]


# ─── Nervous System Parameters ───────────────────────────────────

_PARAM_DEFAULTS: dict[str, int] = {
    "neuron_minimum_stake_e8s": 0,
    "transaction_fee_e8s": 0,
    "neuron_minimum_dissolve_delay_to_vote_seconds": 0,
    "max_dissolve_delay_seconds": 0,
    "max_neuron_age_for_age_bonus": 0,
    "max_dissolve_delay_bonus_percentage": 0,
    "max_age_bonus_percentage": 0,
}


@dataclass(frozen=True)
class NervousSystemParameters:
    """Read-only governance bounds. Missing values default to 0 (no bonus / no bound)."""
    neuron_minimum_stake_e8s: int = 0
    transaction_fee_e8s: int = 0
    neuron_minimum_dissolve_delay_to_vote_seconds: int = 0
    max_dissolve_delay_seconds: int = 0
    max_neuron_age_for_age_bonus: int = 0
    max_dissolve_delay_bonus_percentage: int = 0
    max_age_bonus_percentage: int = 0

    @property
    def minimum_split_e8s(self) -> int:
        return self.neuron_minimum_stake_e8s + self.transaction_fee_e8s


def parameters_from_wire(data: dict) -> NervousSystemParameters:
    return NervousSystemParameters(**{
        key: int(data.get(key) or default)
        for key, default in _PARAM_DEFAULTS.items()
    })


def parameters_to_wire(params: NervousSystemParameters) -> dict:
    return {key: getattr(params, key) for key in _PARAM_DEFAULTS}


# ─── Neuron wire codec ───────────────────────────────────────────

def _dissolve_from_wire(raw: dict | None) -> DissolveMetadata | None:
    if not raw:
        return None
    if "DissolveDelaySeconds" in raw:
        return DissolveMetadata(dissolve_delay_seconds=int(raw["DissolveDelaySeconds"]))
    if "WhenDissolvedTimestampSeconds" in raw:
        return DissolveMetadata(
            when_dissolved_timestamp_seconds=int(raw["WhenDissolvedTimestampSeconds"]),
        )
    return None


def _dissolve_to_wire(meta: DissolveMetadata | None) -> dict | None:
    if meta is None:
        return None
    if meta.dissolve_delay_seconds is not None:
        return {"DissolveDelaySeconds": meta.dissolve_delay_seconds}
    if meta.when_dissolved_timestamp_seconds is not None:
        return {"WhenDissolvedTimestampSeconds": meta.when_dissolved_timestamp_seconds}
    return None


def _or_default(value, default: int) -> int:
    return default if value is None else int(value)


def neuron_from_wire(data: dict) -> Neuron:
    return Neuron(
        id=NeuronId(bytes.fromhex(data["id"])),
        permissions=[
            PermissionGrant(
                Principal.from_text(p["principal"]),
                CapabilitySet.of(p.get("permission_type", [])),
            )
            for p in data.get("permissions", [])
        ],
        cached_neuron_stake_e8s=int(data.get("cached_neuron_stake_e8s", 0)),
        maturity_e8s_equivalent=int(data.get("maturity_e8s_equivalent", 0)),
        staked_maturity_e8s_equivalent=int(
            data.get("staked_maturity_e8s_equivalent") or 0,
        ),
        dissolve_state=_dissolve_from_wire(data.get("dissolve_state")),
        aging_since_timestamp_seconds=int(data.get("aging_since_timestamp_seconds", 0)),
        created_timestamp_seconds=int(data.get("created_timestamp_seconds", 0)),
        auto_stake_maturity=bool(data.get("auto_stake_maturity") or False),
        disburse_maturity_in_progress=[
            MaturityDisbursement(
                int(d["amount_e8s"]),
                int(d["finalize_disbursement_timestamp_seconds"]),
            )
            for d in data.get("disburse_maturity_in_progress", [])
        ],
        voting_power_percentage_multiplier=_or_default(
            data.get("voting_power_percentage_multiplier"), 100,
        ),
    )


def neuron_to_wire(neuron: Neuron) -> dict:
    return {
        "id": neuron.id_hex,
        "permissions": [
            {
                "principal": g.principal.to_text(),
                "permission_type": g.capabilities.to_list(),
            }
            for g in neuron.permissions
        ],
        "cached_neuron_stake_e8s": neuron.cached_neuron_stake_e8s,
        "maturity_e8s_equivalent": neuron.maturity_e8s_equivalent,
        "staked_maturity_e8s_equivalent": neuron.staked_maturity_e8s_equivalent,
        "dissolve_state": _dissolve_to_wire(neuron.dissolve_state),
        "aging_since_timestamp_seconds": neuron.aging_since_timestamp_seconds,
        "created_timestamp_seconds": neuron.created_timestamp_seconds,
        "auto_stake_maturity": neuron.auto_stake_maturity,
        "disburse_maturity_in_progress": [
            {
                "amount_e8s": d.amount_e8s,
                "finalize_disbursement_timestamp_seconds": d.finalize_timestamp_seconds,
            }
            for d in neuron.disburse_maturity_in_progress
        ],
        "voting_power_percentage_multiplier": neuron.voting_power_percentage_multiplier,
    }
