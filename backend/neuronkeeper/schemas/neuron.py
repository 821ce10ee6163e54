"""Neuron Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - Principals arrive as text and are checksum-validated here (bad text → 400)
    - Token amounts arrive as decimal strings; routes convert them with parse_token_amount
    - Nonces and memos fit in u64; delays are whole days, never negative
    - NeuronResponse is built from a governance Neuron plus parameters and `now`

Design Decisions:
    - Decimal strings over floats for amounts: "0.1" must mean exactly 10_000_000 e8s
    - field_validator for side-effect-free normalization — keeps models pure
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from neuronkeeper.core.capabilities import classify_holder
from neuronkeeper.core.dissolve_state import (
    Dissolving, Locked, classify_dissolve_state, describe_dissolve_state,
)
from neuronkeeper.core.domain_types import (
    SUBACCOUNT_LENGTH, Account, Principal,
)
from neuronkeeper.core.neuron import NervousSystemParameters, Neuron
from neuronkeeper.core.subaccount import MAX_NONCE
from neuronkeeper.core.voting_power import neuron_voting_power


def _check_principal(v: str) -> str:
    return Principal.from_text(v).to_text()


def _check_subaccount(v: str | None) -> str | None:
    if v is None:
        return v
    raw = bytes.fromhex(v)
    if len(raw) != SUBACCOUNT_LENGTH:
        raise ValueError(f"subaccount must be {SUBACCOUNT_LENGTH} bytes")
    return raw.hex()


# --- Requests ------------------------------------------------------------------

class CreateNeuronRequest(BaseModel):
    """Stake a new neuron. Nonce is allocated when omitted."""
    amount: str = Field(min_length=1, max_length=40)
    nonce: int | None = Field(None, ge=0, le=MAX_NONCE)
    dissolve_delay_days: int = Field(0, ge=0)


class ClaimRetryRequest(BaseModel):
    """Re-run the claim for a funding transfer that already landed."""
    nonce: int = Field(ge=0, le=MAX_NONCE)
    dissolve_delay_days: int = Field(0, ge=0)


class TopUpRequest(BaseModel):
    amount: str = Field(min_length=1, max_length=40)


class SplitRequest(BaseModel):
    amount: str = Field(min_length=1, max_length=40)
    memo: int | None = Field(None, ge=0, le=MAX_NONCE)


class SendNeuronRequest(BaseModel):
    """Hand the neuron to recipient. `confirmed` must be true: this is irreversible."""
    recipient: str
    confirmed: bool = False

    @field_validator("recipient")
    @classmethod
    def check_recipient(cls, v: str) -> str:
        return _check_principal(v)


class IncreaseDelayRequest(BaseModel):
    additional_days: int = Field(ge=1)


class AutoStakeRequest(BaseModel):
    enabled: bool


class DestinationMixin(BaseModel):
    """Optional destination account; defaults to the caller's main account."""
    to_principal: str | None = None
    to_subaccount: str | None = None

    @field_validator("to_principal")
    @classmethod
    def check_to_principal(cls, v: str | None) -> str | None:
        return _check_principal(v) if v is not None else v

    @field_validator("to_subaccount")
    @classmethod
    def check_to_subaccount(cls, v: str | None) -> str | None:
        return _check_subaccount(v)

    @model_validator(mode="after")
    def subaccount_needs_principal(self):
        if self.to_subaccount and not self.to_principal:
            raise ValueError("to_subaccount requires to_principal")
        return self

    def destination(self) -> Account | None:
        if self.to_principal is None:
            return None
        return Account(
            Principal.from_text(self.to_principal),
            bytes.fromhex(self.to_subaccount) if self.to_subaccount else None,
        )


class DisburseRequest(DestinationMixin):
    """Disburse stake; the whole stake when amount is omitted."""
    amount: str | None = Field(None, min_length=1, max_length=40)


class DisburseMaturityRequest(DestinationMixin):
    percentage: int = Field(ge=1, le=100)


# --- Responses -----------------------------------------------------------------

class HolderResponse(BaseModel):
    principal: str
    permissions: list[int]
    role: str


class DissolveStateResponse(BaseModel):
    state: str
    description: str
    delay_seconds: int | None = None
    target_timestamp_seconds: int | None = None


class NeuronResponse(BaseModel):
    """Neuron as shown to a client: raw governance fields plus derived views."""
    id: str
    stake_e8s: int
    maturity_e8s: int
    staked_maturity_e8s: int
    voting_power: int
    dissolve_state: DissolveStateResponse
    auto_stake_maturity: bool
    created_timestamp_seconds: int
    holders: list[HolderResponse]

    @classmethod
    def from_neuron(
        cls, neuron: Neuron, params: NervousSystemParameters, now: int,
    ) -> "NeuronResponse":
        state = classify_dissolve_state(neuron.dissolve_state, now)
        return cls(
            id=neuron.id_hex,
            stake_e8s=neuron.cached_neuron_stake_e8s,
            maturity_e8s=neuron.maturity_e8s_equivalent,
            staked_maturity_e8s=neuron.staked_maturity_e8s_equivalent,
            voting_power=neuron_voting_power(neuron, params, now),
            dissolve_state=DissolveStateResponse(
                state=state.name,
                description=describe_dissolve_state(state, now),
                delay_seconds=state.delay_seconds if isinstance(state, Locked) else None,
                target_timestamp_seconds=(
                    state.target_timestamp_seconds
                    if isinstance(state, Dissolving) else None
                ),
            ),
            auto_stake_maturity=neuron.auto_stake_maturity,
            created_timestamp_seconds=neuron.created_timestamp_seconds,
            holders=[
                HolderResponse(
                    principal=p.to_text(),
                    permissions=neuron.capabilities_of(p).to_list(),
                    role=classify_holder(neuron.capabilities_of(p)).value,
                )
                for p in neuron.holders()
            ],
        )


class NonceSlotResponse(BaseModel):
    nonce: int
    subaccount: str
    status: str
