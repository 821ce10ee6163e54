"""Workflow Events — typed step-status stream emitted by multi-step neuron workflows.

Invariants:
    - Events form a tagged union: Deriving, Transferring, AwaitingSettlement,
      Claiming, Configuring, Done, Failed
    - A stream ends with exactly one terminal event: Done or Failed (absorbing)
    - Failed.step names the step that failed; Failed.cause carries the recovery action
    - Every event renders a human-readable `message` and an SSE envelope

Design Decisions:
    - Typed events over free-form progress strings: callers match on type,
      UIs still get the string via .message
    - Outcomes live next to events so Done can serialize them without importing services
"""

from dataclasses import dataclass, field

from neuronkeeper.core.dissolve_state import DissolveState, Locked, Dissolving
from neuronkeeper.core.domain_types import SECONDS_PER_DAY, WorkflowStep
from neuronkeeper.core.enforce_amounts import format_e8s
from neuronkeeper.core.errors import NeuronKeeperError
from neuronkeeper.core.neuron import Neuron, neuron_to_wire


# ─── Outcomes ────────────────────────────────────────────────────

def _dissolve_to_dict(state: DissolveState | None) -> dict | None:
    if state is None:
        return None
    if isinstance(state, Locked):
        return {"state": state.name, "delay_seconds": state.delay_seconds}
    if isinstance(state, Dissolving):
        return {"state": state.name, "target_timestamp_seconds": state.target_timestamp_seconds}
    return {"state": state.name}


@dataclass
class CreationOutcome:
    neuron_id: bytes
    nonce: int
    block_index: int | None
    neuron: Neuron | None = None
    dissolve_state: DissolveState | None = None
    warnings: list[NeuronKeeperError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "neuron_id": self.neuron_id.hex(),
            "nonce": self.nonce,
            "block_index": self.block_index,
            "neuron": neuron_to_wire(self.neuron) if self.neuron else None,
            "dissolve_state": _dissolve_to_dict(self.dissolve_state),
            "warnings": [w.to_sse_event()["data"] for w in self.warnings],
        }


@dataclass
class TopUpOutcome:
    neuron_id: bytes
    block_index: int | None
    neuron: Neuron | None = None

    def to_dict(self) -> dict:
        return {
            "neuron_id": self.neuron_id.hex(),
            "block_index": self.block_index,
            "neuron": neuron_to_wire(self.neuron) if self.neuron else None,
        }


# ─── Events ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class Deriving:
    nonce: int
    step = WorkflowStep.DERIVING

    @property
    def message(self) -> str:
        return f"Computing neuron address for nonce {self.nonce}..."

    def to_sse_event(self) -> dict:
        return {"type": "step", "data": {"step": self.step.value, "nonce": self.nonce,
                                          "message": self.message}}


@dataclass(frozen=True)
class Transferring:
    amount_e8s: int
    step = WorkflowStep.TRANSFERRING

    @property
    def message(self) -> str:
        return f"Transferring {format_e8s(self.amount_e8s)} tokens to the neuron address..."

    def to_sse_event(self) -> dict:
        return {"type": "step", "data": {"step": self.step.value,
                                          "amount_e8s": self.amount_e8s,
                                          "message": self.message}}


@dataclass(frozen=True)
class AwaitingSettlement:
    seconds: float
    step = WorkflowStep.AWAITING_SETTLEMENT

    @property
    def message(self) -> str:
        return "Waiting for the transfer to settle..."

    def to_sse_event(self) -> dict:
        return {"type": "step", "data": {"step": self.step.value,
                                          "seconds": self.seconds,
                                          "message": self.message}}


@dataclass(frozen=True)
class Claiming:
    step = WorkflowStep.CLAIMING

    @property
    def message(self) -> str:
        return "Claiming neuron stake..."

    def to_sse_event(self) -> dict:
        return {"type": "step", "data": {"step": self.step.value, "message": self.message}}


@dataclass(frozen=True)
class Configuring:
    delay_seconds: int
    step = WorkflowStep.CONFIGURING

    @property
    def message(self) -> str:
        return f"Setting dissolve delay to {self.delay_seconds // SECONDS_PER_DAY} days..."

    def to_sse_event(self) -> dict:
        return {"type": "step", "data": {"step": self.step.value,
                                          "delay_seconds": self.delay_seconds,
                                          "message": self.message}}


@dataclass(frozen=True)
class Done:
    outcome: CreationOutcome | TopUpOutcome
    step = WorkflowStep.DONE

    @property
    def message(self) -> str:
        if isinstance(self.outcome, CreationOutcome) and self.outcome.warnings:
            return "Neuron created, but some settings could not be applied."
        return "Done."

    def to_sse_event(self) -> dict:
        return {"type": "done", "data": {"error": False, "message": self.message,
                                          "outcome": self.outcome.to_dict()}}


@dataclass(frozen=True)
class Failed:
    failed_step: WorkflowStep
    cause: NeuronKeeperError

    @property
    def message(self) -> str:
        return f"Failed while {self.failed_step.value}: {self.cause.message}"

    def to_sse_event(self) -> dict:
        event = self.cause.to_sse_event()
        event["data"]["step"] = self.failed_step.value
        return event


WorkflowEvent = (
    Deriving | Transferring | AwaitingSettlement | Claiming
    | Configuring | Done | Failed
)
