"""Boundary Protocols — contracts between core workflows and the ledger/governance shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Ledger and governance are accessed only through these Protocol types
    - Failures surface as exceptions from core/errors.py:
        transfer → TransferError | NetworkError
        manage_neuron → GovernanceError | NetworkError
        queries → NetworkError (after the shell's own retries)
    - get_neuron returns None for "no neuron at this id" — absence is not an error

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy (ADR: ExMA anti-pattern)
    - Async in Protocol: implementations do IO; pure core functions that consume the
      results are never async themselves
"""

from typing import Protocol

from neuronkeeper.core.domain_types import Account, NeuronId, Principal
from neuronkeeper.core.governance_commands import GovernanceCommand
from neuronkeeper.core.neuron import NervousSystemParameters, Neuron


class LedgerService(Protocol):
    """Token ledger — implemented by shell."""
    async def transfer(
        self, to: Account, amount_e8s: int,
        fee_e8s: int | None = None, memo: bytes | None = None,
    ) -> int: ...
    async def balance_of(self, account: Account) -> int: ...


class GovernanceService(Protocol):
    """Neuron governance — implemented by shell."""
    canister_id: Principal

    async def manage_neuron(
        self, neuron_id: NeuronId, command: GovernanceCommand,
    ) -> dict: ...
    async def get_neuron(self, neuron_id: NeuronId) -> Neuron | None: ...
    async def list_neurons(
        self, of_principal: Principal, limit: int,
    ) -> list[Neuron]: ...
    async def get_nervous_system_parameters(self) -> NervousSystemParameters: ...
