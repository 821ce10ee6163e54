"""Services Layer — neuron workflows that sequence ledger and governance calls.

Invariants:
    - Services depend on core Protocols, never on infrastructure clients
    - Multi-step workflows (create, top-up) stream typed events; single-command
      services return outcomes or raise NeuronKeeperError

Design Decisions:
    - One module per workflow for locality (ADR: ExMA no god objects)
"""
