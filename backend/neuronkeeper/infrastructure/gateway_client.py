"""Resilient Gateway Client — httpx wrapper for the ledger/governance JSON gateway.

Invariants:
    - Queries (reads): transient failures (connection, timeout, 5xx, 429) retried up to
      max_retries with exponential backoff; other 4xx fail immediately
    - Updates (transfer, manage_neuron): NEVER retried — a lost response may hide a
      committed call, so any transport failure raises NetworkError (outcome unknown)
    - Ledger Err records map to TransferError kinds; governance Error records map to
      GovernanceError; everything else at this boundary is NetworkError
    - Wire format: bytes as hex, principals as text, amounts as integer e8s

Design Decisions:
    - Wrapper over raw client: isolates retry logic from workflows (ADR: single responsibility)
    - ±25% jitter on backoff: prevents thundering herd on a shared gateway
    - Service adapters satisfy the core Protocols structurally; workflows never see httpx
"""

import asyncio
import logging
import random

import httpx

from neuronkeeper.core.domain_types import Account, NeuronId, Principal
from neuronkeeper.core.errors import (
    ErrorContext, GovernanceError, NetworkError, TransferError, TransferErrorKind,
)
from neuronkeeper.core.governance_commands import GovernanceCommand, account_to_wire
from neuronkeeper.core.neuron import (
    NervousSystemParameters, Neuron, neuron_from_wire, parameters_from_wire,
)

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class ResilientGatewayClient:
    """POSTs JSON to the gateway; retries reads, never writes."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds, transport=transport,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def query(self, path: str, payload: dict) -> dict:
        """Read call with retry on transient failures."""
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.post(path, json=payload)
            except httpx.TransportError as e:
                await self._retry_or_raise(path, attempt, str(e))
                continue
            if response.status_code in _RETRYABLE_STATUS:
                await self._retry_or_raise(
                    path, attempt, f"gateway returned {response.status_code}",
                )
                continue
            return self._decode(path, response)
        raise NetworkError("retries exhausted", path)

    async def update(self, path: str, payload: dict) -> dict:
        """State-changing call: exactly one attempt."""
        try:
            response = await self.client.post(path, json=payload)
        except httpx.TransportError as e:
            logger.error("Update call lost in transit: %s", e, extra={"step": path})
            raise NetworkError(str(e) or type(e).__name__, path) from e
        if response.status_code >= 500:
            raise NetworkError(f"gateway returned {response.status_code}", path)
        return self._decode(path, response)

    async def aclose(self) -> None:
        await self.client.aclose()

    def _decode(self, path: str, response: httpx.Response) -> dict:
        if response.is_error:
            raise NetworkError(
                f"gateway rejected request ({response.status_code}): {response.text}",
                path,
            )
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError("gateway sent invalid JSON", path) from e

    async def _retry_or_raise(self, path: str, attempt: int, reason: str) -> None:
        if attempt >= self.max_retries:
            raise NetworkError(
                f"{reason} (after {self.max_retries} retries)", path,
            )
        delay = self._backoff(attempt)
        logger.warning("Transient gateway error, retry after %dms: %s", delay, reason,
            extra={"attempt": attempt + 1})
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311


# ─── Ledger ──────────────────────────────────────────────────────

def _transfer_error(err: dict) -> TransferError:
    if "InsufficientFunds" in err:
        return TransferError(
            TransferErrorKind.INSUFFICIENT_FUNDS, "insufficient funds",
            balance=int(err["InsufficientFunds"].get("balance", 0)),
        )
    if "BadFee" in err:
        return TransferError(
            TransferErrorKind.BAD_FEE, "unexpected fee",
            expected_fee=int(err["BadFee"].get("expected_fee", 0)),
        )
    if "GenericError" in err:
        return TransferError(
            TransferErrorKind.GENERIC, err["GenericError"].get("message", "ledger error"),
        )
    return TransferError(TransferErrorKind.GENERIC, ", ".join(err) or "ledger error")


class HttpLedgerService:
    """LedgerService over the gateway."""

    def __init__(self, client: ResilientGatewayClient, canister_id: Principal):
        self.client = client
        self.canister_id = canister_id

    @property
    def _base(self) -> str:
        return f"/ledger/{self.canister_id.to_text()}"

    async def transfer(
        self, to: Account, amount_e8s: int,
        fee_e8s: int | None = None, memo: bytes | None = None,
    ) -> int:
        result = await self.client.update(f"{self._base}/transfer", {
            "to": account_to_wire(to),
            "amount_e8s": amount_e8s,
            "fee_e8s": fee_e8s,
            "memo": memo.hex() if memo is not None else None,
        })
        if "Err" in result:
            raise _transfer_error(result["Err"] or {})
        return int(result["Ok"])

    async def balance_of(self, account: Account) -> int:
        result = await self.client.query(
            f"{self._base}/balance", {"account": account_to_wire(account)},
        )
        return int(result["balance_e8s"])


# ─── Governance ──────────────────────────────────────────────────

class HttpGovernanceService:
    """GovernanceService over the gateway."""

    def __init__(self, client: ResilientGatewayClient, canister_id: Principal):
        self.client = client
        self.canister_id = canister_id

    @property
    def _base(self) -> str:
        return f"/governance/{self.canister_id.to_text()}"

    async def manage_neuron(
        self, neuron_id: NeuronId, command: GovernanceCommand,
    ) -> dict:
        result = await self.client.update(f"{self._base}/manage_neuron", {
            "subaccount": neuron_id.hex(),
            "command": command.to_wire(),
        })
        reply = result.get("command") or {}
        if "Error" in reply:
            error = reply["Error"]
            raise GovernanceError(
                error.get("error_message", "unknown governance error"),
                error.get("error_type"),
                ErrorContext(neuron_id=neuron_id.hex()),
            )
        return reply

    async def get_neuron(self, neuron_id: NeuronId) -> Neuron | None:
        result = await self.client.query(
            f"{self._base}/get_neuron", {"neuron_id": neuron_id.hex()},
        )
        data = result.get("neuron")
        return neuron_from_wire(data) if data else None

    async def list_neurons(self, of_principal: Principal, limit: int) -> list[Neuron]:
        result = await self.client.query(f"{self._base}/list_neurons", {
            "of_principal": of_principal.to_text(), "limit": limit,
        })
        return [neuron_from_wire(n) for n in result.get("neurons", [])]

    async def get_nervous_system_parameters(self) -> NervousSystemParameters:
        result = await self.client.query(
            f"{self._base}/get_nervous_system_parameters", {},
        )
        return parameters_from_wire(result)
