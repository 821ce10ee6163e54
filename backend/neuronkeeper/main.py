"""NeuronKeeper API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery — ExMA anti-pattern)
    - Global error handlers map NeuronKeeperError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Gateway client, services and busy registry created once in lifespan, closed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Services stored on app.state and reached through Depends (tests override them)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from neuronkeeper.api.error_handlers import register_error_handlers
from neuronkeeper.api.routes import health, neuron_management, neuron_workflows
from neuronkeeper.config import get_settings
from neuronkeeper.core.domain_types import Principal
from neuronkeeper.infrastructure.gateway_client import (
    HttpGovernanceService, HttpLedgerService, ResilientGatewayClient,
)
from neuronkeeper.infrastructure.observability import setup_logging
from neuronkeeper.services.operation_scope import NeuronBusyRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    client = ResilientGatewayClient(
        settings.gateway_url,
        timeout_seconds=settings.gateway_timeout_seconds,
        max_retries=settings.gateway_max_retries,
        base_delay_ms=settings.gateway_base_delay_ms,
        max_delay_ms=settings.gateway_max_delay_ms,
    )
    app.state.ledger = HttpLedgerService(
        client, Principal.from_text(settings.ledger_canister_id),
    )
    app.state.governance = HttpGovernanceService(
        client, Principal.from_text(settings.governance_canister_id),
    )
    app.state.busy = NeuronBusyRegistry()
    logger.info("NeuronKeeper API started")
    yield
    await client.aclose()
    logger.info("NeuronKeeper API shutting down")


app = FastAPI(title="NeuronKeeper API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(neuron_workflows.router)
app.include_router(neuron_management.router)

register_error_handlers(app)
