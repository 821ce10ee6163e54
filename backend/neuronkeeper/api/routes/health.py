"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if governance is unreachable through the gateway (readiness)

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from
      load balancer (ADR: production readiness)
    - Readiness reads nervous-system parameters: the cheapest query every workflow needs
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from neuronkeeper.api.dependencies import get_governance
from neuronkeeper.core.errors import NetworkError
from neuronkeeper.core.service_protocols import GovernanceService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {"status": "healthy", "service": "neuronkeeper-api", "version": "1.0.0"}


@router.get("/ready")
async def readiness_check(governance: GovernanceService = Depends(get_governance)):
    """Readiness probe — includes gateway connectivity."""
    try:
        await governance.get_nervous_system_parameters()
    except NetworkError as e:
        logger.warning("Readiness check failed: %s", e.message)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "gateway_unavailable"},
        )
    return {"status": "ready", "checks": {"gateway": "healthy"}}
