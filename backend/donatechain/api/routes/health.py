"""Health Probe: liveness endpoint for the ledger mirror service.

Invariants:
    - GET /api/v1/health/ always returns 200 if the process is up

Design Decisions:
    - Liveness only: the mirror serves in-memory data, there is no dependency
      whose loss should take it out of the load balancer
"""

import logging

from fastapi import APIRouter, status

from donatechain.config import get_settings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "donatechain-mirror",
        "version": "1.0.0",
        "chain_id": get_settings().required_chain_id,
    }
