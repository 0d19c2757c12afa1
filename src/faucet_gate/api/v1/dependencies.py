"""Shared API dependencies and error translation."""

import math
from typing import Annotated, NoReturn

from fastapi import Depends, Header, HTTPException, status

from faucet_gate.core.errors import EligibilityError, FaucetError
from faucet_gate.core.security import consteq
from faucet_gate.core.settings import settings
from faucet_gate.db.time import utcnow
from faucet_gate.services.orchestrator import ClaimOrchestrator, get_claim_orchestrator


def get_orchestrator_dep() -> ClaimOrchestrator:
    """Get the claim orchestrator for dependency injection."""
    return get_claim_orchestrator()


OrchestratorDep = Annotated[ClaimOrchestrator, Depends(get_orchestrator_dep)]


def retry_after_seconds(err: EligibilityError) -> int:
    """Return the Retry-After value for a cooldown rejection."""
    if err.next_claim_time is not None:
        return max(0, math.ceil((err.next_claim_time - utcnow()).total_seconds()))
    return max(0, err.remaining_hours) * 3600


def raise_http(err: FaucetError) -> NoReturn:
    """Translate a faucet rejection into an HTTPException.

    Args:
        err: The typed rejection raised by the claim engine

    Raises:
        HTTPException: Always, carrying the structured rejection body
    """
    headers = None
    if isinstance(err, EligibilityError):
        headers = {"Retry-After": str(retry_after_seconds(err))}
    raise HTTPException(status_code=err.status_code, detail=err.to_detail(), headers=headers) from err


def require_admin(
    x_admin_token: Annotated[str | None, Header(alias="X-Admin-Token")] = None,
) -> None:
    """Guard administrative endpoints with the configured admin token.

    Raises:
        HTTPException: 403 when no admin token is configured, 401 on mismatch
    """
    if not settings.admin_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrative endpoints are disabled",
        )
    if not x_admin_token or not consteq(x_admin_token, settings.admin_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
        )


AdminDep = Annotated[None, Depends(require_admin)]
