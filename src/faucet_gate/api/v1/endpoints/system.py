"""System and transparency endpoints for Faucet Gate."""

from __future__ import annotations

from fastapi import APIRouter

from faucet_gate.api.v1.dependencies import OrchestratorDep
from faucet_gate.core.settings import settings
from faucet_gate.schemas.system import FaucetStatusResponse

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/status", response_model=FaucetStatusResponse)
async def get_status(orchestrator: OrchestratorDep) -> FaucetStatusResponse:
    """Report whether the funding account is configured and reachable.

    Args:
        orchestrator: Claim orchestrator

    Returns:
        Funding address, balance in lamports and the active ledger endpoint
    """
    status = await orchestrator.status()
    return FaucetStatusResponse(
        status=status.status,
        message=status.message,
        faucet_configured=status.faucet_configured,
        faucet_address=status.faucet_address,
        balance=status.balance,
        rpc_url=status.rpc_url,
    )


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets; suitable for the wallet UI and for operators.

    Returns:
        Dictionary containing app metadata, claim policy and ledger settings
    """
    low, high = settings.claim_amount_band
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
            "public_base_url": settings.public_base_url,
        },
        "claim": {
            "amount_lamports": settings.claim_amount_lamports,
            "cooldown_seconds": settings.claim_cooldown_seconds,
            "ledger_match_band": [low, high],
            "eligibility_cache_ttl_seconds": settings.eligibility_cache_ttl_seconds,
            "eligibility_fail_open": settings.eligibility_fail_open,
            "confirmation_assume_success": settings.confirmation_assume_success,
        },
        "posts": {
            "max_age_seconds": settings.post_max_age_seconds,
            "freshness_check_enabled": settings.post_freshness_check_enabled,
            "reverification_cooldown_seconds": settings.reverification_cooldown_seconds,
        },
        "ledger": {
            "rpc_urls": settings.ledger_rpc_urls,
            "commitment": settings.ledger_commitment,
            "explorer_base_url": settings.explorer_base_url,
        },
    }
