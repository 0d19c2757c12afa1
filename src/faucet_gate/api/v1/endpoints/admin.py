"""Administrative overrides."""

from fastapi import APIRouter

from faucet_gate.api.v1.dependencies import AdminDep, OrchestratorDep
from faucet_gate.schemas.system import PostResetResponse

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/posts/{post_id}/reset", response_model=PostResetResponse)
async def reset_post(
    post_id: str,
    _admin: AdminDep,
    orchestrator: OrchestratorDep,
) -> PostResetResponse:
    """Make a consumed post usable for another claim."""
    return PostResetResponse(post_id=post_id, reset=orchestrator.reset_post(post_id))
