# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: gather, join, leave, roster and history endpoints.
Thin HTTP layer: delegates ALL logic to GatherService.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from rollcall.core.dependencies import (
    get_current_repo,
    get_gather_service,
    get_history_repo,
)
from rollcall.core.errors import RepositoryError
from rollcall.repositories.member_repository import MemberRepository
from rollcall.schemas.gather import CommandResponse, JoinRequest, MembersResponse
from rollcall.services.gather_service import GatherService

router = APIRouter(prefix="/api/v1", tags=["Rollcall"])


# ── Commands ──

@router.post("/gather", response_model=CommandResponse)
async def gather(service: GatherService = Depends(get_gather_service)):
    """Select this round's members and notify them."""
    return CommandResponse.from_result("gather", await service.gather())


@router.post("/members", response_model=CommandResponse)
async def join(
    payload: JoinRequest,
    service: GatherService = Depends(get_gather_service),
):
    """Add a member to the roster."""
    result = await service.join(payload.id, payload.name)
    return CommandResponse.from_result("join", result)


@router.delete("/members/{member_id}", response_model=CommandResponse)
async def leave(
    member_id: str,
    name: str = Query(default="", max_length=255, description="Display name"),
    service: GatherService = Depends(get_gather_service),
):
    """Remove a member from the roster."""
    result = await service.leave(member_id, name)
    return CommandResponse.from_result("leave", result)


# ── Read-outs ──

@router.get("/members", response_model=MembersResponse)
async def list_members(repo: MemberRepository = Depends(get_current_repo)):
    """Current roster."""
    try:
        return MembersResponse.from_members(await repo.get_all())
    except RepositoryError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/history", response_model=MembersResponse)
async def list_history(repo: MemberRepository = Depends(get_history_repo)):
    """Members already selected in the current rotation."""
    try:
        return MembersResponse.from_members(await repo.get_all())
    except RepositoryError as e:
        raise HTTPException(status_code=503, detail=str(e))
