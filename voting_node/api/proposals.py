from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel

from ..voting_executor import VotingExecutor
from ..voting_runtime.addresses import AddressDerivationError, from_hex, proposal_address
from .deps import get_executor

router = APIRouter(tags=["proposals"])

U32_MAX = 0xFFFFFFFF


class ConfigOut(BaseModel):
    address: str
    owner: str
    total_proposals: int


class ProposalOut(BaseModel):
    address: str
    id: int
    title: str
    votes: int


@router.get("/config", response_model=ConfigOut)
def get_config(executor: VotingExecutor = Depends(get_executor)) -> ConfigOut:
    cfg = executor.fetch_config()
    if cfg is None:
        raise HTTPException(status_code=404, detail="config not initialized")
    return ConfigOut(address=executor.config_address_hex, owner=cfg.owner, total_proposals=cfg.total_proposals)


def _proposal_out(executor: VotingExecutor, proposal_id: int) -> ProposalOut:
    p = executor.fetch_proposal(proposal_id)
    if p is None:
        raise HTTPException(status_code=404, detail="proposal not found")
    return ProposalOut(
        address=proposal_address(p.id, executor.program_id).hex(),
        id=p.id,
        title=p.title,
        votes=p.votes,
    )


@router.get("/proposals", response_model=List[ProposalOut])
def list_proposals(executor: VotingExecutor = Depends(get_executor)) -> List[ProposalOut]:
    return [_proposal_out(executor, p.id) for p in executor.list_proposals()]


@router.get("/proposals/{proposal_id}", response_model=ProposalOut)
def get_proposal(
    proposal_id: int = Path(..., ge=0, le=U32_MAX),
    executor: VotingExecutor = Depends(get_executor),
) -> ProposalOut:
    return _proposal_out(executor, proposal_id)


@router.get("/proposals/{proposal_id}/votes/{voter}")
def has_voted(
    voter: str,
    proposal_id: int = Path(..., ge=0, le=U32_MAX),
    executor: VotingExecutor = Depends(get_executor),
) -> Dict[str, Any]:
    try:
        voter_hex = from_hex(voter).hex()
    except AddressDerivationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "proposal_id": proposal_id, "voter": voter_hex, "voted": executor.has_voted(proposal_id, voter_hex)}


@router.get("/events")
def events(
    limit: int = Query(50, ge=1, le=1000),
    executor: VotingExecutor = Depends(get_executor),
) -> Dict[str, Any]:
    return {"ok": True, "events": executor.recent_events(limit)}
