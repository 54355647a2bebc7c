from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..voting_executor import VotingExecutor
from .deps import get_executor

router = APIRouter(tags=["tx"])


class EnvelopeModel(BaseModel):
    chain_id: str
    program_id: str
    instruction: str
    args: Dict[str, Any] = Field(default_factory=dict)
    accounts: Dict[str, str] = Field(default_factory=dict)
    signers: List[str] = Field(default_factory=list)
    nonce: str = ""
    schema_version: int = 1
    signatures: Dict[str, str] = Field(default_factory=dict)
    tx_id: str = ""


class SubmitTx(BaseModel):
    tx: EnvelopeModel


@router.get("/program")
def program_info(executor: VotingExecutor = Depends(get_executor)) -> Dict[str, Any]:
    return {
        "ok": True,
        "program_id": executor.program_id.hex(),
        "chain_id": executor.domain.chain_id,
        "schema_version": executor.domain.schema_version,
        "config_address": executor.config_address_hex,
    }


@router.post("/tx/submit")
def submit(payload: SubmitTx, executor: VotingExecutor = Depends(get_executor)) -> Dict[str, Any]:
    ok, receipt = executor.submit(payload.tx.model_dump())
    if not ok:
        raise HTTPException(status_code=400, detail=receipt.get("error", "tx_failed"))
    return receipt


@router.get("/tx/{tx_id}")
def tx_status(tx_id: str, executor: VotingExecutor = Depends(get_executor)) -> Dict[str, Any]:
    r = executor.receipt(tx_id)
    if not r:
        return {"ok": True, "found": False}
    return {"ok": True, "found": True, "receipt": r}
