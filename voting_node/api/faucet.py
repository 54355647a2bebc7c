"""
voting_node/api/faucet.py
-------------------------

Developer faucet for local/test usage.

- Credits lamports to a wallet so it can pay rent for the accounts it creates
- Disabled unless config dev.faucet_enabled is true
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, Field

from ..voting_executor import VotingExecutor
from ..voting_runtime.addresses import AddressDerivationError, from_hex
from .deps import get_executor

router = APIRouter(tags=["dev"])


class AirdropRequest(BaseModel):
    pubkey: str = Field(..., description="hex-encoded 32-byte public key")
    lamports: int = Field(..., gt=0, description="Amount to credit (dev-only)")


def _pubkey_hex(raw: str) -> str:
    try:
        return from_hex(raw).hex()
    except AddressDerivationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/dev/airdrop", name="dev_airdrop")
def dev_airdrop(req: AirdropRequest = Body(...), executor: VotingExecutor = Depends(get_executor)) -> Dict[str, Any]:
    """
    POST /dev/airdrop

    Example body:
      {"pubkey": "<hex>", "lamports": 2000000000}
    """
    pubkey = _pubkey_hex(req.pubkey)
    try:
        balance = executor.airdrop(pubkey, req.lamports)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"ok": True, "pubkey": pubkey, "credited": int(req.lamports), "balance": balance}


@router.get("/balance/{pubkey}")
def balance(pubkey: str, executor: VotingExecutor = Depends(get_executor)) -> Dict[str, Any]:
    pk = _pubkey_hex(pubkey)
    return {"ok": True, "pubkey": pk, "lamports": executor.balance(pk)}
