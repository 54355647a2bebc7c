from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..voting_executor import VotingExecutor
from .deps import get_executor

router = APIRouter(tags=["health"])


@router.get("/health")
def health(executor: VotingExecutor = Depends(get_executor)) -> Dict[str, Any]:
    return {
        "ok": True,
        "chain_id": executor.domain.chain_id,
        "initialized": executor.fetch_config() is not None,
        "ts": int(time.time()),
    }
