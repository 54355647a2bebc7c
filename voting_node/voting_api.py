from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import faucet, health, proposals, tx
from .config import get_cors_origins, load_config
from .voting_executor import VotingExecutor

log = logging.getLogger(__name__)


def create_app(cfg: Optional[Dict[str, Any]] = None, executor: Optional[VotingExecutor] = None) -> FastAPI:
    if cfg is None:
        cfg = executor.config if executor is not None else load_config()
    if executor is None:
        executor = VotingExecutor(cfg)

    app = FastAPI(title="Voting Node API")
    app.state.executor = executor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(cfg),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(tx.router)
    app.include_router(proposals.router)
    app.include_router(faucet.router)

    log.info("API ready (program=%s chain=%s)", executor.program_id.hex()[:16], executor.domain.chain_id)
    return app
