from __future__ import annotations

from fastapi import Request

from ..voting_executor import VotingExecutor


def get_executor(request: Request) -> VotingExecutor:
    return request.app.state.executor
