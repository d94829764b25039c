"""FastAPI dependencies resolving the engine objects held on the application state."""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from multisport_scoring.engine import ScoreOrchestrator
from multisport_scoring.scoring.registry import ScoringMethodRegistry


def get_registry(request: Request) -> ScoringMethodRegistry:
    return request.app.state.registry


def get_orchestrator(request: Request) -> ScoreOrchestrator:
    return request.app.state.orchestrator


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Session on the application's database, committed when the request succeeds."""
    async with request.app.state.database.get_session() as session:
        yield session
