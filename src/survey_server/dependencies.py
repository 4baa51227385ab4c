"""FastAPI dependency injection — provides DB sessions, service, library and prompts.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  The session is committed on success and rolled back on error,
matching the SDK convention where service/repository call ``flush()`` but
never ``commit()``.
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from survey_db.engine import get_session_factory
from survey_flow.library import SurveyLibrary
from survey_flow.prompt import PromptManager
from survey_flow.service import SurveyService


# ------------------------------------------------------------------
# Database session — transaction boundary lives here
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ------------------------------------------------------------------
# Singletons — stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_service(request: Request) -> SurveyService:
    """Return the SurveyService singleton from ``app.state``."""
    return request.app.state.service


def get_library(request: Request) -> SurveyLibrary:
    """Return the SurveyLibrary singleton from ``app.state``."""
    return request.app.state.library


def get_prompts(request: Request) -> PromptManager:
    """Return the PromptManager singleton from ``app.state``."""
    return request.app.state.prompts
