"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from survey_server.routes.flow import router as flow_router
from survey_server.routes.library import router as library_router
from survey_server.routes.submissions import router as submissions_router
from survey_server.routes.surveys import router as surveys_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(surveys_router, prefix=API_PREFIX)
    app.include_router(flow_router, prefix=API_PREFIX)
    app.include_router(submissions_router, prefix=API_PREFIX)
    app.include_router(library_router, prefix=API_PREFIX)
