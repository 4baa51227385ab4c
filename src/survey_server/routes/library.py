"""Survey library endpoints — read-only access to the YAML survey templates."""

from fastapi import APIRouter, Depends

from survey_flow.library import SurveyLibrary, SurveyTemplate

from survey_server.dependencies import get_library

router = APIRouter(tags=["library"])


@router.get("/library")
async def list_library(
    library: SurveyLibrary = Depends(get_library),
) -> list[dict]:
    """Summaries of every library survey."""
    return [
        {
            "name": t.name,
            "title": t.title,
            "description": t.description,
            "question_count": len(library.get_tree(t.name)),
        }
        for t in (library.get(name) for name in library.names())
    ]


@router.get("/library/{name}")
async def get_library_survey(
    name: str,
    library: SurveyLibrary = Depends(get_library),
) -> SurveyTemplate:
    """Full template in the nested authoring shape; POST its questions to /surveys to store it."""
    return library.get(name)
