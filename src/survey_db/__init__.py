"""survey_db — PostgreSQL persistence layer for surveys and submissions.

This package provides the ORM models, async engine factory, and
repositories for storing survey definitions and respondent submissions.
It is consumed by ``survey_flow.service`` and the FastAPI server.
"""

from survey_db.engine import get_engine, get_session_factory
from survey_db.models.submission import PersonalizedAnswer, Submission, SubmissionAnswer
from survey_db.models.survey import Survey, SurveyQuestion
from survey_db.repository import SubmissionRepository, SurveyRepository

__all__ = [
    "PersonalizedAnswer",
    "Submission",
    "SubmissionAnswer",
    "Survey",
    "SurveyQuestion",
    "get_engine",
    "get_session_factory",
    "SubmissionRepository",
    "SurveyRepository",
]
