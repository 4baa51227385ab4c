"""ORM models for survey_db."""

from survey_db.models.base import Base
from survey_db.models.submission import PersonalizedAnswer, Submission, SubmissionAnswer
from survey_db.models.survey import Survey, SurveyQuestion

__all__ = [
    "Base",
    "PersonalizedAnswer",
    "Submission",
    "SubmissionAnswer",
    "Survey",
    "SurveyQuestion",
]
