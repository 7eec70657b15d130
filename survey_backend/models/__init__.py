"""Database models."""
from survey_backend.models.survey_response import (
    FEATURE_COLUMNS,
    QUESTIONNAIRE_COLUMNS,
    SurveyResponse,
)

__all__ = ["SurveyResponse", "FEATURE_COLUMNS", "QUESTIONNAIRE_COLUMNS"]
