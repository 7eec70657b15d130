"""Services module - business logic layer."""
from survey_backend.services.auth_service import AdminIdentity, AuthError, AuthService
from survey_backend.services.survey_service import (
    SurveyService,
    SurveyServiceError,
    SurveyStorageError,
    SurveyValidationError,
)

__all__ = [
    "AdminIdentity",
    "AuthError",
    "AuthService",
    "SurveyService",
    "SurveyServiceError",
    "SurveyStorageError",
    "SurveyValidationError",
]
