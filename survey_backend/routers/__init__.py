"""API routers."""
from survey_backend.routers import auth, health, survey

__all__ = ["auth", "health", "survey"]
