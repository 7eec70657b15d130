"""Pydantic schemas for survey endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from survey_backend.models.survey_response import FEATURE_COLUMNS, SurveyResponse
from survey_backend.schemas.base import BaseSchema


class Features(BaseSchema):
    """Six integer feature ratings. No range is enforced."""

    offline: int = 0
    collaboration: int = 0
    asset_management: int = 0
    pdf_handling: int = 0
    version_control: int = 0
    workflows: int = 0


class SurveyFields(BaseSchema):
    """Fields shared by submissions and stored records."""

    role: str = ""
    other_role: Optional[str] = None
    cms_usage: str = ""
    other_cms_usage: Optional[str] = None
    features: Features = Field(default_factory=Features)
    beta_interest: bool = False
    email: Optional[str] = None

    biggest_frustrations: Optional[str] = None
    specific_problems: Optional[str] = None
    usage_frequency: Optional[str] = None
    primary_purpose: Optional[str] = None
    platforms: Optional[str] = None
    cms_preference: Optional[str] = None
    wished_features: Optional[str] = None
    workflow_importance: Optional[str] = None
    team_size: Optional[str] = None
    collaboration_frequency: Optional[str] = None
    pricing_sensitivity: Optional[str] = None
    pricing_model: Optional[str] = None
    integrations: Optional[str] = None
    integration_importance: Optional[str] = None
    content_types: Optional[str] = None
    custom_formats: Optional[str] = None
    feedback_suggestions: Optional[str] = None
    excitement_factors: Optional[str] = None
    collaboration_challenges: Optional[str] = None
    offline_work_frequency: Optional[str] = None
    offline_workarounds: Optional[str] = None
    current_change_conflict_handling: Optional[str] = None
    version_control_challenges: Optional[str] = None


class SurveySubmission(SurveyFields):
    """Survey submission payload from the frontend.

    Required-field and email rules are enforced by the survey service so the
    caller gets the same messages regardless of how the body was built.
    """


class SurveyResponseRecord(SurveyFields):
    """Representation of a stored survey response."""

    id: str
    created_at: datetime

    @classmethod
    def from_model(cls, row: SurveyResponse) -> "SurveyResponseRecord":
        """Project a flat table row into the nested response shape."""
        data = {
            name: getattr(row, name)
            for name in cls.model_fields
            if name != "features"
        }
        # Columns added by a legacy migration may hold NULL ratings
        data["features"] = Features(
            **{name: getattr(row, name) or 0 for name in FEATURE_COLUMNS}
        )
        data["beta_interest"] = bool(row.beta_interest)
        return cls(**data)


class SurveyMetrics(BaseSchema):
    """Aggregate summary across all stored responses."""

    total_responses: int
    beta_interest_count: int
    average_feature_scores: dict[str, float]
    usage_frequency_stats: dict[str, int]
    team_size_distribution: dict[str, int]
    pricing_preferences: dict[str, int]


class MessageResponse(BaseSchema):
    """Plain confirmation message."""

    message: str
