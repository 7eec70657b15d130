"""Survey response model for CMS questionnaire submissions."""
from __future__ import annotations

import uuid
from datetime import datetime, UTC

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from survey_backend.database import Base

# Feature rating columns, in questionnaire order
FEATURE_COLUMNS = (
    "offline",
    "collaboration",
    "asset_management",
    "pdf_handling",
    "version_control",
    "workflows",
)

# Free-text questionnaire columns; stored verbatim, never parsed
QUESTIONNAIRE_COLUMNS = (
    "biggest_frustrations",
    "specific_problems",
    "usage_frequency",
    "primary_purpose",
    "platforms",
    "cms_preference",
    "wished_features",
    "workflow_importance",
    "team_size",
    "collaboration_frequency",
    "pricing_sensitivity",
    "pricing_model",
    "integrations",
    "integration_importance",
    "content_types",
    "custom_formats",
    "feedback_suggestions",
    "excitement_factors",
    "collaboration_challenges",
    "offline_work_frequency",
    "offline_workarounds",
    "current_change_conflict_handling",
    "version_control_challenges",
)


class SurveyResponse(Base):
    """One submitted questionnaire instance."""

    __tablename__ = "survey_responses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    role = Column(Text, nullable=False)
    other_role = Column(Text)
    cms_usage = Column(Text, nullable=False)
    other_cms_usage = Column(Text)

    offline = Column(Integer)
    collaboration = Column(Integer)
    asset_management = Column(Integer)
    pdf_handling = Column(Integer)
    version_control = Column(Integer)
    workflows = Column(Integer)

    beta_interest = Column(Boolean, nullable=False, default=False)
    email = Column(Text)

    biggest_frustrations = Column(Text)
    specific_problems = Column(Text)
    usage_frequency = Column(Text)
    primary_purpose = Column(Text)
    platforms = Column(Text)
    cms_preference = Column(Text)
    wished_features = Column(Text)
    workflow_importance = Column(Text)
    team_size = Column(Text)
    collaboration_frequency = Column(Text)
    pricing_sensitivity = Column(Text)
    pricing_model = Column(Text)
    integrations = Column(Text)
    integration_importance = Column(Text)
    content_types = Column(Text)
    custom_formats = Column(Text)
    feedback_suggestions = Column(Text)
    excitement_factors = Column(Text)
    collaboration_challenges = Column(Text)
    offline_work_frequency = Column(Text)
    offline_workarounds = Column(Text)
    current_change_conflict_handling = Column(Text)
    version_control_challenges = Column(Text)

    def __repr__(self) -> str:
        return f"<SurveyResponse(id={self.id}, role={self.role}, beta_interest={self.beta_interest})>"
