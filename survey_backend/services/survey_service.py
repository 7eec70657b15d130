"""Survey storage, listing and aggregate metrics."""
from __future__ import annotations

import logging
import re
import uuid
from datetime import UTC, datetime

from pydantic.alias_generators import to_camel
from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_backend.models.survey_response import FEATURE_COLUMNS, SurveyResponse
from survey_backend.schemas.survey import (
    SurveyMetrics,
    SurveyResponseRecord,
    SurveySubmission,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

# Columns summarized as frequency tables, keyed by their metrics field
DISTRIBUTION_COLUMNS = {
    "usage_frequency_stats": SurveyResponse.usage_frequency,
    "team_size_distribution": SurveyResponse.team_size,
    "pricing_preferences": SurveyResponse.pricing_model,
}


class SurveyServiceError(RuntimeError):
    """Base error for survey operations."""


class SurveyValidationError(SurveyServiceError):
    """Raised when a submission violates a field rule."""


class SurveyStorageError(SurveyServiceError):
    """Raised when the database rejects a read or write."""


def _feature_key(column: str) -> str:
    """Wire name of a feature column, e.g. ``asset_management`` -> ``assetManagement``."""
    return to_camel(column)


class SurveyService:
    """Service for persisting and summarizing survey responses."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def validate(submission: SurveySubmission) -> None:
        """Check required fields and the beta-interest email rule."""
        if not submission.role:
            raise SurveyValidationError("role is required")
        if not submission.cms_usage:
            raise SurveyValidationError("CMS usage is required")
        if submission.beta_interest and (
            not submission.email or not EMAIL_PATTERN.fullmatch(submission.email)
        ):
            raise SurveyValidationError("valid email is required for beta program")

    async def submit(self, submission: SurveySubmission) -> SurveyResponseRecord:
        """Validate and store a submission; returns the stored record."""
        self.validate(submission)

        values = submission.model_dump(exclude={"features"})
        values.update(submission.features.model_dump())
        row = SurveyResponse(
            id=str(uuid.uuid4()),
            created_at=datetime.now(UTC),
            **values,
        )

        self.db.add(row)
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(f"Failed to store survey response: {exc}")
            raise SurveyStorageError(str(exc)) from exc

        logger.info(f"Stored survey response {row.id} (role={row.role}, beta={row.beta_interest})")
        return SurveyResponseRecord.from_model(row)

    async def list_responses(self) -> list[SurveyResponseRecord]:
        """Return every stored response in storage order."""
        try:
            result = await self.db.execute(select(SurveyResponse))
        except SQLAlchemyError as exc:
            logger.error(f"Failed to list survey responses: {exc}")
            raise SurveyStorageError(str(exc)) from exc

        return [SurveyResponseRecord.from_model(row) for row in result.scalars().all()]

    async def delete_response(self, response_id: str) -> int:
        """Delete a response by id. Missing ids are not an error.

        Returns:
            Number of rows removed (0 or 1)
        """
        try:
            result = await self.db.execute(
                delete(SurveyResponse).where(SurveyResponse.id == response_id)
            )
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(f"Failed to delete survey response {response_id}: {exc}")
            raise SurveyStorageError(str(exc)) from exc

        deleted = result.rowcount or 0
        if deleted:
            logger.info(f"Deleted survey response {response_id}")
        else:
            logger.info(f"Delete requested for unknown survey response {response_id}")
        return deleted

    async def get_metrics(self) -> SurveyMetrics:
        """
        Compute totals, feature averages and answer distributions.

        Averages are rounded to two decimals and are 0.0 when there are no
        responses. NULL answers are grouped under the empty string.
        """
        feature_averages = [
            func.avg(getattr(SurveyResponse, column)).label(column)
            for column in FEATURE_COLUMNS
        ]
        summary_query = select(
            func.count().label("total"),
            func.coalesce(
                func.sum(case((SurveyResponse.beta_interest.is_(True), 1), else_=0)), 0
            ).label("beta_count"),
            *feature_averages,
        ).select_from(SurveyResponse)

        try:
            summary = (await self.db.execute(summary_query)).one()
            distributions = {
                field: await self._count_by(column)
                for field, column in DISTRIBUTION_COLUMNS.items()
            }
        except SQLAlchemyError as exc:
            logger.error(f"Failed to compute survey metrics: {exc}")
            raise SurveyStorageError(str(exc)) from exc

        averages = {
            _feature_key(column): round(float(getattr(summary, column) or 0.0), 2)
            for column in FEATURE_COLUMNS
        }

        return SurveyMetrics(
            total_responses=int(summary.total),
            beta_interest_count=int(summary.beta_count),
            average_feature_scores=averages,
            **distributions,
        )

    async def _count_by(self, column) -> dict[str, int]:
        result = await self.db.execute(
            select(column, func.count()).group_by(column)
        )
        counts: dict[str, int] = {}
        for value, count in result.all():
            key = value or ""
            counts[key] = counts.get(key, 0) + int(count)
        return counts
