"""
Tests for SurveyService - validation, storage, deletion and metrics.
"""
import pytest

from survey_backend.schemas.survey import SurveySubmission
from survey_backend.services.survey_service import SurveyService, SurveyValidationError


def _submission(**overrides) -> SurveySubmission:
    data = {
        "role": "Developer",
        "cmsUsage": "weekly",
        "betaInterest": False,
        "features": {
            "offline": 1,
            "collaboration": 2,
            "assetManagement": 3,
            "pdfHandling": 4,
            "versionControl": 5,
            "workflows": 6,
        },
    }
    data.update(overrides)
    return SurveySubmission.model_validate(data)


class TestValidation:
    """Field rules applied before anything is stored."""

    def test_empty_role_is_rejected(self):
        with pytest.raises(SurveyValidationError, match="role is required"):
            SurveyService.validate(_submission(role=""))

    def test_empty_role_is_rejected_even_with_valid_email(self):
        with pytest.raises(SurveyValidationError, match="role is required"):
            SurveyService.validate(_submission(role="", betaInterest=True, email="a@b.com"))

    def test_missing_cms_usage_is_rejected(self):
        with pytest.raises(SurveyValidationError, match="CMS usage is required"):
            SurveyService.validate(_submission(cmsUsage=""))

    @pytest.mark.parametrize(
        "email",
        [None, "", "not-an-email", "a@b", "a@b.c", "a@b.c0m", "@example.com", "a b@example.com",
         "a@b.com\n", " a@b.com"],
    )
    def test_beta_interest_requires_valid_email(self, email):
        with pytest.raises(SurveyValidationError, match="valid email is required"):
            SurveyService.validate(_submission(betaInterest=True, email=email))

    @pytest.mark.parametrize("email", ["a@b.com", "first.last+tag@sub.example.org", "x_y%z@host.io"])
    def test_beta_interest_accepts_well_formed_email(self, email):
        SurveyService.validate(_submission(betaInterest=True, email=email))

    @pytest.mark.parametrize("email", [None, "", "garbage", "a@b"])
    def test_email_is_not_checked_without_beta_interest(self, email):
        SurveyService.validate(_submission(betaInterest=False, email=email))


class TestStorage:
    """Round trips through the database."""

    @pytest.mark.asyncio
    async def test_submit_assigns_id_and_timestamp(self, db_session):
        record = await SurveyService(db_session).submit(_submission())

        assert record.id
        assert record.created_at is not None
        assert record.role == "Developer"

    @pytest.mark.asyncio
    async def test_listed_record_matches_submission(self, db_session):
        service = SurveyService(db_session)
        submission = _submission(
            otherRole="Agency owner",
            betaInterest=True,
            email="owner@agency.dev",
            platforms="WordPress, Astro",
            versionControlChallenges="Merge conflicts in content",
        )
        stored = await service.submit(submission)

        records = await service.list_responses()

        assert len(records) == 1
        listed = records[0]
        assert listed.id == stored.id
        assert listed.model_dump(exclude={"id", "created_at"}) == submission.model_dump()

    @pytest.mark.asyncio
    async def test_invalid_submission_is_not_stored(self, db_session):
        service = SurveyService(db_session)
        with pytest.raises(SurveyValidationError):
            await service.submit(_submission(role=""))

        assert await service.list_responses() == []

    @pytest.mark.asyncio
    async def test_list_preserves_storage_order(self, db_session):
        service = SurveyService(db_session)
        first = await service.submit(_submission(role="First"))
        second = await service.submit(_submission(role="Second"))

        records = await service.list_responses()

        assert {record.id for record in records} == {first.id, second.id}
        assert len(records) == 2

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, db_session):
        service = SurveyService(db_session)
        record = await service.submit(_submission())

        deleted = await service.delete_response(record.id)

        assert deleted == 1
        assert await service.list_responses() == []

    @pytest.mark.asyncio
    async def test_delete_unknown_id_is_not_an_error(self, db_session):
        service = SurveyService(db_session)
        assert await service.delete_response("does-not-exist") == 0


class TestMetrics:
    """Aggregate summary."""

    @pytest.mark.asyncio
    async def test_empty_dataset(self, db_session):
        metrics = await SurveyService(db_session).get_metrics()

        assert metrics.total_responses == 0
        assert metrics.beta_interest_count == 0
        assert metrics.average_feature_scores == {
            "offline": 0.0,
            "collaboration": 0.0,
            "assetManagement": 0.0,
            "pdfHandling": 0.0,
            "versionControl": 0.0,
            "workflows": 0.0,
        }
        assert metrics.usage_frequency_stats == {}
        assert metrics.team_size_distribution == {}
        assert metrics.pricing_preferences == {}

    @pytest.mark.asyncio
    async def test_counts_averages_and_distributions(self, db_session):
        service = SurveyService(db_session)
        await service.submit(_submission(
            betaInterest=True, email="a@b.com", usageFrequency="Daily", teamSize="1",
            pricingModel="Subscription",
            features={"offline": 1, "collaboration": 1, "assetManagement": 1,
                      "pdfHandling": 1, "versionControl": 1, "workflows": 1},
        ))
        await service.submit(_submission(
            usageFrequency="Daily", teamSize="2-5", pricingModel="One-time",
            features={"offline": 2, "collaboration": 2, "assetManagement": 2,
                      "pdfHandling": 2, "versionControl": 2, "workflows": 2},
        ))
        await service.submit(_submission(
            usageFrequency="Weekly",
            features={"offline": 2, "collaboration": 5, "assetManagement": 0,
                      "pdfHandling": 3, "versionControl": 4, "workflows": 1},
        ))

        metrics = await service.get_metrics()

        assert metrics.total_responses == 3
        assert metrics.beta_interest_count == 1
        assert metrics.average_feature_scores["offline"] == 1.67
        assert metrics.average_feature_scores["collaboration"] == 2.67
        assert metrics.average_feature_scores["assetManagement"] == 1.0
        assert metrics.average_feature_scores["pdfHandling"] == 2.0
        assert metrics.average_feature_scores["versionControl"] == 2.33
        assert metrics.average_feature_scores["workflows"] == 1.33
        assert metrics.usage_frequency_stats == {"Daily": 2, "Weekly": 1}
        # Unanswered questions are grouped under the empty key
        assert metrics.team_size_distribution == {"1": 1, "2-5": 1, "": 1}
        assert metrics.pricing_preferences == {"Subscription": 1, "One-time": 1, "": 1}
