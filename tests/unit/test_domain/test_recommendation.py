"""
Unit tests for the Recommendation domain entity.
"""

import pytest
from datetime import datetime
from uuid import UUID, uuid4

from domain.entities.recommendation import (
    CONTACTED, SHORTLISTED, Recommendation, validate_feedback_score
)
from domain.exceptions import FeedbackValidationError


def make_recommendation(**kwargs) -> Recommendation:
    defaults = dict(
        user_id=uuid4(),
        property_id=uuid4(),
        score=0.42,
        factors={"popularity": 0.42},
        reason="Recommended based on your browsing history.",
        model_version="v1.0",
    )
    defaults.update(kwargs)
    return Recommendation.create(**defaults)


class TestRecommendation:
    """Test cases for Recommendation entity."""

    def test_create_sets_identity_and_day_bucket(self):
        created_at = datetime(2026, 3, 14, 23, 59, 59)

        rec = make_recommendation(created_at=created_at)

        assert isinstance(rec.id, UUID)
        assert rec.created_at == created_at
        assert rec.day_bucket == created_at.date()
        assert rec.shown_at is None
        assert rec.clicked is False
        assert rec.feedback_score is None
        assert rec.context == {}

    @pytest.mark.parametrize("score", [-0.01, 1.01])
    def test_create_rejects_out_of_range_score(self, score):
        with pytest.raises(ValueError):
            make_recommendation(score=score)

    def test_factors_are_copied(self):
        factors = {"popularity": 0.3}

        rec = make_recommendation(factors=factors)
        factors["popularity"] = 0.9

        assert rec.factors == {"popularity": 0.3}

    def test_mark_shown_and_clicked(self):
        rec = make_recommendation()

        rec.mark_shown()
        rec.mark_clicked()

        assert isinstance(rec.shown_at, datetime)
        assert rec.clicked is True
        assert isinstance(rec.clicked_at, datetime)

    def test_mark_engaged(self):
        rec = make_recommendation()

        rec.mark_engaged(CONTACTED)
        rec.mark_engaged(SHORTLISTED)

        assert rec.contacted and rec.contacted_at is not None
        assert rec.shortlisted and rec.shortlisted_at is not None

    def test_mark_engaged_rejects_unknown_kind(self):
        with pytest.raises(ValueError):
            make_recommendation().mark_engaged("called")

    def test_submit_feedback(self):
        rec = make_recommendation()

        rec.submit_feedback(4, is_relevant=True)

        assert rec.feedback_score == 4
        assert rec.is_relevant is True

    def test_submit_feedback_rejects_non_boolean_relevance(self):
        with pytest.raises(FeedbackValidationError):
            make_recommendation().submit_feedback(3, is_relevant="yes")


class TestValidateFeedbackScore:

    @pytest.mark.parametrize("score", [1, 3, 5])
    def test_accepts_scores_in_range(self, score):
        validate_feedback_score(score)

    @pytest.mark.parametrize("score", [0, 6, -1, 2.5, "4", None, True])
    def test_rejects_invalid_scores(self, score):
        with pytest.raises(FeedbackValidationError):
            validate_feedback_score(score)

    def test_feedback_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_feedback_score(9)
