from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from datetime import date, datetime
from uuid import UUID, uuid4

from ..exceptions import FeedbackValidationError
from .property import Property


MIN_FEEDBACK_SCORE = 1
MAX_FEEDBACK_SCORE = 5

CONTACTED = "contacted"
SHORTLISTED = "shortlisted"
ENGAGEMENT_KINDS = (CONTACTED, SHORTLISTED)


@dataclass
class Recommendation:
    """
    A persisted, scored recommendation of one property to one user.

    Rows are append-only history. Only the engagement and feedback fields
    change after creation, and at most one row exists per user, property
    and ``day_bucket``.
    """
    id: UUID
    user_id: UUID
    property_id: UUID
    score: float
    factors: Dict[str, float]
    reason: str
    model_version: str
    context: Dict[str, Any]
    created_at: datetime
    day_bucket: date
    shown_at: Optional[datetime] = None
    clicked: bool = False
    clicked_at: Optional[datetime] = None
    contacted: bool = False
    contacted_at: Optional[datetime] = None
    shortlisted: bool = False
    shortlisted_at: Optional[datetime] = None
    feedback_score: Optional[int] = None
    is_relevant: Optional[bool] = None

    @classmethod
    def create(cls, user_id: UUID, property_id: UUID, score: float,
               factors: Dict[str, float], reason: str, model_version: str,
               context: Dict[str, Any] = None, created_at: datetime = None):
        if not 0.0 <= score <= 1.0:
            raise ValueError(f"Recommendation score must be within [0, 1], got {score}")
        created_at = created_at or datetime.utcnow()
        return cls(
            id=uuid4(),
            user_id=user_id,
            property_id=property_id,
            score=score,
            factors=dict(factors),
            reason=reason,
            model_version=model_version,
            context=context or {},
            created_at=created_at,
            day_bucket=created_at.date()
        )

    def mark_shown(self, at: datetime = None):
        self.shown_at = at or datetime.utcnow()

    def mark_clicked(self, at: datetime = None):
        self.clicked = True
        self.clicked_at = at or datetime.utcnow()

    def mark_engaged(self, kind: str, at: datetime = None):
        at = at or datetime.utcnow()
        if kind == CONTACTED:
            self.contacted = True
            self.contacted_at = at
        elif kind == SHORTLISTED:
            self.shortlisted = True
            self.shortlisted_at = at
        else:
            raise ValueError(f"Unknown engagement kind: {kind}")

    def submit_feedback(self, feedback_score: int, is_relevant: Optional[bool] = None):
        validate_feedback_score(feedback_score)
        if is_relevant is not None and not isinstance(is_relevant, bool):
            raise FeedbackValidationError("is_relevant must be a boolean")
        self.feedback_score = feedback_score
        self.is_relevant = is_relevant


def validate_feedback_score(feedback_score) -> None:
    # bool is an int subclass; True must not pass as a score of 1
    if isinstance(feedback_score, bool) or not isinstance(feedback_score, int):
        raise FeedbackValidationError("feedback_score must be an integer")
    if not MIN_FEEDBACK_SCORE <= feedback_score <= MAX_FEEDBACK_SCORE:
        raise FeedbackValidationError(
            f"feedback_score must be between {MIN_FEEDBACK_SCORE} and {MAX_FEEDBACK_SCORE}, "
            f"got {feedback_score}"
        )


@dataclass
class RecommendationItem:
    recommendation: Recommendation
    property: Property


@dataclass
class RecommendationBatch:
    items: List[RecommendationItem]
    cached: bool

    def __len__(self) -> int:
        return len(self.items)
