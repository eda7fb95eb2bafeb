"""Domain types for the assessment results computation engine.

Every pipeline stage consumes and produces these frozen dataclasses, so no
stage can mutate another stage's output. The JSON shape persisted on the
assessment record is produced from them by ``core/serialization.py``.

Pipeline:
    ResponseAggregator -> GapAnalyzer -> ItemRanker -> ConfidenceIndexCalculator
    -> JohariClassifier -> CeilingEstimator -> TrendComparator -> ResultsAssembler
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class RaterType(str, Enum):
    """Relationship of a feedback-giver to the assessment subject."""

    SELF = "self"
    MANAGER = "manager"
    PEER = "peer"
    DIRECT_REPORT = "direct_report"


ALL_RATER_TYPES: frozenset[RaterType] = frozenset(RaterType)


class AssessmentStatus(str, Enum):
    """Assessment lifecycle: draft -> open -> closed -> completed."""

    DRAFT = "draft"
    OPEN = "open"
    CLOSED = "closed"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawResponse:
    """One rating submitted by one rater for one question.

    Attributes:
        rater_type: Relationship of the rater to the subject.
        competency_id: Competency the question belongs to.
        question_id: Question identifier within the competency.
        rating: Integer rating on the template scale, or None for comment-only.
        rater_id: Rater identity; stripped from results when anonymized.
        comment: Optional free-text comment.
    """

    rater_type: RaterType
    competency_id: str
    question_id: str
    rating: int | None
    rater_id: str | None = None
    comment: str | None = None


@dataclass(frozen=True)
class TemplateQuestion:
    """A question within a template competency.

    Attributes:
        id: Question identifier, unique within its competency.
        text: Question text shown to raters.
        reverse_scored: Rating is inverted (max + min - rating) before scoring.
        is_cci: Question contributes to the confidence index.
    """

    id: str
    text: str
    reverse_scored: bool = False
    is_cci: bool = False


@dataclass(frozen=True)
class TemplateCompetency:
    """A named capability grouping one or more questions."""

    id: str
    name: str
    questions: tuple[TemplateQuestion, ...]
    subtitle: str = ""
    description: str = ""


@dataclass(frozen=True)
class TemplateConfig:
    """Competency tree, rating scale and flags supplied by the owning template.

    Attributes:
        competencies: Ordered competencies; order drives output ordering.
        scale_min: Lowest rating value.
        scale_max: Highest rating value.
        scale_labels: Display labels, one per scale value.
        anonymize_responses: Strip rater identity from computed results.
        rater_types: Rater types allowed to contribute ratings.
    """

    competencies: tuple[TemplateCompetency, ...]
    scale_min: int
    scale_max: int
    scale_labels: tuple[str, ...] = ()
    anonymize_responses: bool = True
    rater_types: frozenset[RaterType] = ALL_RATER_TYPES

    @property
    def scale_range(self) -> int:
        return self.scale_max - self.scale_min

    @property
    def midpoint(self) -> float:
        return (self.scale_min + self.scale_max) / 2

    def get_competency(self, competency_id: str) -> TemplateCompetency | None:
        for competency in self.competencies:
            if competency.id == competency_id:
                return competency
        return None

    def get_question(
        self, competency_id: str, question_id: str
    ) -> TemplateQuestion | None:
        competency = self.get_competency(competency_id)
        if competency is None:
            return None
        for question in competency.questions:
            if question.id == question_id:
                return question
        return None


@dataclass(frozen=True)
class ResponseRate:
    """Invited vs. completed raters for one rater type."""

    invited: int
    completed: int

    @property
    def rate(self) -> int:
        """Completion percentage rounded to the nearest integer (0 when none invited)."""
        if self.invited <= 0:
            return 0
        return round(self.completed / self.invited * 100)


@dataclass(frozen=True)
class PriorResult:
    """Competency scores from the subject's previous completed assessment.

    Attributes:
        assessment_id: Previous assessment identifier.
        completed_at: When the previous assessment completed.
        competency_averages: competency_id -> overallAverage.
        competency_names: competency_id -> name at the time of that assessment.
    """

    assessment_id: str
    completed_at: datetime
    competency_averages: dict[str, float]
    competency_names: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ComputationConfig:
    """Thresholds and list sizes used by the pipeline stages."""

    gap_threshold: float = 0.5
    trend_stable_threshold: float = 0.2
    ranked_item_count: int = 5
    strengths_count: int = 2
    development_areas_count: int = 2
    cci_band_thresholds: tuple[float, float, float] = (25.0, 50.0, 75.0)


# ---------------------------------------------------------------------------
# Stage outputs
# ---------------------------------------------------------------------------


class DataQualityReason(str, Enum):
    """Why a raw response was dropped before aggregation."""

    UNKNOWN_COMPETENCY = "unknown_competency"
    UNKNOWN_QUESTION = "unknown_question"
    RATER_TYPE_NOT_ALLOWED = "rater_type_not_allowed"
    RATING_OUT_OF_RANGE = "rating_out_of_range"


@dataclass(frozen=True)
class DataQualityFlag:
    """Non-fatal record of a dropped response. Never carries rater identity."""

    reason: DataQualityReason
    competency_id: str
    question_id: str
    rater_type: RaterType


@dataclass(frozen=True)
class ComputedCompetencyScore:
    """Aggregated ratings for one competency.

    Attributes:
        competency_id: Template competency id.
        competency_name: Template competency name.
        scores: rater type value -> average rating.
        overall_average: Mean of all non-self ratings (0.0 when none).
        self_score: Mean of self ratings, or None.
        gap: self_score - others_average whenever self_score is present, else None.
        response_distribution: Scale value -> count of ratings (self included).
        rater_agreement: 1 - normalised dispersion of non-self ratings, in [0, 1].
        others_response_count: Number of non-self ratings.
    """

    competency_id: str
    competency_name: str
    scores: dict[str, float]
    overall_average: float
    self_score: float | None
    gap: float | None
    response_distribution: dict[int, int]
    rater_agreement: float
    others_response_count: int

    @property
    def others_average(self) -> float:
        return self.overall_average

    @property
    def has_others(self) -> bool:
        return self.others_response_count > 0


@dataclass(frozen=True)
class ComputedItemScore:
    """Aggregated ratings for one question; same statistics as a competency."""

    competency_id: str
    competency_name: str
    question_id: str
    question_text: str
    scores: dict[str, float]
    overall_average: float
    self_score: float | None
    gap: float | None
    response_distribution: dict[int, int]
    rater_agreement: float
    others_response_count: int

    @property
    def others_average(self) -> float:
        return self.overall_average

    @property
    def has_others(self) -> bool:
        return self.others_response_count > 0


class GapClassification(str, Enum):
    """Three-way self-vs-others classification of a competency."""

    BLIND_SPOT = "blind_spot"
    HIDDEN_STRENGTH = "hidden_strength"
    ALIGNED = "aligned"

    def interpret(self, competency_name: str) -> str:
        """Render the templated interpretation sentence for a competency."""
        return _GAP_INTERPRETATIONS[self].format(name=competency_name)


_GAP_INTERPRETATIONS: dict[GapClassification, str] = {
    GapClassification.BLIND_SPOT: (
        "You rated yourself higher than others on {name}. This may indicate an "
        "area where self-perception differs from how others experience you; "
        "consider seeking explicit feedback here."
    ),
    GapClassification.HIDDEN_STRENGTH: (
        "Others rated you higher than you rated yourself on {name}. This is a "
        "strength others see in you that you may not fully recognise."
    ),
    GapClassification.ALIGNED: (
        "Your self-assessment and others' ratings on {name} are well aligned."
    ),
}


@dataclass(frozen=True)
class GapEntry:
    """Self-vs-others comparison for one competency."""

    competency_id: str
    competency_name: str
    self_score: float
    others_average: float
    gap: float
    classification: GapClassification
    interpretation: str


@dataclass(frozen=True)
class RankedItem:
    """A question in the top or bottom list, with its competency context."""

    competency_id: str
    competency_name: str
    question_id: str
    question_text: str
    overall_average: float
    self_score: float | None
    gap: float | None


class CCIBand(str, Enum):
    """Qualitative band of the confidence index."""

    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    VERY_HIGH = "Very High"


@dataclass(frozen=True)
class CCIItem:
    """One confidence-index question with its raw and reverse-scored means."""

    competency_id: str
    competency_name: str
    question_id: str
    question_text: str
    raw_score: float
    effective_score: float
    response_count: int


@dataclass(frozen=True)
class CCIResult:
    """Confidence index on a 0-100 scale with its band and contributing items."""

    score: float
    band: CCIBand
    items: tuple[CCIItem, ...]


class JohariQuadrant(str, Enum):
    """Four awareness quadrants; values are the persisted keys."""

    OPEN = "openArea"
    BLIND_SPOT = "blindSpot"
    HIDDEN = "hiddenArea"
    UNKNOWN = "unknownArea"

    @property
    def description(self) -> str:
        return _JOHARI_DESCRIPTIONS[self]


_JOHARI_DESCRIPTIONS: dict[JohariQuadrant, str] = {
    JohariQuadrant.OPEN: "Known to self and recognised by others as a strength.",
    JohariQuadrant.BLIND_SPOT: "Rated higher by self than by others.",
    JohariQuadrant.HIDDEN: "Rated higher by others than by self.",
    JohariQuadrant.UNKNOWN: "Not yet evident to self or others, or not enough data.",
}


@dataclass(frozen=True)
class JohariWindow:
    """Competency names partitioned into the four quadrants."""

    open_area: tuple[str, ...] = ()
    blind_spot: tuple[str, ...] = ()
    hidden_area: tuple[str, ...] = ()
    unknown_area: tuple[str, ...] = ()

    def quadrant(self, quadrant: JohariQuadrant) -> tuple[str, ...]:
        return {
            JohariQuadrant.OPEN: self.open_area,
            JohariQuadrant.BLIND_SPOT: self.blind_spot,
            JohariQuadrant.HIDDEN: self.hidden_area,
            JohariQuadrant.UNKNOWN: self.unknown_area,
        }[quadrant]


@dataclass(frozen=True)
class CurrentCeiling:
    """The single lowest-scoring competency, used as a development focus."""

    competency_id: str
    competency_name: str
    subtitle: str
    score: float
    narrative: str


class TrendDirection(str, Enum):
    IMPROVED = "improved"
    DECLINED = "declined"
    STABLE = "stable"


@dataclass(frozen=True)
class CompetencyChange:
    """Score movement of one competency between two assessments."""

    competency_id: str
    competency_name: str
    previous_score: float
    current_score: float
    change: float
    change_percent: float
    direction: TrendDirection


@dataclass(frozen=True)
class TrendComparison:
    """Comparison with the subject's previous completed assessment."""

    previous_assessment_id: str
    previous_completed_at: datetime
    competency_changes: tuple[CompetencyChange, ...]
    overall_change: float
    overall_direction: TrendDirection


@dataclass(frozen=True)
class CommentEntry:
    """Free-text comment tagged by competency and rater type.

    ``rater_id`` is removed by the anonymization projection.
    """

    competency_id: str
    competency_name: str
    question_id: str
    rater_type: RaterType
    comment: str
    rater_id: str | None = None


@dataclass(frozen=True)
class ComputedAssessmentResults:
    """Root result aggregate, replaced wholesale on every recomputation."""

    computed_at: datetime
    overall_score: float
    response_rate_by_type: dict[str, ResponseRate]
    competency_scores: tuple[ComputedCompetencyScore, ...]
    item_scores: tuple[ComputedItemScore, ...]
    gap_analysis: tuple[GapEntry, ...]
    top_items: tuple[RankedItem, ...]
    bottom_items: tuple[RankedItem, ...]
    strengths: tuple[str, ...]
    development_areas: tuple[str, ...]
    comments: tuple[CommentEntry, ...]
    johari_window: JohariWindow
    data_quality_flags: tuple[DataQualityFlag, ...] = ()
    cci_result: CCIResult | None = None
    current_ceiling: CurrentCeiling | None = None
    trend: TrendComparison | None = None
