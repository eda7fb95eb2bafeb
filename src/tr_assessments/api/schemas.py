"""Pydantic request/response schemas for the assessment results API.

All models serialise with camelCase keys, matching the results document
stored on the assessment. Optional result sections (cciResult,
currentCeiling, trend) are left unset when absent so that routes declared
with ``response_model_exclude_unset=True`` omit them entirely.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting and emitting camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Computed results
# ---------------------------------------------------------------------------


class ResponseRateSchema(CamelModel):
    invited: int
    completed: int
    rate: int


class CompetencyScoreSchema(CamelModel):
    """Aggregated ratings for one competency."""

    competency_id: str
    competency_name: str
    scores: dict[str, float]
    overall_average: float
    others_average: float
    self_score: float | None = None
    gap: float | None = None
    response_distribution: dict[str, int]
    rater_agreement: float = Field(..., ge=0.0, le=1.0)
    others_response_count: int


class ItemScoreSchema(CompetencyScoreSchema):
    """Aggregated ratings for one question."""

    question_id: str
    question_text: str


class GapEntrySchema(CamelModel):
    competency_id: str
    competency_name: str
    self_score: float
    others_average: float
    gap: float
    classification: str = Field(..., description="blind_spot | hidden_strength | aligned")
    interpretation: str


class RankedItemSchema(CamelModel):
    competency_id: str
    competency_name: str
    question_id: str
    question_text: str
    overall_average: float
    self_score: float | None = None
    gap: float | None = None


class CommentSchema(CamelModel):
    competency_id: str
    competency_name: str
    question_id: str
    rater_type: str
    comment: str
    rater_id: str | None = None


class JohariWindowSchema(CamelModel):
    open_area: list[str]
    blind_spot: list[str]
    hidden_area: list[str]
    unknown_area: list[str]


class DataQualityFlagSchema(CamelModel):
    reason: str
    competency_id: str
    question_id: str
    rater_type: str


class DataQualitySchema(CamelModel):
    dropped_responses: int
    flags: list[DataQualityFlagSchema]


class CCIItemSchema(CamelModel):
    competency_id: str
    competency_name: str
    question_id: str
    question_text: str
    raw_score: float
    effective_score: float
    response_count: int


class CCIResultSchema(CamelModel):
    score: float = Field(..., ge=0.0, le=100.0)
    band: str = Field(..., description="Low | Moderate | High | Very High")
    items: list[CCIItemSchema]


class CurrentCeilingSchema(CamelModel):
    competency_id: str
    competency_name: str
    subtitle: str
    score: float
    narrative: str


class CompetencyChangeSchema(CamelModel):
    competency_id: str
    competency_name: str
    previous_score: float
    current_score: float
    change: float
    change_percent: float
    direction: str = Field(..., description="improved | declined | stable")


class TrendSchema(CamelModel):
    previous_assessment_id: str
    previous_completed_at: datetime
    competency_changes: list[CompetencyChangeSchema]
    overall_change: float
    overall_direction: str


class ComputedResultsResponse(CamelModel):
    """The complete ComputedAssessmentResults document."""

    computed_at: datetime
    overall_score: float
    response_rate_by_type: dict[str, ResponseRateSchema]
    competency_scores: list[CompetencyScoreSchema]
    item_scores: list[ItemScoreSchema]
    gap_analysis: list[GapEntrySchema]
    top_items: list[RankedItemSchema]
    bottom_items: list[RankedItemSchema]
    strengths: list[str]
    development_areas: list[str]
    comments: list[CommentSchema]
    johari_window: JohariWindowSchema
    data_quality: DataQualitySchema
    cci_result: CCIResultSchema | None = None
    current_ceiling: CurrentCeilingSchema | None = None
    trend: TrendSchema | None = None


class ResponseEventResponse(CamelModel):
    """Outcome of a rater-response event.

    Attributes:
        computed: False when the assessment was not open and the event was
            ignored.
        results: The freshly stored results when computed.
    """

    assessment_id: uuid.UUID
    computed: bool
    results: ComputedResultsResponse | None = None


# ---------------------------------------------------------------------------
# Benchmarks
# ---------------------------------------------------------------------------


class BenchmarkStatsSchema(CamelModel):
    mean: float
    median: float
    p25: float
    p75: float
    std_dev: float
    sample_size: int


class BenchmarkRefreshResponse(CamelModel):
    agency_id: uuid.UUID
    template_id: uuid.UUID
    competencies: dict[str, BenchmarkStatsSchema]


class BenchmarkPositionSchema(CamelModel):
    competency_id: str
    competency_name: str
    score: float
    percentile_rank: int = Field(..., ge=1, le=99)
    benchmark: BenchmarkStatsSchema


class BenchmarkComparisonResponse(CamelModel):
    assessment_id: uuid.UUID
    positions: list[BenchmarkPositionSchema]
