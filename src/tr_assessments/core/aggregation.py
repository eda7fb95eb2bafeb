"""ResponseAggregator: group raw ratings by competency and by question.

For every competency and every question of the template this stage computes
per-rater-type averages, the others' average (self excluded), the self score,
the rating histogram (self included) and a rater-agreement score.

Ratings on reverse-scored questions are inverted (scale_max + scale_min - rating)
before any statistic is computed, so a higher value always means a better
result. Responses that do not fit the template are dropped and reported as
DataQualityFlag entries; they never abort the run.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass

from tr_assessments.core.domain import (
    ComputedCompetencyScore,
    ComputedItemScore,
    DataQualityFlag,
    DataQualityReason,
    RaterType,
    RawResponse,
    TemplateCompetency,
    TemplateConfig,
    TemplateQuestion,
)
from tr_assessments.core.stats import clamp, mean, round2, sample_std_dev
from tr_assessments.observability import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AggregatedResponses:
    """Output of the aggregation stage.

    Attributes:
        competency_scores: competency_id -> score, in template order.
        item_scores: (competency_id, question_id) -> score, in template order.
        accepted: Responses that passed validation, in input order.
        data_quality_flags: One flag per dropped response.
    """

    competency_scores: dict[str, ComputedCompetencyScore]
    item_scores: dict[tuple[str, str], ComputedItemScore]
    accepted: tuple[RawResponse, ...]
    data_quality_flags: tuple[DataQualityFlag, ...]


class _RatingBucket:
    """Collects effective ratings for one competency or one question."""

    __slots__ = ("by_type", "others_rater_ids", "anonymous_others")

    def __init__(self) -> None:
        self.by_type: dict[RaterType, list[int]] = defaultdict(list)
        self.others_rater_ids: set[str] = set()
        self.anonymous_others = 0

    def add(self, rater_type: RaterType, rating: int, rater_id: str | None) -> None:
        self.by_type[rater_type].append(rating)
        if rater_type is RaterType.SELF:
            return
        if rater_id is None:
            self.anonymous_others += 1
        else:
            self.others_rater_ids.add(rater_id)

    @property
    def others(self) -> list[int]:
        return [
            rating
            for rater_type, ratings in self.by_type.items()
            if rater_type is not RaterType.SELF
            for rating in ratings
        ]

    def single_other_rater(self) -> bool:
        others = self.others
        if len(others) <= 1:
            return True
        return self.anonymous_others == 0 and len(self.others_rater_ids) == 1

    def summarise(self, template: TemplateConfig) -> dict[str, object]:
        """Compute the shared statistics of a competency or item score."""
        others = self.others
        self_ratings = self.by_type.get(RaterType.SELF, [])

        overall_average = round2(mean(others))
        self_score = round2(mean(self_ratings)) if self_ratings else None
        gap = round2(self_score - overall_average) if self_score is not None else None

        distribution = {
            value: 0 for value in range(template.scale_min, template.scale_max + 1)
        }
        for ratings in self.by_type.values():
            for rating in ratings:
                distribution[rating] += 1

        return {
            "scores": {
                rater_type.value: round2(mean(ratings))
                for rater_type, ratings in sorted(
                    self.by_type.items(), key=lambda pair: pair[0].value
                )
                if ratings
            },
            "overall_average": overall_average,
            "self_score": self_score,
            "gap": gap,
            "response_distribution": distribution,
            "rater_agreement": self._agreement(others, template.scale_range),
            "others_response_count": len(others),
        }

    def _agreement(self, others: list[int], scale_range: int) -> float:
        if not others:
            return 0.0
        if self.single_other_rater():
            return 1.0
        dispersion = sample_std_dev(others) / scale_range
        return round2(clamp(1.0 - dispersion))


def effective_rating(question: TemplateQuestion, rating: int, template: TemplateConfig) -> int:
    """Apply the reverse-scoring transform when the question is flagged."""
    if question.reverse_scored:
        return template.scale_max + template.scale_min - rating
    return rating


def aggregate_responses(
    responses: list[RawResponse],
    template: TemplateConfig,
) -> AggregatedResponses:
    """Aggregate a complete response set against its template.

    Args:
        responses: Every submitted response for the assessment.
        template: Validated template configuration.

    Returns:
        AggregatedResponses with one competency score per template competency
        and one item score per template question, whether or not they
        received any ratings.
    """
    index: dict[tuple[str, str], tuple[TemplateCompetency, TemplateQuestion]] = {
        (competency.id, question.id): (competency, question)
        for competency in template.competencies
        for question in competency.questions
    }
    competency_ids = {competency.id for competency in template.competencies}

    competency_buckets: dict[str, _RatingBucket] = defaultdict(_RatingBucket)
    item_buckets: dict[tuple[str, str], _RatingBucket] = defaultdict(_RatingBucket)
    accepted: list[RawResponse] = []
    flags: list[DataQualityFlag] = []

    for response in responses:
        reason = _rejection_reason(response, template, index, competency_ids)
        if reason is not None:
            flags.append(
                DataQualityFlag(
                    reason=reason,
                    competency_id=response.competency_id,
                    question_id=response.question_id,
                    rater_type=response.rater_type,
                )
            )
            continue

        accepted.append(response)
        if response.rating is None:
            continue

        key = (response.competency_id, response.question_id)
        _, question = index[key]
        rating = effective_rating(question, response.rating, template)
        competency_buckets[response.competency_id].add(
            response.rater_type, rating, response.rater_id
        )
        item_buckets[key].add(response.rater_type, rating, response.rater_id)

    if flags:
        logger.warning(
            "Responses dropped during aggregation",
            dropped_count=len(flags),
            reasons=dict(Counter(flag.reason.value for flag in flags)),
        )

    competency_scores: dict[str, ComputedCompetencyScore] = {}
    item_scores: dict[tuple[str, str], ComputedItemScore] = {}

    for competency in template.competencies:
        summary = competency_buckets[competency.id].summarise(template)
        competency_scores[competency.id] = ComputedCompetencyScore(
            competency_id=competency.id,
            competency_name=competency.name,
            **summary,  # type: ignore[arg-type]
        )
        for question in competency.questions:
            item_summary = item_buckets[(competency.id, question.id)].summarise(template)
            item_scores[(competency.id, question.id)] = ComputedItemScore(
                competency_id=competency.id,
                competency_name=competency.name,
                question_id=question.id,
                question_text=question.text,
                **item_summary,  # type: ignore[arg-type]
            )

    logger.debug(
        "Responses aggregated",
        response_count=len(responses),
        accepted_count=len(accepted),
        competency_count=len(competency_scores),
        item_count=len(item_scores),
    )

    return AggregatedResponses(
        competency_scores=competency_scores,
        item_scores=item_scores,
        accepted=tuple(accepted),
        data_quality_flags=tuple(flags),
    )


def _rejection_reason(
    response: RawResponse,
    template: TemplateConfig,
    index: dict[tuple[str, str], tuple[TemplateCompetency, TemplateQuestion]],
    competency_ids: set[str],
) -> DataQualityReason | None:
    if response.competency_id not in competency_ids:
        return DataQualityReason.UNKNOWN_COMPETENCY
    if (response.competency_id, response.question_id) not in index:
        return DataQualityReason.UNKNOWN_QUESTION
    if response.rater_type not in template.rater_types:
        return DataQualityReason.RATER_TYPE_NOT_ALLOWED
    if response.rating is not None and not (
        template.scale_min <= response.rating <= template.scale_max
    ):
        return DataQualityReason.RATING_OUT_OF_RANGE
    return None
