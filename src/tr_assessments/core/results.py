"""ResultsAssembler: compose every pipeline stage into one results aggregate.

``assemble_results`` is a pure function of its arguments. The clock is
injected through ``computed_at`` so that two runs over the same inputs differ
in nothing else. Persisting the aggregate is the caller's job (see
``ResultsComputationService``).
"""

from collections.abc import Mapping, Sequence
from datetime import datetime

from tr_assessments.core.aggregation import aggregate_responses
from tr_assessments.core.anonymization import anonymize_results
from tr_assessments.core.ceiling import estimate_ceiling
from tr_assessments.core.confidence_index import compute_confidence_index
from tr_assessments.core.domain import (
    CommentEntry,
    ComputationConfig,
    ComputedAssessmentResults,
    ComputedCompetencyScore,
    PriorResult,
    RaterType,
    RawResponse,
    ResponseRate,
    TemplateConfig,
)
from tr_assessments.core.gap_analysis import analyze_gaps
from tr_assessments.core.johari import classify_johari
from tr_assessments.core.ranking import rank_items
from tr_assessments.core.stats import mean, round2
from tr_assessments.core.trend import compare_trend
from tr_assessments.observability import get_logger

logger = get_logger(__name__)


def assemble_results(
    responses: Sequence[RawResponse],
    template: TemplateConfig,
    response_rates: Mapping[str, ResponseRate],
    computed_at: datetime,
    prior: PriorResult | None = None,
    config: ComputationConfig | None = None,
    anonymize: bool | None = None,
) -> ComputedAssessmentResults:
    """Run the full pipeline over a complete response snapshot.

    Args:
        responses: Every submitted response for the assessment.
        template: Validated template configuration.
        response_rates: rater type value -> invited/completed counts.
        computed_at: Timestamp stamped on the result.
        prior: The subject's previous completed result, if any.
        config: Thresholds and list sizes; defaults when omitted.
        anonymize: Force the identity projection on or off. When None, the
            template's anonymizeResponses flag decides.

    Returns:
        The complete ComputedAssessmentResults.
    """
    config = config or ComputationConfig()
    if anonymize is None:
        anonymize = template.anonymize_responses

    aggregated = aggregate_responses(list(responses), template)
    competency_scores = list(aggregated.competency_scores.values())
    item_scores = list(aggregated.item_scores.values())

    gap_entries = analyze_gaps(competency_scores, config.gap_threshold)
    top_items, bottom_items = rank_items(item_scores, config.ranked_item_count)
    cci_result = compute_confidence_index(
        aggregated.accepted, template, config.cci_band_thresholds
    )
    johari_window = classify_johari(gap_entries, aggregated.competency_scores, template)
    current_ceiling = estimate_ceiling(competency_scores, item_scores, template)
    trend = compare_trend(competency_scores, prior, config.trend_stable_threshold)

    rated = [score for score in competency_scores if score.has_others]
    strengths, development_areas = _strengths_and_development_areas(
        rated, config.strengths_count, config.development_areas_count
    )

    results = ComputedAssessmentResults(
        computed_at=computed_at,
        overall_score=round2(mean([score.overall_average for score in rated])),
        response_rate_by_type=_response_rates(template, response_rates),
        competency_scores=tuple(competency_scores),
        item_scores=tuple(item_scores),
        gap_analysis=tuple(gap_entries),
        top_items=tuple(top_items),
        bottom_items=tuple(bottom_items),
        strengths=strengths,
        development_areas=development_areas,
        comments=_collect_comments(aggregated.accepted, template),
        johari_window=johari_window,
        data_quality_flags=aggregated.data_quality_flags,
        cci_result=cci_result,
        current_ceiling=current_ceiling,
        trend=trend,
    )

    if anonymize:
        results = anonymize_results(results)

    logger.debug(
        "Results assembled",
        overall_score=results.overall_score,
        gap_entry_count=len(gap_entries),
        has_cci=cci_result is not None,
        has_ceiling=current_ceiling is not None,
        has_trend=trend is not None,
        anonymized=anonymize,
    )
    return results


def _strengths_and_development_areas(
    rated: list[ComputedCompetencyScore],
    strengths_count: int,
    development_areas_count: int,
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    # sorted() is stable, so ties keep template order in both lists.
    highest_first = sorted(rated, key=lambda score: -score.overall_average)
    top = highest_first[: max(strengths_count, 0)]
    # A competency taken as a strength is never also a development area.
    taken = {score.competency_id for score in top}
    remaining = [score for score in rated if score.competency_id not in taken]
    lowest_first = sorted(remaining, key=lambda score: score.overall_average)
    strengths = tuple(s.competency_name for s in top)
    development_areas = tuple(
        s.competency_name for s in lowest_first[: max(development_areas_count, 0)]
    )
    return strengths, development_areas


def _response_rates(
    template: TemplateConfig,
    response_rates: Mapping[str, ResponseRate],
) -> dict[str, ResponseRate]:
    return {
        rater_type.value: response_rates.get(rater_type.value, ResponseRate(invited=0, completed=0))
        for rater_type in RaterType
        if rater_type in template.rater_types
    }


def _collect_comments(
    responses: Sequence[RawResponse],
    template: TemplateConfig,
) -> tuple[CommentEntry, ...]:
    comments: list[CommentEntry] = []
    for response in responses:
        text = (response.comment or "").strip()
        if not text:
            continue
        competency = template.get_competency(response.competency_id)
        comments.append(
            CommentEntry(
                competency_id=response.competency_id,
                competency_name=competency.name if competency else response.competency_id,
                question_id=response.question_id,
                rater_type=response.rater_type,
                comment=text,
                rater_id=response.rater_id,
            )
        )
    return tuple(comments)
