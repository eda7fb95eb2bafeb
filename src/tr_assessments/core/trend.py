"""TrendComparator: per-competency deltas against the prior completed assessment."""

from collections.abc import Iterable

from tr_assessments.core.domain import (
    CompetencyChange,
    ComputedCompetencyScore,
    PriorResult,
    TrendComparison,
    TrendDirection,
)
from tr_assessments.core.stats import mean, round2

DEFAULT_STABLE_THRESHOLD: float = 0.2


def classify_change(change: float, threshold: float = DEFAULT_STABLE_THRESHOLD) -> TrendDirection:
    """Changes within +/- threshold (inclusive) are stable."""
    if change > threshold:
        return TrendDirection.IMPROVED
    if change < -threshold:
        return TrendDirection.DECLINED
    return TrendDirection.STABLE


def change_percent(previous: float, change: float) -> float:
    """Relative change in percent; 0.0 when the previous score is 0."""
    if previous == 0:
        return 0.0
    return round2(change / previous * 100)


def compare_trend(
    competency_scores: Iterable[ComputedCompetencyScore],
    prior: PriorResult | None,
    threshold: float = DEFAULT_STABLE_THRESHOLD,
) -> TrendComparison | None:
    """Diff current competency averages against a prior result.

    Only competencies present in both assessments are compared; the current
    side must have non-self ratings. Competencies missing on either side are
    left out rather than synthesised.

    Args:
        competency_scores: Current aggregated competency scores.
        prior: The subject's previous completed result, if any.
        threshold: Stable tolerance in rating points.

    Returns:
        TrendComparison, or None when no prior result is supplied.
    """
    if prior is None:
        return None

    changes: list[CompetencyChange] = []
    for score in competency_scores:
        previous = prior.competency_averages.get(score.competency_id)
        if previous is None or not score.has_others:
            continue
        change = round2(score.overall_average - previous)
        changes.append(
            CompetencyChange(
                competency_id=score.competency_id,
                competency_name=score.competency_name,
                previous_score=previous,
                current_score=score.overall_average,
                change=change,
                change_percent=change_percent(previous, change),
                direction=classify_change(change, threshold),
            )
        )

    overall_change = round2(
        mean([c.current_score for c in changes]) - mean([c.previous_score for c in changes])
    )

    return TrendComparison(
        previous_assessment_id=prior.assessment_id,
        previous_completed_at=prior.completed_at,
        competency_changes=tuple(changes),
        overall_change=overall_change,
        overall_direction=classify_change(overall_change, threshold),
    )
