"""GapAnalyzer: self-vs-others classification per competency.

Sign convention: gap = self_score - others_average, so a positive gap means
the subject rates themselves higher than others do.
"""

from collections.abc import Iterable

from tr_assessments.core.domain import (
    ComputedCompetencyScore,
    GapClassification,
    GapEntry,
)
from tr_assessments.core.stats import round2

DEFAULT_GAP_THRESHOLD: float = 0.5


def classify_gap(gap: float, threshold: float = DEFAULT_GAP_THRESHOLD) -> GapClassification:
    """Map a gap value to its classification.

    Args:
        gap: self_score - others_average.
        threshold: Absolute gap beyond which the difference is material.

    Returns:
        BLIND_SPOT above +threshold, HIDDEN_STRENGTH below -threshold,
        otherwise ALIGNED. A gap exactly on the threshold is ALIGNED.
    """
    if gap > threshold:
        return GapClassification.BLIND_SPOT
    if gap < -threshold:
        return GapClassification.HIDDEN_STRENGTH
    return GapClassification.ALIGNED


def analyze_gaps(
    competency_scores: Iterable[ComputedCompetencyScore],
    threshold: float = DEFAULT_GAP_THRESHOLD,
) -> list[GapEntry]:
    """Build one GapEntry per competency that has both sides of the comparison.

    Competencies without a self score, or without any non-self rating,
    produce no entry; they still appear in competencyScores.

    Args:
        competency_scores: Aggregated competency scores in template order.
        threshold: Gap classification threshold in rating points.

    Returns:
        GapEntry list in the same order as the input.
    """
    entries: list[GapEntry] = []
    for score in competency_scores:
        if score.self_score is None or score.gap is None or not score.has_others:
            continue
        classification = classify_gap(round2(score.gap), threshold)
        entries.append(
            GapEntry(
                competency_id=score.competency_id,
                competency_name=score.competency_name,
                self_score=score.self_score,
                others_average=score.others_average,
                gap=score.gap,
                classification=classification,
                interpretation=classification.interpret(score.competency_name),
            )
        )
    return entries
