"""ConfidenceIndexCalculator: the CCI score over isCCI-flagged questions.

The index is independent of the competency scoring. Every rating given to a
CCI question (by any rater type) contributes its effective value, i.e. the
reverse-scored value where the question is flagged reverseScored. The mean
effective value is normalised to 0-100 and mapped onto a quartile band.
"""

from collections import defaultdict
from collections.abc import Iterable

from tr_assessments.core.aggregation import effective_rating
from tr_assessments.core.domain import (
    CCIBand,
    CCIItem,
    CCIResult,
    RawResponse,
    TemplateConfig,
)
from tr_assessments.core.stats import clamp, mean, round2

DEFAULT_BAND_THRESHOLDS: tuple[float, float, float] = (25.0, 50.0, 75.0)


def band_for_score(
    score: float,
    thresholds: tuple[float, float, float] = DEFAULT_BAND_THRESHOLDS,
) -> CCIBand:
    """Map a 0-100 CCI score to its band.

    Each threshold is the inclusive lower bound of the next band:
    below thresholds[0] is Low, below thresholds[1] Moderate, below
    thresholds[2] High, otherwise Very High.
    """
    moderate, high, very_high = thresholds
    if score < moderate:
        return CCIBand.LOW
    if score < high:
        return CCIBand.MODERATE
    if score < very_high:
        return CCIBand.HIGH
    return CCIBand.VERY_HIGH


def normalise_to_percent(value: float, template: TemplateConfig) -> float:
    """Project a rating-scale value onto 0-100."""
    return clamp((value - template.scale_min) / template.scale_range * 100, 0.0, 100.0)


def compute_confidence_index(
    responses: Iterable[RawResponse],
    template: TemplateConfig,
    band_thresholds: tuple[float, float, float] = DEFAULT_BAND_THRESHOLDS,
) -> CCIResult | None:
    """Compute the confidence index, or None when no CCI question was rated.

    Args:
        responses: Validated responses (unknown ids already dropped).
        template: Template supplying isCCI and reverseScored flags.
        band_thresholds: Lower bounds of the Moderate, High and Very High bands.

    Returns:
        CCIResult with one item per rated CCI question in template order,
        or None so that the section is omitted from the result.
    """
    raw_by_question: dict[tuple[str, str], list[int]] = defaultdict(list)
    for response in responses:
        if response.rating is None:
            continue
        question = template.get_question(response.competency_id, response.question_id)
        if question is None or not question.is_cci:
            continue
        raw_by_question[(response.competency_id, response.question_id)].append(
            response.rating
        )

    if not raw_by_question:
        return None

    items: list[CCIItem] = []
    all_effective: list[int] = []
    for competency in template.competencies:
        for question in competency.questions:
            raw_ratings = raw_by_question.get((competency.id, question.id))
            if not raw_ratings:
                continue
            effective = [effective_rating(question, r, template) for r in raw_ratings]
            all_effective.extend(effective)
            items.append(
                CCIItem(
                    competency_id=competency.id,
                    competency_name=competency.name,
                    question_id=question.id,
                    question_text=question.text,
                    raw_score=round2(mean(raw_ratings)),
                    effective_score=round2(mean(effective)),
                    response_count=len(raw_ratings),
                )
            )

    score = round2(normalise_to_percent(mean(all_effective), template))
    return CCIResult(
        score=score,
        band=band_for_score(score, band_thresholds),
        items=tuple(items),
    )
