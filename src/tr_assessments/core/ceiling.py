"""CeilingEstimator: the single lowest-scoring competency.

The current ceiling is the development focus of the report. Its subtitle is
the template's competency subtitle when one is defined; otherwise it and the
narrative are templated from the score band.
"""

from collections.abc import Iterable
from enum import Enum

from tr_assessments.core.domain import (
    ComputedCompetencyScore,
    ComputedItemScore,
    CurrentCeiling,
    TemplateConfig,
)


class ScoreBand(str, Enum):
    """Position of a score on the template scale, as a fraction of its range."""

    CRITICAL = "critical"
    DEVELOPING = "developing"
    SOLID = "solid"
    STRONG = "strong"


# Inclusive lower bound of each band as a fraction of (scale_max - scale_min).
_BAND_LOWER_BOUNDS: list[tuple[float, ScoreBand]] = [
    (0.8, ScoreBand.STRONG),
    (0.6, ScoreBand.SOLID),
    (0.4, ScoreBand.DEVELOPING),
    (0.0, ScoreBand.CRITICAL),
]

_BAND_SUBTITLES: dict[ScoreBand, str] = {
    ScoreBand.CRITICAL: "A Critical Gap in Current Capability",
    ScoreBand.DEVELOPING: "A Capability Still Taking Shape",
    ScoreBand.SOLID: "A Solid Base With Room to Grow",
    ScoreBand.STRONG: "The Next Edge of an Already Strong Profile",
}

_NARRATIVE = (
    "The data suggests that {name} ({subtitle}) represents the current "
    "constraint on leadership capacity. {band_sentence} Until this area is "
    "addressed, growth in other dimensions may be limited."
)

_BAND_SENTENCES: dict[ScoreBand, str] = {
    ScoreBand.CRITICAL: "At {score:.2f} it sits well below the rest of the profile.",
    ScoreBand.DEVELOPING: "At {score:.2f} it is developing but not yet dependable.",
    ScoreBand.SOLID: "At {score:.2f} it is solid, yet it trails the other competencies.",
    ScoreBand.STRONG: "At {score:.2f} it is strong, and still the lowest in an otherwise high profile.",
}


def score_band(score: float, template: TemplateConfig) -> ScoreBand:
    fraction = (score - template.scale_min) / template.scale_range
    for lower_bound, band in _BAND_LOWER_BOUNDS:
        if fraction >= lower_bound:
            return band
    return ScoreBand.CRITICAL


def estimate_ceiling(
    competency_scores: Iterable[ComputedCompetencyScore],
    item_scores: Iterable[ComputedItemScore],
    template: TemplateConfig,
) -> CurrentCeiling | None:
    """Identify the lowest-scoring competency among those others rated.

    Ties on overall_average are broken by the lowest single rated item score
    within the competency, then by template order.

    Args:
        competency_scores: Aggregated competency scores.
        item_scores: Aggregated item scores.
        template: Template supplying order, subtitles and scale.

    Returns:
        CurrentCeiling, or None when no competency has non-self ratings.
    """
    order = {competency.id: index for index, competency in enumerate(template.competencies)}
    lowest_item: dict[str, float] = {}
    for item in item_scores:
        if not item.has_others:
            continue
        current = lowest_item.get(item.competency_id)
        if current is None or item.overall_average < current:
            lowest_item[item.competency_id] = item.overall_average

    candidates: list[ComputedCompetencyScore] = [
        score for score in competency_scores if score.has_others
    ]
    if not candidates:
        return None

    ceiling = min(
        candidates,
        key=lambda score: (
            score.overall_average,
            lowest_item.get(score.competency_id, score.overall_average),
            order.get(score.competency_id, len(order)),
        ),
    )

    band = score_band(ceiling.overall_average, template)
    competency = template.get_competency(ceiling.competency_id)
    subtitle = (competency.subtitle if competency else "") or _BAND_SUBTITLES[band]

    return CurrentCeiling(
        competency_id=ceiling.competency_id,
        competency_name=ceiling.competency_name,
        subtitle=subtitle,
        score=ceiling.overall_average,
        narrative=render_narrative(ceiling.competency_name, subtitle, ceiling.overall_average, band),
    )


def render_narrative(name: str, subtitle: str, score: float, band: ScoreBand) -> str:
    return _NARRATIVE.format(
        name=name,
        subtitle=subtitle,
        band_sentence=_BAND_SENTENCES[band].format(score=score),
    )
