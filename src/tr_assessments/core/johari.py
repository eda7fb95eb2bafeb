"""JohariClassifier: partition competencies into four awareness quadrants."""

from collections.abc import Iterable, Mapping

from tr_assessments.core.domain import (
    ComputedCompetencyScore,
    GapClassification,
    GapEntry,
    JohariQuadrant,
    JohariWindow,
    TemplateConfig,
)

_QUADRANT_BY_CLASSIFICATION: dict[GapClassification, JohariQuadrant] = {
    GapClassification.BLIND_SPOT: JohariQuadrant.BLIND_SPOT,
    GapClassification.HIDDEN_STRENGTH: JohariQuadrant.HIDDEN,
}


def quadrant_for(entry: GapEntry | None, midpoint: float) -> JohariQuadrant:
    """Return the quadrant of one competency.

    A competency without a gap entry (no self score or no others' ratings)
    is UNKNOWN. An aligned competency is OPEN only when others rate it at or
    above the scale midpoint; aligned-but-low is UNKNOWN.
    """
    if entry is None:
        return JohariQuadrant.UNKNOWN
    if entry.classification in _QUADRANT_BY_CLASSIFICATION:
        return _QUADRANT_BY_CLASSIFICATION[entry.classification]
    if entry.others_average >= midpoint:
        return JohariQuadrant.OPEN
    return JohariQuadrant.UNKNOWN


def classify_johari(
    gap_entries: Iterable[GapEntry],
    competency_scores: Mapping[str, ComputedCompetencyScore],
    template: TemplateConfig,
) -> JohariWindow:
    """Place every template competency in exactly one quadrant.

    Args:
        gap_entries: GapAnalyzer output.
        competency_scores: competency_id -> aggregated score.
        template: Template defining the competency universe and midpoint.

    Returns:
        JohariWindow with competency names in template order per quadrant.
    """
    entries = {entry.competency_id: entry for entry in gap_entries}
    buckets: dict[JohariQuadrant, list[str]] = {quadrant: [] for quadrant in JohariQuadrant}

    for competency in template.competencies:
        entry = entries.get(competency.id)
        score = competency_scores.get(competency.id)
        if score is not None and not score.has_others:
            entry = None
        buckets[quadrant_for(entry, template.midpoint)].append(competency.name)

    return JohariWindow(
        open_area=tuple(buckets[JohariQuadrant.OPEN]),
        blind_spot=tuple(buckets[JohariQuadrant.BLIND_SPOT]),
        hidden_area=tuple(buckets[JohariQuadrant.HIDDEN]),
        unknown_area=tuple(buckets[JohariQuadrant.UNKNOWN]),
    )
