"""Unit tests for the current-ceiling estimator."""

from collections.abc import Callable

from tr_assessments.core.aggregation import aggregate_responses
from tr_assessments.core.ceiling import ScoreBand, estimate_ceiling, score_band
from tr_assessments.core.domain import RawResponse, TemplateConfig

MakeResponse = Callable[..., RawResponse]


def _ceiling(responses: list[RawResponse], template: TemplateConfig):
    aggregated = aggregate_responses(responses, template)
    return estimate_ceiling(
        aggregated.competency_scores.values(), aggregated.item_scores.values(), template
    )


class TestEstimateCeiling:
    def test_lowest_competency_with_band_subtitle(
        self, template: TemplateConfig, sample_responses: list[RawResponse]
    ) -> None:
        ceiling = _ceiling(sample_responses, template)

        assert ceiling is not None
        assert ceiling.competency_id == "confidence"
        assert ceiling.score == 2.0
        assert ceiling.subtitle == "A Critical Gap in Current Capability"
        assert ceiling.narrative.startswith(
            "The data suggests that Confidence (A Critical Gap in Current Capability)"
        )
        assert "2.00" in ceiling.narrative

    def test_template_subtitle_wins(
        self, template: TemplateConfig, make_response: MakeResponse
    ) -> None:
        responses = [
            make_response("peer", "vision", "v1", 2, rater_id="p1"),
            make_response("peer", "coaching", "c1", 5, rater_id="p1"),
        ]

        ceiling = _ceiling(responses, template)

        assert ceiling is not None
        assert ceiling.competency_id == "vision"
        assert ceiling.subtitle == "Direction Must Hold Under Pressure"

    def test_ignores_competencies_without_other_raters(
        self, template: TemplateConfig, make_response: MakeResponse
    ) -> None:
        responses = [
            make_response("self", "vision", "v1", 1),
            make_response("peer", "coaching", "c1", 4, rater_id="p1"),
        ]

        ceiling = _ceiling(responses, template)

        assert ceiling is not None
        assert ceiling.competency_id == "coaching"

    def test_tie_broken_by_lowest_item(
        self, template: TemplateConfig, make_response: MakeResponse
    ) -> None:
        # both competencies average 3.0; coaching has an item at 2.0
        responses = [
            make_response("peer", "vision", "v1", 3, rater_id="p1"),
            make_response("peer", "vision", "v2", 3, rater_id="p1"),
            make_response("peer", "coaching", "c1", 2, rater_id="p1"),
            make_response("peer", "coaching", "c2", 4, rater_id="p1"),
        ]

        ceiling = _ceiling(responses, template)

        assert ceiling is not None
        assert ceiling.competency_id == "coaching"

    def test_full_tie_broken_by_template_order(
        self, template: TemplateConfig, make_response: MakeResponse
    ) -> None:
        responses = [
            make_response("peer", "coaching", "c1", 3, rater_id="p1"),
            make_response("peer", "vision", "v1", 3, rater_id="p1"),
        ]

        ceiling = _ceiling(responses, template)

        assert ceiling is not None
        assert ceiling.competency_id == "vision"

    def test_none_when_nothing_rated(self, template: TemplateConfig) -> None:
        assert _ceiling([], template) is None


class TestScoreBand:
    def test_bands_follow_scale_fraction(self, template: TemplateConfig) -> None:
        assert score_band(1.0, template) == ScoreBand.CRITICAL
        assert score_band(2.7, template) == ScoreBand.DEVELOPING
        assert score_band(3.5, template) == ScoreBand.SOLID
        assert score_band(4.4, template) == ScoreBand.STRONG
        assert score_band(5.0, template) == ScoreBand.STRONG
