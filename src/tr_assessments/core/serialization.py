"""Conversion between results aggregates and the persisted JSON document.

The document written to ``assessments.computed_results`` uses camelCase keys.
Optional sections (``cciResult``, ``currentCeiling``, ``trend``) are omitted
entirely when absent, never written as null, and ``raterId`` appears on a
comment only when the result was not anonymized.
"""

from datetime import datetime
from typing import Any

from tr_assessments.core.domain import (
    CCIResult,
    CommentEntry,
    ComputedAssessmentResults,
    ComputedCompetencyScore,
    ComputedItemScore,
    CurrentCeiling,
    GapEntry,
    JohariWindow,
    PriorResult,
    RankedItem,
    TrendComparison,
)


def results_to_document(results: ComputedAssessmentResults) -> dict[str, Any]:
    """Render a results aggregate as its JSON-ready document.

    Args:
        results: Assembled results.

    Returns:
        Dict containing only JSON-native types.
    """
    document: dict[str, Any] = {
        "computedAt": results.computed_at.isoformat(),
        "overallScore": results.overall_score,
        "responseRateByType": {
            rater_type: {
                "invited": rate.invited,
                "completed": rate.completed,
                "rate": rate.rate,
            }
            for rater_type, rate in results.response_rate_by_type.items()
        },
        "competencyScores": [_competency_score(s) for s in results.competency_scores],
        "itemScores": [_item_score(s) for s in results.item_scores],
        "gapAnalysis": [_gap_entry(e) for e in results.gap_analysis],
        "topItems": [_ranked_item(i) for i in results.top_items],
        "bottomItems": [_ranked_item(i) for i in results.bottom_items],
        "strengths": list(results.strengths),
        "developmentAreas": list(results.development_areas),
        "comments": [_comment(c) for c in results.comments],
        "johariWindow": _johari_window(results.johari_window),
        "dataQuality": {
            "droppedResponses": len(results.data_quality_flags),
            "flags": [
                {
                    "reason": flag.reason.value,
                    "competencyId": flag.competency_id,
                    "questionId": flag.question_id,
                    "raterType": flag.rater_type.value,
                }
                for flag in results.data_quality_flags
            ],
        },
    }
    if results.cci_result is not None:
        document["cciResult"] = _cci_result(results.cci_result)
    if results.current_ceiling is not None:
        document["currentCeiling"] = _current_ceiling(results.current_ceiling)
    if results.trend is not None:
        document["trend"] = _trend(results.trend)
    return document


def prior_from_document(
    assessment_id: str,
    completed_at: datetime,
    document: dict[str, Any] | None,
) -> PriorResult | None:
    """Extract the competency averages needed for trend comparison.

    Competencies that had no non-self ratings in the prior result are
    skipped; their 0.0 average is a placeholder, not a score.

    Returns:
        PriorResult, or None when the document is missing or has no
        competency scores.
    """
    if not document or not isinstance(document.get("competencyScores"), list):
        return None

    averages: dict[str, float] = {}
    names: dict[str, str] = {}
    for entry in document["competencyScores"]:
        competency_id = entry.get("competencyId")
        average = entry.get("overallAverage")
        if competency_id is None or average is None:
            continue
        if entry.get("othersResponseCount", 1) == 0:
            continue
        averages[str(competency_id)] = float(average)
        names[str(competency_id)] = str(entry.get("competencyName", competency_id))

    return PriorResult(
        assessment_id=assessment_id,
        completed_at=completed_at,
        competency_averages=averages,
        competency_names=names,
    )


def _score_fields(score: ComputedCompetencyScore | ComputedItemScore) -> dict[str, Any]:
    return {
        "scores": dict(score.scores),
        "overallAverage": score.overall_average,
        "othersAverage": score.others_average,
        "selfScore": score.self_score,
        "gap": score.gap,
        "responseDistribution": {
            str(value): count for value, count in score.response_distribution.items()
        },
        "raterAgreement": score.rater_agreement,
        "othersResponseCount": score.others_response_count,
    }


def _competency_score(score: ComputedCompetencyScore) -> dict[str, Any]:
    return {
        "competencyId": score.competency_id,
        "competencyName": score.competency_name,
        **_score_fields(score),
    }


def _item_score(score: ComputedItemScore) -> dict[str, Any]:
    return {
        "competencyId": score.competency_id,
        "competencyName": score.competency_name,
        "questionId": score.question_id,
        "questionText": score.question_text,
        **_score_fields(score),
    }


def _gap_entry(entry: GapEntry) -> dict[str, Any]:
    return {
        "competencyId": entry.competency_id,
        "competencyName": entry.competency_name,
        "selfScore": entry.self_score,
        "othersAverage": entry.others_average,
        "gap": entry.gap,
        "classification": entry.classification.value,
        "interpretation": entry.interpretation,
    }


def _ranked_item(item: RankedItem) -> dict[str, Any]:
    return {
        "competencyId": item.competency_id,
        "competencyName": item.competency_name,
        "questionId": item.question_id,
        "questionText": item.question_text,
        "overallAverage": item.overall_average,
        "selfScore": item.self_score,
        "gap": item.gap,
    }


def _comment(comment: CommentEntry) -> dict[str, Any]:
    data: dict[str, Any] = {
        "competencyId": comment.competency_id,
        "competencyName": comment.competency_name,
        "questionId": comment.question_id,
        "raterType": comment.rater_type.value,
        "comment": comment.comment,
    }
    if comment.rater_id is not None:
        data["raterId"] = comment.rater_id
    return data


def _johari_window(window: JohariWindow) -> dict[str, list[str]]:
    return {
        "openArea": list(window.open_area),
        "blindSpot": list(window.blind_spot),
        "hiddenArea": list(window.hidden_area),
        "unknownArea": list(window.unknown_area),
    }


def _cci_result(result: CCIResult) -> dict[str, Any]:
    return {
        "score": result.score,
        "band": result.band.value,
        "items": [
            {
                "competencyId": item.competency_id,
                "competencyName": item.competency_name,
                "questionId": item.question_id,
                "questionText": item.question_text,
                "rawScore": item.raw_score,
                "effectiveScore": item.effective_score,
                "responseCount": item.response_count,
            }
            for item in result.items
        ],
    }


def _current_ceiling(ceiling: CurrentCeiling) -> dict[str, Any]:
    return {
        "competencyId": ceiling.competency_id,
        "competencyName": ceiling.competency_name,
        "subtitle": ceiling.subtitle,
        "score": ceiling.score,
        "narrative": ceiling.narrative,
    }


def _trend(trend: TrendComparison) -> dict[str, Any]:
    return {
        "previousAssessmentId": trend.previous_assessment_id,
        "previousCompletedAt": trend.previous_completed_at.isoformat(),
        "competencyChanges": [
            {
                "competencyId": change.competency_id,
                "competencyName": change.competency_name,
                "previousScore": change.previous_score,
                "currentScore": change.current_score,
                "change": change.change,
                "changePercent": change.change_percent,
                "direction": change.direction.value,
            }
            for change in trend.competency_changes
        ],
        "overallChange": trend.overall_change,
        "overallDirection": trend.overall_direction.value,
    }
