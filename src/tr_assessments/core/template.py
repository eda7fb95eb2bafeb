"""Template configuration parsing and validation.

Templates are stored as camelCase JSON on the template record. A template
that cannot be parsed fails the whole computation with TemplateConfigError;
no partial result is ever persisted for it.
"""

from typing import Any

from tr_assessments.core.domain import (
    ALL_RATER_TYPES,
    RaterType,
    TemplateCompetency,
    TemplateConfig,
    TemplateQuestion,
)
from tr_assessments.errors import TemplateConfigError


def parse_template_config(raw: Any) -> TemplateConfig:
    """Build a validated TemplateConfig from its stored JSON form.

    Args:
        raw: Decoded template ``config`` JSON object.

    Returns:
        The validated TemplateConfig.

    Raises:
        TemplateConfigError: If the configuration is missing, has no
            competencies, has an invalid scale, duplicate ids, or unknown
            rater types.
    """
    if not isinstance(raw, dict):
        raise TemplateConfigError("Template configuration is missing or not an object.")

    scale_min = raw.get("scaleMin")
    scale_max = raw.get("scaleMax")
    if (
        not isinstance(scale_min, int)
        or not isinstance(scale_max, int)
        or isinstance(scale_min, bool)
        or isinstance(scale_max, bool)
    ):
        raise TemplateConfigError(
            f"Template scale bounds must be integers, got scaleMin={scale_min!r}, "
            f"scaleMax={scale_max!r}."
        )
    if scale_min >= scale_max:
        raise TemplateConfigError(
            f"Template scaleMin ({scale_min}) must be lower than scaleMax ({scale_max})."
        )

    raw_competencies = raw.get("competencies")
    if not isinstance(raw_competencies, list) or not raw_competencies:
        raise TemplateConfigError("Template must define at least one competency.")

    competencies = tuple(_parse_competency(item) for item in raw_competencies)

    competency_ids = [c.id for c in competencies]
    duplicates = {cid for cid in competency_ids if competency_ids.count(cid) > 1}
    if duplicates:
        raise TemplateConfigError(
            f"Template has duplicate competency ids: {sorted(duplicates)}."
        )

    return TemplateConfig(
        competencies=competencies,
        scale_min=scale_min,
        scale_max=scale_max,
        scale_labels=tuple(str(label) for label in raw.get("scaleLabels") or ()),
        anonymize_responses=bool(raw.get("anonymizeResponses", True)),
        rater_types=_parse_rater_types(raw.get("raterTypes")),
    )


def _parse_competency(raw: Any) -> TemplateCompetency:
    if not isinstance(raw, dict) or not raw.get("id") or not raw.get("name"):
        raise TemplateConfigError(f"Competency must have an id and a name: {raw!r}.")

    competency_id = str(raw["id"])
    raw_questions = raw.get("questions")
    if not isinstance(raw_questions, list) or not raw_questions:
        raise TemplateConfigError(
            f"Competency {competency_id!r} must define at least one question."
        )

    questions: list[TemplateQuestion] = []
    seen: set[str] = set()
    for item in raw_questions:
        if not isinstance(item, dict) or not item.get("id"):
            raise TemplateConfigError(
                f"Question in competency {competency_id!r} has no id: {item!r}."
            )
        question_id = str(item["id"])
        if question_id in seen:
            raise TemplateConfigError(
                f"Competency {competency_id!r} has duplicate question id {question_id!r}."
            )
        seen.add(question_id)
        questions.append(
            TemplateQuestion(
                id=question_id,
                text=str(item.get("text", "")),
                reverse_scored=bool(item.get("reverseScored", False)),
                is_cci=bool(item.get("isCCI", False)),
            )
        )

    return TemplateCompetency(
        id=competency_id,
        name=str(raw["name"]),
        questions=tuple(questions),
        subtitle=str(raw.get("subtitle") or ""),
        description=str(raw.get("description") or ""),
    )


def _parse_rater_types(raw: Any) -> frozenset[RaterType]:
    if not raw:
        return ALL_RATER_TYPES
    try:
        return frozenset(RaterType(value) for value in raw)
    except ValueError as exc:
        raise TemplateConfigError(f"Template has an unknown rater type: {exc}") from exc
