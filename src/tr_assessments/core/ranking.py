"""ItemRanker: global top and bottom question lists."""

from collections.abc import Iterable

from tr_assessments.core.domain import ComputedItemScore, RankedItem

DEFAULT_RANKED_ITEM_COUNT: int = 5


def _to_ranked(item: ComputedItemScore) -> RankedItem:
    return RankedItem(
        competency_id=item.competency_id,
        competency_name=item.competency_name,
        question_id=item.question_id,
        question_text=item.question_text,
        overall_average=item.overall_average,
        self_score=item.self_score,
        gap=item.gap,
    )


def rank_items(
    item_scores: Iterable[ComputedItemScore],
    limit: int = DEFAULT_RANKED_ITEM_COUNT,
) -> tuple[list[RankedItem], list[RankedItem]]:
    """Return the highest- and lowest-scoring items across all competencies.

    Only items with at least one non-self rating are ranked. Ties on
    overall_average are broken by the lexically lower question id, then the
    lexically lower competency id, in both lists.

    Args:
        item_scores: Aggregated item scores.
        limit: Maximum number of items per list.

    Returns:
        Tuple of (top_items, bottom_items).
    """
    if limit <= 0:
        return [], []

    rated = [item for item in item_scores if item.has_others]

    top = sorted(
        rated,
        key=lambda item: (-item.overall_average, item.question_id, item.competency_id),
    )[:limit]
    bottom = sorted(
        rated,
        key=lambda item: (item.overall_average, item.question_id, item.competency_id),
    )[:limit]

    return [_to_ranked(item) for item in top], [_to_ranked(item) for item in bottom]
