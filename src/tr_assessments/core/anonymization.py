"""Identity projection applied at the assembler boundary.

Aggregates are keyed by rater type only. The single place a rater identity can
enter a result is a comment entry, so the projection strips it there.
"""

from dataclasses import replace

from tr_assessments.core.domain import CommentEntry, ComputedAssessmentResults


def strip_rater_identity(comments: tuple[CommentEntry, ...]) -> tuple[CommentEntry, ...]:
    return tuple(
        replace(comment, rater_id=None) if comment.rater_id is not None else comment
        for comment in comments
    )


def anonymize_results(results: ComputedAssessmentResults) -> ComputedAssessmentResults:
    """Return a copy of the results with every rater identity removed."""
    return replace(results, comments=strip_rater_identity(results.comments))
