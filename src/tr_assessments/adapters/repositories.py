"""SQLAlchemy repositories implementing the core interfaces.

All operations are async and use parameterised queries exclusively. The
results write is guarded by ``results_computed_at`` so that a computation
which started earlier can never replace a newer stored result.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tr_assessments.core.domain import (
    AssessmentStatus,
    RaterType,
    RawResponse,
    ResponseRate,
)
from tr_assessments.core.models import (
    Assessment,
    AssessmentBenchmark,
    AssessmentInvitation,
    AssessmentResponse,
    AssessmentTemplate,
)
from tr_assessments.observability import get_logger

logger = get_logger(__name__)

_INVITATION_COMPLETED: str = "completed"


class AssessmentRepository:
    """Repository for Assessment records and their computed results."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialise with an async database session.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    async def get_by_id(
        self, assessment_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> Assessment | None:
        result = await self._session.execute(
            select(Assessment).where(
                Assessment.id == assessment_id,
                Assessment.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_previous_completed(
        self,
        subject_id: uuid.UUID,
        template_id: uuid.UUID,
        exclude_assessment_id: uuid.UUID,
        before: datetime | None,
    ) -> Assessment | None:
        """Return the subject's most recent completed assessment with results.

        Args:
            subject_id: Assessed user.
            template_id: Only assessments of this template are comparable.
            exclude_assessment_id: The assessment being computed.
            before: Upper bound on completed_at, when the current assessment
                has itself completed.

        Returns:
            The previous Assessment, or None for a first-ever assessment.
        """
        query = select(Assessment).where(
            Assessment.subject_id == subject_id,
            Assessment.template_id == template_id,
            Assessment.id != exclude_assessment_id,
            Assessment.status == AssessmentStatus.COMPLETED.value,
            Assessment.completed_at.is_not(None),
            Assessment.computed_results.is_not(None),
        )
        if before is not None:
            query = query.where(Assessment.completed_at < before)

        result = await self._session.execute(
            query.order_by(Assessment.completed_at.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def save_results(
        self,
        assessment_id: uuid.UUID,
        document: dict[str, Any],
        computed_at: datetime,
    ) -> bool:
        """Replace computed_results unless a newer result is already stored.

        Args:
            assessment_id: Target assessment.
            document: Complete results document.
            computed_at: computedAt of the document.

        Returns:
            True if the row was updated, False if the write was stale.
        """
        result = await self._session.execute(
            update(Assessment)
            .where(
                Assessment.id == assessment_id,
                or_(
                    Assessment.results_computed_at.is_(None),
                    Assessment.results_computed_at < computed_at,
                ),
            )
            .values(computed_results=document, results_computed_at=computed_at)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        written = result.rowcount > 0

        logger.debug(
            "Results write",
            assessment_id=str(assessment_id),
            computed_at=computed_at.isoformat(),
            written=written,
        )
        return written

    async def list_completed_results(
        self, template_id: uuid.UUID
    ) -> list[dict[str, Any]]:
        result = await self._session.execute(
            select(Assessment.computed_results).where(
                Assessment.template_id == template_id,
                Assessment.status == AssessmentStatus.COMPLETED.value,
                Assessment.computed_results.is_not(None),
            )
        )
        return [document for document in result.scalars().all() if document]


class TemplateRepository:
    """Read-only access to assessment templates."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, template_id: uuid.UUID) -> AssessmentTemplate | None:
        result = await self._session.execute(
            select(AssessmentTemplate).where(AssessmentTemplate.id == template_id)
        )
        return result.scalar_one_or_none()


class ResponseRepository:
    """Loads submitted rater responses as domain RawResponse objects."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_by_assessment(self, assessment_id: uuid.UUID) -> list[RawResponse]:
        """Return the responses of an assessment in submission order.

        Only responses submitted through a completed invitation are returned,
        so partially answered or declined invitations never reach aggregation.
        Rows with a rater type outside the known set are skipped and logged.
        """
        result = await self._session.execute(
            select(AssessmentResponse)
            .join(
                AssessmentInvitation,
                AssessmentResponse.invitation_id == AssessmentInvitation.id,
            )
            .where(AssessmentResponse.assessment_id == assessment_id)
            .where(AssessmentInvitation.status == _INVITATION_COMPLETED)
            .order_by(AssessmentResponse.submitted_at, AssessmentResponse.id)
        )

        responses: list[RawResponse] = []
        for row in result.scalars().all():
            try:
                rater_type = RaterType(row.rater_type)
            except ValueError:
                logger.warning(
                    "Response with unknown rater type skipped",
                    assessment_id=str(assessment_id),
                    response_id=str(row.id),
                    rater_type=row.rater_type,
                )
                continue
            responses.append(
                RawResponse(
                    rater_type=rater_type,
                    competency_id=row.competency_id,
                    question_id=row.question_id,
                    rating=row.rating,
                    rater_id=str(row.rater_id) if row.rater_id is not None else None,
                    comment=row.comment,
                )
            )
        return responses


class InvitationRepository:
    """Aggregates invitation records into per-rater-type response rates."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def count_by_rater_type(
        self, assessment_id: uuid.UUID
    ) -> dict[str, ResponseRate]:
        completed = func.count(
            case((AssessmentInvitation.status == _INVITATION_COMPLETED, 1))
        )
        result = await self._session.execute(
            select(
                AssessmentInvitation.rater_type,
                func.count(AssessmentInvitation.id),
                completed,
            )
            .where(AssessmentInvitation.assessment_id == assessment_id)
            .group_by(AssessmentInvitation.rater_type)
        )
        return {
            rater_type: ResponseRate(invited=int(invited), completed=int(done))
            for rater_type, invited, done in result.all()
        }


class BenchmarkRepository:
    """Repository for AssessmentBenchmark rows (one per agency and template)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, agency_id: uuid.UUID, template_id: uuid.UUID
    ) -> AssessmentBenchmark | None:
        result = await self._session.execute(
            select(AssessmentBenchmark).where(
                AssessmentBenchmark.agency_id == agency_id,
                AssessmentBenchmark.template_id == template_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        agency_id: uuid.UUID,
        template_id: uuid.UUID,
        benchmark_data: dict[str, Any],
        sample_size: int,
        computed_at: datetime,
    ) -> AssessmentBenchmark:
        """Create or update the benchmark row for an agency and template.

        Args:
            agency_id: Owning agency.
            template_id: Template the statistics cover.
            benchmark_data: competencyId -> statistics dict.
            sample_size: Number of completed assessments aggregated.
            computed_at: Timestamp of the computation.

        Returns:
            The created or updated AssessmentBenchmark.
        """
        existing = await self.get(agency_id, template_id)

        if existing is not None:
            await self._session.execute(
                update(AssessmentBenchmark)
                .where(AssessmentBenchmark.id == existing.id)
                .values(
                    benchmark_data=benchmark_data,
                    sample_size=sample_size,
                    computed_at=computed_at,
                )
            )
            await self._session.refresh(existing)
            return existing

        record = AssessmentBenchmark(
            agency_id=agency_id,
            template_id=template_id,
            benchmark_data=benchmark_data,
            sample_size=sample_size,
            computed_at=computed_at,
        )
        self._session.add(record)
        await self._session.flush()
        await self._session.refresh(record)
        return record
