"""Business logic services for the assessment results service.

Services depend on repository interfaces and receive them through
constructor injection. No framework code (FastAPI, SQLAlchemy) belongs here.

Key invariants enforced by services:
- Trigger rules: a response event computes only while the assessment is open;
  an explicit recompute is allowed only once it is closed or completed.
- Single writer: computations for one assessment are serialized by the
  injected lock from snapshot read to results write.
- Failure isolation: the results write is the last step, so a failed
  computation leaves the previous results in place.
- Anonymization: identity is stripped when either the template or the
  assessment asks for it.
"""

import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from tr_assessments.core.benchmarks import (
    BenchmarkPosition,
    CompetencyBenchmark,
    compare_to_benchmarks,
    compute_benchmarks,
)
from tr_assessments.core.domain import (
    AssessmentStatus,
    ComputationConfig,
    PriorResult,
    TemplateConfig,
)
from tr_assessments.core.interfaces import (
    IAssessmentRepository,
    IBenchmarkRepository,
    IComputationLock,
    IInvitationRepository,
    IResponseRepository,
    ITemplateRepository,
)
from tr_assessments.core.results import assemble_results
from tr_assessments.core.serialization import prior_from_document, results_to_document
from tr_assessments.core.template import parse_template_config
from tr_assessments.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ResultsUnavailableError,
    ServiceError,
)
from tr_assessments.observability import get_logger

logger = get_logger(__name__)

RECOMPUTABLE_STATUSES: frozenset[str] = frozenset(
    {AssessmentStatus.CLOSED.value, AssessmentStatus.COMPLETED.value}
)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


async def _load_template(
    templates: ITemplateRepository, template_id: uuid.UUID
) -> tuple[Any, TemplateConfig]:
    record = await templates.get_by_id(template_id)
    if record is None:
        raise NotFoundError(
            message=f"Template {template_id} not found.",
            error_code=ErrorCode.NOT_FOUND,
        )
    return record, parse_template_config(record.config)


class ResultsComputationService:
    """Computes, stores and serves ComputedAssessmentResults.

    The computation itself is a pure function (``assemble_results``); this
    service gathers its inputs, serializes runs per assessment, and performs
    the single results write.
    """

    def __init__(
        self,
        assessment_repo: IAssessmentRepository,
        template_repo: ITemplateRepository,
        response_repo: IResponseRepository,
        invitation_repo: IInvitationRepository,
        computation_lock: IComputationLock,
        config: ComputationConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialise with repository and lock dependencies.

        Args:
            assessment_repo: Assessment persistence, including results writes.
            template_repo: Template configuration source.
            response_repo: Raw rater responses source.
            invitation_repo: Invited/completed counts per rater type.
            computation_lock: Per-assessment serialization of computations.
            config: Pipeline thresholds; defaults when omitted.
            clock: Source of the computedAt timestamp.
        """
        self._assessments = assessment_repo
        self._templates = template_repo
        self._responses = response_repo
        self._invitations = invitation_repo
        self._lock = computation_lock
        self._config = config or ComputationConfig()
        self._clock = clock

    async def get_assessment(
        self, assessment_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> Any:
        """Retrieve an assessment by ID.

        Raises:
            NotFoundError: If the assessment does not exist in the tenant.
        """
        assessment = await self._assessments.get_by_id(assessment_id, tenant_id)
        if assessment is None:
            raise NotFoundError(
                message=f"Assessment {assessment_id} not found.",
                error_code=ErrorCode.NOT_FOUND,
            )
        return assessment

    async def handle_response_event(
        self, assessment_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> dict[str, Any] | None:
        """Recompute results after a rater submitted a response.

        Args:
            assessment_id: Assessment that received the response.
            tenant_id: Owning tenant UUID.

        Returns:
            The stored results document, or None when the assessment is not
            open and the event was ignored.

        Raises:
            NotFoundError: If the assessment or its template does not exist.
            TemplateConfigError: If the template configuration is malformed.
            ResultsUnavailableError: If the computation failed unexpectedly.
        """
        assessment = await self.get_assessment(assessment_id, tenant_id)
        if assessment.status != AssessmentStatus.OPEN.value:
            logger.info(
                "Response event ignored",
                assessment_id=str(assessment_id),
                status=assessment.status,
            )
            return None
        return await self._compute_and_store(assessment)

    async def recompute(
        self, assessment_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> dict[str, Any]:
        """Explicitly recompute results of a closed or completed assessment.

        Raises:
            NotFoundError: If the assessment or its template does not exist.
            ConflictError: If the assessment is still draft or open.
            TemplateConfigError: If the template configuration is malformed.
            ResultsUnavailableError: If the computation failed unexpectedly.
        """
        assessment = await self.get_assessment(assessment_id, tenant_id)
        if assessment.status not in RECOMPUTABLE_STATUSES:
            raise ConflictError(
                message=(
                    f"Cannot recompute results: assessment {assessment_id} is "
                    f"{assessment.status}; only closed or completed assessments "
                    "can be recomputed."
                ),
                error_code=ErrorCode.INVALID_OPERATION,
            )
        return await self._compute_and_store(assessment)

    async def get_results(
        self, assessment_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> dict[str, Any]:
        """Return the stored results document.

        Raises:
            NotFoundError: If the assessment does not exist.
            ResultsUnavailableError: If results have never been computed.
        """
        assessment = await self.get_assessment(assessment_id, tenant_id)
        if assessment.computed_results is None:
            raise ResultsUnavailableError(
                message=f"Results for assessment {assessment_id} are not available yet.",
            )
        return assessment.computed_results

    async def _compute_and_store(self, assessment: Any) -> dict[str, Any]:
        assessment_id = assessment.id
        async with self._lock.hold(str(assessment_id)):
            logger.info(
                "Results computation started",
                assessment_id=str(assessment_id),
                status=assessment.status,
            )
            try:
                _, template = await _load_template(self._templates, assessment.template_id)
                responses = await self._responses.list_by_assessment(assessment_id)
                response_rates = await self._invitations.count_by_rater_type(assessment_id)
                prior = await self._resolve_prior(assessment)

                computed_at = self._clock()
                results = assemble_results(
                    responses,
                    template,
                    response_rates,
                    computed_at=computed_at,
                    prior=prior,
                    config=self._config,
                    anonymize=template.anonymize_responses
                    or bool(assessment.anonymize_results),
                )
                document = results_to_document(results)
            except ServiceError:
                raise
            except Exception as exc:
                logger.error(
                    "Results computation failed",
                    assessment_id=str(assessment_id),
                    error=str(exc),
                )
                raise ResultsUnavailableError(
                    message=f"Results for assessment {assessment_id} could not be computed.",
                ) from exc

            written = await self._assessments.save_results(
                assessment_id, document, computed_at
            )
            if not written:
                logger.warning(
                    "Stale results write skipped",
                    assessment_id=str(assessment_id),
                    computed_at=computed_at.isoformat(),
                )

            logger.info(
                "Results computed",
                assessment_id=str(assessment_id),
                response_count=len(responses),
                dropped_responses=len(results.data_quality_flags),
                overall_score=results.overall_score,
                has_trend=results.trend is not None,
                written=written,
            )
            return document

    async def _resolve_prior(self, assessment: Any) -> PriorResult | None:
        previous = await self._assessments.get_previous_completed(
            subject_id=assessment.subject_id,
            template_id=assessment.template_id,
            exclude_assessment_id=assessment.id,
            before=assessment.completed_at,
        )
        if previous is None or previous.completed_at is None:
            return None
        return prior_from_document(
            str(previous.id), previous.completed_at, previous.computed_results
        )


class BenchmarkService:
    """Agency benchmarks over completed assessments of one template."""

    def __init__(
        self,
        assessment_repo: IAssessmentRepository,
        template_repo: ITemplateRepository,
        benchmark_repo: IBenchmarkRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._assessments = assessment_repo
        self._templates = template_repo
        self._benchmarks = benchmark_repo
        self._clock = clock

    async def refresh_benchmarks(
        self, agency_id: uuid.UUID, template_id: uuid.UUID
    ) -> dict[str, CompetencyBenchmark]:
        """Recompute and store the benchmark row of an agency template.

        Args:
            agency_id: Agency owning the template.
            template_id: Template whose completed assessments are aggregated.

        Returns:
            competency_id -> CompetencyBenchmark in template order.

        Raises:
            NotFoundError: If the template does not exist or belongs to
                another agency.
            TemplateConfigError: If the template configuration is malformed.
        """
        record, template = await _load_template(self._templates, template_id)
        if record.agency_id != agency_id:
            raise NotFoundError(
                message=f"Template {template_id} not found for agency {agency_id}.",
                error_code=ErrorCode.NOT_FOUND,
            )

        documents = await self._assessments.list_completed_results(template_id)
        benchmarks = compute_benchmarks(
            [competency.id for competency in template.competencies], documents
        )

        await self._benchmarks.upsert(
            agency_id=agency_id,
            template_id=template_id,
            benchmark_data={cid: b.to_dict() for cid, b in benchmarks.items()},
            sample_size=len(documents),
            computed_at=self._clock(),
        )

        logger.info(
            "Benchmarks refreshed",
            agency_id=str(agency_id),
            template_id=str(template_id),
            sample_size=len(documents),
        )
        return benchmarks

    async def compare_assessment(
        self, assessment_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> list[BenchmarkPosition]:
        """Position an assessment's competency scores within its benchmarks.

        Raises:
            NotFoundError: If the assessment, template or benchmark is missing.
            ResultsUnavailableError: If the assessment has no results yet.
        """
        assessment = await self._assessments.get_by_id(assessment_id, tenant_id)
        if assessment is None:
            raise NotFoundError(
                message=f"Assessment {assessment_id} not found.",
                error_code=ErrorCode.NOT_FOUND,
            )
        if assessment.computed_results is None:
            raise ResultsUnavailableError(
                message=f"Results for assessment {assessment_id} are not available yet.",
            )

        template = await self._templates.get_by_id(assessment.template_id)
        if template is None:
            raise NotFoundError(
                message=f"Template {assessment.template_id} not found.",
                error_code=ErrorCode.NOT_FOUND,
            )

        row = await self._benchmarks.get(template.agency_id, assessment.template_id)
        if row is None:
            raise NotFoundError(
                message=f"No benchmark computed for template {assessment.template_id}.",
                error_code=ErrorCode.NOT_FOUND,
            )

        benchmarks = {
            cid: CompetencyBenchmark.from_dict(data)
            for cid, data in (row.benchmark_data or {}).items()
        }
        return compare_to_benchmarks(assessment.computed_results, benchmarks)
