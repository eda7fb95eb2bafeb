"""FastAPI router for the assessment results service.

All routes are thin: they build dependencies, delegate to the services, and
serialise responses. No business logic lives here. Service errors are
translated into HTTP status codes by ``_http_error``.

API prefix: /api/v1
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from tr_assessments.adapters.computation_lock import ComputationLock
from tr_assessments.adapters.repositories import (
    AssessmentRepository,
    BenchmarkRepository,
    InvitationRepository,
    ResponseRepository,
    TemplateRepository,
)
from tr_assessments.api.schemas import (
    BenchmarkComparisonResponse,
    BenchmarkPositionSchema,
    BenchmarkRefreshResponse,
    BenchmarkStatsSchema,
    ComputedResultsResponse,
    ResponseEventResponse,
)
from tr_assessments.core.services import BenchmarkService, ResultsComputationService
from tr_assessments.database import get_db_session
from tr_assessments.errors import (
    ConflictError,
    NotFoundError,
    ResultsUnavailableError,
    ServiceError,
    TemplateConfigError,
)
from tr_assessments.settings import get_settings

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Assessment Results"])

# One lock registry per process; computations for the same assessment queue on it.
_computation_lock = ComputationLock()

_STATUS_BY_ERROR: list[tuple[type[ServiceError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (TemplateConfigError, 422),
    (ResultsUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def _http_error(exc: ServiceError) -> HTTPException:
    """Map a service error onto an HTTPException."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


def get_results_service(
    session: AsyncSession = Depends(get_db_session),
) -> ResultsComputationService:
    """Build ResultsComputationService with injected repository dependencies.

    Args:
        session: Async SQLAlchemy session from the database pool.

    Returns:
        Configured ResultsComputationService instance.
    """
    return ResultsComputationService(
        assessment_repo=AssessmentRepository(session),
        template_repo=TemplateRepository(session),
        response_repo=ResponseRepository(session),
        invitation_repo=InvitationRepository(session),
        computation_lock=_computation_lock,
        config=get_settings().computation_config(),
    )


def get_benchmark_service(
    session: AsyncSession = Depends(get_db_session),
) -> BenchmarkService:
    """Build BenchmarkService with injected repository dependencies."""
    return BenchmarkService(
        assessment_repo=AssessmentRepository(session),
        template_repo=TemplateRepository(session),
        benchmark_repo=BenchmarkRepository(session),
    )


# ---------------------------------------------------------------------------
# Results endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/tenants/{tenant_id}/assessments/{assessment_id}/results",
    response_model=ComputedResultsResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_200_OK,
    summary="Get the computed results of an assessment",
)
async def get_results(
    tenant_id: uuid.UUID = Path(..., description="Owning tenant UUID"),
    assessment_id: uuid.UUID = Path(..., description="Assessment UUID"),
    service: ResultsComputationService = Depends(get_results_service),
) -> ComputedResultsResponse:
    """Return the latest stored ComputedAssessmentResults.

    Answers 503 while no computation has succeeded yet; the caller may retry.
    """
    try:
        document = await service.get_results(assessment_id, tenant_id)
    except ServiceError as exc:
        raise _http_error(exc) from exc
    return ComputedResultsResponse.model_validate(document)


@router.post(
    "/tenants/{tenant_id}/assessments/{assessment_id}/response-events",
    response_model=ResponseEventResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_200_OK,
    summary="Notify that a rater response was submitted",
)
async def response_event(
    tenant_id: uuid.UUID = Path(..., description="Owning tenant UUID"),
    assessment_id: uuid.UUID = Path(..., description="Assessment UUID"),
    service: ResultsComputationService = Depends(get_results_service),
) -> ResponseEventResponse:
    """Recompute results after a rater response, if the assessment is open.

    Events for assessments in any other state are acknowledged with
    ``computed: false`` and change nothing.
    """
    try:
        document = await service.handle_response_event(assessment_id, tenant_id)
    except ServiceError as exc:
        raise _http_error(exc) from exc

    if document is None:
        return ResponseEventResponse(assessment_id=assessment_id, computed=False)
    return ResponseEventResponse(
        assessment_id=assessment_id,
        computed=True,
        results=ComputedResultsResponse.model_validate(document),
    )


@router.post(
    "/tenants/{tenant_id}/assessments/{assessment_id}/results/recompute",
    response_model=ComputedResultsResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_200_OK,
    summary="Recompute the results of a closed or completed assessment",
)
async def recompute_results(
    tenant_id: uuid.UUID = Path(..., description="Owning tenant UUID"),
    assessment_id: uuid.UUID = Path(..., description="Assessment UUID"),
    service: ResultsComputationService = Depends(get_results_service),
) -> ComputedResultsResponse:
    """Run the full computation again and replace the stored results."""
    try:
        document = await service.recompute(assessment_id, tenant_id)
    except ServiceError as exc:
        raise _http_error(exc) from exc

    logger.info(
        "Results recomputed on request",
        tenant_id=str(tenant_id),
        assessment_id=str(assessment_id),
    )
    return ComputedResultsResponse.model_validate(document)


# ---------------------------------------------------------------------------
# Benchmark endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/agencies/{agency_id}/templates/{template_id}/benchmarks/refresh",
    response_model=BenchmarkRefreshResponse,
    status_code=status.HTTP_200_OK,
    summary="Recompute agency benchmarks for a template",
)
async def refresh_benchmarks(
    agency_id: uuid.UUID = Path(..., description="Agency UUID"),
    template_id: uuid.UUID = Path(..., description="Template UUID"),
    service: BenchmarkService = Depends(get_benchmark_service),
) -> BenchmarkRefreshResponse:
    """Aggregate all completed assessments of a template into benchmarks."""
    try:
        benchmarks = await service.refresh_benchmarks(agency_id, template_id)
    except ServiceError as exc:
        raise _http_error(exc) from exc

    return BenchmarkRefreshResponse(
        agency_id=agency_id,
        template_id=template_id,
        competencies={
            competency_id: BenchmarkStatsSchema.model_validate(benchmark.to_dict())
            for competency_id, benchmark in benchmarks.items()
        },
    )


@router.get(
    "/tenants/{tenant_id}/assessments/{assessment_id}/benchmark-comparison",
    response_model=BenchmarkComparisonResponse,
    status_code=status.HTTP_200_OK,
    summary="Compare an assessment against its agency benchmarks",
)
async def benchmark_comparison(
    tenant_id: uuid.UUID = Path(..., description="Owning tenant UUID"),
    assessment_id: uuid.UUID = Path(..., description="Assessment UUID"),
    service: BenchmarkService = Depends(get_benchmark_service),
) -> BenchmarkComparisonResponse:
    """Return the percentile rank of each rated competency within its benchmark."""
    try:
        positions = await service.compare_assessment(assessment_id, tenant_id)
    except ServiceError as exc:
        raise _http_error(exc) from exc

    return BenchmarkComparisonResponse(
        assessment_id=assessment_id,
        positions=[
            BenchmarkPositionSchema(
                competency_id=position.competency_id,
                competency_name=position.competency_name,
                score=position.score,
                percentile_rank=position.percentile_rank,
                benchmark=BenchmarkStatsSchema.model_validate(position.benchmark.to_dict()),
            )
            for position in positions
        ],
    )
