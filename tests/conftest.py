"""Test fixtures for tr-assessments.

Provides a sample template, a response factory, and an HTTP client whose
service dependencies are overridden with services built on AsyncMock
repositories.
"""

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tr_assessments.adapters.computation_lock import ComputationLock
from tr_assessments.api.router import get_benchmark_service, get_results_service
from tr_assessments.core.domain import RaterType, RawResponse, TemplateConfig
from tr_assessments.core.services import BenchmarkService, ResultsComputationService
from tr_assessments.core.template import parse_template_config
from tr_assessments.main import app

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def sample_template_config() -> dict[str, Any]:
    """Three competencies on a 1-5 scale; the last one holds the CCI questions."""
    return {
        "scaleMin": 1,
        "scaleMax": 5,
        "scaleLabels": ["Never", "Rarely", "Sometimes", "Often", "Always"],
        "anonymizeResponses": True,
        "raterTypes": ["self", "manager", "peer", "direct_report"],
        "competencies": [
            {
                "id": "vision",
                "name": "Vision",
                "subtitle": "Direction Must Hold Under Pressure",
                "questions": [
                    {"id": "v1", "text": "Communicates a clear direction"},
                    {"id": "v2", "text": "Connects daily work to strategy"},
                ],
            },
            {
                "id": "coaching",
                "name": "Coaching",
                "questions": [
                    {"id": "c1", "text": "Develops others"},
                    {"id": "c2", "text": "Gives actionable feedback"},
                ],
            },
            {
                "id": "confidence",
                "name": "Confidence",
                "questions": [
                    {"id": "cci1", "text": "Acts decisively", "isCCI": True},
                    {
                        "id": "cci2",
                        "text": "Second-guesses own decisions",
                        "isCCI": True,
                        "reverseScored": True,
                    },
                ],
            },
        ],
    }


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def template_config_raw() -> dict[str, Any]:
    return sample_template_config()


@pytest.fixture()
def template(template_config_raw: dict[str, Any]) -> TemplateConfig:
    return parse_template_config(template_config_raw)


@pytest.fixture()
def make_response() -> Callable[..., RawResponse]:
    """Factory: make_response("peer", "vision", "v1", 4, rater_id="p1")."""

    def _make(
        rater_type: str,
        competency_id: str,
        question_id: str,
        rating: int | None,
        rater_id: str | None = None,
        comment: str | None = None,
    ) -> RawResponse:
        return RawResponse(
            rater_type=RaterType(rater_type),
            competency_id=competency_id,
            question_id=question_id,
            rating=rating,
            rater_id=rater_id,
            comment=comment,
        )

    return _make


@pytest.fixture()
def sample_responses(make_response: Callable[..., RawResponse]) -> list[RawResponse]:
    """A small 360 response set touching every competency."""
    return [
        make_response("self", "vision", "v1", 4, rater_id="s1"),
        make_response("self", "vision", "v2", 4, rater_id="s1"),
        make_response("peer", "vision", "v1", 3, rater_id="p1", comment="Clear in all-hands."),
        make_response("peer", "vision", "v2", 4, rater_id="p1"),
        make_response("manager", "vision", "v1", 5, rater_id="m1"),
        make_response("manager", "vision", "v2", 4, rater_id="m1"),
        make_response("self", "coaching", "c1", 2, rater_id="s1"),
        make_response("self", "coaching", "c2", 2, rater_id="s1"),
        make_response("peer", "coaching", "c1", 4, rater_id="p1"),
        make_response("peer", "coaching", "c2", 3, rater_id="p1"),
        make_response("manager", "coaching", "c1", 4, rater_id="m1", comment="Great mentor."),
        make_response("manager", "coaching", "c2", 4, rater_id="m1"),
        make_response("self", "confidence", "cci1", 4, rater_id="s1"),
        make_response("self", "confidence", "cci2", 2, rater_id="s1"),
        make_response("peer", "confidence", "cci1", 2, rater_id="p1"),
        make_response("peer", "confidence", "cci2", 4, rater_id="p1"),
    ]


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def tenant_id() -> uuid.UUID:
    """Fixed tenant UUID for tests."""
    return uuid.UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture()
def agency_id() -> uuid.UUID:
    """Fixed agency UUID for tests."""
    return uuid.UUID("33333333-3333-3333-3333-333333333333")


@pytest.fixture()
def mock_assessment_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.get_previous_completed.return_value = None
    repo.save_results.return_value = True
    return repo


@pytest.fixture()
def mock_template_repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def mock_response_repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def mock_invitation_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.count_by_rater_type.return_value = {}
    return repo


@pytest.fixture()
def mock_benchmark_repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def results_service(
    mock_assessment_repo: AsyncMock,
    mock_template_repo: AsyncMock,
    mock_response_repo: AsyncMock,
    mock_invitation_repo: AsyncMock,
) -> ResultsComputationService:
    return ResultsComputationService(
        assessment_repo=mock_assessment_repo,
        template_repo=mock_template_repo,
        response_repo=mock_response_repo,
        invitation_repo=mock_invitation_repo,
        computation_lock=ComputationLock(),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture()
def benchmark_service(
    mock_assessment_repo: AsyncMock,
    mock_template_repo: AsyncMock,
    mock_benchmark_repo: AsyncMock,
) -> BenchmarkService:
    return BenchmarkService(
        assessment_repo=mock_assessment_repo,
        template_repo=mock_template_repo,
        benchmark_repo=mock_benchmark_repo,
        clock=lambda: FIXED_NOW,
    )


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def client(
    results_service: ResultsComputationService,
    benchmark_service: BenchmarkService,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with service dependencies overridden."""
    app.dependency_overrides[get_results_service] = lambda: results_service
    app.dependency_overrides[get_benchmark_service] = lambda: benchmark_service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver"
    ) as http_client:
        yield http_client

    app.dependency_overrides.clear()
