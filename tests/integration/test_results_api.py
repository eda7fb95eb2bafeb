"""Integration tests for the assessment results HTTP API.

Requests go through the real FastAPI app and router; the service
dependencies are overridden with services built on AsyncMock repositories
(see ``tests/conftest.py``), so the full computation pipeline runs but no
database is touched.
"""

import uuid
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import status
from httpx import AsyncClient

from tr_assessments.core.domain import RawResponse

_ASSESSMENT_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
_TEMPLATE_ID = uuid.UUID("44444444-4444-4444-4444-444444444444")


def _url(tenant_id: uuid.UUID, suffix: str) -> str:
    return f"/api/v1/tenants/{tenant_id}/assessments/{_ASSESSMENT_ID}/{suffix}"


def _assessment(tenant_id: uuid.UUID, status_value: str, **overrides: Any) -> SimpleNamespace:
    fields: dict[str, Any] = {
        "id": _ASSESSMENT_ID,
        "tenant_id": tenant_id,
        "template_id": _TEMPLATE_ID,
        "subject_id": uuid.uuid4(),
        "status": status_value,
        "anonymize_results": False,
        "computed_results": None,
        "completed_at": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


@pytest.fixture()
def wired(
    mock_template_repo: AsyncMock,
    mock_response_repo: AsyncMock,
    template_config_raw: dict[str, Any],
    agency_id: uuid.UUID,
    sample_responses: list[RawResponse],
) -> None:
    mock_template_repo.get_by_id.return_value = SimpleNamespace(
        id=_TEMPLATE_ID, agency_id=agency_id, config=template_config_raw
    )
    mock_response_repo.list_by_assessment.return_value = sample_responses


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@pytest.mark.asyncio()
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "tr-assessments"


# ---------------------------------------------------------------------------
# Response events
# ---------------------------------------------------------------------------


class TestResponseEvents:
    @pytest.mark.asyncio()
    @pytest.mark.usefixtures("wired")
    async def test_open_assessment_returns_results(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
        tenant_id: uuid.UUID,
    ) -> None:
        mock_assessment_repo.get_by_id.return_value = _assessment(tenant_id, "open")

        response = await client.post(_url(tenant_id, "response-events"))

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["assessmentId"] == str(_ASSESSMENT_ID)
        assert body["computed"] is True
        results = body["results"]
        assert results["overallScore"] == 3.25
        assert results["johariWindow"]["hiddenArea"] == ["Coaching"]
        assert results["cciResult"]["band"] == "High"
        assert results["currentCeiling"]["competencyName"] == "Confidence"
        assert "trend" not in results
        assert all("raterId" not in c for c in results["comments"])
        mock_assessment_repo.save_results.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_closed_assessment_is_acknowledged(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
        tenant_id: uuid.UUID,
    ) -> None:
        mock_assessment_repo.get_by_id.return_value = _assessment(tenant_id, "closed")

        response = await client.post(_url(tenant_id, "response-events"))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"assessmentId": str(_ASSESSMENT_ID), "computed": False}
        mock_assessment_repo.save_results.assert_not_called()

    @pytest.mark.asyncio()
    async def test_unknown_assessment(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
        tenant_id: uuid.UUID,
    ) -> None:
        mock_assessment_repo.get_by_id.return_value = None

        response = await client.post(_url(tenant_id, "response-events"))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio()
    async def test_malformed_template(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
        mock_template_repo: AsyncMock,
        tenant_id: uuid.UUID,
    ) -> None:
        mock_assessment_repo.get_by_id.return_value = _assessment(tenant_id, "open")
        mock_template_repo.get_by_id.return_value = SimpleNamespace(config={"scaleMin": 5, "scaleMax": 1})

        response = await client.post(_url(tenant_id, "response-events"))

        assert response.status_code == 422
        assert "scaleMin" in response.json()["detail"]
        mock_assessment_repo.save_results.assert_not_called()


# ---------------------------------------------------------------------------
# Recompute
# ---------------------------------------------------------------------------


class TestRecompute:
    @pytest.mark.asyncio()
    async def test_open_assessment_conflicts(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
        tenant_id: uuid.UUID,
    ) -> None:
        mock_assessment_repo.get_by_id.return_value = _assessment(tenant_id, "open")

        response = await client.post(_url(tenant_id, "results/recompute"))

        assert response.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.asyncio()
    @pytest.mark.usefixtures("wired")
    async def test_completed_assessment(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
        tenant_id: uuid.UUID,
    ) -> None:
        mock_assessment_repo.get_by_id.return_value = _assessment(tenant_id, "completed")

        response = await client.post(_url(tenant_id, "results/recompute"))

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["strengths"] == ["Vision", "Coaching"]
        assert body["developmentAreas"] == ["Confidence"]
        assert [i["questionId"] for i in body["topItems"]] == ["c1", "v1", "v2", "c2", "cci1"]
        assert body["dataQuality"] == {"droppedResponses": 0, "flags": []}

    @pytest.mark.asyncio()
    @pytest.mark.usefixtures("wired")
    async def test_computation_failure(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
        mock_invitation_repo: AsyncMock,
        tenant_id: uuid.UUID,
    ) -> None:
        mock_assessment_repo.get_by_id.return_value = _assessment(tenant_id, "closed")
        mock_invitation_repo.count_by_rater_type.side_effect = RuntimeError("pool exhausted")

        response = await client.post(_url(tenant_id, "results/recompute"))

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        mock_assessment_repo.save_results.assert_not_called()


# ---------------------------------------------------------------------------
# Stored results
# ---------------------------------------------------------------------------


class TestGetResults:
    @pytest.mark.asyncio()
    async def test_not_yet_computed(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
        tenant_id: uuid.UUID,
    ) -> None:
        mock_assessment_repo.get_by_id.return_value = _assessment(tenant_id, "open")

        response = await client.get(_url(tenant_id, "results"))

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    @pytest.mark.asyncio()
    @pytest.mark.usefixtures("wired")
    async def test_stored_document_round_trips(
        self,
        client: AsyncClient,
        results_service: Any,
        mock_assessment_repo: AsyncMock,
        tenant_id: uuid.UUID,
    ) -> None:
        mock_assessment_repo.get_by_id.return_value = _assessment(tenant_id, "open")
        document = await results_service.handle_response_event(_ASSESSMENT_ID, tenant_id)
        mock_assessment_repo.get_by_id.return_value = _assessment(
            tenant_id, "closed", computed_results=document
        )

        response = await client.get(_url(tenant_id, "results"))

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert set(body) == set(document)
        assert body["overallScore"] == document["overallScore"]
        assert body["competencyScores"][0]["responseDistribution"] == {
            "1": 0,
            "2": 0,
            "3": 1,
            "4": 4,
            "5": 1,
        }
        assert body["competencyScores"][0]["selfScore"] == 4.0

    @pytest.mark.asyncio()
    async def test_other_tenant_is_not_found(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
    ) -> None:
        mock_assessment_repo.get_by_id.return_value = None

        response = await client.get(_url(uuid.uuid4(), "results"))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio()
    async def test_invalid_uuid(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/tenants/not-a-uuid/assessments/x/results")
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Benchmarks
# ---------------------------------------------------------------------------


class TestBenchmarks:
    @pytest.mark.asyncio()
    @pytest.mark.usefixtures("wired")
    async def test_refresh(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
        mock_benchmark_repo: AsyncMock,
        agency_id: uuid.UUID,
    ) -> None:
        mock_assessment_repo.list_completed_results.return_value = [
            {"competencyScores": [{"competencyId": "vision", "overallAverage": 3.0, "othersResponseCount": 2}]},
            {"competencyScores": [{"competencyId": "vision", "overallAverage": 4.0, "othersResponseCount": 3}]},
        ]

        response = await client.post(
            f"/api/v1/agencies/{agency_id}/templates/{_TEMPLATE_ID}/benchmarks/refresh"
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["templateId"] == str(_TEMPLATE_ID)
        assert body["competencies"]["vision"]["mean"] == 3.5
        assert body["competencies"]["vision"]["sampleSize"] == 2
        assert body["competencies"]["coaching"]["sampleSize"] == 0
        mock_benchmark_repo.upsert.assert_awaited_once()

    @pytest.mark.asyncio()
    @pytest.mark.usefixtures("wired")
    async def test_refresh_for_wrong_agency(self, client: AsyncClient) -> None:
        response = await client.post(
            f"/api/v1/agencies/{uuid.uuid4()}/templates/{_TEMPLATE_ID}/benchmarks/refresh"
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio()
    @pytest.mark.usefixtures("wired")
    async def test_comparison(
        self,
        client: AsyncClient,
        mock_assessment_repo: AsyncMock,
        mock_benchmark_repo: AsyncMock,
        tenant_id: uuid.UUID,
    ) -> None:
        stored = {
            "competencyScores": [
                {"competencyId": "vision", "competencyName": "Vision", "overallAverage": 3.5, "othersResponseCount": 4}
            ]
        }
        mock_assessment_repo.get_by_id.return_value = _assessment(
            tenant_id, "completed", computed_results=stored
        )
        mock_benchmark_repo.get.return_value = SimpleNamespace(
            benchmark_data={
                "vision": {"mean": 3.0, "median": 3.0, "p25": 2.5, "p75": 3.5, "stdDev": 0.5, "sampleSize": 20}
            }
        )

        response = await client.get(_url(tenant_id, "benchmark-comparison"))

        assert response.status_code == status.HTTP_200_OK
        position = response.json()["positions"][0]
        assert position["competencyId"] == "vision"
        assert position["percentileRank"] == 85
        assert position["benchmark"]["stdDev"] == 0.5
