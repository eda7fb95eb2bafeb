"""Abstract interfaces (Protocol classes) for the assessment results service.

Services depend on these interfaces, not on concrete implementations, so the
computation can be exercised with in-memory fakes. Concrete implementations
live in ``adapters/repositories.py`` and ``adapters/computation_lock.py``.
"""

import uuid
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from tr_assessments.core.domain import RawResponse, ResponseRate


@runtime_checkable
class IAssessmentRepository(Protocol):
    """Repository interface for Assessment records and their stored results."""

    async def get_by_id(
        self, assessment_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> Any | None:
        """Retrieve an assessment by ID within a tenant."""
        ...

    async def get_previous_completed(
        self,
        subject_id: uuid.UUID,
        template_id: uuid.UUID,
        exclude_assessment_id: uuid.UUID,
        before: datetime | None,
    ) -> Any | None:
        """Return the subject's latest completed assessment with stored results.

        Only assessments of the same template that completed before
        ``before`` (when given) are considered.
        """
        ...

    async def save_results(
        self,
        assessment_id: uuid.UUID,
        document: dict[str, Any],
        computed_at: datetime,
    ) -> bool:
        """Replace the stored results unless a newer computation already wrote.

        Returns:
            True if the document was written, False if the write was stale.
        """
        ...

    async def list_completed_results(
        self, template_id: uuid.UUID
    ) -> list[dict[str, Any]]:
        """Return the results documents of all completed assessments of a template."""
        ...


@runtime_checkable
class ITemplateRepository(Protocol):
    """Repository interface for assessment templates."""

    async def get_by_id(self, template_id: uuid.UUID) -> Any | None:
        """Retrieve a template by ID."""
        ...


@runtime_checkable
class IResponseRepository(Protocol):
    """Repository interface for rater responses."""

    async def list_by_assessment(self, assessment_id: uuid.UUID) -> list[RawResponse]:
        """Return every submitted response of an assessment as domain objects."""
        ...


@runtime_checkable
class IInvitationRepository(Protocol):
    """Repository interface for rater invitations."""

    async def count_by_rater_type(
        self, assessment_id: uuid.UUID
    ) -> dict[str, ResponseRate]:
        """Return invited and completed counts keyed by rater type value."""
        ...


@runtime_checkable
class IBenchmarkRepository(Protocol):
    """Repository interface for agency benchmarks."""

    async def get(self, agency_id: uuid.UUID, template_id: uuid.UUID) -> Any | None:
        """Retrieve the benchmark row for an agency and template."""
        ...

    async def upsert(
        self,
        agency_id: uuid.UUID,
        template_id: uuid.UUID,
        benchmark_data: dict[str, Any],
        sample_size: int,
        computed_at: datetime,
    ) -> Any:
        """Insert or replace the benchmark row for an agency and template."""
        ...


@runtime_checkable
class IComputationLock(Protocol):
    """Serializes computations that target the same assessment."""

    def hold(self, key: str) -> AbstractAsyncContextManager[None]:
        """Return a context manager held for the duration of one computation."""
        ...
