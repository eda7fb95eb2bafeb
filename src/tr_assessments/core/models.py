"""SQLAlchemy ORM models for the assessment results service.

Only the columns the results engine reads or writes are mapped; the rest of
each table is owned by the platform's CRUD services.

Tables:
    assessment_templates: competency tree and scale per template (config JSON)
    assessments: one assessment of one subject, holds computed_results
    assessment_invitations: one row per invited rater, drives response rates
    assessment_responses: one rating per rater per question
    assessment_benchmarks: per agency/template competency statistics
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class AssessmentsBase(DeclarativeBase):
    """Base class for assessment ORM models."""


class AssessmentTemplate(AssessmentsBase):
    """A reusable survey definition owned by an agency.

    Table: assessment_templates
    """

    __tablename__ = "assessment_templates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Primary key UUID",
    )
    agency_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
        comment="Agency that owns the template",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name of the template",
    )
    config: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="Competencies, questions, scale bounds and flags (camelCase JSON)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Creation timestamp",
    )


class Assessment(AssessmentsBase):
    """One multi-rater assessment of one subject.

    ``computed_results`` is replaced wholesale on every computation and is
    never partially updated. ``results_computed_at`` orders the writes.

    Table: assessments
    """

    __tablename__ = "assessments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Primary key UUID",
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
        comment="Owning tenant",
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("assessment_templates.id"),
        nullable=False,
        index=True,
        comment="Template the assessment was created from",
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
        comment="User being assessed",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        comment="Lifecycle state: draft | open | closed | completed",
    )
    anonymize_results: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Strip rater identity from results regardless of template flag",
    )
    computed_results: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Latest ComputedAssessmentResults document",
    )
    results_computed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="computedAt of the stored results; writes only move it forward",
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp the assessment reached the completed state",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Creation timestamp",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last update timestamp",
    )


class AssessmentInvitation(AssessmentsBase):
    """An invitation sent to one rater for one assessment.

    Table: assessment_invitations
    """

    __tablename__ = "assessment_invitations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Primary key UUID",
    )
    assessment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Assessment the rater was invited to",
    )
    rater_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="Invited rater user, when known",
    )
    rater_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="self | manager | peer | direct_report",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        comment="pending | started | completed | declined",
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp the rater submitted all responses",
    )


class AssessmentResponse(AssessmentsBase):
    """One rating (and optional comment) for one question from one rater.

    Table: assessment_responses
    """

    __tablename__ = "assessment_responses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Primary key UUID",
    )
    assessment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Assessment the response belongs to",
    )
    invitation_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("assessment_invitations.id", ondelete="SET NULL"),
        nullable=True,
        comment="Invitation the response was submitted through",
    )
    rater_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="Rater identity; never copied into anonymized results",
    )
    rater_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="self | manager | peer | direct_report",
    )
    competency_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Template competency id",
    )
    question_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Template question id within the competency",
    )
    rating: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Rating on the template scale; NULL for comment-only answers",
    )
    comment: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Optional free-text comment",
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Submission timestamp",
    )


class AssessmentBenchmark(AssessmentsBase):
    """Per-competency statistics across an agency's completed assessments.

    One row per (agency, template); refreshed in place.

    Table: assessment_benchmarks
    """

    __tablename__ = "assessment_benchmarks"
    __table_args__ = (
        UniqueConstraint("agency_id", "template_id", name="uq_assessment_benchmarks_agency_template"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Primary key UUID",
    )
    agency_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
        comment="Agency the benchmark belongs to",
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("assessment_templates.id", ondelete="CASCADE"),
        nullable=False,
        comment="Template the benchmark covers",
    )
    sample_size: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of completed assessments aggregated",
    )
    benchmark_data: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="competencyId -> {mean, median, p25, p75, stdDev, sampleSize}",
    )
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the statistics were computed",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last update timestamp",
    )
