"""initial hiring pipeline schema

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261019_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "jobs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("department", sa.String(length=120), nullable=True),
        sa.Column("level", sa.String(length=50), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("employment_type", sa.String(length=50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("required_skills", _json(), nullable=False, server_default="[]"),
        sa.Column("nice_to_have_skills", _json(), nullable=False, server_default="[]"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("total_applicants", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active_candidates", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_jobs_status", "jobs", ["status"])
    op.create_index("ix_jobs_is_archived", "jobs", ["is_archived"])

    op.create_table(
        "candidates",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("job_id", sa.String(length=36), sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("linkedin_url", sa.String(length=500), nullable=True),
        sa.Column("github_url", sa.String(length=500), nullable=True),
        sa.Column("portfolio_url", sa.String(length=500), nullable=True),
        sa.Column("resume_text", sa.Text(), nullable=True),
        sa.Column("cover_letter", sa.Text(), nullable=True),
        sa.Column("source", sa.String(length=50), nullable=True),
        sa.Column("ai_score", sa.Integer(), nullable=True),
        sa.Column("ai_summary", sa.Text(), nullable=True),
        sa.Column("ai_strengths", _json(), nullable=False, server_default="[]"),
        sa.Column("ai_concerns", _json(), nullable=False, server_default="[]"),
        sa.Column("ai_score_breakdown", _json(), nullable=True),
        sa.Column("ai_recommendation", sa.String(length=20), nullable=True),
        sa.Column("extracted_skills", _json(), nullable=False, server_default="[]"),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("years_of_experience", sa.Integer(), nullable=True),
        sa.Column("stage", sa.String(length=30), nullable=False, server_default="applied"),
        sa.Column("rejection_reason", sa.String(length=255), nullable=True),
        sa.Column("rejection_feedback", sa.Text(), nullable=True),
        sa.Column("question_generation_status", sa.String(length=20), nullable=False, server_default="none"),
        sa.Column("is_starred", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
        sa.UniqueConstraint("job_id", "email", name="uq_candidates_job_email"),
    )
    op.create_index("ix_candidates_job_id", "candidates", ["job_id"])
    op.create_index("ix_candidates_email", "candidates", ["email"])
    op.create_index("ix_candidates_ai_score", "candidates", ["ai_score"])
    op.create_index("ix_candidates_stage", "candidates", ["stage"])
    op.create_index("ix_candidates_last_activity_at", "candidates", ["last_activity_at"])

    op.create_table(
        "candidate_activities",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "candidate_id",
            sa.String(length=36),
            sa.ForeignKey("candidates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("activity_type", sa.String(length=50), nullable=False),
        sa.Column("performed_by", sa.String(length=255), nullable=True),
        sa.Column("old_value", sa.String(length=255), nullable=True),
        sa.Column("new_value", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_candidate_activities_candidate_id", "candidate_activities", ["candidate_id"])
    op.create_index("ix_candidate_activities_activity_type", "candidate_activities", ["activity_type"])
    op.create_index("ix_candidate_activities_created_at", "candidate_activities", ["created_at"])

    op.create_table(
        "ai_interviews",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "candidate_id",
            sa.String(length=36),
            sa.ForeignKey("candidates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("job_id", sa.String(length=36), sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("access_token", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("interview_link", sa.String(length=500), nullable=True),
        sa.Column("interview_duration_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("candidate_timezone", sa.String(length=64), nullable=True),
        sa.Column("custom_message", sa.Text(), nullable=True),
        sa.Column("questions", _json(), nullable=False, server_default="[]"),
        sa.Column("total_questions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_estimated_time", sa.Integer(), nullable=True),
        sa.Column("questions_answered", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("model_used", sa.String(length=100), nullable=True),
        sa.Column("overall_score", sa.Integer(), nullable=True),
        sa.Column("recommendation", sa.String(length=20), nullable=True),
        sa.Column("invite_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_1h_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(length=255), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_ai_interviews_candidate_id", "ai_interviews", ["candidate_id"])
    op.create_index("ix_ai_interviews_job_id", "ai_interviews", ["job_id"])
    op.create_index("ix_ai_interviews_status", "ai_interviews", ["status"])
    op.create_index("ix_ai_interviews_scheduled_at", "ai_interviews", ["scheduled_at"])
    op.create_index("ix_ai_interviews_access_token", "ai_interviews", ["access_token"], unique=True)

    op.create_table(
        "pregenerated_questions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "candidate_id",
            sa.String(length=36),
            sa.ForeignKey("candidates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("job_id", sa.String(length=36), sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("questions", _json(), nullable=False, server_default="[]"),
        sa.Column("total_questions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_estimated_time", sa.Integer(), nullable=True),
        sa.Column("model_used", sa.String(length=100), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "used_in_interview_id",
            sa.String(length=36),
            sa.ForeignKey("ai_interviews.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint("candidate_id", "job_id", name="uq_pregenerated_questions_candidate_job"),
    )
    op.create_index("ix_pregenerated_questions_candidate_id", "pregenerated_questions", ["candidate_id"])
    op.create_index("ix_pregenerated_questions_job_id", "pregenerated_questions", ["job_id"])
    op.create_index("ix_pregenerated_questions_status", "pregenerated_questions", ["status"])


def downgrade() -> None:
    op.drop_table("pregenerated_questions")
    op.drop_table("ai_interviews")
    op.drop_table("candidate_activities")
    op.drop_table("candidates")
    op.drop_table("jobs")
