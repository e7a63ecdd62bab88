"""Create helpdesk tables (departments, users, concerns, chat, escalation)

Revision ID: 5d2c8e41a7b0
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "5d2c8e41a7b0"
down_revision = None
branch_labels = None
depends_on = None

NOW = sa.text("CURRENT_TIMESTAMP")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=NOW),
    ]

def upgrade():
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="academic"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("type IN ('academic','administrative')", name="ck_departments_type_valid"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="student"),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("employee_id", sa.String(length=50), nullable=True, unique=True),
        sa.Column("student_id", sa.String(length=50), nullable=True, unique=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("title", sa.String(length=120), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_handle_cross_department", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("preferences", sa.JSON(), nullable=True),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('admin','department_head','staff','student')",
            name="ck_users_role_valid",
        ),
    )
    op.create_index("ix_users_department_id", "users", ["department_id"])

    op.create_table(
        "concerns",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("reference_number", sa.String(length=20), nullable=False, unique=True),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="other"),
        sa.Column("category", sa.String(length=30), nullable=True),
        sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("assigned_to", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("assigned_at", sa.DateTime(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("resolved_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        sa.Column("escalated_at", sa.DateTime(), nullable=True),
        sa.Column("escalated_by", sa.String(length=50), nullable=True),
        sa.Column("escalation_reason", sa.Text(), nullable=True),
        sa.Column("escalation_level", sa.String(length=20), nullable=True),
        sa.Column("overdue_at", sa.DateTime(), nullable=True),
        sa.Column("ai_classification", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("priority IN ('low','medium','high','urgent')", name="ck_concerns_priority_valid"),
    )
    op.create_index("ix_concerns_status", "concerns", ["status"])
    op.create_index("ix_concerns_department_id", "concerns", ["department_id"])
    op.create_index("ix_concerns_student_id", "concerns", ["student_id"])
    op.create_index("ix_concerns_assigned_to", "concerns", ["assigned_to"])
    op.create_index("ix_concerns_created_at", "concerns", ["created_at"])

    op.create_table(
        "chat_rooms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("concern_id", sa.Integer(), sa.ForeignKey("concerns.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("participants", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("last_activity_at", sa.DateTime(), nullable=True),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.Column("closed_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "concern_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("concern_id", sa.Integer(), sa.ForeignKey("concerns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("chat_room_id", sa.Integer(), sa.ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=True),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(length=20), nullable=False, server_default="text"),
        sa.Column("reply_to_id", sa.Integer(), sa.ForeignKey("concern_messages.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_internal", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_concern_messages_concern_id", "concern_messages", ["concern_id"])
    op.create_index("ix_concern_messages_chat_room_id", "concern_messages", ["chat_room_id"])

    op.create_table(
        "announcements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=30), nullable=False, server_default="general"),
        sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bookmark_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_announcements_status", "announcements", ["status"])

    op.create_table(
        "cross_department_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("concern_id", sa.Integer(), sa.ForeignKey("concerns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("requesting_department_id", sa.Integer(), sa.ForeignKey("departments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("assignment_type", sa.String(length=30), nullable=False, server_default="cross_department"),
        sa.Column("estimated_duration_hours", sa.Integer(), nullable=False, server_default="8"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("assigned_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("assigned_by", sa.String(length=50), nullable=True),
        sa.Column("completion_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('active','completed','expired')", name="ck_cda_status_valid"),
    )
    op.create_index("ix_cross_department_assignments_concern_id", "cross_department_assignments", ["concern_id"])
    op.create_index("ix_cross_department_assignments_staff_id", "cross_department_assignments", ["staff_id"])
    op.create_index(
        "ix_cross_department_assignments_requesting_department_id",
        "cross_department_assignments",
        ["requesting_department_id"],
    )
    op.create_index("ix_cross_department_assignments_status", "cross_department_assignments", ["status"])

    op.create_table(
        "escalation_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("concern_id", sa.Integer(), sa.ForeignKey("concerns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("escalation_type", sa.String(length=20), nullable=False),
        sa.Column("escalation_reason", sa.Text(), nullable=True),
        sa.Column("escalated_by", sa.String(length=50), nullable=False),
        sa.Column("previous_assignee", sa.Integer(), nullable=True),
        sa.Column("new_assignee", sa.Integer(), nullable=True),
        sa.Column("escalated_at", sa.DateTime(), nullable=False, server_default=NOW),
    )
    op.create_index("ix_escalation_logs_concern_id", "escalation_logs", ["concern_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

def downgrade():
    op.drop_table("notifications")
    op.drop_table("escalation_logs")
    op.drop_table("cross_department_assignments")
    op.drop_table("announcements")
    op.drop_table("concern_messages")
    op.drop_table("chat_rooms")
    op.drop_table("concerns")
    op.drop_table("users")
    op.drop_table("departments")
