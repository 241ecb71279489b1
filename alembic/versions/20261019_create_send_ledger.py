"""Create send ledger tables.

Revision ID: 20261019_create_send_ledger
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "20261019_create_send_ledger"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "send_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("originator", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("type", sa.String(length=16), nullable=False, server_default="sms"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("delivered", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
    )
    op.create_table(
        "sms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("msisdn", sa.String(length=20), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("segments", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column(
            "send_log_id",
            sa.Integer(),
            sa.ForeignKey("send_logs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="sent"),
        sa.Column("status_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("provider_message_id", sa.String(length=64), nullable=True),
        sa.Column("error_code", sa.String(length=32), nullable=True),
        sa.Column("error_description", sa.Text(), nullable=True),
    )
    op.create_index("ix_sms_msisdn", "sms", ["msisdn"])
    op.create_index("ix_sms_send_log_id", "sms", ["send_log_id"])
    op.create_index("ix_sms_provider_message_id", "sms", ["provider_message_id"])
    op.create_index("ix_sms_status_sent_at", "sms", ["status", "sent_at"])


def downgrade() -> None:
    op.drop_index("ix_sms_status_sent_at", table_name="sms")
    op.drop_index("ix_sms_provider_message_id", table_name="sms")
    op.drop_index("ix_sms_send_log_id", table_name="sms")
    op.drop_index("ix_sms_msisdn", table_name="sms")
    op.drop_table("sms")
    op.drop_table("send_logs")
