"""Create analytics events table and indexes

Column types match blog_analytics.db.types: native UUID and JSONB on
PostgreSQL, String(36) and JSON elsewhere (SQLite for local runs).

Revision ID: 001_create_analytics
Revises:

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_create_analytics"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Analytics events (append-only)
    op.create_table(
        "analytics",
        sa.Column(
            "id",
            sa.String(length=36).with_variant(postgresql.UUID(as_uuid=True), "postgresql"),
            nullable=False,
        ),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("session_id", sa.String(), nullable=False),
        sa.Column("country", sa.String(), nullable=False),
        sa.Column("page", sa.String(), nullable=False),
        sa.Column(
            "extra",
            sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql"),
            nullable=False,
            server_default=sa.text("'{}'"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_analytics_timestamp"), "analytics", ["timestamp"], unique=False)
    op.create_index(op.f("ix_analytics_type"), "analytics", ["type"], unique=False)
    op.create_index(op.f("ix_analytics_session_id"), "analytics", ["session_id"], unique=False)
    op.create_index(op.f("ix_analytics_country"), "analytics", ["country"], unique=False)
    op.create_index(
        "idx_analytics_type_timestamp", "analytics", ["type", "timestamp"], unique=False
    )


def downgrade() -> None:
    op.drop_index("idx_analytics_type_timestamp", table_name="analytics")
    op.drop_index(op.f("ix_analytics_country"), table_name="analytics")
    op.drop_index(op.f("ix_analytics_session_id"), table_name="analytics")
    op.drop_index(op.f("ix_analytics_type"), table_name="analytics")
    op.drop_index(op.f("ix_analytics_timestamp"), table_name="analytics")
    op.drop_table("analytics")
