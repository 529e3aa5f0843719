"""Initial credential store schema: users, tokens, rate_events.

Revision ID: 0001
Revises:
Create Date: 2026-10-17

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

ROLE = sa.Enum("free", "premium", "admin", name="role", native_enum=False, length=16)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("principal_id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("is_authenticated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "tokens",
        sa.Column("token", sa.String(64), primary_key=True),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("consumed_at", sa.DateTime(), nullable=True),
        sa.Column("issued_by", sa.BigInteger(), nullable=True),
        sa.Column("issued_to", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tokens_expires_at", "tokens", ["expires_at"])

    op.create_table(
        "rate_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("principal_id", sa.BigInteger(), nullable=False),
        sa.Column("kind", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_rate_events_principal_created", "rate_events", ["principal_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_rate_events_principal_created", table_name="rate_events")
    op.drop_table("rate_events")
    op.drop_index("ix_tokens_expires_at", table_name="tokens")
    op.drop_table("tokens")
    op.drop_table("users")
