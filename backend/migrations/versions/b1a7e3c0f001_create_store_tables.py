"""Create key-value store tables.

Revision ID: b1a7e3c0f001
Revises:
Create Date: 2026-10-19
"""

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "b1a7e3c0f001"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS kv_set_members (
            id BIGSERIAL NOT NULL PRIMARY KEY,
            key VARCHAR(200) NOT NULL,
            member VARCHAR(500) NOT NULL,
            CONSTRAINT uq_kv_set_members_key_member UNIQUE (key, member)
        );
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS kv_hash_fields (
            key VARCHAR(200) NOT NULL,
            field VARCHAR(500) NOT NULL,
            value TEXT NOT NULL,
            written_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            PRIMARY KEY (key, field)
        );
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS kv_counters (
            key VARCHAR(200) NOT NULL,
            field VARCHAR(500) NOT NULL DEFAULT '',
            value BIGINT NOT NULL DEFAULT 0,
            PRIMARY KEY (key, field)
        );
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS kv_sorted_set_members (
            key VARCHAR(200) NOT NULL,
            member VARCHAR(500) NOT NULL,
            score DOUBLE PRECISION NOT NULL,
            PRIMARY KEY (key, member)
        );
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_kv_sorted_set_members_key_score
            ON kv_sorted_set_members (key, score);
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS kv_sorted_set_members;")
    op.execute("DROP TABLE IF EXISTS kv_counters;")
    op.execute("DROP TABLE IF EXISTS kv_hash_fields;")
    op.execute("DROP TABLE IF EXISTS kv_set_members;")
