"""pgfs metadata table.

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates the table holding one row per stored large object. The table name
follows PGFS_METADATA_TABLE (default: pgfs_metadata).
"""

from alembic import op

from pgfs.persistence.schema import downgrade_statements, upgrade_statements
from pgfs.storage.config import FileSystemConfig

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Apply migration: create the lo extension and the metadata table."""
    for statement in upgrade_statements(FileSystemConfig.from_env().table_name):
        op.execute(statement)


def downgrade() -> None:
    """Revert migration: drop the metadata table."""
    for statement in downgrade_statements(FileSystemConfig.from_env().table_name):
        op.execute(statement)
