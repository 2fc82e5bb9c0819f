"""System configuration table

Creates a key-value store for named configuration values such as the
data retention policy.

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create system_config key-value table."""

    op.execute('''
        CREATE TABLE IF NOT EXISTS system_config (
            config_key VARCHAR(64) PRIMARY KEY,
            config_value JSONB NOT NULL DEFAULT '{}',
            description TEXT,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    ''')

    op.execute(
        'DROP TRIGGER IF EXISTS update_system_config_updated_at '
        'ON system_config'
    )
    op.execute('''
        CREATE TRIGGER update_system_config_updated_at
            BEFORE UPDATE ON system_config
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column()
    ''')


def downgrade() -> None:
    """Remove system_config table."""
    op.execute(
        'DROP TRIGGER IF EXISTS update_system_config_updated_at '
        'ON system_config'
    )
    op.execute('DROP TABLE IF EXISTS system_config')
