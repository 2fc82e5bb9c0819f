"""Detections table

Creates the detections table written by the plate upload workflow and
the shared updated_at trigger function.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create detections table and updated_at trigger function."""

    op.execute('''
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
    ''')

    op.execute('''
        CREATE TABLE IF NOT EXISTS detections (
            id SERIAL PRIMARY KEY,
            plate_text VARCHAR(20) NOT NULL,
            confidence INTEGER NOT NULL,
            bbox JSONB NOT NULL,
            original_image_url TEXT NOT NULL,
            cropped_image_url TEXT,
            status TEXT NOT NULL DEFAULT 'OK'
                CHECK (status IN ('OK', 'LOW_CONFIDENCE', 'NO_PLATE_FOUND', 'MANUAL_REVIEW')),
            camera_id VARCHAR(64),
            user_id INTEGER,
            detected_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    ''')

    # Retention deletes and stats filter on detected_at
    op.execute(
        'CREATE INDEX IF NOT EXISTS idx_detections_detected_at '
        'ON detections (detected_at)'
    )


def downgrade() -> None:
    """Remove detections table."""
    op.execute('DROP INDEX IF EXISTS idx_detections_detected_at')
    op.execute('DROP TABLE IF EXISTS detections')
    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')
