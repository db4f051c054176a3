"""add_media_assets

Revision ID: 20260301120000
Revises:
Create Date: 2026-03-01

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '20260301120000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One row per stored asset; id is the provider-assigned media id
    op.execute("""
        CREATE TABLE media_assets (
            id VARCHAR(255) PRIMARY KEY,
            storage_provider VARCHAR(20) NOT NULL,
            media_type VARCHAR(20),
            mime_type VARCHAR(255) NOT NULL,
            file_name VARCHAR(255),
            size BIGINT,
            sha256 VARCHAR(64),
            url TEXT,
            status VARCHAR(20) NOT NULL DEFAULT 'UPLOADED',
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT media_assets_status_check
                CHECK (status IN ('PENDING', 'UPLOADED', 'FAILED'))
        )
    """)
    op.create_index('idx_media_assets_storage_provider', 'media_assets', ['storage_provider'])
    op.create_index('idx_media_assets_created_at', 'media_assets', ['created_at'])


def downgrade() -> None:
    op.drop_index('idx_media_assets_created_at', table_name='media_assets')
    op.drop_index('idx_media_assets_storage_provider', table_name='media_assets')
    op.drop_table('media_assets')
