"""Create posts table for Krishna108

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # gen_random_uuid()
    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')

    op.create_table(
        'posts',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False,
                  server_default=sa.text('gen_random_uuid()')),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('scripture_source', sa.String(50), nullable=False),  # Bhagavad Gita, Srimad Bhagavatam
        sa.Column('verse_reference', sa.String(20), nullable=False),  # 2.13
        sa.Column('verse_excerpt', sa.Text(), nullable=False),
        sa.Column('explanation', sa.Text(), nullable=False),
        sa.Column('reflection', sa.Text(), nullable=False),
        sa.Column('practical_application', sa.Text(), nullable=False),
        sa.Column('closing_line', sa.Text(), nullable=False),
        sa.Column('seo_description', sa.String(160), nullable=False),
        sa.Column('featured_image_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index('idx_posts_created_at', 'posts', [sa.text('created_at DESC')])
    op.create_index('idx_posts_slug', 'posts', ['slug'])
    op.create_index('idx_posts_verse_reference', 'posts', ['verse_reference'])

    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = now();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
    """)
    op.execute("""
        CREATE TRIGGER update_posts_updated_at
        BEFORE UPDATE ON posts
        FOR EACH ROW
        EXECUTE FUNCTION update_updated_at_column()
    """)


def downgrade() -> None:
    op.execute('DROP TRIGGER IF EXISTS update_posts_updated_at ON posts')
    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')
    op.drop_index('idx_posts_verse_reference', table_name='posts')
    op.drop_index('idx_posts_slug', table_name='posts')
    op.drop_index('idx_posts_created_at', table_name='posts')
    op.drop_table('posts')
