"""Initial schema for podcasts, episodes, media references and users

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'categories',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('title', sa.String(256), nullable=False),
        sa.Column('parent_id', sa.String(36), sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True),
    )

    op.create_table(
        'podcasts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('feed_url', sa.String(2048), unique=True, nullable=True),
        sa.Column('title', sa.String(512), nullable=False),
        sa.Column('image_url', sa.String(2048), nullable=True),
        sa.Column('is_public', sa.Boolean, default=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'podcasts_categories',
        sa.Column('podcast_id', sa.String(36), sa.ForeignKey('podcasts.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('category_id', sa.String(36), sa.ForeignKey('categories.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'episodes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('podcast_id', sa.String(36), sa.ForeignKey('podcasts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_public', sa.Boolean, default=False),
        # Metadata from RSS feed
        sa.Column('guid', sa.String(2048), nullable=True),
        sa.Column('title', sa.String(1024), nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('pub_date', sa.DateTime, nullable=True),
        sa.Column('episode_type', sa.String(32), nullable=True),
        sa.Column('image_url', sa.String(2048), nullable=True),
        sa.Column('link_url', sa.String(2048), nullable=True),
        sa.Column('is_explicit', sa.Boolean, default=False),
        sa.Column('funding', sa.JSON, nullable=True),
        # Media enclosure
        sa.Column('media_url', sa.String(2048), nullable=False),
        sa.Column('media_type', sa.String(64), nullable=True),
        sa.Column('media_filesize', sa.Integer, default=0),
        sa.Column('duration', sa.Integer, default=0),
        # Pageview counters
        sa.Column('past_hour_total_unique_pageviews', sa.Integer, default=0),
        sa.Column('past_day_total_unique_pageviews', sa.Integer, default=0),
        sa.Column('past_week_total_unique_pageviews', sa.Integer, default=0),
        sa.Column('past_month_total_unique_pageviews', sa.Integer, default=0),
        sa.Column('past_year_total_unique_pageviews', sa.Integer, default=0),
        sa.Column('past_all_time_total_unique_pageviews', sa.Integer, default=0),
        # Chapters
        sa.Column('chapters_url', sa.String(2048), nullable=True),
        sa.Column('chapters_url_last_parsed', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_episodes_podcast_id', 'episodes', ['podcast_id'])
    op.create_index('ix_episodes_pub_date', 'episodes', ['pub_date'])
    op.create_index('ix_episodes_is_public', 'episodes', ['is_public'])
    op.create_index('ix_episodes_media_url', 'episodes', ['media_url'])

    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(256), unique=True, nullable=False),
        sa.Column('name', sa.String(256), nullable=True),
        sa.Column('is_public', sa.Boolean, default=False),
        sa.Column('reset_password_token', sa.String(256), nullable=True),
        sa.Column('reset_password_token_expiration', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'media_refs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('episode_id', sa.String(36), sa.ForeignKey('episodes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('owner_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('start_time', sa.Integer, nullable=False, default=0),
        sa.Column('end_time', sa.Integer, nullable=True),
        sa.Column('title', sa.String(1024), nullable=True),
        sa.Column('image_url', sa.String(2048), nullable=True),
        sa.Column('link_url', sa.String(2048), nullable=True),
        sa.Column('is_official_chapter', sa.Boolean, default=False),
        sa.Column('is_public', sa.Boolean, default=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_media_refs_episode_id', 'media_refs', ['episode_id'])
    op.create_index('ix_media_refs_official_chapter', 'media_refs', ['episode_id', 'is_official_chapter'])

    # Recent episode projections
    op.create_table(
        'recent_episodes_by_category',
        sa.Column('category_id', sa.String(36), primary_key=True),
        sa.Column('episode_id', sa.String(36), primary_key=True),
        sa.Column('pub_date', sa.DateTime, nullable=True),
    )
    op.create_index(
        'ix_recent_episodes_by_category_pub_date', 'recent_episodes_by_category', ['category_id', 'pub_date']
    )

    op.create_table(
        'recent_episodes_by_podcast',
        sa.Column('podcast_id', sa.String(36), primary_key=True),
        sa.Column('episode_id', sa.String(36), primary_key=True),
        sa.Column('pub_date', sa.DateTime, nullable=True),
    )
    op.create_index(
        'ix_recent_episodes_by_podcast_pub_date', 'recent_episodes_by_podcast', ['podcast_id', 'pub_date']
    )


def downgrade() -> None:
    op.drop_index('ix_recent_episodes_by_podcast_pub_date', table_name='recent_episodes_by_podcast')
    op.drop_table('recent_episodes_by_podcast')
    op.drop_index('ix_recent_episodes_by_category_pub_date', table_name='recent_episodes_by_category')
    op.drop_table('recent_episodes_by_category')
    op.drop_index('ix_media_refs_official_chapter', table_name='media_refs')
    op.drop_index('ix_media_refs_episode_id', table_name='media_refs')
    op.drop_table('media_refs')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_index('ix_episodes_media_url', table_name='episodes')
    op.drop_index('ix_episodes_is_public', table_name='episodes')
    op.drop_index('ix_episodes_pub_date', table_name='episodes')
    op.drop_index('ix_episodes_podcast_id', table_name='episodes')
    op.drop_table('episodes')
    op.drop_table('podcasts_categories')
    op.drop_table('podcasts')
    op.drop_table('categories')
