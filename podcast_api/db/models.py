"""SQLAlchemy ORM models for podcasts, episodes, media references and users."""

import uuid
from datetime import UTC, datetime
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import JSON


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


podcasts_categories = Table(
    "podcasts_categories",
    Base.metadata,
    Column(
        "podcast_id",
        String(36),
        ForeignKey("podcasts.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "category_id",
        String(36),
        ForeignKey("categories.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Category(Base):
    """Podcast category (e.g. "Technology", "Comedy")."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    parent_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("categories.id", ondelete="SET NULL")
    )

    podcasts: Mapped[List["Podcast"]] = relationship(
        "Podcast", secondary=podcasts_categories, back_populates="categories"
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, title={self.title!r})>"


class Podcast(Base):
    """Podcast model.

    Podcasts are created by feed ingestion, which lives outside this service.
    """

    __tablename__ = "podcasts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    feed_url: Mapped[Optional[str]] = mapped_column(String(2048), unique=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(2048))
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    categories: Mapped[List["Category"]] = relationship(
        "Category", secondary=podcasts_categories, back_populates="podcasts"
    )
    episodes: Mapped[List["Episode"]] = relationship(
        "Episode", back_populates="podcast", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Podcast(id={self.id}, title={self.title!r})>"


class Episode(Base):
    """Episode model.

    Stores feed metadata, rolling pageview counters used for "top" sorting,
    and the location of the episode's remote chapters document.
    A non-public episode with no media references is "dead" and gets reaped.
    """

    __tablename__ = "episodes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    podcast_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False
    )
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)

    # Metadata from RSS feed
    guid: Mapped[Optional[str]] = mapped_column(String(2048))
    title: Mapped[Optional[str]] = mapped_column(String(1024))
    description: Mapped[Optional[str]] = mapped_column(Text)
    pub_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    episode_type: Mapped[Optional[str]] = mapped_column(String(32))  # full, trailer, bonus
    image_url: Mapped[Optional[str]] = mapped_column(String(2048))
    link_url: Mapped[Optional[str]] = mapped_column(String(2048))
    is_explicit: Mapped[bool] = mapped_column(Boolean, default=False)
    funding: Mapped[Optional[List[Any]]] = mapped_column(JSON)

    # Media enclosure
    media_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    media_type: Mapped[Optional[str]] = mapped_column(String(64))
    media_filesize: Mapped[int] = mapped_column(Integer, default=0)
    duration: Mapped[int] = mapped_column(Integer, default=0)

    # Rolling unique pageview counters, refreshed by analytics outside this service
    past_hour_total_unique_pageviews: Mapped[int] = mapped_column(Integer, default=0)
    past_day_total_unique_pageviews: Mapped[int] = mapped_column(Integer, default=0)
    past_week_total_unique_pageviews: Mapped[int] = mapped_column(Integer, default=0)
    past_month_total_unique_pageviews: Mapped[int] = mapped_column(Integer, default=0)
    past_year_total_unique_pageviews: Mapped[int] = mapped_column(Integer, default=0)
    past_all_time_total_unique_pageviews: Mapped[int] = mapped_column(Integer, default=0)

    # Podcasting 2.0 chapters
    chapters_url: Mapped[Optional[str]] = mapped_column(String(2048))
    chapters_url_last_parsed: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    podcast: Mapped["Podcast"] = relationship("Podcast", back_populates="episodes")
    media_refs: Mapped[List["MediaRef"]] = relationship(
        "MediaRef", back_populates="episode", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_episodes_podcast_id", "podcast_id"),
        Index("ix_episodes_pub_date", "pub_date"),
        Index("ix_episodes_is_public", "is_public"),
        Index("ix_episodes_media_url", "media_url"),
    )

    def __repr__(self) -> str:
        return f"<Episode(id={self.id}, title={self.title!r})>"


class User(Base):
    """User account.

    Owns clips; the configured super user owns official chapters.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(256))
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)

    reset_password_token: Mapped[Optional[str]] = mapped_column(String(256))
    reset_password_token_expiration: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    media_refs: Mapped[List["MediaRef"]] = relationship("MediaRef", back_populates="owner")

    __table_args__ = (Index("ix_users_email", "email"),)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r})>"


class MediaRef(Base):
    """A time range within an episode: either a user clip or an official chapter.

    Official chapters come from the episode's chapters document and are only
    created, updated and suppressed by the chapter synchronizer.
    """

    __tablename__ = "media_refs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    episode_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("episodes.id", ondelete="CASCADE"), nullable=False
    )
    owner_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL")
    )

    start_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    end_time: Mapped[Optional[int]] = mapped_column(Integer)
    title: Mapped[Optional[str]] = mapped_column(String(1024))
    image_url: Mapped[Optional[str]] = mapped_column(String(2048))
    link_url: Mapped[Optional[str]] = mapped_column(String(2048))

    is_official_chapter: Mapped[bool] = mapped_column(Boolean, default=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    episode: Mapped["Episode"] = relationship("Episode", back_populates="media_refs")
    owner: Mapped[Optional["User"]] = relationship("User", back_populates="media_refs")

    __table_args__ = (
        Index("ix_media_refs_episode_id", "episode_id"),
        Index("ix_media_refs_official_chapter", "episode_id", "is_official_chapter"),
    )

    def __repr__(self) -> str:
        return (
            f"<MediaRef(id={self.id}, episode_id={self.episode_id}, "
            f"start_time={self.start_time})>"
        )


class RecentEpisodeByCategory(Base):
    """Denormalized index of recent public episodes per category.

    Rebuilt periodically; read to sort "most-recent" listings without joining
    the full episode table.
    """

    __tablename__ = "recent_episodes_by_category"

    category_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    episode_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    pub_date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index("ix_recent_episodes_by_category_pub_date", "category_id", "pub_date"),
    )


class RecentEpisodeByPodcast(Base):
    """Denormalized index of recent public episodes per podcast."""

    __tablename__ = "recent_episodes_by_podcast"

    podcast_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    episode_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    pub_date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index("ix_recent_episodes_by_podcast_pub_date", "podcast_id", "pub_date"),
    )
