"""Database module for podcast data persistence.

Provides:
- SQLAlchemy ORM models (podcasts, categories, episodes, media references, users,
  recent episode projections)

The repository interface lives in ``podcast_api.db.repository`` and the factory
in ``podcast_api.db.factory``; they are not re-exported here because the
repository depends on episode query plans, which in turn depend on these models.
"""

from .models import (
    Base,
    Category,
    Episode,
    MediaRef,
    Podcast,
    RecentEpisodeByCategory,
    RecentEpisodeByPodcast,
    User,
)

__all__ = [
    "Base",
    "Category",
    "Episode",
    "MediaRef",
    "Podcast",
    "RecentEpisodeByCategory",
    "RecentEpisodeByPodcast",
    "User",
]
