"""Repository pattern implementation for podcast data persistence.

Provides an abstract interface and SQLAlchemy implementation for database operations.
Supports both SQLite (local development) and PostgreSQL (production).
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple

from sqlalchemy import create_engine, delete, func, insert, select
from sqlalchemy.orm import Session, joinedload, selectinload, sessionmaker

from podcast_api.episodes.query_plan import EpisodeQueryPlan, compile_episode_query

from .models import (
    Base,
    Category,
    Episode,
    MediaRef,
    Podcast,
    RecentEpisodeByCategory,
    RecentEpisodeByPodcast,
    User,
    podcasts_categories,
    utcnow,
)

logger = logging.getLogger(__name__)

RecencyDimension = Literal["category", "podcast"]


class PodcastRepositoryInterface(ABC):
    """Abstract interface for podcast data persistence.

    Implementations must support both SQLite and PostgreSQL backends.
    """

    # --- Podcast and Category Operations ---

    @abstractmethod
    def create_podcast(self, title: str, **kwargs) -> Podcast:
        """Create and persist a podcast."""
        pass

    @abstractmethod
    def get_podcast(self, podcast_id: str) -> Optional[Podcast]:
        """Retrieve a podcast by its identifier, or `None`."""
        pass

    @abstractmethod
    def create_category(self, title: str, **kwargs) -> Category:
        """Create and persist a category."""
        pass

    @abstractmethod
    def add_podcast_to_category(self, podcast_id: str, category_id: str) -> bool:
        """
        Link a podcast to a category.

        Returns:
            bool: `True` if both exist and are now linked, `False` otherwise.
        """
        pass

    # --- Episode Operations ---

    @abstractmethod
    def create_episode(self, podcast_id: str, media_url: str, **kwargs) -> Episode:
        """
        Create and persist a new Episode for the given podcast.

        Parameters:
            podcast_id (str): ID of the podcast to associate the episode with.
            media_url (str): URL of the episode media file.
            **kwargs: Optional episode attributes such as `title`, `pub_date`,
                `is_public`, `chapters_url` and pageview counters.

        Returns:
            Episode: The newly created and persisted Episode instance.
        """
        pass

    @abstractmethod
    def get_episode(self, episode_id: str) -> Optional[Episode]:
        """
        Retrieve an episode by its primary key with its podcast and categories loaded.

        Returns:
            The Episode instance if found, `None` otherwise.
        """
        pass

    @abstractmethod
    def find_public_episode(self, podcast_id: str, title: str) -> Optional[Episode]:
        """
        Find a public episode of a podcast by exact title.

        Used to swap a non-public episode for its newer public version.
        """
        pass

    @abstractmethod
    def update_episode(self, episode_id: str, **kwargs) -> Optional[Episode]:
        """
        Update attributes of an existing episode.

        Returns:
            Optional[Episode]: The updated Episode, or `None` if no episode with `episode_id` exists.
        """
        pass

    @abstractmethod
    def delete_episode(self, episode_id: str) -> bool:
        """
        Delete an episode record.

        Returns:
            bool: True if the episode was found and deleted, False if it does not exist.
        """
        pass

    @abstractmethod
    def query_episodes(self, plan: EpisodeQueryPlan) -> Tuple[List[Episode], int]:
        """
        Execute an episode query plan.

        Returns:
            tuple: (page of episodes, total number of matches ignoring pagination)
        """
        pass

    @abstractmethod
    def get_dead_episodes(self, limit: int = 100) -> List[Episode]:
        """
        Return up to `limit` non-public episodes that have no media references.
        """
        pass

    @abstractmethod
    def count_dead_episodes(self) -> int:
        """Count non-public episodes that have no media references."""
        pass

    # --- Recent Episode Projections ---

    @abstractmethod
    def query_recent_episode_ids(
        self,
        dimension: RecencyDimension,
        ids: Iterable[str],
        skip: int = 0,
        take: int = 20,
    ) -> Tuple[List[str], int]:
        """
        Page through the recent-episode projection for a set of categories or podcasts.

        Parameters:
            dimension: "category" or "podcast".
            ids: Category or podcast ids to include.
            skip: Offset into the projection ordered by publication date, newest first.
            take: Maximum number of ids to return.

        Returns:
            tuple: (episode ids for the page, total number of projection rows)
        """
        pass

    @abstractmethod
    def rebuild_recent_episode_projections(
        self, window_days: int = 30, now: Optional[datetime] = None
    ) -> Dict[str, int]:
        """
        Rebuild both recent-episode projections from public episodes.

        Parameters:
            window_days: Only episodes published within this many days are indexed.
            now: Reference time; defaults to the current UTC time.

        Returns:
            dict: Row counts with keys `by_category` and `by_podcast`.
        """
        pass

    # --- Media Reference Operations ---

    @abstractmethod
    def create_media_ref(self, episode_id: str, start_time: int, **kwargs) -> MediaRef:
        """Create and persist a media reference (clip or chapter)."""
        pass

    @abstractmethod
    def get_media_ref(self, media_ref_id: str) -> Optional[MediaRef]:
        """Retrieve a media reference by id, or `None`."""
        pass

    @abstractmethod
    def update_media_ref(self, media_ref_id: str, **kwargs) -> Optional[MediaRef]:
        """
        Update attributes of a media reference.

        Returns:
            Optional[MediaRef]: The updated MediaRef, or `None` if it does not exist.
        """
        pass

    @abstractmethod
    def list_official_chapters(self, episode_id: str) -> Tuple[List[MediaRef], int]:
        """
        List every official chapter of an episode, public or suppressed.

        Returns:
            tuple: (chapters ordered by start time ascending, count)
        """
        pass

    @abstractmethod
    def list_public_media_refs_by_episode_media_url(self, media_url: str) -> List[MediaRef]:
        """
        List public media references of every episode with the given media URL.

        Returns:
            List[MediaRef]: Ordered by start time ascending.
        """
        pass

    # --- User Operations ---

    @abstractmethod
    def create_user(self, email: str, **kwargs) -> User:
        """Create and persist a user."""
        pass

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        """Retrieve a user by id, or `None`."""
        pass

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]:
        """Retrieve a user by email, or `None`."""
        pass

    @abstractmethod
    def list_users(self, limit: Optional[int] = None, offset: int = 0) -> List[User]:
        """List users ordered by email."""
        pass

    @abstractmethod
    def update_user(self, user_id: str, **kwargs) -> Optional[User]:
        """Update a user's attributes; `None` if the user does not exist."""
        pass

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        """Delete a user; `False` if the user does not exist."""
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close and release all database connections and engine resources used by the repository.
        """
        pass


class SQLAlchemyPodcastRepository(PodcastRepositoryInterface):
    """SQLAlchemy-based implementation of the podcast repository.

    Supports SQLite for local development and PostgreSQL for production.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
        create_tables: bool = False,
    ):
        """
        Initialize the repository and configure its SQLAlchemy engine and session factory.

        Parameters:
            database_url (str): SQLAlchemy-compatible database URL.
            pool_size (int): Connection pool size for non-SQLite databases.
            max_overflow (int): Maximum overflow connections for non-SQLite databases.
            echo (bool): If true, enable SQLAlchemy SQL statement logging.
            create_tables (bool): If true, create any missing tables. Production
                schemas are managed by alembic instead.
        """
        self.database_url = database_url

        # SQLite doesn't support connection pooling
        if database_url.startswith("sqlite"):
            self.engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
            )
        else:
            self.engine = create_engine(
                database_url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
                echo=echo,
            )

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        if create_tables:
            Base.metadata.create_all(self.engine)

        logger.info(f"Database initialized: {database_url.split('@')[-1] if '@' in database_url else database_url}")

    def _get_session(self) -> Session:
        """
        Obtain a new SQLAlchemy database session from the repository's session factory.
        """
        return self.SessionLocal()

    @staticmethod
    def _apply_updates(entity, kwargs: Dict[str, Any]) -> None:
        for key, value in kwargs.items():
            if hasattr(entity, key):
                setattr(entity, key, value)
        entity.updated_at = utcnow()

    # --- Podcast and Category Operations ---

    def create_podcast(self, title: str, **kwargs) -> Podcast:
        with self._get_session() as session:
            podcast = Podcast(title=title, **kwargs)
            session.add(podcast)
            session.commit()
            session.refresh(podcast)
            logger.info(f"Created podcast: {title} ({podcast.id})")
            return podcast

    def get_podcast(self, podcast_id: str) -> Optional[Podcast]:
        with self._get_session() as session:
            stmt = (
                select(Podcast)
                .options(selectinload(Podcast.categories))
                .where(Podcast.id == podcast_id)
            )
            return session.scalar(stmt)

    def create_category(self, title: str, **kwargs) -> Category:
        with self._get_session() as session:
            category = Category(title=title, **kwargs)
            session.add(category)
            session.commit()
            session.refresh(category)
            logger.debug(f"Created category: {title} ({category.id})")
            return category

    def add_podcast_to_category(self, podcast_id: str, category_id: str) -> bool:
        with self._get_session() as session:
            podcast = session.get(Podcast, podcast_id)
            category = session.get(Category, category_id)
            if not podcast or not category:
                return False
            if category not in podcast.categories:
                podcast.categories.append(category)
                session.commit()
            return True

    # --- Episode Operations ---

    def create_episode(self, podcast_id: str, media_url: str, **kwargs) -> Episode:
        with self._get_session() as session:
            episode = Episode(podcast_id=podcast_id, media_url=media_url, **kwargs)
            session.add(episode)
            session.commit()
            session.refresh(episode)
            logger.debug(f"Created episode: {episode.title} ({episode.id})")
            return episode

    def get_episode(self, episode_id: str) -> Optional[Episode]:
        with self._get_session() as session:
            stmt = (
                select(Episode)
                .options(
                    joinedload(Episode.podcast).selectinload(Podcast.categories)
                )
                .where(Episode.id == episode_id)
            )
            return session.scalars(stmt).unique().first()

    def find_public_episode(self, podcast_id: str, title: str) -> Optional[Episode]:
        with self._get_session() as session:
            stmt = (
                select(Episode)
                .options(
                    joinedload(Episode.podcast).selectinload(Podcast.categories)
                )
                .where(
                    Episode.is_public.is_(True),
                    Episode.podcast_id == podcast_id,
                    Episode.title == title,
                )
                .order_by(Episode.pub_date.desc())
            )
            return session.scalars(stmt).unique().first()

    def update_episode(self, episode_id: str, **kwargs) -> Optional[Episode]:
        """
        Update attributes of an existing episode.

        Only attributes that exist on the Episode model are applied; the
        episode's `updated_at` timestamp is refreshed.
        """
        with self._get_session() as session:
            episode = session.get(Episode, episode_id)
            if episode:
                self._apply_updates(episode, kwargs)
                session.commit()
                session.refresh(episode)
                logger.debug(f"Updated episode {episode_id}: {list(kwargs.keys())}")
            return episode

    def delete_episode(self, episode_id: str) -> bool:
        with self._get_session() as session:
            episode = session.get(Episode, episode_id)
            if not episode:
                return False

            session.delete(episode)
            session.commit()
            logger.debug(f"Deleted episode: {episode.title} ({episode_id})")
            return True

    def query_episodes(self, plan: EpisodeQueryPlan) -> Tuple[List[Episode], int]:
        compiled = compile_episode_query(plan)
        with self._get_session() as session:
            episodes = list(session.scalars(compiled.statement).unique().all())
            total = session.scalar(compiled.count_statement) or 0
            return episodes, total

    def _dead_episodes_query(self):
        return (
            select(Episode)
            .outerjoin(MediaRef, MediaRef.episode_id == Episode.id)
            .where(Episode.is_public.is_(False), MediaRef.id.is_(None))
        )

    def get_dead_episodes(self, limit: int = 100) -> List[Episode]:
        with self._get_session() as session:
            stmt = self._dead_episodes_query().limit(limit)
            return list(session.scalars(stmt).all())

    def count_dead_episodes(self) -> int:
        with self._get_session() as session:
            stmt = select(func.count()).select_from(self._dead_episodes_query().subquery())
            return session.scalar(stmt) or 0

    # --- Recent Episode Projections ---

    def query_recent_episode_ids(
        self,
        dimension: RecencyDimension,
        ids: Iterable[str],
        skip: int = 0,
        take: int = 20,
    ) -> Tuple[List[str], int]:
        if dimension == "category":
            model, key = RecentEpisodeByCategory, RecentEpisodeByCategory.category_id
        elif dimension == "podcast":
            model, key = RecentEpisodeByPodcast, RecentEpisodeByPodcast.podcast_id
        else:
            raise ValueError(f"Unknown recency dimension: {dimension}")

        ids = list(ids)
        with self._get_session() as session:
            total = session.scalar(
                select(func.count()).select_from(model).where(key.in_(ids))
            ) or 0
            if not total:
                return [], 0

            stmt = (
                select(model.episode_id)
                .where(key.in_(ids))
                .order_by(model.pub_date.desc())
                .offset(max(skip, 0))
                .limit(max(take, 0))
            )
            # An episode can be indexed under several of the requested categories
            episode_ids = list(dict.fromkeys(session.scalars(stmt).all()))
            return episode_ids, total

    def rebuild_recent_episode_projections(
        self, window_days: int = 30, now: Optional[datetime] = None
    ) -> Dict[str, int]:
        cutoff = (now or utcnow()) - timedelta(days=window_days)
        recent = (Episode.is_public.is_(True), Episode.pub_date >= cutoff)

        with self._get_session() as session:
            session.execute(delete(RecentEpisodeByPodcast))
            session.execute(delete(RecentEpisodeByCategory))

            session.execute(
                insert(RecentEpisodeByPodcast).from_select(
                    ["podcast_id", "episode_id", "pub_date"],
                    select(Episode.podcast_id, Episode.id, Episode.pub_date).where(*recent),
                )
            )
            session.execute(
                insert(RecentEpisodeByCategory).from_select(
                    ["category_id", "episode_id", "pub_date"],
                    select(
                        podcasts_categories.c.category_id, Episode.id, Episode.pub_date
                    )
                    .join(
                        podcasts_categories,
                        podcasts_categories.c.podcast_id == Episode.podcast_id,
                    )
                    .where(*recent),
                )
            )
            session.commit()

            counts = {
                "by_category": session.scalar(
                    select(func.count()).select_from(RecentEpisodeByCategory)
                ) or 0,
                "by_podcast": session.scalar(
                    select(func.count()).select_from(RecentEpisodeByPodcast)
                ) or 0,
            }
            logger.info(
                f"Rebuilt recent episode projections: {counts['by_category']} by category, "
                f"{counts['by_podcast']} by podcast"
            )
            return counts

    # --- Media Reference Operations ---

    def create_media_ref(self, episode_id: str, start_time: int, **kwargs) -> MediaRef:
        with self._get_session() as session:
            media_ref = MediaRef(episode_id=episode_id, start_time=start_time, **kwargs)
            session.add(media_ref)
            session.commit()
            session.refresh(media_ref)
            logger.debug(f"Created media ref {media_ref.id} for episode {episode_id}")
            return media_ref

    def get_media_ref(self, media_ref_id: str) -> Optional[MediaRef]:
        with self._get_session() as session:
            return session.get(MediaRef, media_ref_id)

    def update_media_ref(self, media_ref_id: str, **kwargs) -> Optional[MediaRef]:
        with self._get_session() as session:
            media_ref = session.get(MediaRef, media_ref_id)
            if media_ref:
                self._apply_updates(media_ref, kwargs)
                session.commit()
                session.refresh(media_ref)
                logger.debug(f"Updated media ref {media_ref_id}: {list(kwargs.keys())}")
            return media_ref

    def list_official_chapters(self, episode_id: str) -> Tuple[List[MediaRef], int]:
        with self._get_session() as session:
            stmt = (
                select(MediaRef)
                .where(
                    MediaRef.episode_id == episode_id,
                    MediaRef.is_official_chapter.is_(True),
                )
                .order_by(MediaRef.start_time.asc())
            )
            chapters = list(session.scalars(stmt).all())
            return chapters, len(chapters)

    def list_public_media_refs_by_episode_media_url(self, media_url: str) -> List[MediaRef]:
        with self._get_session() as session:
            stmt = (
                select(MediaRef)
                .join(MediaRef.episode)
                .where(Episode.media_url == media_url, MediaRef.is_public.is_(True))
                .order_by(MediaRef.start_time.asc())
            )
            return list(session.scalars(stmt).all())

    # --- User Operations ---

    def create_user(self, email: str, **kwargs) -> User:
        with self._get_session() as session:
            user = User(email=email, **kwargs)
            session.add(user)
            session.commit()
            session.refresh(user)
            logger.info(f"Created user {user.id}")
            return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self._get_session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._get_session() as session:
            return session.scalar(select(User).where(User.email == email))

    def list_users(self, limit: Optional[int] = None, offset: int = 0) -> List[User]:
        with self._get_session() as session:
            stmt = select(User).order_by(User.email).offset(offset)
            if limit:
                stmt = stmt.limit(limit)
            return list(session.scalars(stmt).all())

    def update_user(self, user_id: str, **kwargs) -> Optional[User]:
        with self._get_session() as session:
            user = session.get(User, user_id)
            if user:
                self._apply_updates(user, kwargs)
                session.commit()
                session.refresh(user)
                logger.debug(f"Updated user {user_id}: {list(kwargs.keys())}")
            return user

    def delete_user(self, user_id: str) -> bool:
        with self._get_session() as session:
            user = session.get(User, user_id)
            if not user:
                return False
            session.delete(user)
            session.commit()
            logger.info(f"Deleted user {user_id}")
            return True

    def close(self) -> None:
        """Dispose the engine and its connection pool."""
        self.engine.dispose()
        logger.debug("Database connections closed")
