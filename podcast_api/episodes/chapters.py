"""Official chapter synchronization.

Keeps an episode's official chapters (media references flagged
``is_official_chapter``) in line with the Podcasting 2.0 chapters document
at the episode's ``chapters_url``. Chapters are matched on their start time:
matches are updated, new start times are created, and local chapters that
disappeared remotely are suppressed (made non-public) rather than deleted.

The remote document is fetched at most once per refresh interval per episode.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from podcast_api.db.models import MediaRef, utcnow
from podcast_api.db.repository import PodcastRepositoryInterface
from podcast_api.errors import NotFoundError, UpstreamFetchError

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = timedelta(hours=12)


class RemoteChapter(BaseModel):
    """A single entry of a remote chapters document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_time: int = Field(..., alias="startTime", ge=0)
    end_time: Optional[int] = Field(default=None, alias="endTime", ge=0)
    title: Optional[str] = None
    img: Optional[str] = None
    url: Optional[str] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def whole_seconds(cls, v: Any) -> Any:
        """Chapters are matched on whole seconds; fractional times are floored."""
        if isinstance(v, bool):
            raise ValueError("time must be a number")
        if isinstance(v, float):
            if not math.isfinite(v):
                raise ValueError("time must be finite")
            return int(v)
        return v


def parse_chapters_document(url: str, text: str) -> Optional[List[Any]]:
    """
    Parse a chapters document and return its raw `chapters` entries.

    Individual entries are validated later so that one malformed chapter
    does not discard the rest.

    Returns:
        The `chapters` list, or `None` when the document has no chapters key.

    Raises:
        UpstreamFetchError: If the text is not a JSON object or `chapters` is not a list.
    """
    try:
        document = json.loads(text)
    except ValueError as e:
        raise UpstreamFetchError(url, f"invalid JSON: {e}") from e

    if not isinstance(document, dict):
        raise UpstreamFetchError(url, "chapters document is not a JSON object")

    chapters = document.get("chapters")
    if chapters is None:
        return None
    if not isinstance(chapters, list):
        raise UpstreamFetchError(url, "'chapters' is not a list")
    return chapters


class ChaptersFetcher:
    """Fetches remote chapters documents over HTTP."""

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = "PodcastAPI/1.0 (chapters sync)",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Parameters:
            timeout: Total request timeout in seconds.
            user_agent: User-Agent header sent with every request.
            transport: Optional httpx transport (e.g. `httpx.MockTransport` in tests).
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.transport = transport

    def fetch_document(self, url: str) -> str:
        """
        Download a chapters document.

        Raises:
            UpstreamFetchError: On network errors, timeouts or non-2xx responses.
        """
        try:
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self.transport,
            ) as client:
                response = client.get(url)
                response.raise_for_status()
                return response.text
        except httpx.TimeoutException as e:
            raise UpstreamFetchError(url, "request timed out") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamFetchError(url, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamFetchError(url, str(e)) from e


@dataclass
class ChapterOutcome:
    """What happened to one chapter during a sync."""

    action: Literal["created", "updated", "suppressed", "failed"]
    start_time: Optional[int] = None
    media_ref_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ChapterSyncResult:
    """Result of reconciling one episode's chapters against its remote document.

    Attributes:
        episode_id: Episode that was synced.
        outcomes: One entry per chapter touched, in processing order.
    """

    episode_id: str
    outcomes: List[ChapterOutcome] = field(default_factory=list)

    def _count(self, action: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.action == action)

    @property
    def created(self) -> int:
        return self._count("created")

    @property
    def updated(self) -> int:
        return self._count("updated")

    @property
    def suppressed(self) -> int:
        return self._count("suppressed")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def errors(self) -> List[str]:
        return [o.error for o in self.outcomes if o.error]


class ChapterSynchronizer:
    """Serves an episode's official chapters, refreshing them from the remote document when stale.

    Example:
        synchronizer = ChapterSynchronizer(repository, super_user_id=config.SUPER_USER_ID)
        chapters, count = synchronizer.retrieve_latest_chapters(episode_id)
    """

    def __init__(
        self,
        repository: PodcastRepositoryInterface,
        super_user_id: Optional[str],
        fetcher: Optional[ChaptersFetcher] = None,
        refresh_interval: timedelta = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Parameters:
            repository: Persistence gateway.
            super_user_id: Owner assigned to newly created official chapters.
            fetcher: Chapters document fetcher; a default `ChaptersFetcher` is used when omitted.
            refresh_interval: Minimum time between remote fetches for one episode.
            clock: Returns the current naive UTC time.
        """
        self.repository = repository
        self.super_user_id = super_user_id or None
        self.fetcher = fetcher or ChaptersFetcher()
        self.refresh_interval = refresh_interval
        self.clock = clock

    def needs_refresh(self, last_parsed: Optional[datetime], now: datetime) -> bool:
        """True when the chapters were never parsed or were parsed at least one interval ago."""
        if last_parsed is None:
            return True
        return now - last_parsed >= self.refresh_interval

    def retrieve_latest_chapters(self, episode_id: str) -> Tuple[List[MediaRef], int]:
        """
        Return the episode's official chapters, syncing from the remote document first if stale.

        Remote problems never fail this call; the locally stored chapters are
        returned instead.

        Returns:
            tuple: (official chapters ordered by start time, count)

        Raises:
            NotFoundError: If the episode does not exist.
        """
        self.sync_chapters(episode_id)
        return self.repository.list_official_chapters(episode_id)

    def sync_chapters(self, episode_id: str) -> Optional[ChapterSyncResult]:
        """
        Reconcile the episode's official chapters with its remote chapters document.

        Returns:
            ChapterSyncResult, or `None` if no remote sync ran (no chapters URL,
            still fresh, or the document could not be fetched or parsed).

        Raises:
            NotFoundError: If the episode does not exist.
        """
        episode = self.repository.get_episode(episode_id)
        if not episode:
            raise NotFoundError("Episode", episode_id)

        chapters_url = episode.chapters_url
        if not chapters_url:
            return None

        now = self.clock()
        if not self.needs_refresh(episode.chapters_url_last_parsed, now):
            logger.debug(f"Chapters for episode {episode_id} are fresh, skipping sync")
            return None

        # Mark as parsed before fetching so concurrent requests skip the fetch
        self.repository.update_episode(episode_id, chapters_url_last_parsed=now)

        try:
            text = self.fetcher.fetch_document(chapters_url)
            remote_entries = parse_chapters_document(chapters_url, text)
        except UpstreamFetchError as e:
            logger.warning(f"Chapter sync skipped for episode {episode_id}: {e}")
            return None

        if remote_entries is None:
            logger.info(f"Chapters document for episode {episode_id} has no chapters")
            return None

        result = self._reconcile(episode_id, remote_entries)
        logger.info(
            f"Chapter sync for episode {episode_id}: "
            f"created={result.created}, updated={result.updated}, "
            f"suppressed={result.suppressed}, failed={result.failed}"
        )
        return result

    def _reconcile(self, episode_id: str, remote_entries: List[Any]) -> ChapterSyncResult:
        result = ChapterSyncResult(episode_id=episode_id)

        remote_chapters: List[RemoteChapter] = []
        for index, entry in enumerate(remote_entries):
            try:
                remote_chapters.append(RemoteChapter.model_validate(entry))
            except ValidationError as e:
                error = f"Chapter {index}: invalid entry ({e.error_count()} errors)"
                logger.warning(f"Episode {episode_id}: {error}")
                result.outcomes.append(ChapterOutcome(action="failed", error=error))

        existing, _ = self.repository.list_official_chapters(episode_id)
        existing_by_start: Dict[int, MediaRef] = {}
        for chapter in existing:
            existing_by_start.setdefault(chapter.start_time, chapter)
        remote_starts = {chapter.start_time for chapter in remote_chapters}

        for chapter in existing:
            if chapter.start_time in remote_starts or not chapter.is_public:
                continue
            result.outcomes.append(self._suppress(chapter))

        for remote in remote_chapters:
            result.outcomes.append(
                self._upsert(episode_id, remote, existing_by_start.get(remote.start_time))
            )

        return result

    def _suppress(self, chapter: MediaRef) -> ChapterOutcome:
        try:
            self.repository.update_media_ref(chapter.id, is_public=False)
            return ChapterOutcome(
                action="suppressed", start_time=chapter.start_time, media_ref_id=chapter.id
            )
        except Exception as e:
            logger.exception(f"Failed to suppress chapter {chapter.id}")
            return ChapterOutcome(
                action="failed",
                start_time=chapter.start_time,
                media_ref_id=chapter.id,
                error=f"Chapter at {chapter.start_time}s: {e}",
            )

    def _upsert(
        self, episode_id: str, remote: RemoteChapter, existing: Optional[MediaRef]
    ) -> ChapterOutcome:
        fields = {
            "title": remote.title,
            "image_url": remote.img or None,
            "link_url": remote.url or None,
            "end_time": remote.end_time,
            "is_official_chapter": True,
            "is_public": True,
        }
        try:
            if existing is not None:
                self.repository.update_media_ref(
                    existing.id, start_time=remote.start_time, **fields
                )
                return ChapterOutcome(
                    action="updated", start_time=remote.start_time, media_ref_id=existing.id
                )

            created = self.repository.create_media_ref(
                episode_id,
                remote.start_time,
                owner_id=self.super_user_id,
                **fields,
            )
            return ChapterOutcome(
                action="created", start_time=remote.start_time, media_ref_id=created.id
            )
        except Exception as e:
            logger.exception(
                f"Failed to save chapter at {remote.start_time}s for episode {episode_id}"
            )
            return ChapterOutcome(
                action="failed",
                start_time=remote.start_time,
                media_ref_id=existing.id if existing is not None else None,
                error=f"Chapter at {remote.start_time}s: {e}",
            )
