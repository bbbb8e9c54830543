"""Batch job scheduler.

Runs the dead episode reaper and the recent-episode projection rebuild on
fixed intervals.
"""

import logging
import sys

from apscheduler.schedulers.blocking import BlockingScheduler

from podcast_api.argparse_shared import (
    add_dry_run_argument,
    add_log_level_argument,
    add_max_passes_argument,
    add_run_once_argument,
    get_base_parser,
)
from podcast_api.config import Config
from podcast_api.db.factory import create_repository_from_config
from podcast_api.db.repository import PodcastRepositoryInterface
from podcast_api.workflow.workers.reaper import DeadEpisodeReaper
from podcast_api.workflow.workers.recent_episodes import RecentEpisodesWorker

logger = logging.getLogger(__name__)


def run_reaper(
    config: Config,
    repository: PodcastRepositoryInterface,
    max_passes=None,
    dry_run: bool = False,
) -> int:
    """Remove dead episodes until a pass comes back partial.

    Args:
        config: Application configuration.
        repository: Database repository.
        max_passes: Optional cap on the number of passes.
        dry_run: Only report how many dead episodes there are.

    Returns:
        Number of passes run (0 for a dry run).
    """
    reaper = DeadEpisodeReaper(
        repository,
        batch_size=config.DEAD_EPISODE_BATCH_SIZE,
        throttle_seconds=config.DEAD_EPISODE_THROTTLE_SECONDS,
    )

    if dry_run:
        logger.info(f"[DRY RUN] {reaper.get_pending_count()} dead episodes would be removed")
        return 0

    return reaper.run_until_exhausted(max_passes=max_passes)


def run_recent_episodes_refresh(config: Config, repository: PodcastRepositoryInterface) -> None:
    """Rebuild the recent-episode projections."""
    worker = RecentEpisodesWorker(repository, window_days=config.RECENT_EPISODES_WINDOW_DAYS)
    worker.log_result(worker.process_batch(limit=0))


def build_scheduler(config: Config, repository: PodcastRepositoryInterface) -> BlockingScheduler:
    """Schedule both jobs, each with an immediate first run."""
    scheduler = BlockingScheduler()

    scheduler.add_job(run_reaper, "date", args=[config, repository], misfire_grace_time=600)
    scheduler.add_job(
        run_reaper,
        "interval",
        args=[config, repository],
        minutes=config.DEAD_EPISODE_INTERVAL_MINUTES,
        misfire_grace_time=600,
        max_instances=1,
    )

    scheduler.add_job(
        run_recent_episodes_refresh, "date", args=[config, repository], misfire_grace_time=600
    )
    scheduler.add_job(
        run_recent_episodes_refresh,
        "interval",
        args=[config, repository],
        minutes=config.RECENT_EPISODES_REFRESH_MINUTES,
        misfire_grace_time=600,
        max_instances=1,
    )

    return scheduler


def main():
    parser = get_base_parser("Podcast API batch job scheduler.")
    add_log_level_argument(parser)
    add_dry_run_argument(parser)
    add_max_passes_argument(parser)
    add_run_once_argument(parser)
    args = parser.parse_args()

    # Log to stdout for Docker
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    config = Config(env_file=args.env_file)
    repository = create_repository_from_config(config)

    try:
        if args.once or args.dry_run:
            run_reaper(config, repository, max_passes=args.max_passes, dry_run=args.dry_run)
            if not args.dry_run:
                run_recent_episodes_refresh(config, repository)
            return

        scheduler = build_scheduler(config, repository)
        logger.info(
            f"Scheduler started. Reaper every {config.DEAD_EPISODE_INTERVAL_MINUTES} minutes, "
            f"recent episodes every {config.RECENT_EPISODES_REFRESH_MINUTES} minutes."
        )
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped.")
    except Exception:
        logger.exception("Scheduler failed")
        sys.exit(1)
    finally:
        repository.close()
        logger.info("Database connection closed")


if __name__ == "__main__":
    main()
