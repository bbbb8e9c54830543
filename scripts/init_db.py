"""Create any missing tables for local development.

Production databases are managed with alembic (`alembic upgrade head`).
"""

import logging
import sys

from podcast_api.argparse_shared import add_log_level_argument, get_base_parser
from podcast_api.config import Config
from podcast_api.db.factory import create_repository_from_config

logger = logging.getLogger(__name__)


def main():
    parser = get_base_parser("Initialize the database. Creates tables if they don't exist.")
    add_log_level_argument(parser)
    parser.add_argument("--yes", "-y", action="store_true", help="Bypass confirmation prompt.")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = Config(env_file=args.env_file)

    if not args.yes:
        confirm = input("Initialize the database? This will create tables but not delete existing data. (y/n): ")
        if confirm.lower() != "y":
            logger.info("Database initialization cancelled by user.")
            return

    try:
        repository = create_repository_from_config(config, create_tables=True)
    except Exception:
        logger.exception("An error occurred during database initialization.")
        sys.exit(1)

    repository.close()
    logger.info("Database initialization complete.")


if __name__ == "__main__":
    main()
