import argparse


def get_base_parser(description: str = "Podcast API") -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("-e", "--env-file", help="Path to a custom .env file", default=None)
    return parser


def add_dry_run_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-d", "--dry-run", action="store_true", help="Perform a dry run without making changes")


def add_log_level_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-l", "--log-level", help="Set log level (DEBUG, INFO, WARNING, ERROR)", default="INFO")


def add_max_passes_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--max-passes", type=int, default=None, help="Stop after this many reaper passes")


def add_run_once_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--once", action="store_true", help="Run every job once and exit instead of scheduling")
