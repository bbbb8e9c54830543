"""
Pytest configuration and fixtures for podcast-api tests.

This module runs before any test imports, setting up the test environment.
Environment variables are explicitly set to ensure deterministic test behavior
regardless of external environment configuration.
"""

import os

import pytest

from podcast_api.db.factory import create_repository

# Never send real email from tests
os.environ["RESEND_API_KEY"] = ""

# Keep stray Config() calls away from any real database
os.environ["DATABASE_URL"] = "sqlite://"

os.environ["SUPER_USER_ID"] = "test-super-user"


@pytest.fixture
def repository(tmp_path):
    """
    Create a temporary SQLite-backed repository for tests.

    Yields a repository using a SQLite file under the provided temporary path
    and closes it when the fixture is torn down.
    """
    db_path = tmp_path / "test.db"
    repo = create_repository(f"sqlite:///{db_path}", create_tables=True)
    yield repo
    repo.close()


@pytest.fixture
def podcast(repository):
    """A public podcast with a feed URL."""
    return repository.create_podcast(
        title="Test Podcast",
        feed_url="https://example.com/feed.xml",
        image_url="https://example.com/cover.jpg",
    )
