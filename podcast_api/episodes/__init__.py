"""Episode listing, chapter synchronization and query planning.

Modules here depend on the repository interface only; import them
directly (``podcast_api.episodes.listing`` etc.) rather than through
this package.
"""
