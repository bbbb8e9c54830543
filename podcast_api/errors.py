"""Custom exceptions for the podcast API.

Storage failures are not wrapped: ``sqlalchemy.exc.SQLAlchemyError`` propagates
as-is and the web layer maps it to 503.
"""


class PodcastApiError(Exception):
    """Base exception for all podcast API errors."""

    pass


class NotFoundError(PodcastApiError):
    """Requested entity (episode, user, media reference) does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class UpstreamFetchError(PodcastApiError):
    """Remote chapters document is unreachable or malformed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class EmailDeliveryError(PodcastApiError):
    """Transactional email could not be sent."""

    pass
