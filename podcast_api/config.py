import os

from dotenv import load_dotenv


class Config:
    def __init__(self, env_file=None):
        """
        Initialize configuration by loading environment variables and setting default attributes.

        Loads environment variables from the provided .env file path when `env_file` is given; otherwise loads from the default environment. After loading, sets configuration attributes (API routing, database connection parameters, episode listing limits, chapter sync policy, dead episode cleanup and email settings) using environment values with sensible defaults.
        Parameters:
            env_file (str | None): Optional path to a .env file to load environment variables from. If omitted, the default environment or default .env discovery is used.

        Raises:
            ValueError: If a numeric or URL setting is out of range.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        # API routing
        self.API_PREFIX = os.getenv("API_PREFIX", "/api")
        self.API_VERSION = os.getenv("API_VERSION", "/v1")

        # Web application configuration
        self.WEB_ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*")
        self.WEB_PORT = int(os.getenv("PORT", "8080"))

        # Web app base URL (used for email links)
        web_base_url = os.getenv("WEB_BASE_URL", "")
        if web_base_url and not web_base_url.lower().startswith(("http://", "https://")):
            raise ValueError(
                f"WEB_BASE_URL must start with http:// or https://, got: {web_base_url}"
            )
        self.WEB_BASE_URL = web_base_url.rstrip("/") if web_base_url else ""
        self.RESET_PASSWORD_PAGE_PATH = os.getenv(
            "RESET_PASSWORD_PAGE_PATH", "/reset-password?token="
        )
        # Seconds until a reset password token expires (default 1 day)
        self.RESET_PASSWORD_TOKEN_EXPIRATION = int(
            os.getenv("RESET_PASSWORD_TOKEN_EXPIRATION", "86400")
        )

        # Email configuration (Resend)
        self.RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
        self.RESEND_FROM_EMAIL = os.getenv("RESEND_FROM_EMAIL", "noreply@example.com")
        self.RESEND_FROM_NAME = os.getenv("RESEND_FROM_NAME", "Podcast API")

        # Database configuration
        self.DATABASE_URL = os.getenv(
            "DATABASE_URL", "sqlite:///./podcast_api.db"
        )
        self.DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
        self.DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
        self.DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

        # Episode listing
        self.EPISODE_DESCRIPTION_MAX_LENGTH = int(
            os.getenv("EPISODE_DESCRIPTION_MAX_LENGTH", "2500")
        )
        if self.EPISODE_DESCRIPTION_MAX_LENGTH <= 0:
            raise ValueError(
                f"EPISODE_DESCRIPTION_MAX_LENGTH must be positive, got {self.EPISODE_DESCRIPTION_MAX_LENGTH}"
            )
        self.EPISODE_QUERY_MAX_TAKE = int(os.getenv("EPISODE_QUERY_MAX_TAKE", "50"))

        # Official chapters are owned by this user
        self.SUPER_USER_ID = os.getenv("SUPER_USER_ID", "")

        # Chapter sync configuration
        self.CHAPTERS_REFRESH_HOURS = float(os.getenv("CHAPTERS_REFRESH_HOURS", "12"))
        if self.CHAPTERS_REFRESH_HOURS <= 0:
            raise ValueError(
                f"CHAPTERS_REFRESH_HOURS must be positive, got {self.CHAPTERS_REFRESH_HOURS}"
            )
        self.CHAPTERS_FETCH_TIMEOUT = float(os.getenv("CHAPTERS_FETCH_TIMEOUT", "10"))
        self.CHAPTERS_USER_AGENT = os.getenv(
            "CHAPTERS_USER_AGENT", "PodcastAPI/1.0 (chapters sync)"
        )

        # Dead episode cleanup
        self.DEAD_EPISODE_BATCH_SIZE = int(os.getenv("DEAD_EPISODE_BATCH_SIZE", "100"))
        if self.DEAD_EPISODE_BATCH_SIZE <= 0:
            raise ValueError(
                f"DEAD_EPISODE_BATCH_SIZE must be positive, got {self.DEAD_EPISODE_BATCH_SIZE}"
            )
        self.DEAD_EPISODE_THROTTLE_SECONDS = float(
            os.getenv("DEAD_EPISODE_THROTTLE_SECONDS", "1.0")
        )
        self.DEAD_EPISODE_INTERVAL_MINUTES = int(
            os.getenv("DEAD_EPISODE_INTERVAL_MINUTES", "60")
        )

        # Recent episode projections
        self.RECENT_EPISODES_REFRESH_MINUTES = int(
            os.getenv("RECENT_EPISODES_REFRESH_MINUTES", "15")
        )
        self.RECENT_EPISODES_WINDOW_DAYS = int(
            os.getenv("RECENT_EPISODES_WINDOW_DAYS", "30")
        )

    @property
    def api_base_path(self) -> str:
        """Prefix shared by every API router, e.g. "/api/v1"."""
        return f"{self.API_PREFIX}{self.API_VERSION}"

    def validate_super_user(self):
        """
        Validate that the chapter owner identity is configured.

        Raises:
            ValueError: If SUPER_USER_ID is not set
        """
        if not self.SUPER_USER_ID:
            raise ValueError(
                "SUPER_USER_ID must be set to the user that owns official chapters. "
                "Please update SUPER_USER_ID in your .env file."
            )
