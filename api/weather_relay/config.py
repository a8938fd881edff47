from pydantic_settings import BaseSettings, SettingsConfigDict

# Below this interval a round must be limited to topics with subscribers.
MIN_POLL_ALL_INTERVAL_SECONDS = 60


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "development"
    log_level: str = "INFO"
    # Stored as comma-separated strings to avoid pydantic-settings
    # complex type parsing (json.loads) which fails on plain CSV values.
    cors_origins: str = "http://localhost:3000"

    max_topics: int = 3
    seed_default_topics: bool = True
    poll_interval_seconds: float = 30.0
    fetch_delay_seconds: float = 0.5
    poll_all_topics: bool = False
    client_queue_maxsize: int = 64

    geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search"
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    http_connect_timeout: float = 5.0
    http_read_timeout: float = 10.0

    def get_cors_origins(self) -> list[str]:
        return [s.strip() for s in self.cors_origins.split(",") if s.strip()]

    def validate_settings(self) -> None:
        if self.max_topics < 1:
            raise ValueError("MAX_TOPICS must be at least 1.")
        if self.poll_interval_seconds <= 0:
            raise ValueError("POLL_INTERVAL_SECONDS must be positive.")
        if self.fetch_delay_seconds < 0:
            raise ValueError("FETCH_DELAY_SECONDS cannot be negative.")
        if self.client_queue_maxsize < 1:
            raise ValueError("CLIENT_QUEUE_MAXSIZE must be at least 1.")
        if (
            self.poll_all_topics
            and self.poll_interval_seconds < MIN_POLL_ALL_INTERVAL_SECONDS
        ):
            raise ValueError(
                "POLL_ALL_TOPICS requires POLL_INTERVAL_SECONDS of at least "
                f"{MIN_POLL_ALL_INTERVAL_SECONDS}. "
                "Shorter intervals must poll only subscribed topics."
            )


settings = Settings()
