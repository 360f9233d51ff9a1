from pydantic_settings import BaseSettings
from pydantic import Field, model_validator


# ---------------------------------------------------------------------------
# Centralised runtime configuration for the TapRead Gateway.  We tolerate
# unknown environment variables so that experiments or unrelated tooling
# don't crash the service (`extra = "ignore"`).  At the same time we expose
# explicit fields for every variable documented in `.env.example` so that
# IDE autocompletion and type checking still work.
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")

    # Gateway network settings (used when the process binds its socket)
    tapread_gateway_host: str = Field("0.0.0.0", alias="TAPREAD_GATEWAY_HOST")
    tapread_gateway_port: int = Field(8000, alias="TAPREAD_GATEWAY_PORT")

    # Backend models
    detection_model: str = Field("gpt-4.1-mini", alias="TAPREAD_DETECTION_MODEL")
    translation_model: str = Field("gpt-4.1-mini", alias="TAPREAD_TRANSLATION_MODEL")
    speech_model: str = Field("gpt-4o-mini-tts", alias="TAPREAD_SPEECH_MODEL")
    speech_voice: str = Field("alloy", alias="TAPREAD_SPEECH_VOICE")

    # Backend call resilience.  Every attempt plus the back-off between them
    # must finish before the reader gives up on the request.
    backend_timeout: float = Field(8.0, gt=0, alias="TAPREAD_BACKEND_TIMEOUT")
    retry_attempts: int = Field(3, ge=1, alias="TAPREAD_RETRY_ATTEMPTS")
    retry_backoff: float = Field(0.5, ge=0, alias="TAPREAD_RETRY_BACKOFF")
    client_timeout: float = Field(30.0, gt=0, alias="TAPREAD_REQUEST_TIMEOUT")

    # Logging
    log_level: str = Field("INFO", alias="TAPREAD_LOG_LEVEL")

    # Detection snapshots – write-only, never read by runtime
    snapshot_dir: str = Field("data/cache/gateway", alias="TAPREAD_SNAPSHOT_DIR")

    @property
    def retry_budget(self) -> float:
        """Worst-case seconds one gateway request spends on the backend."""
        backoff = sum(self.retry_backoff * 2 ** (n - 1) for n in range(1, self.retry_attempts))
        return self.retry_attempts * self.backend_timeout + backoff

    @model_validator(mode="after")
    def _budget_fits_client_timeout(self) -> "Settings":
        if self.retry_budget >= self.client_timeout:
            raise ValueError(
                f"{self.retry_attempts} attempt(s) of {self.backend_timeout}s plus back-off "
                f"take up to {self.retry_budget}s, not below the reader's "
                f"TAPREAD_REQUEST_TIMEOUT of {self.client_timeout}s"
            )
        return self

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore undeclared env vars
        "populate_by_name": True,
    }


settings = Settings()
