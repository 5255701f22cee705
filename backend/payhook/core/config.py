from functools import lru_cache

from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL, make_url


class Settings(BaseSettings):
    database_url: str
    database_password: str | None = None
    razorpay_webhook_secret: str
    entitlement_provider: str = "razorpay"
    activate_untyped_events: bool = True
    store_timeout_seconds: float = 10.0
    max_body_bytes: int = 1_048_576  # 1 MiB
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def store_url(self) -> URL:
        url = make_url(self.database_url)
        # Keep the service credential out of DATABASE_URL when provided separately
        if self.database_password:
            url = url.set(password=self.database_password)
        return url

    @property
    def webhook_secret_bytes(self) -> bytes:
        return self.razorpay_webhook_secret.encode("utf-8")


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]
