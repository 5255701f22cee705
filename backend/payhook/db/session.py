from payhook.core.config import Settings, get_settings
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def build_engine(settings: Settings) -> Engine:
    """Process-wide engine; store calls are bounded by the configured timeout."""
    url = settings.store_url
    kwargs = {"future": True, "pool_pre_ping": True}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {
            "timeout": settings.store_timeout_seconds,
            "check_same_thread": False,
        }
    else:
        kwargs["pool_timeout"] = settings.store_timeout_seconds
        if url.get_backend_name() == "postgresql":
            kwargs["connect_args"] = {
                "connect_timeout": max(1, int(settings.store_timeout_seconds))
            }
    return create_engine(url, **kwargs)


settings = get_settings()
engine = build_engine(settings)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
