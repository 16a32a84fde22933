import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _default_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    host = os.getenv("POSTGRES_HOST", "localhost")  # In Docker, this will be 'postgres'
    port = os.getenv("POSTGRES_PORT", "5432")
    name = os.getenv("POSTGRES_DB", "scribe")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}"


class Settings(BaseModel):
    database_url: str
    db_echo: bool = False
    upload_dir: str = "uploads"
    price_per_page: float = 40.0
    enforce_status_transitions: bool = True
    seed_demo_users: bool = True
    deadline_sweep_interval_seconds: float = 0
    metrics_enabled: bool = True
    otlp_endpoint: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=_default_database_url(),
            db_echo=_env_bool("DB_ECHO", "false"),
            upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
            price_per_page=float(os.getenv("PRICE_PER_PAGE", "40")),
            enforce_status_transitions=_env_bool("ENFORCE_STATUS_TRANSITIONS", "true"),
            seed_demo_users=_env_bool("SEED_DEMO_USERS", "true"),
            deadline_sweep_interval_seconds=float(os.getenv("DEADLINE_SWEEP_INTERVAL_SECONDS", "0")),
            metrics_enabled=_env_bool("METRICS_ENABLED", "true"),
            otlp_endpoint=os.getenv("OTLP_ENDPOINT") or None,
        )
