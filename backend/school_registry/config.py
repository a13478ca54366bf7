"""
School Registry Backend: Application Configuration
====================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or a .env file),
       validates types/ranges, and provides a module-level `settings` object.
Who:   Read by the application factory, the database handle, image storage
       and the uvicorn entry point.
When:  Loaded once at import time. `create_app()` also accepts an explicit
       Settings instance so tests can build isolated applications.

Environment variables keep the names the deployment already uses:
    DB_HOST, DB_PORT, DB_USER, DB_PASS, DB_NAME  -> database location
    DATABASE_URL                                 -> full URL override
    PORT                                         -> listen port (default 3001)
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for local development except the
    database credentials, which a deployment must provide.
    """

    # ── Database ──────────────────────────────────────────────────────────
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432, ge=1, le=65535)
    db_user: str = Field(default="")
    db_pass: str = Field(default="")
    db_name: str = Field(default="")

    # Full SQLAlchemy async URL; when set, the DB_* parts above are ignored.
    # Example: sqlite+aiosqlite:///./schools.db
    database_url: Optional[str] = Field(default=None)

    # TLS to the database server. The certificate chain and hostname are
    # always verified; DB_SSL_CA points at a private CA bundle when needed.
    db_ssl_required: bool = Field(default=True)
    db_ssl_ca: Optional[str] = Field(default=None)

    db_pool_size: int = Field(default=5, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # ── Image Storage ─────────────────────────────────────────────────────
    # Directory that uploaded school images are written to. Served back
    # under /schoolImages/<filename>.
    image_dir: str = Field(default="public/schoolImages")

    # 5MB = 5 * 1024 * 1024
    max_image_size: int = Field(default=5_242_880, ge=1)

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001, ge=1, le=65535)

    cors_origins: str = Field(default="*")

    log_level: str = Field(default="INFO")

    # Comma-separated paths the access log skips (orchestrator probes)
    log_quiet_paths: str = Field(default="/health")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def log_quiet_paths_list(self) -> List[str]:
        return [path.strip() for path in self.log_quiet_paths.split(",") if path.strip()]

    @property
    def database_url_resolved(self) -> str:
        """
        What:  The SQLAlchemy URL the engine connects with.
        How:   DATABASE_URL verbatim if set, otherwise a postgresql+asyncpg URL
               assembled from the DB_* parts. URL.create() escapes special
               characters in the password.
        """
        if self.database_url:
            return self.database_url
        url = URL.create(
            drivername="postgresql+asyncpg",
            username=self.db_user or None,
            password=self.db_pass or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name or None,
        )
        return url.render_as_string(hide_password=False)

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


settings = Settings()
