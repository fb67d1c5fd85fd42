"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ZD_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Zone Dispatch API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level for the service.")
    data_root: Path = Field(default=Path("data"), description="Root directory for exported run artifacts.")

    persistence_backend: Literal["memory", "http", "supabase"] = Field(
        default="memory",
        description="Where orders, drivers and zones are read from and written to.",
    )
    backend_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the dispatch backend REST API (e.g., http://localhost:3001).",
    )
    backend_timeout_seconds: float = Field(default=15.0, gt=0.0)
    backend_max_retries: int = Field(default=3, ge=0)
    backend_backoff_seconds: float = Field(default=0.5, ge=0.0)
    route_sequencing_url: Optional[str] = Field(
        default=None,
        description="Base URL of the route-sequencing service. Falls back to backend_base_url.",
    )

    cluster_radius: float = Field(default=80.0, gt=0.0, description="Cluster radius in abstract pixels.")
    cluster_min_points: int = Field(default=2, ge=1)
    cluster_extent: int = Field(default=512, ge=1, description="Tile extent the radius is relative to.")
    coarse_density: int = Field(default=10, ge=0, le=30, description="Zoom used for sparse order sets.")
    fine_density: int = Field(default=11, ge=0, le=30, description="Zoom used for dense order sets.")
    density_order_threshold: int = Field(
        default=50,
        ge=0,
        description="Above this many coordinated orders the finer zoom is used.",
    )
    bbox_padding_degrees: float = Field(default=0.01, ge=0.0)
    resync_after_assignment: bool = Field(
        default=True,
        description="Refetch zones from the store after a confirmed driver assignment.",
    )

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        return str(value).strip().upper() or "INFO"

    @model_validator(mode="after")
    def _check_density_order(self) -> "Settings":
        if self.fine_density < self.coarse_density:
            raise ValueError("fine_density must not be coarser than coarse_density")
        return self


settings = Settings()
