from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class SRSConfig(BaseModel):
    """Scheduling policy. Every constant here is tunable without breaking the card invariants."""

    initial_ease: float = Field(2.5, alias="initial_ease")
    min_ease: float = Field(1.3, alias="min_ease")
    forgot_ease_penalty: float = Field(0.2, alias="forgot_ease_penalty")
    hard_ease_penalty: float = Field(0.15, alias="hard_ease_penalty")
    easy_ease_bonus: float = Field(0.15, alias="easy_ease_bonus")
    hard_interval_multiplier: float = Field(1.2, alias="hard_interval_multiplier")
    easy_interval_multiplier: float = Field(1.3, alias="easy_interval_multiplier")
    first_interval_days: int = Field(1, alias="first_interval_days")
    easy_first_interval_days: int = Field(2, alias="easy_first_interval_days")
    lapse_interval_days: int = Field(1, alias="lapse_interval_days")
    ease_precision: int = Field(4, alias="ease_precision")


class CatalogConfig(BaseModel):
    data_dir: str = Field("./backend/data", alias="data_dir")


class LoggingConfig(BaseModel):
    level: str = Field("INFO", alias="level")
    file: str = Field("./backend/logs/app.log", alias="file")


class DatabaseConfig(BaseModel):
    url: str = Field("sqlite:///./backend/data/progress.db", alias="url")


class SecurityConfig(BaseModel):
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://127.0.0.1:5173"],
        alias="cors_origins",
    )


class AppConfig(BaseModel):
    srs: SRSConfig = SRSConfig()
    catalog: CatalogConfig = CatalogConfig()
    logging: LoggingConfig = LoggingConfig()
    database: DatabaseConfig = DatabaseConfig()
    security: SecurityConfig = SecurityConfig()


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as file:
        data = yaml.safe_load(file) or {}
    return data


@lru_cache
def get_config() -> AppConfig:
    env_path = os.getenv("APP_CONFIG_PATH", "")
    candidates = [
        Path(env_path) if env_path else None,
        Path("config/config.yaml"),
        Path("backend/config/config.yaml"),
        Path("config/config.example.yaml"),
        Path("backend/config/config.example.yaml"),
    ]

    for path in candidates:
        if path and path.exists() and path.is_file():
            return AppConfig(**_load_yaml(path))

    # Every section has defaults, so running without a file is allowed
    return AppConfig()
