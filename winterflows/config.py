from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel


class RedisConfig(BaseModel):
    """Configuration for Redis transport."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


class TransportConfig(BaseModel):
    """Inbound event transport settings."""

    backend: Literal["inmemory", "redis"] = "inmemory"
    redis: RedisConfig = RedisConfig()


class SchedulerConfig(BaseModel):
    """Periodic tick settings for cron and time triggers."""

    interval_seconds: float = 1.0


class SlackConfig(BaseModel):
    """Chat platform Web API settings."""

    api_url: str = "https://slack.com/api"
    timeout_seconds: float = 10.0
    max_retries: int = 3


class WinterflowsConfig(BaseModel):
    """Top-level configuration model."""

    transport: TransportConfig = TransportConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    slack: SlackConfig = SlackConfig()
    database_url: Optional[str] = None
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> WinterflowsConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to WINTERFLOWS_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("WINTERFLOWS_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = WinterflowsConfig(**data)
    else:
        config = WinterflowsConfig()

    env_db_url = os.getenv("WINTERFLOWS_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_transport = os.getenv("WINTERFLOWS_TRANSPORT")
    if env_transport:
        config.transport.backend = env_transport.lower()
    return config
