"""Persistence layer for winterflows."""

from __future__ import annotations

import os
from typing import Optional

from ..config import WinterflowsConfig, load_config
from .inmemory import InMemoryWorkflowRepository
from .repository import WorkflowRepository
from .sql import SQLWorkflowRepository

_repository_instance: WorkflowRepository | None = None

_ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
}


def async_database_url(database_url: str) -> str:
    """Pin plain ``sqlite://`` / ``postgres://`` URLs to their async drivers."""
    scheme, sep, rest = database_url.partition("://")
    if not sep:
        raise ValueError(f"Unsupported database backend: {database_url}")
    if "+" in scheme:
        return database_url
    if scheme not in _ASYNC_DRIVERS:
        raise ValueError(f"Unsupported database backend: {database_url}")
    return f"{_ASYNC_DRIVERS[scheme]}://{rest}"


def get_repository(
    database_url: Optional[str] = None, config: Optional[WinterflowsConfig] = None
) -> WorkflowRepository:
    """Factory function to obtain a workflow repository.

    The repository backend is selected based on ``database_url`` which can be
    provided explicitly, via environment variable ``WINTERFLOWS_DATABASE_URL``
    or ``DATABASE_URL``, or from loaded configuration. When no database is
    configured, an in-memory repository is returned.
    """

    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("WINTERFLOWS_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or getattr(config, "database_url", None)
    )

    if not database_url:
        _repository_instance = InMemoryWorkflowRepository()
    else:
        _repository_instance = SQLWorkflowRepository(async_database_url(database_url))

    return _repository_instance


__all__ = [
    "WorkflowRepository",
    "SQLWorkflowRepository",
    "InMemoryWorkflowRepository",
    "async_database_url",
    "get_repository",
]
