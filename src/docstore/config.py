"""
Store configuration models.

Configuration is passed directly or loaded from the ``[store]`` table of a
TOML file, with environment overrides.
"""

from __future__ import annotations

import os
import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class BackendType(StrEnum):
    """Available backend implementations."""

    MEMORY = "memory"
    SQLITE = "sqlite"


class BackendConfig(BaseModel):
    """Backend selection and backend-specific settings."""

    type: BackendType = BackendType.MEMORY
    data_dir: str = Field(default="./.docstore-data", description="Data directory for persistent backends")
    database: str | None = None


class StoreConfig(BaseModel):
    """
    Connection configuration for a DocumentStore.

    Only ``database`` and the backend selection affect the engine; ``uri`` is
    carried for persistent backends.
    """

    uri: str | None = None
    database: str = "docstore"
    in_memory: bool = False
    backend: BackendConfig | None = None
    log_level: str = "INFO"

    def resolved_backend(self) -> BackendConfig:
        """
        Backend configuration after applying precedence.

        ``in_memory`` forces the memory backend; an explicit ``backend`` is
        used as given; otherwise a persistent backend for ``database`` is
        requested.
        """
        if self.in_memory:
            return BackendConfig(type=BackendType.MEMORY, database=self.database)
        if self.backend is not None:
            if self.backend.database is None:
                return self.backend.model_copy(update={"database": self.database})
            return self.backend
        return BackendConfig(type=BackendType.SQLITE, database=self.database)


# =============================================================================
# Loading
# =============================================================================

ENV_DATABASE = "DOCSTORE_DATABASE"
ENV_BACKEND = "DOCSTORE_BACKEND"


def load_config(path: Path | str | None = None) -> StoreConfig:
    """
    Load store configuration.

    Args:
        path: TOML file with a ``[store]`` table (defaults when None or missing)

    Returns:
        StoreConfig with environment overrides applied
    """
    data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if config_path.exists():
            with open(config_path, "rb") as f:
                data = dict(tomllib.load(f).get("store", {}))

    if database := os.environ.get(ENV_DATABASE):
        data["database"] = database
    if backend_type := os.environ.get(ENV_BACKEND):
        backend = dict(data.get("backend") or {})
        backend["type"] = backend_type
        data["backend"] = backend

    return StoreConfig.model_validate(data)
