"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, svcmap.toml only contains overrides.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class CatalogConfig(BaseModel):
    """[catalog] section."""

    model_config = {"frozen": True}

    name: str = "service-catalog"


class StoreConfig(BaseModel):
    """[store] section.

    ``busy_timeout`` bounds how long SQLite waits on a locked database;
    ``lock_timeout`` bounds how long a writer waits for its exclusive scope.
    Both are seconds.
    """

    model_config = {"frozen": True}

    filename: str = "catalog.db"
    busy_timeout: float = Field(default=5.0, gt=0)
    lock_timeout: float = Field(default=10.0, gt=0)


class ExportConfig(BaseModel):
    """[export] section."""

    model_config = {"frozen": True}

    openapi_version: str = "3.0.0"
    api_version: str = "1.0.0"
    default_format: Literal["json", "yaml"] = "json"

