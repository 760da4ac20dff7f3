"""Unified configuration schema for docmirror.

Defines Pydantic models for the config file structure: GitHub API
connection, sync tuning, logging, and the per-project settings that drive
the synchronizer.  Project settings are validated once, when the config
is built, so later stages can rely on well-formed values.

Usage:
    from docmirror.config_loader import load_hierarchical_config
    from docmirror.config_schema import build_config, to_runtime_config

    unified = build_config(load_hierarchical_config())
    runtime = to_runtime_config(unified, overrides={"token": "..."})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator, model_validator

from docmirror import versions
from docmirror.errors import ParseError

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Global sections
# ---------------------------------------------------------------------------


class GithubApiConfig(BaseModel):
    """GitHub API connection settings.

    All fields are optional: env vars and explicit arguments can supply
    them at runtime instead.
    """

    api_url: str | None = Field(
        default=None, description="GitHub REST API base URL"
    )
    token: str | None = Field(
        default=None, description="Personal access token"
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Per-request read timeout in seconds",
    )

    model_config = {"frozen": True}


class SyncSettings(BaseModel):
    """Tuning for the synchronizer worker pools and cache location."""

    max_parallel_refs: int = Field(
        default=4,
        ge=1,
        le=32,
        description="References synced concurrently (1-32)",
    )
    max_parallel_pages: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Pages fetched concurrently per reference (1-64)",
    )
    cache_file: str | None = Field(
        default=None, description="Path of the JSON branch-sha cache"
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``"text"`` or ``"json"``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: str = Field(default="text", description="text or json")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Project sections
# ---------------------------------------------------------------------------


class GithubProjectConfig(BaseModel):
    """Where a project's documentation lives on GitHub."""

    enabled: bool = False
    username: str | None = None
    repository: str | None = None
    branches: list[str] | None = Field(
        default=None,
        description="Tracked branch names, in display order",
    )
    exclude_tags: list[str] = Field(default_factory=list)
    start_at_tag: str | None = None
    path_bindings: dict[str, str] = Field(
        default_factory=dict,
        description="Remote sub-path overrides (docs, logs, index_md, ...)",
    )

    model_config = {"frozen": True}

    @field_validator("start_at_tag")
    @classmethod
    def _start_tag_is_semver(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            versions.parse(value)
        except ParseError as exc:
            raise ValueError(f"start_at_tag: {exc}") from None
        return value

    @model_validator(mode="after")
    def _repository_required(self) -> GithubProjectConfig:
        if self.enabled and not (self.username and self.repository):
            raise ValueError(
                "github.username and github.repository are required "
                "when github.enabled is true"
            )
        return self


class PhpdocConfig(BaseModel):
    """Optional API-doc structure artifact staged next to the pages."""

    enabled: bool = False
    dir: str = "api"
    github_xml_path: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _xml_path_required(self) -> PhpdocConfig:
        if self.enabled and not self.github_xml_path:
            raise ValueError(
                "phpdoc.github_xml_path is required when phpdoc.enabled is true"
            )
        if self.enabled and not self.dir.strip("/"):
            raise ValueError("phpdoc.dir cannot be empty")
        return self


class ProjectConfig(BaseModel):
    """Settings for one documentation project."""

    path: str = Field(description="Local root holding one folder per version")
    title: str | None = None
    default_version: str | None = None
    github: GithubProjectConfig = Field(default_factory=GithubProjectConfig)
    phpdoc: PhpdocConfig | None = None

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` (zero-config) is
    valid; it simply has no projects.
    """

    github: GithubApiConfig = Field(default_factory=GithubApiConfig)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    projects: dict[str, ProjectConfig] = Field(default_factory=dict)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Raises:
        pydantic.ValidationError: If any section is invalid.
    """
    if not raw_data:
        return UnifiedConfig()

    unified = UnifiedConfig(**raw_data)
    logger.debug("Loaded %d project(s) from config", len(unified.projects))
    return unified


def to_runtime_config(
    unified: UnifiedConfig,
    overrides: dict | None = None,
) -> Config:
    """Turn a ``UnifiedConfig`` into the runtime ``Config`` dataclass.

    Explicit *overrides* (keys: ``api_url``, ``token``, ``timeout``,
    ``cache_file``, ``debug``) take precedence, then environment variables,
    then the file values.  The result is validated.
    """
    from .config import load_config

    ov = overrides or {}
    return load_config(
        api_url=ov.get("api_url"),
        token=ov.get("token"),
        timeout=ov.get("timeout"),
        cache_file=ov.get("cache_file"),
        debug=ov.get("debug", False),
        yaml_fallbacks={
            "api_url": unified.github.api_url,
            "token": unified.github.token,
            "timeout": unified.github.timeout,
            "max_parallel_refs": unified.sync.max_parallel_refs,
            "max_parallel_pages": unified.sync.max_parallel_pages,
            "cache_file": unified.sync.cache_file,
        },
    )
