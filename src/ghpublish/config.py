"""Configuration management with pydantic-settings for ghpublish.

Loads (in order of precedence):
1. Explicit keyword arguments (command-line overrides)
2. Environment variables with the GHPUBLISH_ prefix
3. .env file in the working directory
4. Default values

The config is frozen after load. Options shared by both publication modes
(host, credentials, repository) sit next to the site and downloads options;
each publisher validates only what it needs.
"""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

__all__ = [
    "BRANCH_DEFAULT",
    "PublishConfig",
    "get_config",
    "reset_config",
]

BRANCH_DEFAULT = "refs/heads/gh-pages"


class PublishConfig(BaseSettings):
    """Configuration for site and release-asset publication.

    Attributes:
        host: API host override (bare hostname or URL)
        user_name: User name for basic authentication
        password: Password for basic authentication
        oauth2_token: OAuth2/personal access token
        server: Id of a server entry in the settings file holding credentials
        settings_file: YAML settings file with servers and proxies
        repository_owner: Explicit repository owner
        repository_name: Explicit repository name
        project_url: Project web URL, fallback source for the repository
        scm_url: SCM web URL, fallback source for the repository
        scm_connection: SCM connection string (scm:git:...)
        scm_developer_connection: SCM developer connection string
        branch: Reference updated by site publication
        path: Prefix prepended to every tree entry path
        message: Commit message for site publication
        includes: Glob patterns selecting files
        excludes: Glob patterns removing files
        output_directory: Directory holding the generated site
        force: Allow non-fast-forward reference update
        merge: Compose the new tree on top of the current one
        no_jekyll: Add an empty .nojekyll file when missing
        dry_run: Perform reads and logging only
        skip: Do nothing
        tag: Release tag receiving uploaded assets
        description: Asset label and release body
        override: Replace existing assets with the same name
        include_attached: Also upload attached artifacts
        suffix: Suffix inserted before the extension of uploaded names
        build_directory: Base directory for downloads include/exclude scans
        artifact_file: Main build artifact
        attached_artifacts: Additional build artifacts
    """

    model_config = SettingsConfigDict(
        env_prefix="GHPUBLISH_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        validate_default=True,
        frozen=True,
        extra="ignore",
    )

    # =========================================================================
    # Connection and credentials
    # =========================================================================

    host: str | None = Field(
        default=None,
        description="API host override: bare hostname (https implied) or full URL",
    )
    user_name: str | None = Field(default=None, description="Basic auth user name")
    password: SecretStr | None = Field(default=None, description="Basic auth password")
    oauth2_token: SecretStr | None = Field(
        default=None, description="OAuth2 or personal access token"
    )
    server: str | None = Field(
        default=None,
        description="Server id in the settings file to take credentials (and proxy) from",
    )
    settings_file: Path = Field(
        default_factory=lambda: Path.home() / ".ghpublish" / "settings.yaml",
        description="YAML settings file with servers and proxies",
    )

    # =========================================================================
    # Target repository
    # =========================================================================

    repository_owner: str | None = Field(default=None)
    repository_name: str | None = Field(default=None)
    project_url: str | None = Field(default=None)
    scm_url: str | None = Field(default=None)
    scm_connection: str | None = Field(default=None)
    scm_developer_connection: str | None = Field(default=None)

    # =========================================================================
    # Site publication
    # =========================================================================

    branch: str = Field(
        default=BRANCH_DEFAULT,
        min_length=1,
        description="Reference to update (default: refs/heads/gh-pages)",
    )
    path: str | None = Field(
        default=None, description="Prefix for every tree entry path"
    )
    message: str | None = Field(default=None, description="Commit message (required)")
    includes: Annotated[list[str], NoDecode] = Field(default_factory=list)
    excludes: Annotated[list[str], NoDecode] = Field(default_factory=list)
    output_directory: Path | None = Field(
        default=None, description="Directory holding the generated site (required)"
    )
    force: bool = Field(default=False)
    merge: bool = Field(default=False)
    no_jekyll: bool = Field(default=False)
    dry_run: bool = Field(default=False)
    skip: bool = Field(default=False)

    # =========================================================================
    # Release-asset publication
    # =========================================================================

    tag: str | None = Field(default=None, description="Release tag to attach assets to")
    description: str | None = Field(default=None)
    override: bool = Field(default=False)
    include_attached: bool = Field(default=False)
    suffix: str | None = Field(default=None)
    build_directory: Path = Field(default_factory=lambda: Path("target"))
    artifact_file: Path | None = Field(default=None)
    attached_artifacts: Annotated[list[Path], NoDecode] = Field(default_factory=list)

    # =========================================================================
    # Logging & metrics
    # =========================================================================

    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    log_format: str = Field(default="text", pattern="^(json|text)$")
    pushgateway_enabled: bool = Field(default=False)
    pushgateway_url: str = Field(default="localhost:9091")

    @field_validator("includes", "excludes", "attached_artifacts", mode="before")
    @classmethod
    def parse_comma_separated(cls, v):
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                return json.loads(v)
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @field_validator(
        "settings_file",
        "output_directory",
        "build_directory",
        "artifact_file",
        mode="before",
    )
    @classmethod
    def expand_user_paths(cls, v):
        """Expand ~ and environment variables in paths."""
        if isinstance(v, str):
            return Path(os.path.expanduser(os.path.expandvars(v)))
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    def secret(self, name: str) -> str | None:
        """Plain value of a SecretStr field, or None when unset."""
        value = getattr(self, name)
        return value.get_secret_value() if value is not None else None


@lru_cache(maxsize=1)
def get_config() -> PublishConfig:
    """Get global configuration singleton.

    First call loads from environment + .env file, subsequent calls return
    the cached instance.

    Raises:
        ValidationError: If configuration values are invalid.
    """
    return PublishConfig()


def reset_config() -> None:
    """Reset configuration singleton. Only use in test code."""
    get_config.cache_clear()
