"""Release-asset publisher: upload build artifacts to a GitHub release.

Files come from an include/exclude scan of the build directory when
patterns are configured, otherwise from the main artifact plus (optionally)
the attached artifacts. Each file is uploaded as an asset of the release
for ``tag``; with ``override`` an existing asset of the same name is
deleted first. A dry run lists but never creates, deletes, or uploads.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ghpublish.config import PublishConfig
from ghpublish.connectors.github.client import create_client
from ghpublish.connectors.github.releases import Release, ReleaseService
from ghpublish.errors import ConfigError, HubError, IOFailure, PublishError
from ghpublish.host_settings import HostSettings
from ghpublish.models import RepositoryRef
from ghpublish.paths import get_matching_paths, remove_empties
from ghpublish.repository import resolve_repository

logger = logging.getLogger("ghpublish.downloads")

__all__ = [
    "DownloadsPublishResult",
    "DownloadsPublisher",
    "apply_suffix",
    "resolve_files",
]

DRY_RUN = "[dry run] "


def apply_suffix(name: str, suffix: str | None) -> str:
    """Insert suffix before the last extension, or append it when there is none.

    >>> apply_suffix("tool-1.0.jar", "-sources")
    'tool-1.0-sources.jar'
    """
    if not suffix:
        return name
    stem, dot, extension = name.rpartition(".")
    if not dot:
        return name + suffix
    return f"{stem}{suffix}.{extension}"


def _artifact_file(path: Path | None) -> Path | None:
    if path is None:
        return None
    if not path.is_file():
        logger.debug("Artifact %s does not exist, skipping", path)
        return None
    return path


def resolve_files(config: PublishConfig) -> list[Path]:
    """Files to upload, in upload order."""
    includes = remove_empties(config.includes)
    excludes = remove_empties(config.excludes)
    if includes or excludes:
        base_dir = config.build_directory
        logger.debug(
            "Scanning %s and including %s and excluding %s",
            base_dir,
            includes,
            excludes,
        )
        return [base_dir / path for path in get_matching_paths(includes, excludes, base_dir)]

    files = []
    main = _artifact_file(config.artifact_file)
    if main is not None:
        files.append(main)
    if config.include_attached:
        for attached in config.attached_artifacts:
            artifact = _artifact_file(attached)
            if artifact is not None:
                files.append(artifact)
    return files


@dataclass
class DownloadsPublishResult:
    """Outcome of one release-asset publication."""

    repository: str = ""
    tag: str = ""
    release_created: bool = False
    files: int = 0
    assets_uploaded: int = 0
    assets_deleted: int = 0
    bytes_uploaded: int = 0
    dry_run: bool = False
    skipped: bool = False
    duration_seconds: float = 0.0
    asset_names: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for metrics and logging."""
        return {
            "repository": self.repository,
            "tag": self.tag,
            "release_created": self.release_created,
            "files": self.files,
            "assets_uploaded": self.assets_uploaded,
            "assets_deleted": self.assets_deleted,
            "bytes_uploaded": self.bytes_uploaded,
            "dry_run": self.dry_run,
            "skipped": self.skipped,
            "duration_seconds": round(self.duration_seconds, 2),
            "asset_names": list(self.asset_names),
        }


class DownloadsPublisher:
    """Uploads build artifacts as assets of a tagged release.

    Attributes:
        config: Publication configuration
        releases: Release service; created from config on publish if None
    """

    def __init__(
        self,
        config: PublishConfig,
        releases: ReleaseService | None = None,
        settings: HostSettings | None = None,
    ) -> None:
        self.config = config
        self.releases = releases
        self._settings = settings
        self._prefix = DRY_RUN if config.dry_run else ""

    def publish(self) -> DownloadsPublishResult:
        """Run the publication.

        Raises:
            ConfigError: Before any network I/O when configuration is incomplete
            IOFailure: If an artifact cannot be read
            HubError: On any unexpected GitHub response
            TransportError: On network failure
        """
        start = time.monotonic()
        config = self.config
        result = DownloadsPublishResult(tag=config.tag or "", dry_run=config.dry_run)

        if config.skip:
            logger.info("Skipping downloads publication")
            result.skipped = True
            return result

        repo = resolve_repository(config)
        result.repository = repo.id
        if not config.tag:
            raise ConfigError("A release tag is required")

        files = resolve_files(config)
        result.files = len(files)

        owns_client = self.releases is None
        if owns_client:
            self.releases = ReleaseService(create_client(config, self._settings))
        try:
            self._run(repo, files, result)
        finally:
            if owns_client:
                self.releases.client.close()
                self.releases = None

        result.duration_seconds = time.monotonic() - start
        logger.info(
            "%sDownloads publication complete: %d assets on %s in %.1fs",
            self._prefix,
            result.assets_uploaded,
            config.tag,
            result.duration_seconds,
        )
        return result

    def _run(
        self,
        repo: RepositoryRef,
        files: list[Path],
        result: DownloadsPublishResult,
    ) -> None:
        config = self.config
        release = self._get_or_create_release(repo, config.tag, result)

        existing: dict[str, int] = {}
        if config.override and release.id:
            existing = self._get_existing_assets(repo, release)

        if config.dry_run:
            logger.info("Dry run mode, assets will not be deleted or uploaded")

        count = len(files)
        logger.info(
            "%sAdding %d %s to release %s of %s",
            self._prefix,
            count,
            "download" if count == 1 else "downloads",
            config.tag,
            repo.id,
        )

        for file in files:
            name = apply_suffix(file.name, config.suffix)
            existing_id = existing.get(name)
            if existing_id is not None:
                self._delete_asset(repo, name, existing_id)
                result.assets_deleted += 1
            size = self._upload(release, file, name)
            result.assets_uploaded += 1
            result.bytes_uploaded += size
            result.asset_names.append(name)

    def _get_or_create_release(
        self, repo: RepositoryRef, tag: str, result: DownloadsPublishResult
    ) -> Release:
        try:
            return self.releases.get_release_by_tag(repo, tag)
        except HubError as e:
            if e.status != 404:
                raise e.prefixed(f"Getting release {tag} failed: ") from e
        except PublishError as e:
            raise e.prefixed(f"Getting release {tag} failed: ") from e

        logger.info("%sCreating release for tag %s", self._prefix, tag)
        result.release_created = True
        if self.config.dry_run:
            return Release(id=0, tag_name=tag)
        try:
            return self.releases.create_release(repo, tag, self.config.description)
        except PublishError as e:
            raise e.prefixed(f"Creating release {tag} failed: ") from e

    def _get_existing_assets(self, repo: RepositoryRef, release: Release) -> dict[str, int]:
        """Existing asset ids indexed by name."""
        try:
            assets = self.releases.list_assets(repo, release.id)
        except PublishError as e:
            raise e.prefixed("Listing downloads failed: ") from e
        existing = {asset.name: asset.id for asset in assets if asset.name}
        logger.debug(
            "Listed %d existing %s",
            len(existing),
            "download" if len(existing) == 1 else "downloads",
        )
        return existing

    def _delete_asset(self, repo: RepositoryRef, name: str, asset_id: int) -> None:
        logger.info("%sDeleting existing download: %s (id=%d)", self._prefix, name, asset_id)
        if self.config.dry_run:
            return
        try:
            self.releases.delete_asset(repo, asset_id)
        except PublishError as e:
            raise e.prefixed(f"Deleting existing download {name} failed: ") from e

    def _upload(self, release: Release, file: Path, name: str) -> int:
        """Upload one file; returns its size in bytes."""
        prefix = f"Resource {name} upload failed: "
        try:
            size = file.stat().st_size
        except OSError as e:
            raise IOFailure(f"{prefix}{e}", path=str(file)) from e

        logger.info(
            "%sAdding download: %s (%d %s)",
            self._prefix,
            name,
            size,
            "byte" if size == 1 else "bytes",
        )
        if self.config.dry_run:
            return size

        try:
            content = file.read_bytes()
        except OSError as e:
            raise IOFailure(f"{prefix}{e}", path=str(file)) from e
        try:
            self.releases.upload_asset(release, name, content, label=self.config.description)
        except PublishError as e:
            raise e.prefixed(prefix) from e
        return size
