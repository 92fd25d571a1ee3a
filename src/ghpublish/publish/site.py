"""Site publisher: copy a generated site into a branch through the git data API.

Pipeline, each step sequential and fail-fast:
scan -> blobs -> (.nojekyll) -> read ref -> (base tree) -> tree -> commit -> ref

No local working copy is used. Every selected file is uploaded as a blob,
the tree is built from the returned shas, committed on top of the current
reference (if any), and the reference is created or advanced in one call.
In a dry run every mutating call is replaced by a placeholder and logged.
"""

import base64
import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ghpublish.config import PublishConfig
from ghpublish.connectors.github.client import create_client
from ghpublish.connectors.github.data import DataService, select_email
from ghpublish.errors import (
    ConfigError,
    HubError,
    InvariantError,
    IOFailure,
    PublishError,
    TransportError,
)
from ghpublish.host_settings import HostSettings
from ghpublish.models import (
    TYPE_COMMIT,
    Blob,
    Commit,
    CommitUser,
    Reference,
    RepositoryRef,
    Tree,
    TreeEntry,
)
from ghpublish.paths import get_matching_paths
from ghpublish.repository import resolve_repository

logger = logging.getLogger("ghpublish.site")

__all__ = [
    "MAX_BLOB_SIZE",
    "NO_JEKYLL_FILE",
    "SitePublishResult",
    "SitePublisher",
    "normalize_prefix",
]

NO_JEKYLL_FILE = ".nojekyll"

# Largest file read in full; bigger files are truncated to this size
MAX_BLOB_SIZE = 2**31 - 1

DRY_RUN = "[dry run] "


def normalize_prefix(path: str | None) -> str:
    """Tree path prefix with exactly one trailing ``/``, or empty."""
    if not path:
        return ""
    prefix = path.replace("\\", "/").strip("/")
    return f"{prefix}/" if prefix else ""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SitePublishResult:
    """Outcome of one site publication."""

    repository: str = ""
    branch: str = ""
    files: int = 0
    blobs_created: int = 0
    tree_entries: int = 0
    tree_sha: str = ""
    commit_sha: str = ""
    parent_sha: str | None = None
    reference_created: bool = False
    reference_updated: bool = False
    dry_run: bool = False
    skipped: bool = False
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for metrics and logging."""
        return {
            "repository": self.repository,
            "branch": self.branch,
            "files": self.files,
            "blobs_created": self.blobs_created,
            "tree_entries": self.tree_entries,
            "tree_sha": self.tree_sha,
            "commit_sha": self.commit_sha,
            "parent_sha": self.parent_sha,
            "reference_created": self.reference_created,
            "reference_updated": self.reference_updated,
            "dry_run": self.dry_run,
            "skipped": self.skipped,
            "duration_seconds": round(self.duration_seconds, 2),
        }


class SitePublisher:
    """Publishes a directory of files as a commit on a branch.

    Attributes:
        config: Publication configuration
        data: Git data service; created from config on first publish if None
    """

    def __init__(
        self,
        config: PublishConfig,
        data: DataService | None = None,
        settings: HostSettings | None = None,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.config = config
        self.data = data
        self._settings = settings
        self._now = now
        self._prefix = DRY_RUN if config.dry_run else ""

    def publish(self) -> SitePublishResult:
        """Run the publication.

        Raises:
            ConfigError: Before any network I/O when configuration is incomplete
            IOFailure: If the output directory or a file cannot be read
            HubError: On any unexpected GitHub response
            TransportError: On network failure
            InvariantError: If the existing reference is not a commit
        """
        start = time.monotonic()
        config = self.config
        result = SitePublishResult(branch=config.branch, dry_run=config.dry_run)

        if config.skip:
            logger.info("Skipping site publication")
            result.skipped = True
            return result

        repo = resolve_repository(config)
        result.repository = repo.id
        if not config.message:
            raise ConfigError("A commit message is required")
        if config.output_directory is None:
            raise ConfigError("An output directory is required")

        base_dir = config.output_directory
        paths = get_matching_paths(config.includes, config.excludes, base_dir)
        result.files = len(paths)

        owns_client = self.data is None
        if owns_client:
            self.data = DataService(create_client(config, self._settings))
        try:
            self._run(repo, base_dir, paths, result)
        finally:
            if owns_client:
                self.data.client.close()
                self.data = None

        result.duration_seconds = time.monotonic() - start
        logger.info(
            "%sSite publication complete: %d files, commit %s on %s in %.1fs",
            self._prefix,
            result.files,
            result.commit_sha or "(none)",
            result.branch,
            result.duration_seconds,
        )
        return result

    # -- Pipeline ------------------------------------------------------

    def _run(
        self,
        repo: RepositoryRef,
        base_dir: Path,
        paths: list[str],
        result: SitePublishResult,
    ) -> None:
        config = self.config
        prefix = normalize_prefix(config.path)

        if paths:
            logger.info("%sCreating %d blobs", self._prefix, len(paths))
        else:
            logger.info("No files found in %s", base_dir)

        entries: list[TreeEntry] = []
        for path in paths:
            sha = self._create_blob(repo, base_dir, path)
            entries.append(TreeEntry(path=prefix + path, sha=sha))

        if config.no_jekyll and NO_JEKYLL_FILE not in paths:
            logger.debug("%sCreating empty %s blob", self._prefix, NO_JEKYLL_FILE)
            sha = self._upload_blob(repo, Blob(content=""), NO_JEKYLL_FILE)
            entries.append(TreeEntry(path=NO_JEKYLL_FILE, sha=sha))

        # Counters report writes only; a dry run leaves them at zero
        written = not config.dry_run
        if written:
            result.blobs_created = len(entries)

        ref = self._get_reference(repo, config.branch)
        parent_sha = ref.object.sha if ref is not None else None
        result.parent_sha = parent_sha

        base_tree_sha = None
        if config.merge and ref is not None:
            base_tree_sha = self._get_base_tree(repo, parent_sha)

        tree = self._create_tree(repo, entries, base_tree_sha)
        result.tree_entries = len(entries)
        result.tree_sha = tree.sha

        commit = Commit(
            message=config.message,
            tree_sha=tree.sha,
            parents=[parent_sha] if parent_sha else [],
        )
        author = self._lookup_author()
        if author is not None:
            commit.author = author
            commit.committer = author

        created = self._create_commit(repo, commit)
        result.commit_sha = created.sha

        if ref is not None:
            self._edit_reference(
                repo, config.branch, parent_sha, created.sha, config.force
            )
            result.reference_updated = written
        else:
            self._create_reference(repo, config.branch, created.sha)
            result.reference_created = written

    # -- Steps ---------------------------------------------------------

    def _read_file(self, base_dir: Path, path: str) -> bytes:
        file_path = base_dir / path
        try:
            size = os.path.getsize(file_path)
            if size > MAX_BLOB_SIZE:
                logger.warning(
                    "File %s is %d bytes, only the first %d are published",
                    path,
                    size,
                    MAX_BLOB_SIZE,
                )
            with open(file_path, "rb") as f:
                return f.read(min(size, MAX_BLOB_SIZE))
        except OSError as e:
            raise IOFailure(f"Error reading file: {e}", path=str(file_path)) from e

    def _create_blob(self, repo: RepositoryRef, base_dir: Path, path: str) -> str:
        content = self._read_file(base_dir, path)
        blob = Blob(content=base64.b64encode(content).decode("ascii"))
        del content
        return self._upload_blob(repo, blob, path)

    def _upload_blob(self, repo: RepositoryRef, blob: Blob, path: str) -> str:
        if self.config.dry_run:
            logger.debug("%sCreating blob for %s", self._prefix, path)
            return ""
        try:
            sha = self.data.create_blob(repo, blob)
        except PublishError as e:
            raise e.prefixed("Error creating blob: ") from e
        logger.debug("Created blob %s for %s", sha, path)
        return sha

    def _get_reference(self, repo: RepositoryRef, branch: str) -> Reference | None:
        """Current reference, or None when the branch does not exist yet."""
        try:
            ref = self.data.get_reference(repo, branch)
        except HubError as e:
            if e.status == 404:
                logger.info("Reference %s not found, it will be created", branch)
                return None
            raise e.prefixed("Error getting reference: ") from e
        except PublishError as e:
            raise e.prefixed("Error getting reference: ") from e

        if ref.object.type != TYPE_COMMIT:
            raise InvariantError(
                f"Existing ref {branch} must point to a {TYPE_COMMIT}"
                f" but points to a {ref.object.type or 'unknown object'}"
            )
        logger.debug("Reference %s is at %s", branch, ref.object.sha)
        return ref

    def _get_base_tree(self, repo: RepositoryRef, commit_sha: str) -> str:
        try:
            current = self.data.get_commit(repo, commit_sha)
        except PublishError as e:
            raise e.prefixed("Error getting commit: ") from e
        logger.debug("Merging with tree %s of commit %s", current.tree_sha, commit_sha)
        return current.tree_sha

    def _create_tree(
        self,
        repo: RepositoryRef,
        entries: list[TreeEntry],
        base_tree_sha: str | None,
    ) -> Tree:
        logger.info(
            "%sCreating tree with %d blob entries%s",
            self._prefix,
            len(entries),
            f" on base tree {base_tree_sha}" if base_tree_sha else "",
        )
        if self.config.dry_run:
            return Tree(entries=entries, base_tree_sha=base_tree_sha)
        try:
            return self.data.create_tree(repo, entries, base_tree_sha)
        except PublishError as e:
            raise e.prefixed("Error creating tree: ") from e

    def _lookup_author(self) -> CommitUser | None:
        """Authenticated user as author, or None to let GitHub decide.

        Lookup failures are logged and never fail the publication.
        """
        try:
            user = self.data.get_user()
        except (HubError, TransportError) as e:
            logger.warning("Unable to look up commit author: %s", e)
            return None

        email = user.email
        try:
            email = select_email(self.data.get_emails(), fallback=user.email)
        except (HubError, TransportError) as e:
            logger.warning("Unable to look up commit author email: %s", e)

        name = user.name or user.login
        if not name or not email:
            logger.debug("No name or email for %s, using GitHub defaults", user.login)
            return None
        date = self._now().astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return CommitUser(name=name, email=email, date=date)

    def _create_commit(self, repo: RepositoryRef, commit: Commit) -> Commit:
        if self.config.dry_run:
            logger.info("%sCreating commit on tree %s", self._prefix, commit.tree_sha)
            return Commit(
                message=commit.message,
                tree_sha=commit.tree_sha,
                parents=list(commit.parents),
                author=commit.author,
                committer=commit.committer,
            )
        try:
            created = self.data.create_commit(repo, commit)
        except PublishError as e:
            raise e.prefixed("Error creating commit: ") from e
        logger.info("Created commit %s", created.sha)
        return created

    def _edit_reference(
        self,
        repo: RepositoryRef,
        branch: str,
        current_sha: str,
        sha: str,
        force: bool,
    ) -> None:
        logger.info(
            "%sUpdating reference %s from %s to %s%s",
            self._prefix,
            branch,
            current_sha,
            sha or "(placeholder)",
            " (forced)" if force else "",
        )
        if self.config.dry_run:
            return
        try:
            self.data.edit_reference(repo, branch, sha, force)
        except PublishError as e:
            raise e.prefixed("Error editing reference: ") from e

    def _create_reference(self, repo: RepositoryRef, branch: str, sha: str) -> None:
        logger.info(
            "%sCreating reference %s starting at commit %s",
            self._prefix,
            branch,
            sha or "(placeholder)",
        )
        if self.config.dry_run:
            return
        try:
            self.data.create_reference(repo, branch, sha)
        except PublishError as e:
            raise e.prefixed("Error creating reference: ") from e
