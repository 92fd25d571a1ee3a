"""Git data API: blobs, trees, commits, references, and user lookup.

Each method maps to exactly one HTTP request. Responses are parsed into
the dataclasses from ``ghpublish.models``.

Reference: https://docs.github.com/en/rest/git
"""

import logging
from typing import Any
from urllib.parse import quote

from ghpublish.connectors.github.client import GitHubClient
from ghpublish.errors import HubError, InvariantError
from ghpublish.models import (
    Blob,
    Commit,
    Reference,
    RepositoryRef,
    Tree,
    TreeEntry,
    User,
)

logger = logging.getLogger("ghpublish.github.data")

__all__ = ["DataService", "select_email"]


def select_email(emails: list[dict[str, Any]], fallback: str | None = None) -> str | None:
    """Pick the commit email: primary, else first verified, else first listed.

    Falls back to the profile email when the list is empty.
    """
    for entry in emails:
        if entry.get("primary") and entry.get("email"):
            return entry["email"]
    for entry in emails:
        if entry.get("verified") and entry.get("email"):
            return entry["email"]
    for entry in emails:
        if entry.get("email"):
            return entry["email"]
    return fallback


class DataService:
    """Typed facade over the git data endpoints of one client."""

    def __init__(self, client: GitHubClient) -> None:
        self.client = client

    @staticmethod
    def _git(repo: RepositoryRef, resource: str) -> str:
        return f"/repos/{repo.owner}/{repo.name}/git/{resource}"

    @staticmethod
    def _ref_path(ref: str) -> str:
        # refs/heads/gh-pages -> heads/gh-pages
        name = ref[len("refs/") :] if ref.startswith("refs/") else ref
        return quote(name, safe="/")

    @staticmethod
    def _created(data: Any, kind: str) -> dict[str, Any]:
        """Response body of a create call, which must carry the new sha."""
        if not isinstance(data, dict) or not data.get("sha"):
            raise InvariantError(f"GitHub returned no sha for the new {kind}")
        return data

    def create_blob(self, repo: RepositoryRef, blob: Blob) -> str:
        """Upload a blob and return its sha."""
        data = self._created(
            self.client.post(self._git(repo, "blobs"), json=blob.to_dict()), "blob"
        )
        logger.debug("Created blob %s in %s", data["sha"], repo.id)
        return data["sha"]

    def create_tree(
        self,
        repo: RepositoryRef,
        entries: list[TreeEntry],
        base_tree_sha: str | None = None,
    ) -> Tree:
        """Create a tree.

        With ``base_tree_sha`` the entries overlay the existing tree;
        without it the entries are the complete tree.
        """
        body: dict[str, Any] = {"tree": [entry.to_dict() for entry in entries]}
        if base_tree_sha:
            body["base_tree"] = base_tree_sha
        data = self.client.post(self._git(repo, "trees"), json=body)
        tree = Tree.from_dict(self._created(data, "tree"))
        tree.base_tree_sha = base_tree_sha
        return tree

    def create_commit(self, repo: RepositoryRef, commit: Commit) -> Commit:
        data = self.client.post(self._git(repo, "commits"), json=commit.to_dict())
        return Commit.from_dict(self._created(data, "commit"))

    def get_commit(self, repo: RepositoryRef, sha: str) -> Commit:
        return Commit.from_dict(self.client.get(self._git(repo, f"commits/{sha}")))

    def get_reference(self, repo: RepositoryRef, ref: str) -> Reference:
        """Read a reference. A missing reference raises HubError(404)."""
        data = self.client.get(self._git(repo, f"refs/{self._ref_path(ref)}"))
        # A prefix match returns a list of references
        if isinstance(data, list):
            data = next((item for item in data if item.get("ref") == ref), None)
            if data is None:
                raise HubError(404, "Not Found")
        return Reference.from_dict(data)

    def create_reference(self, repo: RepositoryRef, ref: str, sha: str) -> Reference:
        data = self.client.post(self._git(repo, "refs"), json={"ref": ref, "sha": sha})
        return Reference.from_dict(data)

    def edit_reference(
        self, repo: RepositoryRef, ref: str, sha: str, force: bool = False
    ) -> Reference:
        """Point a reference at a new commit.

        Without ``force`` GitHub rejects non-fast-forward updates (422).
        """
        data = self.client.patch(
            self._git(repo, f"refs/{self._ref_path(ref)}"),
            json={"sha": sha, "force": force},
        )
        return Reference.from_dict(data)

    def get_user(self) -> User:
        """Authenticated user profile."""
        return User.from_dict(self.client.get("/user"))

    def get_emails(self) -> list[dict[str, Any]]:
        return self.client.get("/user/emails") or []

