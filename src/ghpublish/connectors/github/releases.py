"""Releases API: releases by tag and their assets.

Replaces the retired repository downloads resource. Assets are uploaded
to the release's ``upload_url`` (an absolute URL on uploads.github.com).

Reference: https://docs.github.com/en/rest/releases
"""

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from ghpublish.connectors.github.client import GitHubClient
from ghpublish.models import RepositoryRef

logger = logging.getLogger("ghpublish.github.releases")

__all__ = ["Release", "ReleaseAsset", "ReleaseService"]


@dataclass
class ReleaseAsset:
    id: int
    name: str
    size: int = 0
    label: str | None = None
    browser_download_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReleaseAsset":
        return cls(
            id=data.get("id", 0),
            name=data.get("name", ""),
            size=data.get("size", 0),
            label=data.get("label"),
            browser_download_url=data.get("browser_download_url", ""),
        )


@dataclass
class Release:
    id: int
    tag_name: str
    upload_url: str = ""
    name: str | None = None
    assets: list[ReleaseAsset] = field(default_factory=list)

    @property
    def upload_base_url(self) -> str:
        """``upload_url`` without its ``{?name,label}`` URI template suffix."""
        return self.upload_url.split("{", 1)[0]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Release":
        return cls(
            id=data.get("id", 0),
            tag_name=data.get("tag_name", ""),
            upload_url=data.get("upload_url", ""),
            name=data.get("name"),
            assets=[ReleaseAsset.from_dict(a) for a in data.get("assets") or []],
        )


class ReleaseService:
    """Release and asset operations for one client."""

    PER_PAGE = 100

    def __init__(self, client: GitHubClient) -> None:
        self.client = client

    @staticmethod
    def _releases(repo: RepositoryRef, resource: str = "") -> str:
        path = f"/repos/{repo.owner}/{repo.name}/releases"
        return f"{path}/{resource}" if resource else path

    def get_release_by_tag(self, repo: RepositoryRef, tag: str) -> Release:
        """Release for a tag. A missing release raises HubError(404)."""
        data = self.client.get(self._releases(repo, f"tags/{quote(tag, safe='')}"))
        return Release.from_dict(data)

    def create_release(
        self, repo: RepositoryRef, tag: str, body: str | None = None
    ) -> Release:
        payload: dict[str, Any] = {"tag_name": tag, "name": tag}
        if body:
            payload["body"] = body
        release = Release.from_dict(self.client.post(self._releases(repo), json=payload))
        logger.info("Created release %s (%d) in %s", tag, release.id, repo.id)
        return release

    def list_assets(self, repo: RepositoryRef, release_id: int) -> list[ReleaseAsset]:
        """All assets of a release, following pages until a short page."""
        assets: list[ReleaseAsset] = []
        page = 1
        while True:
            data = self.client.get(
                self._releases(repo, f"{release_id}/assets"),
                params={"per_page": str(self.PER_PAGE), "page": str(page)},
            ) or []
            assets.extend(ReleaseAsset.from_dict(item) for item in data)
            if len(data) < self.PER_PAGE:
                return assets
            page += 1

    def delete_asset(self, repo: RepositoryRef, asset_id: int) -> None:
        self.client.delete(self._releases(repo, f"assets/{asset_id}"))

    def upload_asset(
        self,
        release: Release,
        name: str,
        content: bytes,
        label: str | None = None,
    ) -> ReleaseAsset:
        """Upload raw bytes as a named asset of the release."""
        params = {"name": name}
        if label:
            params["label"] = label
        data = self.client.upload(release.upload_base_url, content, params=params)
        return ReleaseAsset.from_dict(data)
