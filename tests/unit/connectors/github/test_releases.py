"""Unit tests for the releases service request mapping."""

from unittest.mock import Mock

import pytest

from ghpublish.connectors.github.client import GitHubClient
from ghpublish.connectors.github.releases import Release, ReleaseService
from ghpublish.models import RepositoryRef

REPO = RepositoryRef("octo", "tool")
UPLOAD_URL = "https://uploads.github.com/repos/octo/tool/releases/7/assets{?name,label}"


@pytest.fixture
def client():
    return Mock(spec=GitHubClient)


@pytest.fixture
def service(client):
    return ReleaseService(client)


def _release() -> Release:
    return Release(id=7, tag_name="v1.0", upload_url=UPLOAD_URL)


def test_get_release_by_tag(service, client):
    client.get.return_value = {
        "id": 7,
        "tag_name": "v1.0",
        "upload_url": UPLOAD_URL,
        "assets": [{"id": 1, "name": "a.jar", "size": 3}],
    }

    release = service.get_release_by_tag(REPO, "v1.0")

    client.get.assert_called_once_with("/repos/octo/tool/releases/tags/v1.0")
    assert release.id == 7
    assert release.assets[0].name == "a.jar"
    assert release.upload_base_url == (
        "https://uploads.github.com/repos/octo/tool/releases/7/assets"
    )


def test_tag_is_quoted(service, client):
    client.get.return_value = {"id": 1, "tag_name": "release/1.0"}

    service.get_release_by_tag(REPO, "release/1.0")

    client.get.assert_called_once_with("/repos/octo/tool/releases/tags/release%2F1.0")


def test_create_release(service, client):
    client.post.return_value = {"id": 8, "tag_name": "v2.0", "upload_url": UPLOAD_URL}

    release = service.create_release(REPO, "v2.0", body="Notes")

    client.post.assert_called_once_with(
        "/repos/octo/tool/releases",
        json={"tag_name": "v2.0", "name": "v2.0", "body": "Notes"},
    )
    assert release.id == 8


def test_create_release_without_body(service, client):
    client.post.return_value = {"id": 8, "tag_name": "v2.0"}

    service.create_release(REPO, "v2.0")

    assert client.post.call_args.kwargs["json"] == {"tag_name": "v2.0", "name": "v2.0"}


def test_list_assets_follows_pages(service, client):
    full_page = [{"id": i, "name": f"a{i}.bin"} for i in range(ReleaseService.PER_PAGE)]
    client.get.side_effect = [full_page, [{"id": 500, "name": "last.bin"}]]

    assets = service.list_assets(REPO, 7)

    assert len(assets) == ReleaseService.PER_PAGE + 1
    assert assets[-1].name == "last.bin"
    assert client.get.call_args_list[1].kwargs["params"] == {"per_page": "100", "page": "2"}
    assert client.get.call_args.args == ("/repos/octo/tool/releases/7/assets",)


def test_list_assets_empty(service, client):
    client.get.return_value = []

    assert service.list_assets(REPO, 7) == []
    assert client.get.call_count == 1


def test_delete_asset(service, client):
    service.delete_asset(REPO, 11)

    client.delete.assert_called_once_with("/repos/octo/tool/releases/assets/11")


def test_upload_asset(service, client):
    client.upload.return_value = {"id": 12, "name": "tool.jar", "size": 4, "label": "Tool"}

    asset = service.upload_asset(_release(), "tool.jar", b"data", label="Tool")

    client.upload.assert_called_once_with(
        "https://uploads.github.com/repos/octo/tool/releases/7/assets",
        b"data",
        params={"name": "tool.jar", "label": "Tool"},
    )
    assert asset.id == 12
    assert asset.label == "Tool"
