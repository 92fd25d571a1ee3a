"""Tests for the release-asset publisher."""

import logging
from unittest.mock import MagicMock, patch

import pytest

from ghpublish.connectors.github.releases import Release, ReleaseAsset, ReleaseService
from ghpublish.errors import ConfigError, HubError, TransportError
from ghpublish.models import RepositoryRef
from ghpublish.publish.downloads import DownloadsPublisher, apply_suffix, resolve_files

REPO = RepositoryRef("octo", "site")
RELEASE = Release(
    id=7,
    tag_name="v1.0",
    upload_url="https://uploads.github.com/repos/octo/site/releases/7/assets{?name,label}",
)


@pytest.fixture
def releases():
    service = MagicMock(spec=ReleaseService)
    service.get_release_by_tag.return_value = RELEASE
    service.list_assets.return_value = []
    service.upload_asset.side_effect = lambda release, name, content, label=None: (
        ReleaseAsset(id=99, name=name, size=len(content))
    )
    return service


@pytest.fixture
def artifact(tmp_path):
    path = tmp_path / "target" / "tool-1.0.jar"
    path.parent.mkdir()
    path.write_bytes(b"PK\x03\x04jar")
    return path


def _config(make_config, artifact, **overrides):
    values = {"tag": "v1.0", "artifact_file": str(artifact)}
    values.update(overrides)
    return make_config(**values)


class TestApplySuffix:
    @pytest.mark.parametrize(
        ("name", "suffix", "expected"),
        [
            ("tool-1.0.jar", "-sources", "tool-1.0-sources.jar"),
            ("archive.tar.gz", "-linux", "archive.tar-linux.gz"),
            ("README", "-x", "README-x"),
            ("tool.jar", None, "tool.jar"),
            ("tool.jar", "", "tool.jar"),
        ],
    )
    def test_apply_suffix(self, name, suffix, expected):
        assert apply_suffix(name, suffix) == expected


class TestResolveFiles:
    def test_main_artifact(self, make_config, artifact):
        assert resolve_files(_config(make_config, artifact)) == [artifact]

    def test_attached_only_when_enabled(self, make_config, artifact):
        sources = artifact.with_name("tool-1.0-sources.jar")
        sources.write_bytes(b"src")
        config = _config(make_config, artifact, attached_artifacts=str(sources))

        assert resolve_files(config) == [artifact]

        config = _config(
            make_config, artifact, attached_artifacts=str(sources), include_attached=True
        )
        assert resolve_files(config) == [artifact, sources]

    def test_missing_artifacts_are_skipped(self, make_config, tmp_path):
        config = _config(
            make_config,
            tmp_path / "absent.jar",
            attached_artifacts=str(tmp_path / "also-absent.jar"),
            include_attached=True,
        )

        assert resolve_files(config) == []

    def test_patterns_scan_build_directory(self, make_config, artifact):
        (artifact.parent / "notes.txt").write_text("n")
        config = _config(
            make_config,
            artifact,
            build_directory=str(artifact.parent),
            includes="*.jar,*.txt",
            excludes="notes*",
        )

        assert resolve_files(config) == [artifact]


class TestPublish:
    def test_uploads_to_existing_release(self, make_config, artifact, releases):
        config = _config(make_config, artifact, description="Tool binary")

        result = DownloadsPublisher(config, releases=releases).publish()

        releases.get_release_by_tag.assert_called_once_with(REPO, "v1.0")
        releases.create_release.assert_not_called()
        releases.list_assets.assert_not_called()
        releases.upload_asset.assert_called_once_with(
            RELEASE, "tool-1.0.jar", b"PK\x03\x04jar", label="Tool binary"
        )
        assert result.assets_uploaded == 1
        assert result.bytes_uploaded == 7
        assert result.asset_names == ["tool-1.0.jar"]

    def test_creates_missing_release(self, make_config, artifact, releases):
        releases.get_release_by_tag.side_effect = HubError(404, "Not Found")
        releases.create_release.return_value = RELEASE
        config = _config(make_config, artifact, description="Notes")

        result = DownloadsPublisher(config, releases=releases).publish()

        releases.create_release.assert_called_once_with(REPO, "v1.0", "Notes")
        assert result.release_created is True
        releases.upload_asset.assert_called_once()

    def test_override_deletes_name_collisions(self, make_config, artifact, releases):
        releases.list_assets.return_value = [
            ReleaseAsset(id=11, name="tool-1.0-bin.jar"),
            ReleaseAsset(id=12, name="unrelated.zip"),
        ]
        config = _config(make_config, artifact, override=True, suffix="-bin")

        result = DownloadsPublisher(config, releases=releases).publish()

        releases.list_assets.assert_called_once_with(REPO, 7)
        releases.delete_asset.assert_called_once_with(REPO, 11)
        assert releases.upload_asset.call_args.args[1] == "tool-1.0-bin.jar"
        assert result.assets_deleted == 1

    def test_collision_without_override_is_left_to_github(
        self, make_config, artifact, releases
    ):
        config = _config(make_config, artifact)

        DownloadsPublisher(config, releases=releases).publish()

        releases.delete_asset.assert_not_called()

    def test_dry_run_lists_but_never_writes(self, make_config, artifact, releases, caplog):
        releases.list_assets.return_value = [ReleaseAsset(id=11, name="tool-1.0.jar")]
        config = _config(make_config, artifact, override=True, dry_run=True)

        with caplog.at_level(logging.INFO, logger="ghpublish"):
            result = DownloadsPublisher(config, releases=releases).publish()

        releases.list_assets.assert_called_once()
        releases.delete_asset.assert_not_called()
        releases.upload_asset.assert_not_called()
        assert result.assets_deleted == 1
        assert "[dry run] Adding download: tool-1.0.jar (7 bytes)" in caplog.text

    def test_dry_run_with_missing_release(self, make_config, artifact, releases):
        releases.get_release_by_tag.side_effect = HubError(404, "Not Found")
        config = _config(make_config, artifact, override=True, dry_run=True)

        result = DownloadsPublisher(config, releases=releases).publish()

        releases.create_release.assert_not_called()
        releases.list_assets.assert_not_called()
        releases.upload_asset.assert_not_called()
        assert result.release_created is True

    def test_skip(self, make_config, artifact, releases):
        config = _config(make_config, artifact, skip=True)

        result = DownloadsPublisher(config, releases=releases).publish()

        assert result.skipped is True
        assert releases.method_calls == []

    def test_tag_is_required(self, make_config, artifact, releases):
        config = _config(make_config, artifact, tag=None)

        with pytest.raises(ConfigError, match="tag"):
            DownloadsPublisher(config, releases=releases).publish()
        assert releases.method_calls == []


class TestErrors:
    def test_listing_failure(self, make_config, artifact, releases):
        releases.list_assets.side_effect = HubError(500, "boom")
        config = _config(make_config, artifact, override=True)

        with pytest.raises(HubError, match="^Listing downloads failed: boom"):
            DownloadsPublisher(config, releases=releases).publish()

    def test_delete_failure(self, make_config, artifact, releases):
        releases.list_assets.return_value = [ReleaseAsset(id=11, name="tool-1.0.jar")]
        releases.delete_asset.side_effect = HubError(403, "Forbidden")
        config = _config(make_config, artifact, override=True)

        with pytest.raises(
            HubError, match="^Deleting existing download tool-1.0.jar failed: Forbidden"
        ):
            DownloadsPublisher(config, releases=releases).publish()
        releases.upload_asset.assert_not_called()

    def test_upload_failure_aborts(self, make_config, artifact, releases):
        second = artifact.with_name("tool-1.0-sources.jar")
        second.write_bytes(b"src")
        releases.upload_asset.side_effect = TransportError("timed out")
        config = _config(
            make_config, artifact, attached_artifacts=str(second), include_attached=True
        )

        with pytest.raises(
            TransportError, match="^Resource tool-1.0.jar upload failed: timed out"
        ):
            DownloadsPublisher(config, releases=releases).publish()
        assert releases.upload_asset.call_count == 1

    def test_release_lookup_failure(self, make_config, artifact, releases):
        releases.get_release_by_tag.side_effect = HubError(401, "Bad credentials")
        config = _config(make_config, artifact)

        with pytest.raises(HubError, match="^Getting release v1.0 failed: Bad credentials"):
            DownloadsPublisher(config, releases=releases).publish()
        releases.create_release.assert_not_called()

    def test_owned_client_is_closed(self, make_config, artifact):
        client = MagicMock()
        client.get.return_value = {"id": 7, "tag_name": "v1.0", "upload_url": RELEASE.upload_url}
        client.upload.return_value = {"id": 99, "name": "tool-1.0.jar"}
        config = _config(make_config, artifact)

        with patch("ghpublish.publish.downloads.create_client", return_value=client):
            result = DownloadsPublisher(config).publish()

        assert result.assets_uploaded == 1
        client.upload.assert_called_once_with(
            "https://uploads.github.com/repos/octo/site/releases/7/assets",
            b"PK\x03\x04jar",
            params={"name": "tool-1.0.jar"},
        )
        client.close.assert_called_once()
