"""Command-line entry point.

Usage:
    ghpublish site --message "Update site" --output-directory target/site
    ghpublish downloads --tag v1.0 --artifact-file target/tool-1.0.jar
    ghpublish site --dry-run ...            # log what would be written

Every option can also come from a GHPUBLISH_* environment variable or a
.env file; command-line flags win.

Exit codes: 0 success, 1 publication error, 2 usage error.
"""

import argparse
import logging
import sys
import time
from typing import Any

from pydantic import ValidationError

from ghpublish.__version__ import __version__
from ghpublish.config import PublishConfig
from ghpublish.errors import PublishError
from ghpublish.logging_config import configure_logging
from ghpublish.metrics_push import push_publication_metrics
from ghpublish.publish.downloads import DownloadsPublisher, DownloadsPublishResult
from ghpublish.publish.site import SitePublisher, SitePublishResult

logger = logging.getLogger("ghpublish.cli")

__all__ = ["build_parser", "config_overrides", "main"]

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)

    conn = common.add_argument_group("connection")
    conn.add_argument("--host", help="API host (bare hostname or URL)")
    conn.add_argument("--user-name", help="User name for basic authentication")
    conn.add_argument("--password", help="Password for basic authentication")
    conn.add_argument("--oauth2-token", help="OAuth2 or personal access token")
    conn.add_argument("--server", help="Server id in the settings file")
    conn.add_argument("--settings-file", help="YAML settings file with servers and proxies")

    repo = common.add_argument_group("repository")
    repo.add_argument("--repository-owner", help="Repository owner")
    repo.add_argument("--repository-name", help="Repository name")
    repo.add_argument("--project-url", help="Project URL (owner/name fallback)")
    repo.add_argument("--scm-url", help="SCM web URL (owner/name fallback)")
    repo.add_argument("--scm-connection", help="SCM connection (scm:git:...)")
    repo.add_argument("--scm-developer-connection", help="SCM developer connection")

    run = common.add_argument_group("run")
    run.add_argument(
        "--include",
        dest="includes",
        action="append",
        metavar="PATTERN",
        help="Include pattern (repeatable)",
    )
    run.add_argument(
        "--exclude",
        dest="excludes",
        action="append",
        metavar="PATTERN",
        help="Exclude pattern (repeatable)",
    )
    run.add_argument(
        "--dry-run", action="store_true", default=None, help="Log only, write nothing"
    )
    run.add_argument("--skip", action="store_true", default=None, help="Do nothing")
    run.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )
    run.add_argument("--log-format", choices=["json", "text"])
    return common


def build_parser() -> argparse.ArgumentParser:
    """Argument parser with ``site`` and ``downloads`` sub-commands."""
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="ghpublish",
        description="Publish a site branch or release assets to GitHub",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True, metavar="{site,downloads}")

    site = sub.add_parser(
        "site", parents=[common], help="Commit a generated site to a branch"
    )
    site.add_argument("--branch", help="Reference to update (default: refs/heads/gh-pages)")
    site.add_argument("--path", help="Prefix for every path in the tree")
    site.add_argument("-m", "--message", help="Commit message")
    site.add_argument("--output-directory", help="Directory holding the generated site")
    site.add_argument(
        "--force", action="store_true", default=None, help="Allow non-fast-forward update"
    )
    site.add_argument(
        "--merge", action="store_true", default=None, help="Merge with the current tree"
    )
    site.add_argument(
        "--no-jekyll", action="store_true", default=None, help="Add an empty .nojekyll"
    )

    downloads = sub.add_parser(
        "downloads", parents=[common], help="Upload artifacts as release assets"
    )
    downloads.add_argument("--tag", help="Release tag")
    downloads.add_argument("--description", help="Asset label and release body")
    downloads.add_argument(
        "--override",
        action="store_true",
        default=None,
        help="Replace existing assets with the same name",
    )
    downloads.add_argument(
        "--include-attached",
        action="store_true",
        default=None,
        help="Also upload attached artifacts",
    )
    downloads.add_argument("--suffix", help="Suffix inserted before the file extension")
    downloads.add_argument("--build-directory", help="Base directory for pattern scans")
    downloads.add_argument("--artifact-file", help="Main build artifact")
    downloads.add_argument(
        "--attached-artifact",
        dest="attached_artifacts",
        action="append",
        metavar="FILE",
        help="Attached artifact (repeatable)",
    )
    return parser


def config_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Flags that were given on the command line, keyed by config field."""
    fields = PublishConfig.model_fields
    return {
        key: value
        for key, value in vars(args).items()
        if value is not None and key in fields
    }


def _objects(result: SitePublishResult | DownloadsPublishResult) -> dict[str, int]:
    if result.dry_run or result.skipped:
        return {}
    if isinstance(result, SitePublishResult):
        return {
            "blob": result.blobs_created,
            "tree": 1 if result.tree_sha else 0,
            "commit": 1 if result.commit_sha else 0,
            "reference": 1 if result.reference_created or result.reference_updated else 0,
        }
    return {
        "release": 1 if result.release_created else 0,
        "asset": result.assets_uploaded,
        "deleted_asset": result.assets_deleted,
    }


def _status(result: SitePublishResult | DownloadsPublishResult) -> str:
    if result.skipped:
        return "skipped"
    if result.dry_run:
        return "dry_run"
    return "success"


def _print_summary(result: SitePublishResult | DownloadsPublishResult) -> None:
    if result.skipped:
        print("Skipped.")
        return
    label = "Dry run" if result.dry_run else "Published"
    if isinstance(result, SitePublishResult):
        print(f"{label}: {result.repository} {result.branch}")
        print(f"  Files: {result.files}, Blobs: {result.blobs_created}")
        print(f"  Tree: {result.tree_sha or '-'}, Commit: {result.commit_sha or '-'}")
    else:
        print(f"{label}: {result.repository} release {result.tag}")
        print(f"  Assets: {result.assets_uploaded}, Replaced: {result.assets_deleted}")
        print(f"  Bytes: {result.bytes_uploaded}")
    print(f"  Duration: {result.duration_seconds:.1f}s")


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = PublishConfig(**config_overrides(args))
    except ValidationError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return EXIT_FAILURE

    configure_logging(config.log_level, config.log_format)

    if args.command == "site":
        publisher = SitePublisher(config)
    else:
        publisher = DownloadsPublisher(config)

    start = time.monotonic()
    try:
        result = publisher.publish()
    except PublishError as e:
        logger.debug("Publication failed", exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        push_publication_metrics(
            config, args.command, "failed", time.monotonic() - start
        )
        return EXIT_FAILURE

    push_publication_metrics(
        config,
        args.command,
        _status(result),
        result.duration_seconds,
        objects=_objects(result),
        repository=result.repository or None,
    )
    _print_summary(result)
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
