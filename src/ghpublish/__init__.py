"""ghpublish - publish build output to GitHub without a local working copy.

Two publication modes:
- Site: commit a generated site directory to a branch (default gh-pages)
  through the git data API (blobs, tree, commit, reference)
- Downloads: upload build artifacts as release assets

Logging is configured by the CLI (``configure_logging``), not on import.
"""

from .__version__ import __version__
from .config import BRANCH_DEFAULT, PublishConfig, get_config, reset_config
from .errors import (
    ConfigError,
    HubError,
    InvariantError,
    IOFailure,
    NoCredentials,
    PublishError,
    TransportError,
)
from .logging_config import StructuredFormatter, configure_logging
from .models import RepositoryRef
from .publish import (
    DownloadsPublisher,
    DownloadsPublishResult,
    SitePublisher,
    SitePublishResult,
)

__all__ = [
    "BRANCH_DEFAULT",
    "ConfigError",
    "DownloadsPublishResult",
    "DownloadsPublisher",
    "HubError",
    "IOFailure",
    "InvariantError",
    "NoCredentials",
    "PublishConfig",
    "PublishError",
    "RepositoryRef",
    "SitePublishResult",
    "SitePublisher",
    "StructuredFormatter",
    "TransportError",
    "__version__",
    "configure_logging",
    "get_config",
    "reset_config",
]
