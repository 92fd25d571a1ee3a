"""Publication modes: site branch and release assets."""

from .downloads import DownloadsPublisher, DownloadsPublishResult
from .site import SitePublisher, SitePublishResult

__all__ = [
    "DownloadsPublishResult",
    "DownloadsPublisher",
    "SitePublishResult",
    "SitePublisher",
]
