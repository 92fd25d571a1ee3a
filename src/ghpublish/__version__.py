"""Version information for ghpublish.

Single source of truth for version number.
Follows PEP 440 and semantic versioning principles.
"""

__version__ = "0.12.0"
__version_info__ = tuple(int(part) for part in __version__.split("."))
