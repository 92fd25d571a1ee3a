"""Resolve the target repository from configuration.

Sources, first match wins:
1. Explicit owner and name
2. Project URL
3. SCM web URL
4. SCM connection, then developer connection (``scm:git:...github.com...owner/name.git``)
"""

import logging
from urllib.parse import urlparse

from ghpublish.config import PublishConfig
from ghpublish.errors import ConfigError
from ghpublish.host_settings import DEFAULT_HOST
from ghpublish.models import RepositoryRef
from ghpublish.paths import is_empty

logger = logging.getLogger("ghpublish.repository")

__all__ = [
    "extract_repository_from_scm_url",
    "get_repository",
    "repository_from_id",
    "repository_from_url",
    "resolve_repository",
]

SUFFIX_GIT = ".git"


def repository_from_id(repo_id: str | None) -> RepositoryRef | None:
    """Parse ``owner/name``. Returns None when either part is missing."""
    if not repo_id:
        return None
    owner, sep, name = repo_id.partition("/")
    if not sep or not owner or not name:
        return None
    return RepositoryRef(owner, name)


def repository_from_url(url: str | None) -> RepositoryRef | None:
    """Repository from the first two path segments of a web URL.

    A trailing ``.git`` on the name is dropped.
    """
    if is_empty(url):
        return None
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    segments = [s for s in parsed.path.split("/") if s]
    if len(segments) < 2:
        return None
    owner, name = segments[0], segments[1]
    if name.endswith(SUFFIX_GIT):
        name = name[: -len(SUFFIX_GIT)]
    if not name:
        return None
    return RepositoryRef(owner, name)


def extract_repository_from_scm_url(url: str | None) -> RepositoryRef | None:
    """Repository from an SCM connection string.

    Accepts ``scm:git:git://github.com/owner/name.git`` and
    ``scm:git:git@github.com:owner/name.git``; the ``.git`` suffix is required.
    """
    if is_empty(url):
        return None
    index = url.find(DEFAULT_HOST)
    if index == -1 or index + 1 >= len(url):
        return None
    if not url.endswith(SUFFIX_GIT):
        return None
    start = index + len(DEFAULT_HOST) + 1
    end = len(url) - len(SUFFIX_GIT)
    if start >= end:
        return None
    return repository_from_id(url[start:end])


def get_repository(
    owner: str | None = None,
    name: str | None = None,
    project_url: str | None = None,
    scm_url: str | None = None,
    scm_connection: str | None = None,
    scm_developer_connection: str | None = None,
) -> RepositoryRef | None:
    """Resolve the repository, or None if no source yields one."""
    if not is_empty(owner, name):
        return RepositoryRef(owner, name)

    return (
        repository_from_url(project_url)
        or repository_from_url(scm_url)
        or extract_repository_from_scm_url(scm_connection)
        or extract_repository_from_scm_url(scm_developer_connection)
    )


def resolve_repository(config: PublishConfig) -> RepositoryRef:
    """Repository for a publication.

    Raises:
        ConfigError: If no repository could be resolved
    """
    repository = get_repository(
        owner=config.repository_owner,
        name=config.repository_name,
        project_url=config.project_url,
        scm_url=config.scm_url,
        scm_connection=config.scm_connection,
        scm_developer_connection=config.scm_developer_connection,
    )
    if repository is None:
        raise ConfigError("No GitHub repository (owner and name) configured")
    logger.debug("Using GitHub repository %s", repository.id)
    return repository
