"""Error taxonomy for GitHub publication.

Every failure surfaced to the caller is a PublishError subclass so the CLI
can report it uniformly. Step wrappers re-raise the same class with a
step-specific prefix ("Error creating blob: ...") and chain the original.
"""

from typing import Any

__all__ = [
    "ConfigError",
    "HubError",
    "IOFailure",
    "InvariantError",
    "NoCredentials",
    "PublishError",
    "TransportError",
]


class PublishError(Exception):
    """Base class for all publication failures."""

    def prefixed(self, prefix: str) -> "PublishError":
        """Return a copy of this error with a step prefix on its message."""
        return _with_message(self, f"{prefix}{self}")


class ConfigError(PublishError):
    """Missing or invalid configuration. Raised before any network I/O."""

    pass


class NoCredentials(ConfigError):
    """No basic, token, or server-derived credentials were configured."""

    def __init__(self, message: str = "No authentication credentials configured"):
        super().__init__(message)


class TransportError(PublishError):
    """Connect, timeout, DNS, or TLS failure talking to GitHub."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class HubError(PublishError):
    """Non-2xx response from the GitHub API.

    Attributes:
        status: HTTP status code
        message: ``message`` field of the error body (or the raw text)
        errors: Structured ``errors[]`` array from the error body
    """

    def __init__(
        self,
        status: int,
        message: str = "",
        errors: list[dict[str, Any]] | None = None,
        text: str | None = None,
    ):
        self.status = status
        self.message = message
        self.errors = errors or []
        super().__init__(text if text is not None else self._format())

    def _format(self) -> str:
        text = self.message or "request failed"
        details = []
        for error in self.errors:
            if not isinstance(error, dict):
                details.append(str(error))
                continue
            detail = error.get("message") or " ".join(
                str(error[key]) for key in ("resource", "field", "code") if error.get(key)
            )
            if detail:
                details.append(detail)
        if details:
            text = f"{text}: {'; '.join(details)}"
        return f"{text} ({self.status})"


class InvariantError(PublishError):
    """A GitHub response violates a precondition of the publication."""

    pass


class IOFailure(PublishError):
    """Local file read or encode failure."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


def _with_message(error: PublishError, text: str) -> PublishError:
    if isinstance(error, HubError):
        return HubError(error.status, error.message, error.errors, text=text)
    if isinstance(error, TransportError):
        return TransportError(text, error.cause)
    if isinstance(error, IOFailure):
        return IOFailure(text, error.path)
    if isinstance(error, NoCredentials):
        return NoCredentials(text)
    return type(error)(text)
