"""Typed records for the GitHub git data API.

Dataclasses mirror the JSON bodies exchanged with the blob, tree, commit,
and reference endpoints. ``to_dict()`` produces request bodies and
``from_dict()`` parses responses; unknown response fields are ignored.
"""

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "Blob",
    "Commit",
    "CommitUser",
    "ENCODING_BASE64",
    "MODE_BLOB",
    "Reference",
    "RepositoryRef",
    "TYPE_BLOB",
    "TYPE_COMMIT",
    "Tree",
    "TreeEntry",
    "TypedResource",
    "User",
]

ENCODING_BASE64 = "base64"
TYPE_BLOB = "blob"
TYPE_COMMIT = "commit"
MODE_BLOB = "100644"


@dataclass(frozen=True)
class RepositoryRef:
    """Repository identified by owner and name."""

    owner: str
    name: str

    @property
    def id(self) -> str:
        """``owner/name`` form used in API paths."""
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.id


@dataclass
class Blob:
    content: str = ""
    encoding: str = ENCODING_BASE64

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "encoding": self.encoding}


@dataclass
class TreeEntry:
    """Single path in a tree. Mode is always a regular file."""

    path: str
    sha: str = ""
    type: str = TYPE_BLOB
    mode: str = MODE_BLOB

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "mode": self.mode, "type": self.type, "sha": self.sha}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TreeEntry":
        return cls(
            path=data.get("path", ""),
            sha=data.get("sha") or "",
            type=data.get("type", TYPE_BLOB),
            mode=data.get("mode", MODE_BLOB),
        )


@dataclass
class Tree:
    sha: str = ""
    entries: list[TreeEntry] = field(default_factory=list)
    base_tree_sha: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tree":
        return cls(
            sha=data.get("sha") or "",
            entries=[TreeEntry.from_dict(e) for e in data.get("tree") or []],
        )


@dataclass
class CommitUser:
    """Author or committer identity. ``date`` is ISO 8601 UTC."""

    name: str
    email: str
    date: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "email": self.email, "date": self.date}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CommitUser":
        return cls(
            name=data.get("name", ""),
            email=data.get("email", ""),
            date=data.get("date", ""),
        )


@dataclass
class Commit:
    """Commit object.

    ``parents`` holds parent SHAs; this publisher never emits more than one.
    """

    message: str = ""
    tree_sha: str = ""
    parents: list[str] = field(default_factory=list)
    author: CommitUser | None = None
    committer: CommitUser | None = None
    sha: str = ""

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "message": self.message,
            "tree": self.tree_sha,
            "parents": list(self.parents),
        }
        if self.author is not None:
            body["author"] = self.author.to_dict()
        if self.committer is not None:
            body["committer"] = self.committer.to_dict()
        return body

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Commit":
        author = data.get("author")
        committer = data.get("committer")
        return cls(
            message=data.get("message", ""),
            tree_sha=(data.get("tree") or {}).get("sha", ""),
            parents=[p.get("sha", "") for p in data.get("parents") or []],
            author=CommitUser.from_dict(author) if author else None,
            committer=CommitUser.from_dict(committer) if committer else None,
            sha=data.get("sha") or "",
        )


@dataclass
class TypedResource:
    """Object a reference points at."""

    sha: str = ""
    type: str = TYPE_COMMIT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TypedResource":
        return cls(sha=data.get("sha") or "", type=data.get("type", ""))


@dataclass
class Reference:
    ref: str
    object: TypedResource = field(default_factory=TypedResource)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Reference":
        return cls(
            ref=data.get("ref", ""),
            object=TypedResource.from_dict(data.get("object") or {}),
        )


@dataclass
class User:
    login: str
    name: str | None = None
    email: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            login=data.get("login", ""),
            name=data.get("name"),
            email=data.get("email"),
        )
