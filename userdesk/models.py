"""Domain models for directory users and form drafts."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

NAME_MAX_LENGTH = 100


def split_tokens(text: Optional[str]) -> List[str]:
    """Split comma-separated ``text`` into trimmed, non-empty tokens.

    Order is preserved and duplicates are kept.
    """

    if not text:
        return []
    return [token.strip() for token in text.split(",") if token.strip()]


def join_tokens(tokens: Iterable[str]) -> str:
    return ", ".join(tokens)


def _as_tokens(value: object) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(split_tokens(value))
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    raise ValueError(f"Expected a list of strings, got {type(value).__name__}")


@dataclass(frozen=True)
class User:
    """A user record as returned by the directory."""

    id: str
    name: str
    roles: Tuple[str, ...] = ()
    groups: Tuple[str, ...] = ()

    @staticmethod
    def from_payload(data: Mapping[str, object]) -> "User":
        """Create a :class:`User` from a decoded JSON object."""
        if not isinstance(data, Mapping):
            raise ValueError("User payload must be a JSON object")
        raw_id = data.get("id", data.get("_id"))
        if raw_id is None:
            raise ValueError("User payload is missing an identifier")
        return User(
            id=str(raw_id),
            name=str(data.get("name") or ""),
            roles=_as_tokens(data.get("roles")),
            groups=_as_tokens(data.get("groups")),
        )

    def to_view(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "roles": list(self.roles),
            "groups": list(self.groups),
            "roles_text": join_tokens(self.roles),
            "groups_text": join_tokens(self.groups),
        }


@dataclass
class MutationDraft:
    """Free-text representation of a user while it is being edited."""

    name: str = ""
    roles_text: str = ""
    groups_text: str = ""

    @classmethod
    def from_user(cls, user: User) -> "MutationDraft":
        return cls(
            name=user.name,
            roles_text=join_tokens(user.roles),
            groups_text=join_tokens(user.groups),
        )

    @property
    def roles(self) -> List[str]:
        return split_tokens(self.roles_text)

    @property
    def groups(self) -> List[str]:
        return split_tokens(self.groups_text)

    def validate(self) -> Dict[str, str]:
        """Return a mapping of field name to error message."""
        errors: Dict[str, str] = {}
        name = (self.name or "").strip()
        if not name:
            errors["name"] = "Name is required."
        elif len(name) > NAME_MAX_LENGTH:
            errors["name"] = f"Name must be at most {NAME_MAX_LENGTH} characters."
        # Blank text is rejected, but text that normalises to nothing is allowed.
        if not (self.roles_text or "").strip():
            errors["roles"] = "Roles are required."
        if not (self.groups_text or "").strip():
            errors["groups"] = "Groups are required."
        return errors

    def to_payload(self) -> Dict[str, object]:
        return {
            "name": self.name.strip(),
            "roles": self.roles,
            "groups": self.groups,
        }


@dataclass
class DeleteOutcome:
    """Result of a delete request made through the list view."""

    deleted: bool
    alert: Optional[str] = None
    confirmed: bool = True


__all__ = [
    "DeleteOutcome",
    "MutationDraft",
    "NAME_MAX_LENGTH",
    "User",
    "join_tokens",
    "split_tokens",
]
