"""Create and edit forms that submit drafts through the directory client."""
from __future__ import annotations

from typing import Dict, Optional

from .client import DirectoryError, NetworkError, UserDirectoryClient
from .models import MutationDraft, User

DEFAULT_ROLES = "PERSONAL"
DEFAULT_GROUPS = "GROUP_1"


class _UserForm:
    def __init__(self, identity: str, draft: MutationDraft) -> None:
        self.identity = identity
        self.draft = draft
        self.status = ""
        self.field_errors: Dict[str, str] = {}
        self.mounted = True

    @property
    def status_category(self) -> str:
        if self.status.startswith(("Error", "Network error")):
            return "error"
        if self.status.startswith("Success"):
            return "success"
        return "info"

    def unmount(self) -> None:
        self.mounted = False

    def _check(self, draft: Optional[MutationDraft]) -> bool:
        if draft is not None:
            self.draft = draft
        self.field_errors = self.draft.validate()
        if self.field_errors:
            self.status = "Error: " + " ".join(self.field_errors.values())
            return False
        return True


class CreateUserForm(_UserForm):
    """Collects a new user and posts it as the acting identity."""

    def __init__(self, identity: str) -> None:
        super().__init__(identity, self.blank_draft())

    @staticmethod
    def blank_draft() -> MutationDraft:
        return MutationDraft(name="", roles_text=DEFAULT_ROLES, groups_text=DEFAULT_GROUPS)

    async def submit(
        self,
        client: UserDirectoryClient,
        draft: Optional[MutationDraft] = None,
    ) -> Optional[User]:
        if not self._check(draft):
            return None

        identity = self.identity
        self.status = "Creating..."
        try:
            user = await client.create_user(identity, self.draft)
        except NetworkError as exc:
            if self.mounted:
                self.status = f"Network error: {exc.message}"
            return None
        except DirectoryError as exc:
            # 400 and 403 both land here; the draft stays as typed.
            if self.mounted:
                self.status = f"Error (Auth ID {identity}): {exc.message}"
            return None

        if self.mounted:
            self.status = f"Success: Created user {user.name} (ID: {user.id})"
            self.draft = self.blank_draft()
        return user


class EditUserForm(_UserForm):
    """Edits an existing user, pre-filled from its current values."""

    def __init__(self, identity: str, user: User) -> None:
        super().__init__(identity, MutationDraft.from_user(user))
        self.user = user

    async def submit(
        self,
        client: UserDirectoryClient,
        draft: Optional[MutationDraft] = None,
    ) -> Optional[User]:
        if not self._check(draft):
            return None

        self.status = "Updating..."
        try:
            updated = await client.update_user(
                self.identity,
                self.user.id,
                self.draft.to_payload(),
            )
        except NetworkError as exc:
            if self.mounted:
                self.status = f"Network error: {exc.message}"
            return None
        except DirectoryError as exc:
            if self.mounted:
                self.status = f"Error: {exc.message}"
            return None

        if self.mounted:
            self.status = f"Success: Updated user {updated.name}"
        return updated


__all__ = ["CreateUserForm", "DEFAULT_GROUPS", "DEFAULT_ROLES", "EditUserForm"]
