"""Stateful list view that keeps the user collection in sync with the directory."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

import anyio

from .client import AuthorizationError, DirectoryError, UserDirectoryClient
from .forms import CreateUserForm, EditUserForm
from .identity import resolve_identity
from .models import DeleteOutcome, MutationDraft, User

logger = logging.getLogger("userdesk.views")

DEFAULT_MANAGER_ID = "5"

ConfirmCallback = Callable[[str], bool]


class ViewState(str, Enum):
    LOADING = "loading"
    READY = "ready"


class UserListView:
    """Owns the fetched users, the load/error state and the open edit session.

    Forms never touch :attr:`users`; every change reaches the collection via a
    refresh issued here after a confirmed mutation.
    """

    def __init__(
        self,
        client: UserDirectoryClient,
        identity: Optional[str] = None,
        *,
        manager_id: str = DEFAULT_MANAGER_ID,
    ) -> None:
        self._client = client
        self.identity = resolve_identity(identity)
        self.manager_id = str(manager_id)
        self.state = ViewState.LOADING
        self.users: List[User] = []
        self.managed_users: List[User] = []
        self.error: Optional[str] = None
        self.editing: Optional[EditUserForm] = None
        self.create_form = CreateUserForm(self.identity)
        self.loaded = False
        self.mounted = True

    @property
    def client(self) -> UserDirectoryClient:
        return self._client

    def unmount(self) -> None:
        self.mounted = False
        self.create_form.unmount()
        if self.editing is not None:
            self.editing.unmount()

    async def load(self) -> None:
        """Fetch the primary list and the managed list concurrently."""
        self.state = ViewState.LOADING
        async with anyio.create_task_group() as tg:
            tg.start_soon(self.refresh)
            tg.start_soon(self._fetch_managed_users)
        self.loaded = True

    async def refresh(self) -> None:
        """Re-fetch the primary list, keeping the old one if the fetch fails."""
        self.state = ViewState.LOADING
        self.error = None
        identity = self.identity
        try:
            users = await self._client.list_users(identity)
        except DirectoryError as exc:
            if not self._still_current(identity, "list refresh"):
                return
            logger.info("Listing users as %s failed: %s", identity, exc.message)
            self.error = exc.message
            self.state = ViewState.READY
            return

        if not self._still_current(identity, "list refresh"):
            return
        self.users = users
        self.state = ViewState.READY

    async def _fetch_managed_users(self) -> None:
        try:
            managed = await self._client.list_managed_users(self.manager_id)
        except DirectoryError as exc:
            logger.warning("Error fetching managed users for %s: %s", self.manager_id, exc)
            managed = []
        if self._still_mounted("managed users fetch"):
            self.managed_users = managed

    async def change_identity(self, identity: Optional[str]) -> bool:
        """Switch the acting identity and reload; returns ``False`` when unchanged."""
        resolved = resolve_identity(identity)
        if resolved == self.identity and self.loaded:
            return False
        if resolved != self.identity:
            logger.info("Acting identity changed from %s to %s", self.identity, resolved)
        self.identity = resolved
        self.create_form.identity = resolved
        if self.editing is not None:
            self.editing.identity = resolved
        await self.load()
        return True

    def find_user(self, user_id: str) -> User:
        for user in self.users:
            if user.id == str(user_id):
                return user
        raise KeyError(f"Unknown user '{user_id}'")

    async def submit_create(self, draft: Optional[MutationDraft] = None) -> Optional[User]:
        created = await self.create_form.submit(self._client, draft)
        if created is not None and self._still_mounted("create"):
            await self.refresh()
        return created

    def begin_edit(self, user_id: str) -> EditUserForm:
        """Open an edit session for ``user_id``, replacing any open session."""
        user = self.find_user(user_id)
        if self.editing is not None:
            logger.debug("Replacing edit session for user %s", self.editing.user.id)
            self.editing.unmount()
        self.editing = EditUserForm(self.identity, user)
        return self.editing

    async def submit_edit(self, draft: Optional[MutationDraft] = None) -> Optional[User]:
        form = self.editing
        if form is None:
            raise RuntimeError("No edit session is open")
        updated = await form.submit(self._client, draft)
        if updated is not None and self._still_mounted("edit"):
            await self.complete_edit()
        return updated

    async def complete_edit(self) -> None:
        self.editing = None
        await self.refresh()

    def cancel_edit(self) -> None:
        if self.editing is not None:
            self.editing.unmount()
        self.editing = None

    async def request_delete(self, user_id: str, confirm: ConfirmCallback) -> DeleteOutcome:
        prompt = f"Are you sure you want to delete user ID {user_id}?"
        if not confirm(prompt):
            return DeleteOutcome(deleted=False, confirmed=False)

        try:
            await self._client.delete_user(self.identity, str(user_id))
        except AuthorizationError as exc:
            return DeleteOutcome(deleted=False, alert=exc.message)
        except DirectoryError as exc:
            return DeleteOutcome(deleted=False, alert=f"Error: {exc.message}")

        if self._still_mounted("delete"):
            await self.refresh()
        return DeleteOutcome(deleted=True)

    def to_view(self) -> Dict[str, object]:
        return {
            "identity": self.identity,
            "state": self.state.value,
            "error": self.error,
            "users": [user.to_view() for user in self.users],
            "managed_users": [user.to_view() for user in self.managed_users],
            "manager_id": self.manager_id,
        }

    def _still_mounted(self, action: str) -> bool:
        if not self.mounted:
            logger.warning("Dropping %s result for identity %s after unmount", action, self.identity)
        return self.mounted

    def _still_current(self, identity: str, action: str) -> bool:
        if not self._still_mounted(action):
            return False
        if identity != self.identity:
            logger.info("Dropping %s result for %s; now acting as %s", action, identity, self.identity)
            return False
        return True


__all__ = ["ConfirmCallback", "DEFAULT_MANAGER_ID", "UserListView", "ViewState"]
