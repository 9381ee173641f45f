"""Async HTTP client for the external user directory service."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

import httpx

from .identity import credential_headers
from .models import MutationDraft, User, split_tokens

logger = logging.getLogger("userdesk.client")

_UPDATABLE_FIELDS = ("name", "roles", "groups")


class DirectoryError(RuntimeError):
    """Raised when a directory operation fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthorizationError(DirectoryError):
    """Raised when the directory denies the acting identity (HTTP 403)."""


class ValidationError(DirectoryError):
    """Raised when the directory rejects a payload (HTTP 400)."""


class RequestError(DirectoryError):
    """Raised for any other unsuccessful directory response."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        super().__init__(message or f"Request failed with status {status_code}")
        self.status_code = status_code


class NetworkError(DirectoryError):
    """Raised when the directory cannot be reached."""


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("Directory base URL must not be empty")
    return cleaned.rstrip("/")


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("error", "message", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return default


def _response_message(response: httpx.Response, default: str) -> str:
    try:
        parsed = response.json()
    except ValueError:
        parsed = None
    return _extract_error_message(parsed, default)


def _decode_json(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise RequestError(
            response.status_code, "User directory returned an invalid response"
        ) from exc


def _decode_user(response: httpx.Response) -> User:
    try:
        return User.from_payload(_decode_json(response))  # type: ignore[arg-type]
    except ValueError as exc:
        raise RequestError(response.status_code, str(exc)) from exc


def _decode_users(response: httpx.Response) -> List[User]:
    data = _decode_json(response)
    if not isinstance(data, list):
        raise RequestError(response.status_code, "User directory returned an unexpected payload")
    try:
        return [User.from_payload(item) for item in data]
    except ValueError as exc:
        raise RequestError(response.status_code, str(exc)) from exc


def _raise_for_mutation(response: httpx.Response, default: str) -> None:
    if response.is_success:
        return
    message = _response_message(response, default)
    if response.status_code == 400:
        raise ValidationError(message)
    if response.status_code == 403:
        raise AuthorizationError(message)
    raise RequestError(response.status_code, message)


class UserDirectoryClient:
    """Perform user CRUD calls against the directory on behalf of an identity."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        verify: str | bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = _normalize_base_url(base_url)
        self._timeout = timeout
        self._verify = verify
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def _build_endpoint(self, path: str = "") -> str:
        if path and not path.startswith("/"):
            path = "/" + path
        return f"{self._base_url}{path}"

    async def _send(
        self,
        method: str,
        path: str = "",
        *,
        identity: Optional[str] = None,
        payload: Optional[Mapping[str, object]] = None,
    ) -> httpx.Response:
        url = self._build_endpoint(path)
        headers: Dict[str, str] = {}
        if identity is not None:
            headers.update(credential_headers(identity))

        logger.debug("%s %s (identity=%s)", method, url, identity)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                verify=self._verify,
                transport=self._transport,
            ) as http:
                response = await http.request(method, url, headers=headers, json=payload)
        except httpx.RequestError as exc:
            logger.warning("User directory request %s %s failed: %s", method, url, exc)
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc

        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    async def list_users(self, identity: str) -> List[User]:
        response = await self._send("GET", identity=identity)
        if response.status_code == 403:
            raise AuthorizationError(_response_message(response, "Permission denied."))
        if not response.is_success:
            raise RequestError(response.status_code, f"HTTP error! status: {response.status_code}")
        return _decode_users(response)

    async def list_managed_users(self, manager_id: str) -> List[User]:
        # No credential is attached to this call.
        response = await self._send("GET", f"/managed/{manager_id}")
        if not response.is_success:
            raise RequestError(response.status_code, "Failed to fetch managed users")
        return _decode_users(response)

    async def create_user(self, identity: str, draft: MutationDraft) -> User:
        response = await self._send("POST", identity=identity, payload=draft.to_payload())
        _raise_for_mutation(response, "Failed to create user.")
        user = _decode_user(response)
        logger.info("Identity %s created user %s", identity, user.id)
        return user

    async def update_user(
        self,
        identity: str,
        user_id: str,
        fields: Mapping[str, object],
    ) -> User:
        """Apply a partial update; only name, roles and groups are sent."""
        payload = {key: fields[key] for key in _UPDATABLE_FIELDS if key in fields}
        if "roles" in payload:
            payload["roles"] = _as_list(payload["roles"])
        if "groups" in payload:
            payload["groups"] = _as_list(payload["groups"])
        response = await self._send("PATCH", f"/{user_id}", identity=identity, payload=payload)
        _raise_for_mutation(response, "Failed to update user.")
        user = _decode_user(response)
        logger.info("Identity %s updated user %s", identity, user.id)
        return user

    async def delete_user(self, identity: str, user_id: str) -> None:
        response = await self._send("DELETE", f"/{user_id}", identity=identity)
        if response.status_code == 403:
            raise AuthorizationError(_response_message(response, "Permission denied."))
        if response.status_code != 204:
            raise RequestError(
                response.status_code,
                f"Failed to delete user. Status: {response.status_code}",
            )
        logger.info("Identity %s deleted user %s", identity, user_id)


def _as_list(value: object) -> List[str]:
    if isinstance(value, str):
        return split_tokens(value)
    if isinstance(value, Sequence):
        return [str(item) for item in value]
    raise ValueError("Roles and groups must be sequences of strings")


__all__ = [
    "AuthorizationError",
    "DirectoryError",
    "NetworkError",
    "RequestError",
    "UserDirectoryClient",
    "ValidationError",
]
