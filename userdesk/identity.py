"""Resolution of the acting identity used for directory requests."""
from __future__ import annotations

import re
from typing import Dict, Optional

DEFAULT_IDENTITY = "1"

_IDENTITY_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


def resolve_identity(value: Optional[str]) -> str:
    """Return the identity token for ``value`` or :data:`DEFAULT_IDENTITY`.

    Absent, blank, or malformed tokens fall back to the default so that a
    request can always be attributed to someone.
    """

    if value is None:
        return DEFAULT_IDENTITY
    cleaned = str(value).strip()
    if not cleaned or not _IDENTITY_PATTERN.match(cleaned):
        return DEFAULT_IDENTITY
    return cleaned


def credential_headers(identity: str) -> Dict[str, str]:
    """Build the authorization headers asserting ``identity``.

    The directory trusts the caller to name itself here. This is the only
    place the credential is constructed; swap it for real authentication
    when the backend supports it.
    """

    return {"Authorization": identity}


__all__ = ["DEFAULT_IDENTITY", "credential_headers", "resolve_identity"]
