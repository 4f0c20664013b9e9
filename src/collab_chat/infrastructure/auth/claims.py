from __future__ import annotations

from typing import Any
from uuid import UUID

import jwt

from collab_chat.application.dto.principal import Principal


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a Principal from identity-provider claims (``sub`` is the user UUID)."""
    try:
        user_id = str(UUID(str(payload["sub"])))
    except (KeyError, ValueError) as exc:
        raise jwt.InvalidTokenError("Token subject is not a user id") from exc
    role = payload.get("role")
    return Principal(
        user_id=user_id,
        email=payload.get("email"),
        roles=[role] if role else [],
    )
