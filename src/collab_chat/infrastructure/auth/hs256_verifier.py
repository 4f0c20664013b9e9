from __future__ import annotations

import jwt

from collab_chat.application.dto.principal import Principal
from collab_chat.infrastructure.auth.claims import principal_from_claims


class HS256Verifier:
    """Verify JWTs signed with the identity provider's shared HS256 secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: str | None = None,
        leeway: int = 60,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience
        self._leeway = leeway

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            audience=self._audience,
            options={"verify_aud": self._audience is not None},
            leeway=self._leeway,
        )
        return principal_from_claims(payload)
