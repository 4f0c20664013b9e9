"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from collab_chat.application.dto.principal import Principal
from collab_chat.application.exceptions import ChannelError
from collab_chat.application.ports.auth import TokenVerifier
from collab_chat.application.ports.bus import PushChannel
from collab_chat.application.ports.message_store import DurableMessageStore
from collab_chat.application.ports.notifications import NotificationRepository
from collab_chat.application.ports.profiles import ProfileLookup
from collab_chat.config import settings
from collab_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from collab_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from collab_chat.infrastructure.bus.redis_pubsub import RedisPubSubPublisher
from collab_chat.infrastructure.db.repositories.message import SqlMessageStore
from collab_chat.infrastructure.db.repositories.notification import SqlNotificationRepository
from collab_chat.infrastructure.db.repositories.profile import SqlProfileRepository
from collab_chat.infrastructure.db.session import AsyncSessionLocal

_bearer_scheme = HTTPBearer()


def get_message_store(conn: HTTPConnection) -> DurableMessageStore:
    redis = getattr(conn.app.state, "redis", None)
    publisher = RedisPubSubPublisher(redis) if redis is not None else None
    return SqlMessageStore(AsyncSessionLocal, publisher, settings.REDIS_PUBSUB_CHANNEL)


def get_profile_lookup() -> ProfileLookup:
    return SqlProfileRepository(AsyncSessionLocal)


def get_notification_repository() -> NotificationRepository:
    return SqlNotificationRepository(AsyncSessionLocal)


def get_push_channel(conn: HTTPConnection) -> PushChannel:
    channel = getattr(conn.app.state, "push_channel", None)
    if channel is None:
        raise ChannelError("Push channel is not configured")
    return channel


MessageStoreDep = Annotated[DurableMessageStore, Depends(get_message_store)]
ProfilesDep = Annotated[ProfileLookup, Depends(get_profile_lookup)]
NotificationsDep = Annotated[NotificationRepository, Depends(get_notification_repository)]
PushChannelDep = Annotated[PushChannel, Depends(get_push_channel)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL, settings.JWT_AUDIENCE)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM, settings.JWT_AUDIENCE)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
