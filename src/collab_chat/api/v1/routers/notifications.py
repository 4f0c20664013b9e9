from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Response

from collab_chat.api.deps import CurrentPrincipal, NotificationsDep
from collab_chat.api.v1.schemas.notification import (
    CreateNotificationRequest,
    MarkAllReadResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from collab_chat.application.dto.notification import CreateNotificationDTO
from collab_chat.services import notification_service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    principal: CurrentPrincipal,
    repo: NotificationsDep,
) -> list[NotificationResponse]:
    items = await notification_service.list_notifications(principal, repo)
    return [NotificationResponse.model_validate(n) for n in items]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    principal: CurrentPrincipal,
    repo: NotificationsDep,
) -> UnreadCountResponse:
    unread = await notification_service.unread_count(principal, repo)
    return UnreadCountResponse(unread=unread)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    principal: CurrentPrincipal,
    repo: NotificationsDep,
) -> MarkAllReadResponse:
    updated = await notification_service.mark_all_read(principal, repo)
    return MarkAllReadResponse(updated=updated)


@router.post("/{notification_id}/read", status_code=204)
async def mark_read(
    notification_id: UUID,
    principal: CurrentPrincipal,
    repo: NotificationsDep,
) -> Response:
    await notification_service.mark_read(str(notification_id), principal, repo)
    return Response(status_code=204)


@router.post("", response_model=NotificationResponse, status_code=201)
async def create_notification(
    body: CreateNotificationRequest,
    principal: CurrentPrincipal,
    repo: NotificationsDep,
) -> NotificationResponse:
    dto = CreateNotificationDTO(
        user_id=str(body.user_id),
        type=body.type,
        title=body.title,
        message=body.message,
        related_type=body.related_type,
        related_id=body.related_id,
    )
    created = await notification_service.create_notification(dto, repo)
    return NotificationResponse.model_validate(created)
