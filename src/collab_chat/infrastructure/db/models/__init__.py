"""Every table model, so Base.metadata knows the full schema."""
from collab_chat.infrastructure.db.models.chatroom_message import ChatroomMessageModel
from collab_chat.infrastructure.db.models.message import DirectMessageModel
from collab_chat.infrastructure.db.models.notification import NotificationModel
from collab_chat.infrastructure.db.models.profile import ProfileModel

__all__ = [
    "ChatroomMessageModel",
    "DirectMessageModel",
    "NotificationModel",
    "ProfileModel",
]
