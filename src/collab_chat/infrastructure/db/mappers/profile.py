from __future__ import annotations

from collab_chat.domain.entities.profile import Profile
from collab_chat.infrastructure.db.models.profile import ProfileModel


def model_to_profile(model: ProfileModel) -> Profile:
    return Profile.from_row(str(model.id), model.full_name, model.avatar_url)
