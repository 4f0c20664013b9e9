from __future__ import annotations

from pydantic import BaseModel


class ProfileResponse(BaseModel):
    id: str
    display_name: str
    avatar_ref: str

    model_config = {"from_attributes": True}
