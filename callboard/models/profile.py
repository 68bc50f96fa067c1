from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class Identity(BaseModel):
    """Authenticated principal as issued by the identity provider."""

    user_id: str
    email: str


class Profile(BaseModel):
    user_id: str
    email: str
    full_name: str
    created_at: datetime
    avatar_url: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"user_id"})

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Profile":
        return cls(user_id=document["id"], **{k: v for k, v in document.items() if k != "id"})


class ProfileUpdate(BaseModel):
    """Fields the owning user may change after sign-up."""

    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = {"extra": "forbid"}
