from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class ProductionAdmin(BaseModel):
    id: str  # user id issued by the identity provider
    name: str  # full name copied from the user's profile


class Production(BaseModel):
    id: str
    title: str
    producer: str
    created_by: str
    created_at: datetime
    admins: List[ProductionAdmin] = Field(default_factory=list)
    version: int = 1

    @property
    def admin_ids(self) -> List[str]:
        return [admin.id for admin in self.admins]

    def has_admin(self, user_id: str) -> bool:
        return any(admin.id == user_id for admin in self.admins)

    def is_visible_to(self, user_id: str) -> bool:
        return self.created_by == user_id or self.has_admin(user_id)

    def to_document(self) -> Dict[str, Any]:
        """Serialise for storage, including the ``admin_ids`` lookup field."""

        document = self.model_dump(exclude={"id"})
        document["admin_ids"] = self.admin_ids
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Production":
        payload = {key: value for key, value in document.items() if key != "admin_ids"}
        # Documents written before versioning carry no token.
        payload.setdefault("version", 1)
        payload.setdefault("admins", [])
        return cls(**payload)
