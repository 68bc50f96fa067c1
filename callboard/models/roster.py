from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel


class RosterKind(Enum):
    CAST = "cast"
    CREATIVE = "creative"

    @property
    def collection(self) -> str:
        return f"{self.value}_members"


class DeletionPolicy(Enum):
    HARD = "hard"
    SOFT = "soft"


class RosterEntryInput(BaseModel):
    """Caller-supplied fields for a new cast or creative member."""

    name: str
    production_role: str
    email: str
    phone: Optional[str] = None


class RosterEntryUpdate(BaseModel):
    name: Optional[str] = None
    production_role: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    model_config = {"extra": "forbid"}


class RosterEntry(BaseModel):
    id: str
    name: str
    production_role: str
    email: str
    phone: Optional[str] = None
    created_at: datetime
    deleted_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "RosterEntry":
        return cls(**document)
