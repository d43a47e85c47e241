from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator


class Actor(BaseModel):
    """Acting user as supplied by the auth/session layer."""
    user_id: int
    role: str
    full_name: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        return str(getattr(v, "value", v)).strip().lower()

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, role=user.role, full_name=user.full_name)


class ActionOutcome(BaseModel):
    workflow_id: int
    document_id: int
    action: str
    step: int
    current_step: int
    is_completed: bool
    document_status: str
    document_hash: str
    stamped: bool = False


class AuditEntry(BaseModel):
    id: int
    user_id: int
    actor_role: str
    action: str
    step: int
    audience: str
    targets: List[str]
    text: str
    has_signature: bool
    created_at: datetime
