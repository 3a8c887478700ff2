from typing import Optional
from datetime import datetime
from pydantic import EmailStr, Field

from schemas.common import CamelModel


class InvitationCreate(CamelModel):
    email: EmailStr
    role: str = Field(..., pattern="^(manager|agent)$")


class InvitationRead(CamelModel):
    id: int
    email: str
    role: str
    token: str
    used: bool
    status: str
    invited_by: Optional[int] = None
    created_at: datetime
    invited_at: datetime
    expires_at: datetime
    used_at: Optional[datetime] = None
    registration_url: Optional[str] = None


class InvitationPreview(CamelModel):
    """Lo que ve el invitado antes de registrarse"""
    email: str
    role: str
    expires_at: datetime


def invitation_to_read(invitation, registration_url: Optional[str] = None) -> InvitationRead:
    return InvitationRead(
        id=invitation.id,
        email=invitation.email,
        role=invitation.role,
        token=invitation.token,
        used=invitation.used,
        status=invitation.status,
        invited_by=invitation.invited_by_id,
        created_at=invitation.created_at,
        invited_at=invitation.created_at,
        expires_at=invitation.expires_at,
        used_at=invitation.used_at,
        registration_url=registration_url,
    )
