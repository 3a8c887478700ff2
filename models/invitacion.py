from datetime import datetime, timedelta

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from config import INVITATION_EXPIRE_DAYS
from database.conexion import Base


def _default_expiration():
    return datetime.utcnow() + timedelta(days=INVITATION_EXPIRE_DAYS)


class Invitation(Base):
    """Invitación de un solo uso para registrar un manager o un agente"""
    __tablename__ = "invitations"
    __table_args__ = (
        Index("idx_invitation_email", "email"),
        Index("idx_invitation_invited_by", "invited_by_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False)  # manager / agent
    token = Column(String(100), unique=True, nullable=False, index=True)
    used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime, nullable=True)

    invited_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, default=_default_expiration, nullable=False)

    invited_by = relationship("User")

    @property
    def status(self) -> str:
        if self.used:
            return "accepted"
        if self.expires_at and self.expires_at < datetime.utcnow():
            return "expired"
        return "pending"

    def __repr__(self):
        return f"<Invitation(id={self.id}, email='{self.email}', role='{self.role}', used={self.used})>"
