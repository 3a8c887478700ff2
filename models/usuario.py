"""
Modelo de Usuario para autenticación y autorización
Roles: admin, manager, agent
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from database.conexion import Base


ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_AGENT = "agent"
ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_AGENT)


class User(Base):
    """Tabla de usuarios del sistema"""
    __tablename__ = "users"
    __table_args__ = (
        Index('idx_user_role', 'role'),
        Index('idx_user_active', 'is_active'),
        Index('idx_user_manager', 'manager_id'),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(60), nullable=True)
    last_name = Column(String(60), nullable=True)
    phone = Column(String(30), nullable=True)
    country = Column(String(60), nullable=True)

    role = Column(String(20), nullable=False, default=ROLE_AGENT)

    # Agentes: manager que los invitó (NULL para admin/manager)
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Control de estado
    is_active = Column(Boolean, default=True, nullable=False)

    # Auditoría
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Seguridad
    failed_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime, nullable=True)

    # Relaciones
    manager = relationship("User", remote_side=[id], back_populates="agents")
    agents = relationship("User", back_populates="manager")
    bank_accounts = relationship("BankAccount", back_populates="manager", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="agent")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part) or self.email

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
