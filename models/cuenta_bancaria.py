from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from database.conexion import Base


class BankAccount(Base):
    """Cuentas bancarias de un manager, usadas como destino de pago en las órdenes"""
    __tablename__ = "bank_accounts"
    __table_args__ = (
        UniqueConstraint("identifier", name="uq_bank_account_identifier"),
        Index("idx_bank_account_manager", "manager_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    bank_name = Column(String(120), nullable=False)
    swift = Column(String(11), nullable=False)
    iban = Column(String(34), nullable=False)
    holder_name = Column(String(120), nullable=False)
    address = Column(String(200), nullable=True)
    identifier = Column(String(60), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    manager = relationship("User", back_populates="bank_accounts")

    def __repr__(self):
        return f"<BankAccount(id={self.id}, identifier='{self.identifier}')>"
