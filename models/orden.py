from datetime import datetime
import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    JSON,
    Index,
    Enum,
)
from sqlalchemy.orm import relationship

from database.conexion import Base


# ============================================================================
# ENUMS
# ============================================================================

class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class PaymentType(str, enum.Enum):
    DEPOSIT = "deposit"
    BALANCE = "balance"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    BANK = "bank"
    REVOLUT = "revolut"


def _enum_values(obj):
    return [e.value for e in obj]


# Un solo tipo compartido por seña y saldo
PAYMENT_STATUS_TYPE = Enum(PaymentStatus, values_callable=_enum_values, name="payment_status")


# ============================================================================
# ORDEN DE VIAJE
# ============================================================================

class Order(Base):
    """Orden de viaje cargada por un agente"""
    __tablename__ = "orders"
    __table_args__ = (
        Index("idx_order_agent", "agent_id"),
        Index("idx_order_status", "status_order"),
        Index("idx_order_check_in", "check_in"),
        Index("idx_order_reservation_number", "reservation_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    agent_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    agent_name = Column(String(120), nullable=True)
    agent_country = Column(String(60), nullable=True)
    created_order = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Estadía
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    nights = Column(Integer, nullable=False, default=0)

    # Cliente
    client_name = Column(String(120), nullable=False)
    client_phone = Column(JSON, nullable=False, default=list)
    client_email = Column(String(100), nullable=True)
    client_document_number = Column(String(40), nullable=True)
    client_country = Column(String(10), nullable=True)
    guests = Column(JSON, nullable=False, default=lambda: {"adults": 1, "children": []})

    # Viaje
    country_travel = Column(String(60), nullable=True)
    city_travel = Column(String(100), nullable=True)
    location_travel = Column(String(200), nullable=True)
    property_name = Column(String(150), nullable=True)
    property_number = Column(String(40), nullable=True)
    reservation_number = Column(String(80), nullable=False, default="")

    # Precios
    official_price = Column(Numeric(12, 2), nullable=False, default=0)
    tax_clean = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    total_price = Column(Numeric(12, 2), nullable=False, default=0)

    # Cuenta bancaria de destino (identifier)
    bank_account = Column(String(60), nullable=True)

    # Pagos: seña (deposit) y saldo (balance)
    deposit_status = Column(
        PAYMENT_STATUS_TYPE,
        default=PaymentStatus.UNPAID, nullable=False,
    )
    deposit_amount = Column(Numeric(12, 2), nullable=False, default=0)
    deposit_methods = Column(JSON, nullable=False, default=list)
    balance_status = Column(
        PAYMENT_STATUS_TYPE,
        default=PaymentStatus.UNPAID, nullable=False,
    )
    balance_amount = Column(Numeric(12, 2), nullable=False, default=0)
    balance_methods = Column(JSON, nullable=False, default=list)

    status_order = Column(
        Enum(OrderStatus, values_callable=_enum_values, name="order_status"),
        default=OrderStatus.PENDING, nullable=False,
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    agent = relationship("User", back_populates="orders")

    @property
    def payments(self) -> dict:
        return {
            "deposit": {
                "status": self.deposit_status,
                "amount": self.deposit_amount,
                "payment_methods": self.deposit_methods or [],
            },
            "balance": {
                "status": self.balance_status,
                "amount": self.balance_amount,
                "payment_methods": self.balance_methods or [],
            },
        }

    def __repr__(self):
        return f"<Order(id={self.id}, reservation='{self.reservation_number}', status='{self.status_order}')>"
