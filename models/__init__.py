"""
Archivo de inicialización del paquete models.
Expone todas las clases para que SQLAlchemy (Base.metadata)
las detecte al importar 'models'.
"""

# 1. Usuarios (admin, manager, agent)
from .usuario import User, ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_AGENT

# 2. Invitaciones de registro
from .invitacion import Invitation

# 3. Cuentas bancarias de los managers
from .cuenta_bancaria import BankAccount

# 4. Órdenes de viaje y pagos
from .orden import Order, OrderStatus, PaymentStatus, PaymentType, PaymentMethod

__all__ = [
    "User", "ROLES", "ROLE_ADMIN", "ROLE_MANAGER", "ROLE_AGENT",
    "Invitation",
    "BankAccount",
    "Order", "OrderStatus", "PaymentStatus", "PaymentType", "PaymentMethod",
]
