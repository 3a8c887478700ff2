"""
Order Engine - Campos derivados y máquinas de estado de las órdenes de viaje
SINGLE SOURCE OF TRUTH para noches, precio total, saldo y número de reserva
"""

import math
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Dict, Optional

from models.orden import Order, OrderStatus, PaymentStatus, PaymentType
from models.usuario import ROLE_ADMIN, ROLE_MANAGER


MONEY_QUANT = Decimal("0.01")
SECONDS_PER_DAY = 24 * 60 * 60

# pending -> approved | rejected; los estados finales no se reabren
ORDER_STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.APPROVED, OrderStatus.REJECTED},
    OrderStatus.APPROVED: set(),
    OrderStatus.REJECTED: set(),
}

# unpaid <-> paid
PAYMENT_STATUS_TRANSITIONS = {
    PaymentStatus.UNPAID: {PaymentStatus.PAID},
    PaymentStatus.PAID: {PaymentStatus.UNPAID},
}

STATUS_MANAGER_ROLES = (ROLE_ADMIN, ROLE_MANAGER)


# ========== ERRORES DE REGLAS ==========

class OrderRuleError(ValueError):
    """Violación de una regla de negocio de órdenes"""


class InvalidStayDates(OrderRuleError):
    """checkOut anterior a checkIn"""


class OrderPermissionError(OrderRuleError):
    """El rol no puede ejecutar la transición"""


class OrderTransitionError(OrderRuleError):
    """Transición de estado no permitida"""


# ========== CONVERSIONES ==========

def _safe_decimal(value, fallback: Decimal = Decimal("0")) -> Decimal:
    """Convierte a Decimal de forma segura"""
    if value is None or value == "":
        return fallback
    try:
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))
    except (ValueError, TypeError, ArithmeticError):
        return fallback


def _money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANT)


def parse_to_date(value) -> date:
    """Convierte string/datetime/date a date"""
    if value is None:
        raise ValueError("Date value is None")

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
        except ValueError:
            try:
                return datetime.strptime(value, '%Y-%m-%d').date()
            except ValueError:
                raise ValueError(f"Invalid date format: {value}")

    raise TypeError(f"Unsupported date type: {type(value)}")


# ========== CAMPOS DERIVADOS ==========

def calculate_nights(check_in, check_out) -> Optional[int]:
    """
    Noches de la estadía: ceil((checkOut - checkIn) / día).

    Retorna None si falta alguna fecha o si checkOut < checkIn.
    """
    if not check_in or not check_out:
        return None

    if isinstance(check_in, datetime) and isinstance(check_out, datetime):
        delta = check_out - check_in
        if delta.total_seconds() < 0:
            return None
        return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)

    start = parse_to_date(check_in)
    end = parse_to_date(check_out)
    if end < start:
        return None
    return (end - start).days


def calculate_total_price(official_price, tax_clean, discount) -> Decimal:
    """totalPrice = officialPrice + taxClean - discount (valores ausentes cuentan como 0)"""
    return _money(
        _safe_decimal(official_price) + _safe_decimal(tax_clean) - _safe_decimal(discount)
    )


def calculate_balance_amount(total_price, deposit_amount) -> Decimal:
    """balance.amount = totalPrice - deposit.amount"""
    return _money(_safe_decimal(total_price) - _safe_decimal(deposit_amount))


def generate_reservation_number(client_country, check_in, property_number) -> str:
    """
    Número de reserva: {país}{DDMMYYYY(checkIn)}N{número de propiedad}

    Retorna "" si falta cualquiera de los tres datos. El número de propiedad
    es opaco, no se valida su formato.
    """
    if not client_country or not check_in or property_number in (None, ""):
        return ""

    check_in_date = parse_to_date(check_in)
    return f"{client_country}{check_in_date.strftime('%d%m%Y')}N{property_number}"


def derive_order_fields(values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recalcula todos los campos derivados a partir de los datos de la orden.

    Args:
        values: dict con check_in, check_out, official_price, tax_clean,
            discount, deposit_amount, client_country y property_number

    Returns:
        dict con nights, total_price, balance_amount y reservation_number

    Raises:
        InvalidStayDates: si checkOut es anterior a checkIn
    """
    nights = calculate_nights(values.get("check_in"), values.get("check_out"))
    if nights is None:
        raise InvalidStayDates("La fecha de check-out debe ser igual o posterior al check-in")

    total_price = calculate_total_price(
        values.get("official_price"),
        values.get("tax_clean"),
        values.get("discount"),
    )

    return {
        "nights": nights,
        "total_price": total_price,
        "balance_amount": calculate_balance_amount(total_price, values.get("deposit_amount")),
        "reservation_number": generate_reservation_number(
            values.get("client_country"),
            values.get("check_in"),
            values.get("property_number"),
        ),
    }


def apply_derived_fields(order: Order) -> Order:
    """Recalcula y escribe los campos derivados en la orden (pisa el saldo manual)"""
    derived = derive_order_fields({
        "check_in": order.check_in,
        "check_out": order.check_out,
        "official_price": order.official_price,
        "tax_clean": order.tax_clean,
        "discount": order.discount,
        "deposit_amount": order.deposit_amount,
        "client_country": order.client_country,
        "property_number": order.property_number,
    })
    for campo, valor in derived.items():
        setattr(order, campo, valor)
    return order


# ========== MÁQUINAS DE ESTADO ==========

def can_manage_status(role: str) -> bool:
    return role in STATUS_MANAGER_ROLES


def transition_order_status(order: Order, new_status, actor_role: str) -> Order:
    """
    Cambia statusOrder respetando pending -> approved | rejected.

    Raises:
        OrderPermissionError: si el rol no es admin/manager
        OrderTransitionError: si la orden ya está en ese estado o en un estado final
    """
    if not can_manage_status(actor_role):
        raise OrderPermissionError("Solo un manager o admin puede cambiar el estado de la orden")

    new_status = OrderStatus(new_status)
    current = OrderStatus(order.status_order)
    if new_status == current:
        raise OrderTransitionError(f"La orden ya está en estado '{current.value}'")
    if new_status not in ORDER_STATUS_TRANSITIONS[current]:
        raise OrderTransitionError(
            f"Transición no permitida: '{current.value}' -> '{new_status.value}'"
        )

    order.status_order = new_status
    return order


def transition_payment_status(order: Order, payment_type, new_status, actor_role: str) -> Order:
    """
    Marca la seña o el saldo como paid/unpaid.

    Raises:
        OrderPermissionError: si el rol no es admin/manager
        OrderTransitionError: si el pago ya está en ese estado
    """
    if not can_manage_status(actor_role):
        raise OrderPermissionError("Solo un manager o admin puede cambiar el estado de un pago")

    payment_type = PaymentType(payment_type)
    new_status = PaymentStatus(new_status)
    attr = f"{payment_type.value}_status"
    current = PaymentStatus(getattr(order, attr))

    if new_status not in PAYMENT_STATUS_TRANSITIONS[current]:
        raise OrderTransitionError(
            f"El pago '{payment_type.value}' ya está en estado '{current.value}'"
        )

    setattr(order, attr, new_status)
    return order
