"""
Schemas de órdenes de viaje

nights, totalPrice, reservationNumber y balance.amount son derivados:
si el cliente los envía se ignoran y se recalculan en utils/order_engine.
"""
from typing import List, Optional
from datetime import date, datetime
from pydantic import EmailStr, Field, condecimal, constr, conint, field_validator, model_validator

from models.orden import OrderStatus, PaymentMethod, PaymentStatus
from schemas.auth import UserBrief
from schemas.common import CamelModel


Money = condecimal(ge=0, max_digits=12, decimal_places=2)


class Child(CamelModel):
    age: conint(ge=0, le=17)


class Guests(CamelModel):
    adults: conint(ge=1, le=50) = 1
    children: List[Child] = Field(default_factory=list)


def _empty_to_none(value):
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _clean_phones(value):
    if value is None:
        return value
    if isinstance(value, str):
        value = [value]
    return [phone.strip() for phone in value if phone and phone.strip()]


# ========== PAGOS ==========

class PaymentRead(CamelModel):
    status: PaymentStatus
    amount: float
    payment_methods: List[PaymentMethod] = Field(default_factory=list, alias="payment_methods")


class PaymentsRead(CamelModel):
    deposit: PaymentRead
    balance: PaymentRead


class PaymentUpdate(CamelModel):
    status: Optional[PaymentStatus] = None
    amount: Optional[Money] = None
    payment_methods: Optional[List[PaymentMethod]] = Field(None, alias="payment_methods")


class PaymentsUpdate(CamelModel):
    deposit: Optional[PaymentUpdate] = None
    balance: Optional[PaymentUpdate] = None


class PaymentStatusUpdate(CamelModel):
    status: PaymentStatus


class OrderStatusUpdate(CamelModel):
    status_order: OrderStatus


# ========== ÓRDENES ==========

class OrderBase(CamelModel):
    check_in: date
    check_out: date

    client_name: constr(strip_whitespace=True, min_length=1, max_length=120)
    client_phone: List[constr(strip_whitespace=True, max_length=30)] = Field(default_factory=list)
    client_email: Optional[EmailStr] = None
    client_document_number: Optional[constr(strip_whitespace=True, max_length=40)] = None
    client_country: Optional[constr(strip_whitespace=True, max_length=10)] = None
    guests: Guests = Field(default_factory=Guests)

    country_travel: Optional[constr(strip_whitespace=True, max_length=60)] = None
    city_travel: Optional[constr(strip_whitespace=True, max_length=100)] = None
    location_travel: Optional[constr(strip_whitespace=True, max_length=200)] = None
    property_name: Optional[constr(strip_whitespace=True, max_length=150)] = None
    property_number: Optional[constr(strip_whitespace=True, max_length=40)] = None

    official_price: Money
    tax_clean: Optional[Money] = None
    discount: Optional[Money] = None

    bank_account: Optional[constr(strip_whitespace=True, max_length=60)] = None

    @field_validator("client_email", "client_document_number", "bank_account", mode="before")
    def vacios_a_none(cls, v):
        return _empty_to_none(v)

    @field_validator("client_phone", mode="before")
    def limpiar_telefonos(cls, v):
        return _clean_phones(v)

    @model_validator(mode="after")
    def validar_fechas(self):
        if self.check_out < self.check_in:
            raise ValueError("La fecha de check-out debe ser igual o posterior al check-in")
        return self


class OrderCreate(OrderBase):
    deposit_amount: Optional[Money] = None
    deposit_methods: List[PaymentMethod] = Field(default_factory=list)
    balance_methods: List[PaymentMethod] = Field(default_factory=list)


class OrderUpdate(CamelModel):
    check_in: Optional[date] = None
    check_out: Optional[date] = None

    client_name: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    client_phone: Optional[List[constr(strip_whitespace=True, max_length=30)]] = None
    client_email: Optional[EmailStr] = None
    client_document_number: Optional[constr(strip_whitespace=True, max_length=40)] = None
    client_country: Optional[constr(strip_whitespace=True, max_length=10)] = None
    guests: Optional[Guests] = None

    country_travel: Optional[constr(strip_whitespace=True, max_length=60)] = None
    city_travel: Optional[constr(strip_whitespace=True, max_length=100)] = None
    location_travel: Optional[constr(strip_whitespace=True, max_length=200)] = None
    property_name: Optional[constr(strip_whitespace=True, max_length=150)] = None
    property_number: Optional[constr(strip_whitespace=True, max_length=40)] = None

    official_price: Optional[Money] = None
    tax_clean: Optional[Money] = None
    discount: Optional[Money] = None

    bank_account: Optional[constr(strip_whitespace=True, max_length=60)] = None

    deposit_amount: Optional[Money] = None
    payments: Optional[PaymentsUpdate] = None
    status_order: Optional[OrderStatus] = None

    @field_validator("client_email", "client_document_number", "bank_account", mode="before")
    def vacios_a_none(cls, v):
        return _empty_to_none(v)

    @field_validator("client_phone", mode="before")
    def limpiar_telefonos(cls, v):
        return _clean_phones(v)

    @model_validator(mode="before")
    def validar_datos(cls, data):
        if isinstance(data, dict) and data:
            return data
        raise ValueError("Se requiere al menos un campo para actualizar")


class OrderRead(CamelModel):
    id: int
    agent_id: Optional[int] = None
    agent_name: Optional[str] = None
    agent_country: Optional[str] = None
    created_order: datetime

    check_in: date
    check_out: date
    nights: int

    client_name: str
    client_phone: List[str] = Field(default_factory=list)
    client_email: Optional[str] = None
    client_document_number: Optional[str] = None
    client_country: Optional[str] = None
    guests: Guests

    country_travel: Optional[str] = None
    city_travel: Optional[str] = None
    location_travel: Optional[str] = None
    property_name: Optional[str] = None
    property_number: Optional[str] = None
    reservation_number: str

    official_price: float
    tax_clean: float
    discount: float
    total_price: float

    bank_account: Optional[str] = None
    payments: PaymentsRead
    status_order: OrderStatus

    created_at: datetime
    updated_at: Optional[datetime] = None

    agent: Optional[UserBrief] = None
