import re
from typing import Optional
from datetime import datetime
from pydantic import constr, field_validator, model_validator

from schemas.common import CamelModel


SWIFT_REGEX = re.compile(r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$")
IBAN_REGEX = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z0-9]{4}[0-9]{7}([A-Z0-9]?){0,16}$")


def validar_swift(value: str) -> str:
    value = value.strip()
    if not SWIFT_REGEX.match(value):
        raise ValueError("SWIFT/BIC debe tener 8 u 11 caracteres, solo mayúsculas y números")
    return value


def validar_iban(value: str) -> str:
    value = re.sub(r"\s", "", value)
    if len(value) < 15 or len(value) > 34:
        raise ValueError("El IBAN debe tener entre 15 y 34 caracteres")
    if not IBAN_REGEX.match(value):
        raise ValueError("Formato de IBAN inválido")
    return value


class BankAccountBase(CamelModel):
    bank_name: constr(strip_whitespace=True, min_length=1, max_length=120)
    swift: str
    iban: str
    holder_name: constr(strip_whitespace=True, min_length=1, max_length=120)
    address: Optional[constr(strip_whitespace=True, max_length=200)] = None
    identifier: constr(strip_whitespace=True, min_length=1, max_length=60)

    @field_validator("swift")
    def validate_swift(cls, v):
        return validar_swift(v)

    @field_validator("iban")
    def validate_iban(cls, v):
        return validar_iban(v)


class BankAccountCreate(BankAccountBase):
    pass


class BankAccountUpdate(CamelModel):
    bank_name: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    swift: Optional[str] = None
    iban: Optional[str] = None
    holder_name: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    address: Optional[constr(strip_whitespace=True, max_length=200)] = None
    identifier: Optional[constr(strip_whitespace=True, min_length=1, max_length=60)] = None

    @field_validator("swift")
    def validate_swift(cls, v):
        return validar_swift(v) if v is not None else v

    @field_validator("iban")
    def validate_iban(cls, v):
        return validar_iban(v) if v is not None else v

    @model_validator(mode="before")
    def validar_datos(cls, data):
        if isinstance(data, dict) and data:
            return data
        raise ValueError("Se requiere al menos un campo para actualizar")


class BankAccountRead(CamelModel):
    id: int
    manager_id: int
    bank_name: str
    swift: str
    iban: str
    holder_name: str
    address: Optional[str] = None
    identifier: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class IdentifierCheck(CamelModel):
    identifier: str
    available: bool
