"""
Schemas Pydantic para autenticación, perfil y usuarios
"""
from typing import Optional
from datetime import datetime
from pydantic import EmailStr, Field, field_validator, model_validator, constr

from schemas.common import CamelModel
from utils.auth import validate_password_strength


ROLE_PATTERN = "^(admin|manager|agent)$"


# ========== SCHEMAS DE USUARIO ==========

class UserRead(CamelModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    country: Optional[str] = None
    role: str
    is_active: bool
    manager_id: Optional[int] = None
    created_at: datetime
    last_login: Optional[datetime] = None


class UserBrief(CamelModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


class UserStatusUpdate(CamelModel):
    is_active: bool


class AgentUpdate(CamelModel):
    first_name: Optional[constr(strip_whitespace=True, min_length=1, max_length=60)] = None
    last_name: Optional[constr(strip_whitespace=True, min_length=1, max_length=60)] = None
    phone: Optional[constr(strip_whitespace=True, max_length=30)] = None
    country: Optional[constr(strip_whitespace=True, max_length=60)] = None

    @model_validator(mode="before")
    def validar_datos(cls, data):
        if isinstance(data, dict) and data:
            return data
        raise ValueError("Se requiere al menos un campo para actualizar")


class ProfileUpdate(AgentUpdate):
    pass


# ========== SCHEMAS DE AUTENTICACIÓN ==========

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class RegisterRequest(CamelModel):
    password: str = Field(..., min_length=8, max_length=72)
    first_name: constr(strip_whitespace=True, min_length=1, max_length=60)
    last_name: constr(strip_whitespace=True, min_length=1, max_length=60)
    phone: Optional[constr(strip_whitespace=True, max_length=30)] = None
    country: Optional[constr(strip_whitespace=True, max_length=60)] = None

    @field_validator('password')
    def validate_password(cls, v):
        return validate_password_strength(v)


class AuthResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    expires_in: int  # segundos
    user: UserRead


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=72)
    new_password: str = Field(..., min_length=8, max_length=72)

    @field_validator('new_password')
    def validate_password(cls, v):
        return validate_password_strength(v)


class SessionGateResponse(CamelModel):
    state: str
    role: Optional[str] = None
    redirect_to: Optional[str] = None
