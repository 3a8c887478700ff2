"""
Utilidades para autenticación JWT, contraseñas y tokens de invitación
"""
import secrets
from datetime import datetime, timedelta
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status

from config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY


# Contexto de encriptación para passwords
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ========== FUNCIONES DE PASSWORD ==========

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifica si una contraseña plana coincide con el hash
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Genera el hash de una contraseña
    Bcrypt tiene un límite de 72 bytes, truncamos si es necesario
    """
    if len(password.encode('utf-8')) > 72:
        password = password.encode('utf-8')[:72].decode('utf-8', errors='ignore')
    return pwd_context.hash(password)


def validate_password_strength(password: str) -> str:
    """
    Reglas mínimas de contraseña compartidas por registro y cambio de password.
    Lanza ValueError con el primer problema encontrado.
    """
    if len(password) < 8:
        raise ValueError('La contraseña debe tener al menos 8 caracteres')
    if not any(c.isupper() for c in password):
        raise ValueError('La contraseña debe contener al menos una mayúscula')
    if not any(c.islower() for c in password):
        raise ValueError('La contraseña debe contener al menos una minúscula')
    if not any(c.isdigit() for c in password):
        raise ValueError('La contraseña debe contener al menos un número')
    return password


# ========== FUNCIONES DE JWT ==========

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Crea un token de acceso JWT
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow(),
        "type": "access"
    })

    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_user_token(user) -> str:
    """Token de sesión para un usuario (login y registro)"""
    return create_access_token(
        data={"sub": user.email, "user_id": user.id, "role": user.role}
    )


def verify_token(token: str, token_type: str = "access") -> dict:
    """
    Verifica y decodifica un token JWT

    Args:
        token: El token JWT a verificar
        token_type: Tipo de token esperado

    Returns:
        dict: Payload del token decodificado

    Raises:
        HTTPException: Si el token es inválido o expirado
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudo validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        # jose valida "exp" y lanza ExpiredSignatureError (subclase de JWTError)
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expirado",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError:
        raise credentials_exception

    if payload.get("type") != token_type:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Tipo de token inválido. Se esperaba '{token_type}'",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("exp") is None:
        raise credentials_exception

    return payload


# ========== INVITACIONES ==========

def generate_invitation_token() -> str:
    """
    Token opaco de un solo uso para el link de registro
    """
    return secrets.token_urlsafe(32)
