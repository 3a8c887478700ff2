"""
Dependencias de autenticación y autorización
"""
from typing import Optional, List
from datetime import datetime
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from database import conexion
from models.usuario import User, ROLE_ADMIN, ROLE_MANAGER, ROLE_AGENT
from models.orden import Order
from models.cuenta_bancaria import BankAccount
from utils.auth import verify_token
from utils.logging_utils import log_event
from utils.session_gate import LOGIN_PATH, home_for_role


# Esquema OAuth2 para obtener el token del header.
# auto_error=False: la falta de token la resolvemos nosotros con la redirección al login
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

REDIRECT_HEADER = "X-Redirect-To"


def _unauthorized(detail: str = "No se pudo validar las credenciales") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer", REDIRECT_HEADER: LOGIN_PATH},
    )


# ========== DEPENDENCIAS DE AUTENTICACIÓN ==========

def resolve_user_from_token(token: Optional[str], db: Session) -> User:
    """
    Obtiene el usuario desde el token JWT

    Raises:
        HTTPException: Si no hay token, es inválido o el usuario no existe
    """
    if not token:
        raise _unauthorized("No autenticado")

    try:
        payload = verify_token(token, token_type="access")
    except HTTPException as exc:
        raise _unauthorized(exc.detail)

    email: str = payload.get("sub")
    user_id: int = payload.get("user_id")
    if email is None or user_id is None:
        raise _unauthorized()

    user = db.query(User).filter(User.id == user_id, User.email == email).first()
    if user is None:
        raise _unauthorized()

    return user


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(conexion.get_db)
) -> User:
    """
    Usuario autenticado y habilitado

    Raises:
        HTTPException: 401 sin credenciales válidas, 403 si está desactivado o bloqueado
    """
    user = resolve_user_from_token(token, db)

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuario desactivado",
            headers={REDIRECT_HEADER: LOGIN_PATH},
        )

    if user.locked_until and user.locked_until > datetime.utcnow():
        tiempo_restante = (user.locked_until - datetime.utcnow()).seconds // 60
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Usuario bloqueado temporalmente. Intente en {tiempo_restante} minutos",
            headers={REDIRECT_HEADER: LOGIN_PATH},
        )

    return user


# ========== DEPENDENCIAS DE AUTORIZACIÓN ==========

def require_roles(roles_permitidos: List[str]):
    """
    Dependency para requerir roles específicos

    Con rol incorrecto responde 403 indicando el home del rol real del usuario
    en el header X-Redirect-To.
    """
    def check_role(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role in roles_permitidos:
            return current_user

        log_event(
            "auth",
            current_user.email,
            "Intento de acceso no autorizado",
            f"rol={current_user.role} roles_requeridos={roles_permitidos}"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Acceso denegado. Roles permitidos: {', '.join(roles_permitidos)}",
            headers={REDIRECT_HEADER: home_for_role(current_user.role)},
        )

    return check_role


# Solo administradores
require_admin = require_roles([ROLE_ADMIN])

# Solo managers
require_manager = require_roles([ROLE_MANAGER])

# Solo agentes
require_agent = require_roles([ROLE_AGENT])

# Administradores o managers
require_admin_or_manager = require_roles([ROLE_ADMIN, ROLE_MANAGER])


# ========== UTILIDADES DE PERMISOS ==========

def usuario_puede_gestionar_agente(usuario_actual: User, agente: User) -> bool:
    """
    Reglas:
    - Admin gestiona a cualquier agente
    - Manager solo a los agentes que invitó
    """
    if agente.role != ROLE_AGENT:
        return False
    if usuario_actual.role == ROLE_ADMIN:
        return True
    if usuario_actual.role == ROLE_MANAGER:
        return agente.manager_id == usuario_actual.id
    return False


def usuario_puede_ver_orden(usuario_actual: User, orden: Order) -> bool:
    """
    Reglas:
    - Admin ve todas
    - Manager ve las órdenes de sus agentes
    - Agente solo las propias
    """
    if usuario_actual.role == ROLE_ADMIN:
        return True
    if usuario_actual.role == ROLE_MANAGER:
        return orden.agent is not None and orden.agent.manager_id == usuario_actual.id
    return orden.agent_id == usuario_actual.id


def usuario_puede_ver_cuenta(usuario_actual: User, cuenta: BankAccount) -> bool:
    """Admin todas, manager las propias, agente las de su manager"""
    if usuario_actual.role == ROLE_ADMIN:
        return True
    if usuario_actual.role == ROLE_MANAGER:
        return cuenta.manager_id == usuario_actual.id
    return usuario_actual.manager_id is not None and cuenta.manager_id == usuario_actual.manager_id


def usuario_puede_modificar_cuenta(usuario_actual: User, cuenta: BankAccount) -> bool:
    if usuario_actual.role == ROLE_ADMIN:
        return True
    return usuario_actual.role == ROLE_MANAGER and cuenta.manager_id == usuario_actual.id
