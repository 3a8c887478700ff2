"""
Endpoints de autenticación: login, registro por invitación y gate de sesión
"""
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from config import ACCESS_TOKEN_EXPIRE_MINUTES, LOCK_MINUTES, MAX_FAILED_LOGINS
from database import conexion
from models.invitacion import Invitation
from models.usuario import User, ROLE_AGENT, ROLE_MANAGER
from schemas.auth import (
    AuthResponse, LoginRequest, RegisterRequest, SessionGateResponse
)
from schemas.invitaciones import InvitationPreview
from utils.auth import verify_password, get_password_hash, create_user_token
from utils.dependencies import oauth2_scheme, resolve_user_from_token
from utils.logging_utils import log_event
from utils.rate_limiter import LOGIN_LIMIT, limiter
from utils.session_gate import evaluate_session


router = APIRouter(prefix="/api/auth", tags=["Autenticación"])


def _auth_response(usuario: User) -> dict:
    return {
        "token": create_user_token(usuario),
        "token_type": "bearer",
        "expires_in": ACCESS_TOKEN_EXPIRE_MINUTES * 60,  # en segundos
        "user": usuario,
    }


def _buscar_invitacion_vigente(db: Session, token: str) -> Invitation:
    """
    Invitación utilizable para registrarse

    Raises:
        HTTPException: 404 si no existe, 409 si ya fue usada, 410 si expiró
    """
    invitacion = db.query(Invitation).filter(Invitation.token == token).first()
    if not invitacion:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invitación no encontrada o cancelada"
        )
    if invitacion.used:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="La invitación ya fue utilizada"
        )
    if invitacion.expires_at < datetime.utcnow():
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail="La invitación expiró"
        )
    return invitacion


# ========== LOGIN ==========

@router.post("/login", response_model=AuthResponse)
@limiter.limit(LOGIN_LIMIT)
def login(
    request: Request,
    datos: LoginRequest,
    db: Session = Depends(conexion.get_db)
):
    """
    Inicia sesión y retorna el token de acceso junto con el usuario
    """
    email = datos.email.lower()
    try:
        usuario = db.query(User).filter(User.email == email).first()

        if not usuario:
            log_event("auth", email, "Intento de login con usuario inexistente", "")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Credenciales incorrectas",
                headers={"WWW-Authenticate": "Bearer"},
            )

        # Verificar si está bloqueado
        if usuario.locked_until and usuario.locked_until > datetime.utcnow():
            tiempo_restante = (usuario.locked_until - datetime.utcnow()).seconds // 60
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Usuario bloqueado temporalmente. Intente en {tiempo_restante} minutos"
            )

        # Bloqueo vencido: el contador vuelve a cero
        if usuario.locked_until:
            usuario.failed_attempts = 0
            usuario.locked_until = None

        if not verify_password(datos.password, usuario.hashed_password):
            usuario.failed_attempts += 1

            if usuario.failed_attempts >= MAX_FAILED_LOGINS:
                usuario.locked_until = datetime.utcnow() + timedelta(minutes=LOCK_MINUTES)
                db.commit()
                log_event("auth", email, "Usuario bloqueado por intentos fallidos", "")
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Usuario bloqueado por múltiples intentos fallidos. Intente en {LOCK_MINUTES} minutos"
                )

            db.commit()
            log_event("auth", email, "Intento de login con password incorrecta", f"intentos={usuario.failed_attempts}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Credenciales incorrectas",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not usuario.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Usuario desactivado"
            )

        usuario.failed_attempts = 0
        usuario.locked_until = None
        usuario.last_login = datetime.utcnow()
        db.commit()
        db.refresh(usuario)

        log_event("auth", usuario.email, "Login exitoso", f"rol={usuario.role}")
        return _auth_response(usuario)

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log_event("auth", "system", "Error en login", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al procesar el login"
        )


# ========== REGISTRO POR INVITACIÓN ==========

@router.get("/register/{token}", response_model=InvitationPreview)
def ver_invitacion(
    token: str = Path(..., min_length=8),
    db: Session = Depends(conexion.get_db)
):
    """
    Valida el token del link de registro y muestra email y rol invitados
    """
    return _buscar_invitacion_vigente(db, token)


@router.post("/register/{token}", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(LOGIN_LIMIT)
def registrar_con_invitacion(
    request: Request,
    datos: RegisterRequest,
    token: str = Path(..., min_length=8),
    db: Session = Depends(conexion.get_db)
):
    """
    Consume la invitación (una sola vez) y crea el usuario con el rol invitado
    """
    try:
        invitacion = _buscar_invitacion_vigente(db, token)
        email = invitacion.email.lower()

        if db.query(User).filter(User.email == email).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="El email ya está registrado"
            )

        # Los agentes quedan asignados al manager que los invitó
        manager_id = None
        if invitacion.role == ROLE_AGENT and invitacion.invited_by is not None \
                and invitacion.invited_by.role == ROLE_MANAGER:
            manager_id = invitacion.invited_by_id

        nuevo_usuario = User(
            email=email,
            hashed_password=get_password_hash(datos.password),
            first_name=datos.first_name,
            last_name=datos.last_name,
            phone=datos.phone,
            country=datos.country,
            role=invitacion.role,
            manager_id=manager_id,
            last_login=datetime.utcnow(),
        )
        db.add(nuevo_usuario)

        invitacion.used = True
        invitacion.used_at = datetime.utcnow()

        db.commit()
        db.refresh(nuevo_usuario)

        log_event("auth", nuevo_usuario.email, "Registro por invitación", f"rol={nuevo_usuario.role} invitacion_id={invitacion.id}")
        return _auth_response(nuevo_usuario)

    except HTTPException:
        raise
    except IntegrityError as e:
        db.rollback()
        log_event("auth", "system", "Error de integridad al registrar", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Violación de restricción de integridad"
        )
    except SQLAlchemyError as e:
        db.rollback()
        log_event("auth", "system", "Error al registrar usuario", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al registrar el usuario"
        )


# ========== GATE DE SESIÓN ==========

@router.get("/session", response_model=SessionGateResponse)
def estado_sesion(
    role: Optional[str] = Query(None, pattern="^(admin|manager|agent)$"),
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(conexion.get_db)
):
    """
    Resuelve el gate de una página protegida: authorized, o a dónde redirigir
    """
    user_role = None
    if token:
        try:
            usuario = resolve_user_from_token(token, db)
            if usuario.is_active:
                user_role = usuario.role
        except HTTPException:
            user_role = None

    decision = evaluate_session(token, user_role, role)
    return {
        "state": decision.state.value,
        "role": decision.role,
        "redirect_to": decision.redirect_to,
    }
