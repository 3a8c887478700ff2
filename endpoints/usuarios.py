"""
Gestión de usuarios (solo admin)
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from database import conexion
from models.usuario import User
from schemas.auth import UserRead, UserStatusUpdate
from schemas.common import Page, paginate
from utils.dependencies import require_admin
from utils.logging_utils import log_event


router = APIRouter(prefix="/api/users", tags=["Usuarios"])


def aplicar_busqueda(query, search: Optional[str]):
    """Filtro de texto libre sobre email, nombre, apellido y teléfono"""
    if not search:
        return query
    patron = f"%{search.strip()}%"
    return query.filter(or_(
        User.email.ilike(patron),
        User.first_name.ilike(patron),
        User.last_name.ilike(patron),
        User.phone.ilike(patron),
    ))


@router.get("", response_model=Page[UserRead])
def listar_usuarios(
    role: Optional[str] = Query(None, pattern="^(admin|manager|agent)$"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin)
):
    """
    Lista usuarios con filtro por rol y búsqueda
    """
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    query = aplicar_busqueda(query, search)

    usuarios, meta = paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)
    log_event("usuarios", current_user.email, "Listar usuarios", f"total={meta.total}")
    return {"items": usuarios, "meta": meta}


@router.get("/{user_id}", response_model=UserRead)
def obtener_usuario(
    user_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin)
):
    """
    Obtiene un usuario por ID
    """
    usuario = db.query(User).filter(User.id == user_id).first()
    if not usuario:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Usuario no encontrado"
        )
    return usuario


@router.patch("/{user_id}/toggle-status", response_model=UserRead)
def cambiar_estado_usuario(
    datos: UserStatusUpdate,
    user_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin)
):
    """
    Activa o desactiva un usuario (el admin no puede desactivarse a sí mismo)
    """
    try:
        usuario = db.query(User).filter(User.id == user_id).first()
        if not usuario:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Usuario no encontrado"
            )

        if usuario.id == current_user.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No puede cambiar el estado de su propio usuario"
            )

        usuario.is_active = datos.is_active
        usuario.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(usuario)

        log_event("usuarios", current_user.email, "Estado de usuario cambiado", f"usuario_id={user_id} activo={datos.is_active}")
        return usuario

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log_event("usuarios", current_user.email, "Error al cambiar estado", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al actualizar el usuario"
        )
