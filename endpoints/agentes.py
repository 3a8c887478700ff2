"""
Gestión de agentes: el admin ve todos, el manager solo los que invitó
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from database import conexion
from endpoints.usuarios import aplicar_busqueda
from models.usuario import User, ROLE_AGENT, ROLE_MANAGER
from schemas.auth import AgentUpdate, UserRead, UserStatusUpdate
from schemas.common import Page, paginate
from utils.dependencies import require_admin_or_manager, usuario_puede_gestionar_agente
from utils.logging_utils import log_event


router = APIRouter(prefix="/api/agents", tags=["Agentes"])


def _buscar_agente(db: Session, agent_id: int, current_user: User) -> User:
    agente = db.query(User).filter(User.id == agent_id, User.role == ROLE_AGENT).first()
    if not agente:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Agente no encontrado"
        )
    if not usuario_puede_gestionar_agente(current_user, agente):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No tiene permisos sobre este agente"
        )
    return agente


@router.get("", response_model=Page[UserRead])
def listar_agentes(
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Lista agentes con búsqueda y paginación
    """
    query = db.query(User).filter(User.role == ROLE_AGENT)
    if current_user.role == ROLE_MANAGER:
        query = query.filter(User.manager_id == current_user.id)
    query = aplicar_busqueda(query, search)

    agentes, meta = paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)
    log_event("agentes", current_user.email, "Listar agentes", f"total={meta.total}")
    return {"items": agentes, "meta": meta}


@router.get("/{agent_id}", response_model=UserRead)
def obtener_agente(
    agent_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    return _buscar_agente(db, agent_id, current_user)


@router.put("/{agent_id}", response_model=UserRead)
def actualizar_agente(
    datos: AgentUpdate,
    agent_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Actualiza nombre, apellido, teléfono y país de un agente
    """
    try:
        agente = _buscar_agente(db, agent_id, current_user)

        for campo, valor in datos.model_dump(exclude_unset=True).items():
            setattr(agente, campo, valor)

        agente.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(agente)

        log_event("agentes", current_user.email, "Agente actualizado", f"agente_id={agent_id}")
        return agente

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log_event("agentes", current_user.email, "Error al actualizar agente", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al actualizar el agente"
        )


@router.patch("/{agent_id}/toggle-status", response_model=UserRead)
def cambiar_estado_agente(
    datos: UserStatusUpdate,
    agent_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Activa o desactiva un agente
    """
    try:
        agente = _buscar_agente(db, agent_id, current_user)
        agente.is_active = datos.is_active
        agente.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(agente)

        log_event("agentes", current_user.email, "Estado de agente cambiado", f"agente_id={agent_id} activo={datos.is_active}")
        return agente

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log_event("agentes", current_user.email, "Error al cambiar estado de agente", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al actualizar el agente"
        )
