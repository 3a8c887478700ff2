"""
Endpoints de invitaciones (admin invita managers y agentes, manager invita agentes)
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, get_registration_url
from database import conexion
from models.invitacion import Invitation
from models.usuario import User, ROLE_ADMIN, ROLE_AGENT, ROLE_MANAGER
from schemas.common import Page, paginate
from schemas.invitaciones import InvitationCreate, InvitationRead, invitation_to_read
from utils.auth import generate_invitation_token
from utils.dependencies import require_admin_or_manager
from utils.logging_utils import log_event


router = APIRouter(prefix="/api/invitations", tags=["Invitaciones"])

# Qué rol puede invitar a quién
ROLES_INVITABLES = {
    ROLE_ADMIN: (ROLE_MANAGER, ROLE_AGENT),
    ROLE_MANAGER: (ROLE_AGENT,),
}


@router.post("", response_model=InvitationRead, status_code=status.HTTP_201_CREATED)
def crear_invitacion(
    datos: InvitationCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Crea una invitación de un solo uso y retorna el link de registro
    """
    email = datos.email.lower()
    try:
        if datos.role not in ROLES_INVITABLES.get(current_user.role, ()):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Un {current_user.role} no puede invitar usuarios con rol {datos.role}"
            )

        if db.query(User).filter(User.email == email).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Ya existe un usuario con ese email"
            )

        pendiente = db.query(Invitation).filter(
            Invitation.email == email,
            Invitation.used.is_(False)
        ).all()
        if any(inv.status == "pending" for inv in pendiente):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Ya existe una invitación pendiente para ese email"
            )

        invitacion = Invitation(
            email=email,
            role=datos.role,
            token=generate_invitation_token(),
            invited_by_id=current_user.id,
        )
        db.add(invitacion)
        db.commit()
        db.refresh(invitacion)

        log_event("invitaciones", current_user.email, "Invitación creada", f"email={email} rol={datos.role}")
        return invitation_to_read(invitacion, get_registration_url(invitacion.token))

    except HTTPException:
        raise
    except IntegrityError as e:
        db.rollback()
        log_event("invitaciones", current_user.email, "Error de integridad al invitar", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Violación de restricción de integridad"
        )
    except SQLAlchemyError as e:
        db.rollback()
        log_event("invitaciones", current_user.email, "Error al crear invitación", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al crear la invitación"
        )


@router.get("", response_model=Page[InvitationRead])
def listar_invitaciones(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    invited_by: Optional[int] = Query(None, alias="invitedBy", gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Lista invitaciones: el admin ve todas (filtro invitedBy), el manager solo las suyas
    """
    query = db.query(Invitation)
    if current_user.role == ROLE_MANAGER:
        query = query.filter(Invitation.invited_by_id == current_user.id)
    elif invited_by:
        query = query.filter(Invitation.invited_by_id == invited_by)

    invitaciones, meta = paginate(query.order_by(Invitation.created_at.desc(), Invitation.id.desc()), page, limit)
    log_event("invitaciones", current_user.email, "Listar invitaciones", f"total={meta.total}")
    return {
        "items": [invitation_to_read(inv, get_registration_url(inv.token)) for inv in invitaciones],
        "meta": meta,
    }


@router.delete("/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancelar_invitacion(
    invitation_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Cancela (elimina) una invitación que todavía no fue usada
    """
    try:
        invitacion = db.query(Invitation).filter(Invitation.id == invitation_id).first()
        if not invitacion:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invitación no encontrada"
            )

        if current_user.role != ROLE_ADMIN and invitacion.invited_by_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tiene permisos para cancelar esta invitación"
            )

        if invitacion.used:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="La invitación ya fue utilizada y no puede cancelarse"
            )

        db.delete(invitacion)
        db.commit()

        log_event("invitaciones", current_user.email, "Invitación cancelada", f"invitacion_id={invitation_id}")

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log_event("invitaciones", current_user.email, "Error al cancelar invitación", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al cancelar la invitación"
        )
