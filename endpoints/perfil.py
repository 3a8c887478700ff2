"""
Endpoints del perfil del usuario actual
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models.usuario import User
from schemas.auth import ChangePasswordRequest, ProfileUpdate, UserRead
from schemas.common import MessageResponse
from utils.auth import get_password_hash, verify_password
from utils.dependencies import get_current_user
from utils.logging_utils import log_event


router = APIRouter(prefix="/api/profile", tags=["Perfil"])


@router.get("", response_model=UserRead)
def obtener_perfil(current_user: User = Depends(get_current_user)):
    """
    Obtiene el perfil del usuario actual
    """
    return current_user


@router.put("", response_model=UserRead)
def actualizar_perfil(
    datos: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(conexion.get_db)
):
    """
    Actualiza nombre, apellido, teléfono y país del usuario actual
    """
    try:
        for campo, valor in datos.model_dump(exclude_unset=True).items():
            setattr(current_user, campo, valor)

        current_user.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(current_user)

        log_event("perfil", current_user.email, "Perfil actualizado", "")
        return current_user

    except SQLAlchemyError as e:
        db.rollback()
        log_event("perfil", current_user.email, "Error al actualizar perfil", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al actualizar el perfil"
        )


@router.put("/change-password", response_model=MessageResponse)
def cambiar_password(
    datos: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(conexion.get_db)
):
    """
    Cambia la contraseña del usuario actual
    """
    try:
        if not verify_password(datos.current_password, current_user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Contraseña actual incorrecta"
            )

        if datos.current_password == datos.new_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="La nueva contraseña debe ser diferente a la actual"
            )

        current_user.hashed_password = get_password_hash(datos.new_password)
        current_user.updated_at = datetime.utcnow()
        db.commit()

        log_event("perfil", current_user.email, "Contraseña cambiada", "")
        return {"message": "Contraseña actualizada exitosamente"}

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log_event("perfil", current_user.email, "Error al cambiar contraseña", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al cambiar la contraseña"
        )
