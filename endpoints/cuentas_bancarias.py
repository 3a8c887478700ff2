"""
Cuentas bancarias de los managers (destino de pago de las órdenes)
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy import false, or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from database import conexion
from models.cuenta_bancaria import BankAccount
from models.usuario import User, ROLE_AGENT, ROLE_MANAGER
from schemas.common import Page, paginate
from schemas.cuentas_bancarias import (
    BankAccountCreate, BankAccountRead, BankAccountUpdate, IdentifierCheck
)
from utils.dependencies import (
    get_current_user, require_admin_or_manager, require_manager,
    usuario_puede_modificar_cuenta, usuario_puede_ver_cuenta
)
from utils.logging_utils import log_event


router = APIRouter(prefix="/api/bank-accounts", tags=["Cuentas bancarias"])


def _identifier_ocupado(db: Session, identifier: str, excluir_id: Optional[int] = None) -> bool:
    query = db.query(BankAccount).filter(BankAccount.identifier == identifier)
    if excluir_id:
        query = query.filter(BankAccount.id != excluir_id)
    return query.first() is not None


def _obtener_cuenta(db: Session, account_id: int, current_user: User) -> BankAccount:
    cuenta = db.query(BankAccount).filter(BankAccount.id == account_id).first()
    if not cuenta:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Cuenta bancaria no encontrada"
        )
    if not usuario_puede_ver_cuenta(current_user, cuenta):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No tiene permisos sobre esta cuenta bancaria"
        )
    return cuenta


@router.get("", response_model=Page[BankAccountRead])
def listar_cuentas(
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Lista cuentas: el manager las propias, el agente las de su manager, el admin todas
    """
    query = db.query(BankAccount)
    if current_user.role == ROLE_MANAGER:
        query = query.filter(BankAccount.manager_id == current_user.id)
    elif current_user.role == ROLE_AGENT:
        if current_user.manager_id is None:
            query = query.filter(false())
        else:
            query = query.filter(BankAccount.manager_id == current_user.manager_id)

    if search:
        patron = f"%{search.strip()}%"
        query = query.filter(or_(
            BankAccount.bank_name.ilike(patron),
            BankAccount.holder_name.ilike(patron),
            BankAccount.identifier.ilike(patron),
            BankAccount.iban.ilike(patron),
        ))

    cuentas, meta = paginate(query.order_by(BankAccount.created_at.desc(), BankAccount.id.desc()), page, limit)
    return {"items": cuentas, "meta": meta}


@router.get("/check-identifier", response_model=IdentifierCheck)
def verificar_identifier(
    identifier: str = Query(..., min_length=1, max_length=60),
    exclude_id: Optional[int] = Query(None, alias="excludeId", gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Indica si un identifier está libre (excludeId para el formulario de edición)
    """
    identifier = identifier.strip()
    return {"identifier": identifier, "available": not _identifier_ocupado(db, identifier, exclude_id)}


@router.get("/{account_id}", response_model=BankAccountRead)
def obtener_cuenta(
    account_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_user)
):
    return _obtener_cuenta(db, account_id, current_user)


@router.post("", response_model=BankAccountRead, status_code=status.HTTP_201_CREATED)
def crear_cuenta(
    datos: BankAccountCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_manager)
):
    """
    Crea una cuenta bancaria del manager actual
    """
    try:
        if _identifier_ocupado(db, datos.identifier):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Ya existe una cuenta con el identificador '{datos.identifier}'"
            )

        cuenta = BankAccount(**datos.model_dump(), manager_id=current_user.id)
        db.add(cuenta)
        db.commit()
        db.refresh(cuenta)

        log_event("cuentas", current_user.email, "Cuenta bancaria creada", f"cuenta_id={cuenta.id} identifier={cuenta.identifier}")
        return cuenta

    except HTTPException:
        raise
    except IntegrityError as e:
        db.rollback()
        log_event("cuentas", current_user.email, "Error de integridad al crear cuenta", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Violación de restricción de integridad"
        )
    except SQLAlchemyError as e:
        db.rollback()
        log_event("cuentas", current_user.email, "Error al crear cuenta", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al crear la cuenta bancaria"
        )


@router.put("/{account_id}", response_model=BankAccountRead)
def actualizar_cuenta(
    datos: BankAccountUpdate,
    account_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Actualiza una cuenta (manager dueño o admin)
    """
    try:
        cuenta = _obtener_cuenta(db, account_id, current_user)
        if not usuario_puede_modificar_cuenta(current_user, cuenta):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tiene permisos para modificar esta cuenta bancaria"
            )

        cambios = datos.model_dump(exclude_unset=True)
        for obligatorio in ("bank_name", "swift", "iban", "holder_name", "identifier"):
            if obligatorio in cambios and cambios[obligatorio] is None:
                cambios.pop(obligatorio)

        if "identifier" in cambios and _identifier_ocupado(db, cambios["identifier"], cuenta.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Ya existe una cuenta con el identificador '{cambios['identifier']}'"
            )

        for campo, valor in cambios.items():
            setattr(cuenta, campo, valor)

        cuenta.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(cuenta)

        log_event("cuentas", current_user.email, "Cuenta bancaria actualizada", f"cuenta_id={account_id}")
        return cuenta

    except HTTPException:
        raise
    except IntegrityError as e:
        db.rollback()
        log_event("cuentas", current_user.email, "Error de integridad al actualizar cuenta", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Violación de restricción de integridad"
        )
    except SQLAlchemyError as e:
        db.rollback()
        log_event("cuentas", current_user.email, "Error al actualizar cuenta", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al actualizar la cuenta bancaria"
        )


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def eliminar_cuenta(
    account_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Elimina una cuenta (manager dueño o admin)
    """
    try:
        cuenta = _obtener_cuenta(db, account_id, current_user)
        if not usuario_puede_modificar_cuenta(current_user, cuenta):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tiene permisos para eliminar esta cuenta bancaria"
            )

        db.delete(cuenta)
        db.commit()

        log_event("cuentas", current_user.email, "Cuenta bancaria eliminada", f"cuenta_id={account_id}")

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log_event("cuentas", current_user.email, "Error al eliminar cuenta", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al eliminar la cuenta bancaria"
        )
