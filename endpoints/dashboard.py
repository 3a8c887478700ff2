"""
Estadísticas de los dashboards por rol
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models.cuenta_bancaria import BankAccount
from models.invitacion import Invitation
from models.orden import Order, OrderStatus, PaymentStatus
from models.usuario import User, ROLE_AGENT, ROLE_MANAGER
from utils.dependencies import require_admin, require_agent, require_manager
from utils.logging_utils import log_event


router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


def _suma_total(query) -> float:
    total = query.with_entities(func.coalesce(func.sum(Order.total_price), 0)).scalar()
    return float(total or 0)


def _conteo_por_estado(query) -> dict:
    filas = query.with_entities(Order.status_order, func.count(Order.id)).group_by(Order.status_order).all()
    conteo = {estado.value: 0 for estado in OrderStatus}
    for estado, cantidad in filas:
        conteo[getattr(estado, "value", estado)] = cantidad
    return conteo


@router.get("/admin")
def dashboard_admin(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin)
):
    """
    Totales de usuarios por rol e invitaciones pendientes
    """
    try:
        ahora = datetime.utcnow()
        total_usuarios = db.query(User).count()
        total_managers = db.query(User).filter(User.role == ROLE_MANAGER).count()
        total_agentes = db.query(User).filter(User.role == ROLE_AGENT).count()
        invitaciones_pendientes = db.query(Invitation).filter(
            Invitation.used.is_(False),
            Invitation.expires_at > ahora
        ).count()

        log_event("dashboard", current_user.email, "Dashboard admin consultado", "")
        return {
            "totalUsers": total_usuarios,
            "totalManagers": total_managers,
            "totalAgents": total_agentes,
            "pendingInvitations": invitaciones_pendientes,
            "totalOrders": db.query(Order).count(),
        }

    except SQLAlchemyError as e:
        log_event("dashboard", current_user.email, "Error en dashboard admin", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al obtener estadísticas"
        )


@router.get("/manager")
def dashboard_manager(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_manager)
):
    """
    Agentes, órdenes de sus agentes por estado, pagos pendientes e ingresos aprobados
    """
    try:
        ordenes = db.query(Order).join(User, Order.agent_id == User.id).filter(
            User.manager_id == current_user.id
        )
        conteo = _conteo_por_estado(ordenes)

        log_event("dashboard", current_user.email, "Dashboard manager consultado", "")
        return {
            "totalAgents": db.query(User).filter(
                User.role == ROLE_AGENT, User.manager_id == current_user.id
            ).count(),
            "activeAgents": db.query(User).filter(
                User.role == ROLE_AGENT, User.manager_id == current_user.id, User.is_active.is_(True)
            ).count(),
            "totalOrders": sum(conteo.values()),
            "pendingOrders": conteo[OrderStatus.PENDING.value],
            "approvedOrders": conteo[OrderStatus.APPROVED.value],
            "rejectedOrders": conteo[OrderStatus.REJECTED.value],
            "unpaidDeposits": ordenes.filter(Order.deposit_status == PaymentStatus.UNPAID).count(),
            "unpaidBalances": ordenes.filter(Order.balance_status == PaymentStatus.UNPAID).count(),
            "revenue": _suma_total(ordenes.filter(Order.status_order == OrderStatus.APPROVED)),
            "bankAccounts": db.query(BankAccount).filter(BankAccount.manager_id == current_user.id).count(),
        }

    except SQLAlchemyError as e:
        log_event("dashboard", current_user.email, "Error en dashboard manager", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al obtener estadísticas"
        )


@router.get("/agent")
def dashboard_agent(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_agent)
):
    """
    Clientes, órdenes activas/completadas e ingresos del agente actual
    """
    try:
        ordenes = db.query(Order).filter(Order.agent_id == current_user.id)
        conteo = _conteo_por_estado(ordenes)
        total_clientes = ordenes.with_entities(func.count(func.distinct(Order.client_name))).scalar()

        log_event("dashboard", current_user.email, "Dashboard agente consultado", "")
        return {
            "totalClients": total_clientes or 0,
            "activeOrders": conteo[OrderStatus.PENDING.value],
            "completedOrders": conteo[OrderStatus.APPROVED.value],
            "rejectedOrders": conteo[OrderStatus.REJECTED.value],
            "revenue": _suma_total(ordenes.filter(Order.status_order == OrderStatus.APPROVED)),
        }

    except SQLAlchemyError as e:
        log_event("dashboard", current_user.email, "Error en dashboard agente", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al obtener estadísticas"
        )
