"""
Endpoints de órdenes de viaje
Los campos derivados (noches, total, saldo, número de reserva) se recalculan
en utils/order_engine en cada escritura
"""
from io import StringIO
import csv
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy import asc, desc, or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from database import conexion
from models.cuenta_bancaria import BankAccount
from models.orden import Order, OrderStatus, PaymentType
from models.usuario import User, ROLE_AGENT, ROLE_MANAGER
from schemas.common import Page, paginate
from schemas.ordenes import (
    OrderCreate, OrderRead, OrderStatusUpdate, OrderUpdate, PaymentStatusUpdate
)
from services.voucher_pdf import generar_voucher
from utils.dependencies import (
    get_current_user, require_admin_or_manager, require_agent,
    usuario_puede_ver_cuenta, usuario_puede_ver_orden
)
from utils.logging_utils import log_event
from utils.order_engine import (
    InvalidStayDates, OrderPermissionError, OrderTransitionError,
    apply_derived_fields, transition_order_status, transition_payment_status
)
from utils.timezone import format_agency_datetime, get_operational_date


router = APIRouter(prefix="/api/orders", tags=["Órdenes"])

# sortBy permitido -> columna
SORT_COLUMNS = {
    "createdOrder": Order.created_order,
    "checkIn": Order.check_in,
    "checkOut": Order.check_out,
    "totalPrice": Order.total_price,
    "clientName": Order.client_name,
    "statusOrder": Order.status_order,
    "reservationNumber": Order.reservation_number,
}

# Campos que no admiten null en una actualización
CAMPOS_OBLIGATORIOS = {"check_in", "check_out", "client_name", "client_phone", "guests", "official_price"}
CAMPOS_MONTO = {"tax_clean", "discount"}


# ========== HELPERS ==========

def _query_visibles(db: Session, current_user: User):
    """Órdenes que el usuario puede ver según su rol"""
    query = db.query(Order)
    if current_user.role == ROLE_MANAGER:
        query = query.join(User, Order.agent_id == User.id).filter(User.manager_id == current_user.id)
    elif current_user.role == ROLE_AGENT:
        query = query.filter(Order.agent_id == current_user.id)
    return query


def filtros_ordenes(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    agent_id: Optional[int] = Query(None, alias="agentId", gt=0),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    travel_from: Optional[date] = Query(None, alias="travelFrom"),
    travel_to: Optional[date] = Query(None, alias="travelTo"),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    sort_by: str = Query("createdOrder", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
) -> dict:
    if sort_by not in SORT_COLUMNS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"sortBy inválido. Valores permitidos: {', '.join(SORT_COLUMNS)}"
        )
    return {
        "status": status_filter,
        "search": search,
        "agent_id": agent_id,
        "date_from": date_from,
        "date_to": date_to,
        "travel_from": travel_from,
        "travel_to": travel_to,
        "min_price": min_price,
        "max_price": max_price,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }


def _aplicar_filtros(query, filtros: dict):
    if filtros["status"]:
        query = query.filter(Order.status_order == filtros["status"])

    if filtros["search"]:
        patron = f"%{filtros['search'].strip()}%"
        query = query.filter(or_(
            Order.client_name.ilike(patron),
            Order.client_email.ilike(patron),
            Order.reservation_number.ilike(patron),
            Order.property_name.ilike(patron),
            Order.city_travel.ilike(patron),
            Order.agent_name.ilike(patron),
        ))

    if filtros["agent_id"]:
        query = query.filter(Order.agent_id == filtros["agent_id"])

    # createdOrder es timestamp: dateTo incluye el día completo
    if filtros["date_from"]:
        query = query.filter(Order.created_order >= datetime.combine(filtros["date_from"], time.min))
    if filtros["date_to"]:
        query = query.filter(Order.created_order < datetime.combine(filtros["date_to"] + timedelta(days=1), time.min))

    if filtros["travel_from"]:
        query = query.filter(Order.check_in >= filtros["travel_from"])
    if filtros["travel_to"]:
        query = query.filter(Order.check_in <= filtros["travel_to"])

    if filtros["min_price"] is not None:
        query = query.filter(Order.total_price >= filtros["min_price"])
    if filtros["max_price"] is not None:
        query = query.filter(Order.total_price <= filtros["max_price"])

    direccion = asc if filtros["sort_order"] == "asc" else desc
    return query.order_by(direccion(SORT_COLUMNS[filtros["sort_by"]]), direccion(Order.id))


def _obtener_orden_visible(db: Session, order_id: int, current_user: User) -> Order:
    orden = db.query(Order).filter(Order.id == order_id).first()
    if not orden:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Orden no encontrada"
        )
    if not usuario_puede_ver_orden(current_user, orden):
        log_event("ordenes", current_user.email, "Acceso denegado a orden", f"orden_id={order_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No tiene permisos sobre esta orden"
        )
    return orden


def _validar_cuenta_bancaria(db: Session, identifier: Optional[str], current_user: User) -> None:
    """La cuenta de destino debe existir y ser visible para quien carga la orden"""
    if not identifier:
        return
    cuenta = db.query(BankAccount).filter(BankAccount.identifier == identifier).first()
    if not cuenta or not usuario_puede_ver_cuenta(current_user, cuenta):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Cuenta bancaria '{identifier}' no encontrada"
        )


def _recalcular(orden: Order) -> None:
    try:
        apply_derived_fields(orden)
    except InvalidStayDates as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )


def _error_de_regla(e: Exception) -> HTTPException:
    if isinstance(e, OrderPermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


def _metodos(valores) -> list:
    return [getattr(v, "value", v) for v in (valores or [])]


# ========== CREAR / LISTAR ==========

@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def crear_orden(
    datos: OrderCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_agent)
):
    """
    Crea una orden de viaje del agente actual

    nights, totalPrice, balance.amount y reservationNumber se calculan en el servidor
    """
    try:
        _validar_cuenta_bancaria(db, datos.bank_account, current_user)

        campos = datos.model_dump(exclude={"deposit_amount", "deposit_methods", "balance_methods"})
        campos["tax_clean"] = campos["tax_clean"] or 0
        campos["discount"] = campos["discount"] or 0

        orden = Order(
            **campos,
            agent_id=current_user.id,
            agent_name=current_user.full_name,
            agent_country=current_user.country,
            created_order=datetime.utcnow(),
            deposit_amount=datos.deposit_amount or 0,
            deposit_methods=_metodos(datos.deposit_methods),
            balance_methods=_metodos(datos.balance_methods),
        )
        _recalcular(orden)

        db.add(orden)
        db.commit()
        db.refresh(orden)

        log_event("ordenes", current_user.email, "Orden creada", f"orden_id={orden.id} reserva={orden.reservation_number}")
        return orden

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log_event("ordenes", current_user.email, "Error al crear orden", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al crear la orden"
        )


@router.get("", response_model=Page[OrderRead])
def listar_ordenes(
    filtros: dict = Depends(filtros_ordenes),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Lista órdenes visibles con filtros, orden y paginación
    """
    query = _aplicar_filtros(_query_visibles(db, current_user), filtros)
    ordenes, meta = paginate(query, page, limit)
    log_event("ordenes", current_user.email, "Listar órdenes", f"total={meta.total}")
    return {"items": ordenes, "meta": meta}


@router.get("/export")
def exportar_ordenes_csv(
    filtros: dict = Depends(filtros_ordenes),
    order_ids: Optional[List[int]] = Query(None, alias="orderIds"),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Exporta a CSV las órdenes filtradas (o solo las seleccionadas con orderIds)
    """
    query = _aplicar_filtros(_query_visibles(db, current_user), filtros)
    if order_ids:
        query = query.filter(Order.id.in_(order_ids))
    ordenes = query.all()

    output = StringIO()
    writer = csv.writer(output)

    # Encabezados
    writer.writerow([
        "ID", "Reserva", "Creada", "Agente", "Cliente", "Teléfonos", "Email",
        "País cliente", "Check-in", "Check-out", "Noches", "Destino", "Propiedad",
        "Precio oficial", "Limpieza", "Descuento", "Total",
        "Seña", "Estado seña", "Saldo", "Estado saldo", "Cuenta", "Estado"
    ])

    for o in ordenes:
        writer.writerow([
            o.id,
            o.reservation_number,
            format_agency_datetime(o.created_order),
            o.agent_name or "",
            o.client_name,
            " / ".join(o.client_phone or []),
            o.client_email or "",
            o.client_country or "",
            o.check_in.strftime("%d.%m.%Y"),
            o.check_out.strftime("%d.%m.%Y"),
            o.nights,
            ", ".join(v for v in (o.city_travel, o.country_travel) if v),
            o.property_name or "",
            f"{float(o.official_price):.2f}",
            f"{float(o.tax_clean):.2f}",
            f"{float(o.discount):.2f}",
            f"{float(o.total_price):.2f}",
            f"{float(o.deposit_amount):.2f}",
            getattr(o.deposit_status, "value", o.deposit_status),
            f"{float(o.balance_amount):.2f}",
            getattr(o.balance_status, "value", o.balance_status),
            o.bank_account or "",
            getattr(o.status_order, "value", o.status_order),
        ])

    log_event("ordenes", current_user.email, "Exportar órdenes CSV", f"total={len(ordenes)}")

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=orders_{get_operational_date()}.csv"
        }
    )


# ========== DETALLE / ACTUALIZAR ==========

@router.get("/{order_id}", response_model=OrderRead)
def obtener_orden(
    order_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_user)
):
    return _obtener_orden_visible(db, order_id, current_user)


@router.put("/{order_id}", response_model=OrderRead)
def actualizar_orden(
    datos: OrderUpdate,
    order_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Actualiza una orden y recalcula sus campos derivados

    - Manager/admin: cualquier campo, incluidos estados de pago y statusOrder
    - Agente: solo sus órdenes pendientes y sin tocar estados
    """
    try:
        orden = _obtener_orden_visible(db, order_id, current_user)
        es_agente = current_user.role == ROLE_AGENT
        pagos = datos.payments

        if es_agente:
            if OrderStatus(orden.status_order) != OrderStatus.PENDING:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Solo se pueden editar órdenes pendientes"
                )
            toca_estados = datos.status_order is not None or (
                pagos is not None and any(
                    p is not None and p.status is not None for p in (pagos.deposit, pagos.balance)
                )
            )
            if toca_estados:
                log_event("ordenes", current_user.email, "Agente intentó cambiar estados", f"orden_id={order_id}")
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Solo un manager o admin puede cambiar estados de la orden o de los pagos"
                )

        cambios = datos.model_dump(
            exclude_unset=True,
            exclude={"payments", "status_order", "deposit_amount"}
        )

        if "bank_account" in cambios:
            _validar_cuenta_bancaria(db, cambios["bank_account"], orden.agent or current_user)

        for campo, valor in cambios.items():
            if valor is None and campo in CAMPOS_OBLIGATORIOS:
                continue
            if valor is None and campo in CAMPOS_MONTO:
                valor = 0
            setattr(orden, campo, valor)

        # Montos y métodos de pago; balance.amount siempre se recalcula
        if datos.deposit_amount is not None:
            orden.deposit_amount = datos.deposit_amount
        if pagos is not None:
            if pagos.deposit is not None:
                if pagos.deposit.amount is not None:
                    orden.deposit_amount = pagos.deposit.amount
                if pagos.deposit.payment_methods is not None:
                    orden.deposit_methods = _metodos(pagos.deposit.payment_methods)
            if pagos.balance is not None and pagos.balance.payment_methods is not None:
                orden.balance_methods = _metodos(pagos.balance.payment_methods)

        # Estados: repetir el estado actual en un PUT no es un cambio
        if not es_agente:
            if pagos is not None:
                for tipo, pago in ((PaymentType.DEPOSIT, pagos.deposit), (PaymentType.BALANCE, pagos.balance)):
                    actual = getattr(orden, f"{tipo.value}_status")
                    if pago is not None and pago.status is not None and pago.status != actual:
                        transition_payment_status(orden, tipo, pago.status, current_user.role)
            if datos.status_order is not None and datos.status_order != orden.status_order:
                transition_order_status(orden, datos.status_order, current_user.role)

        _recalcular(orden)
        orden.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(orden)

        log_event("ordenes", current_user.email, "Orden actualizada", f"orden_id={order_id} campos={list(cambios)}")
        return orden

    except HTTPException:
        db.rollback()
        raise
    except (OrderPermissionError, OrderTransitionError) as e:
        db.rollback()
        log_event("ordenes", current_user.email, "Transición rechazada", f"orden_id={order_id} error={str(e)}")
        raise _error_de_regla(e)
    except SQLAlchemyError as e:
        db.rollback()
        log_event("ordenes", current_user.email, "Error al actualizar orden", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al actualizar la orden"
        )


# ========== ESTADOS ==========

@router.patch("/{order_id}/status", response_model=OrderRead)
def cambiar_estado_orden(
    datos: OrderStatusUpdate,
    order_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Aprueba o rechaza una orden pendiente
    """
    try:
        orden = _obtener_orden_visible(db, order_id, current_user)
        anterior = getattr(orden.status_order, "value", orden.status_order)
        transition_order_status(orden, datos.status_order, current_user.role)
        orden.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(orden)

        log_event("ordenes", current_user.email, "Estado de orden cambiado",
                  f"orden_id={order_id} {anterior} -> {datos.status_order.value}")
        return orden

    except HTTPException:
        raise
    except (OrderPermissionError, OrderTransitionError) as e:
        db.rollback()
        log_event("ordenes", current_user.email, "Transición rechazada", f"orden_id={order_id} error={str(e)}")
        raise _error_de_regla(e)
    except SQLAlchemyError as e:
        db.rollback()
        log_event("ordenes", current_user.email, "Error al cambiar estado", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al cambiar el estado de la orden"
        )


@router.patch("/{order_id}/payments/{payment_type}", response_model=OrderRead)
def cambiar_estado_pago(
    datos: PaymentStatusUpdate,
    payment_type: PaymentType,
    order_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_admin_or_manager)
):
    """
    Marca la seña o el saldo como pagado / no pagado
    """
    try:
        orden = _obtener_orden_visible(db, order_id, current_user)
        transition_payment_status(orden, payment_type, datos.status, current_user.role)
        orden.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(orden)

        log_event("ordenes", current_user.email, "Estado de pago cambiado",
                  f"orden_id={order_id} {payment_type.value}={datos.status.value}")
        return orden

    except HTTPException:
        raise
    except (OrderPermissionError, OrderTransitionError) as e:
        db.rollback()
        log_event("ordenes", current_user.email, "Transición de pago rechazada", f"orden_id={order_id} error={str(e)}")
        raise _error_de_regla(e)
    except SQLAlchemyError as e:
        db.rollback()
        log_event("ordenes", current_user.email, "Error al cambiar pago", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al cambiar el estado del pago"
        )


# ========== BORRAR / VOUCHER ==========

@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def eliminar_orden(
    order_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Cancela (elimina) una orden. El agente solo puede borrar sus órdenes pendientes
    """
    try:
        orden = _obtener_orden_visible(db, order_id, current_user)

        if current_user.role == ROLE_AGENT and OrderStatus(orden.status_order) != OrderStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Solo se pueden cancelar órdenes pendientes"
            )

        db.delete(orden)
        db.commit()

        log_event("ordenes", current_user.email, "Orden eliminada", f"orden_id={order_id}")

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log_event("ordenes", current_user.email, "Error al eliminar orden", f"error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error al eliminar la orden"
        )


@router.get("/{order_id}/voucher")
def descargar_voucher(
    order_id: int = Path(..., gt=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Voucher PDF de la orden
    """
    orden = _obtener_orden_visible(db, order_id, current_user)

    cuenta = None
    if orden.bank_account:
        cuenta = db.query(BankAccount).filter(BankAccount.identifier == orden.bank_account).first()

    pdf = generar_voucher(orden, cuenta)
    nombre = orden.reservation_number or f"order_{orden.id}"

    log_event("ordenes", current_user.email, "Voucher generado", f"orden_id={order_id}")
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=voucher_{nombre}.pdf"}
    )
