"""
Voucher PDF de una orden de viaje
Una hoja A4 con datos del cliente, la estadía, precios y estado de pagos
"""

from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.pdfgen import canvas

from models.orden import Order
from utils.timezone import format_agency_datetime, get_agency_now


def _fmt_money(value) -> str:
    return f"{float(value or 0):.2f}"


def _fmt_date(value) -> str:
    return value.strftime("%d.%m.%Y") if value else "-"


def _enum_value(value) -> str:
    return getattr(value, "value", value) or "-"


def generar_voucher(orden: Order, bank_account=None) -> bytes:
    """
    Genera el voucher de la orden y retorna los bytes del PDF

    Args:
        orden: orden ya persistida (con campos derivados calculados)
        bank_account: cuenta bancaria de destino, si la orden tiene una
    """
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    margen = 2 * cm
    x = margen
    y = height - margen

    # ------------------------------------------------------------------------
    # ENCABEZADO
    # ------------------------------------------------------------------------
    c.setFont("Helvetica-Bold", 16)
    c.drawString(x, y, "TRAVEL VOUCHER")
    c.setFont("Helvetica", 9)
    c.drawRightString(width - margen, y, f"Emitido: {format_agency_datetime(get_agency_now())}")
    y -= 0.7 * cm

    c.setFont("Helvetica-Bold", 11)
    c.drawString(x, y, f"Reserva: {orden.reservation_number or '-'}")
    c.setFont("Helvetica", 9)
    c.drawRightString(width - margen, y, f"Orden #{orden.id} | Estado: {_enum_value(orden.status_order)}")
    y -= 0.4 * cm

    c.setStrokeColor(colors.black)
    c.setLineWidth(1.5)
    c.line(x, y, width - margen, y)
    y -= 0.8 * cm

    def seccion(titulo, filas):
        nonlocal y
        c.setFont("Helvetica-Bold", 11)
        c.drawString(x, y, titulo)
        y -= 0.55 * cm
        c.setFont("Helvetica", 10)
        for etiqueta, valor in filas:
            c.setFillColor(colors.grey)
            c.drawString(x, y, etiqueta)
            c.setFillColor(colors.black)
            c.drawString(x + 5 * cm, y, str(valor) if valor not in (None, "") else "-")
            y -= 0.48 * cm
        y -= 0.35 * cm

    guests = orden.guests or {}
    children = guests.get("children") or []
    edades = ", ".join(str(child.get("age")) for child in children)

    seccion("Cliente", [
        ("Nombre", orden.client_name),
        ("Teléfonos", ", ".join(orden.client_phone or [])),
        ("Email", orden.client_email),
        ("Documento", orden.client_document_number),
        ("País", orden.client_country),
        ("Huéspedes", f"{guests.get('adults', 1)} adultos, {len(children)} menores"
                      + (f" ({edades})" if edades else "")),
    ])

    seccion("Estadía", [
        ("Check-in", _fmt_date(orden.check_in)),
        ("Check-out", _fmt_date(orden.check_out)),
        ("Noches", orden.nights),
        ("Destino", ", ".join(v for v in (orden.city_travel, orden.country_travel) if v)),
        ("Ubicación", orden.location_travel),
        ("Propiedad", orden.property_name),
        ("Número de propiedad", orden.property_number),
    ])

    seccion("Precios", [
        ("Precio oficial", _fmt_money(orden.official_price)),
        ("Tasa de limpieza", _fmt_money(orden.tax_clean)),
        ("Descuento", _fmt_money(orden.discount)),
        ("Total", _fmt_money(orden.total_price)),
    ])

    seccion("Pagos", [
        ("Seña", f"{_fmt_money(orden.deposit_amount)} ({_enum_value(orden.deposit_status)})"),
        ("Saldo", f"{_fmt_money(orden.balance_amount)} ({_enum_value(orden.balance_status)})"),
    ])

    if bank_account is not None:
        seccion("Cuenta para transferencias", [
            ("Banco", bank_account.bank_name),
            ("Titular", bank_account.holder_name),
            ("IBAN", bank_account.iban),
            ("SWIFT", bank_account.swift),
        ])

    # ------------------------------------------------------------------------
    # PIE
    # ------------------------------------------------------------------------
    c.setFont("Helvetica", 8)
    c.setFillColor(colors.grey)
    c.drawString(x, margen, f"Agente: {orden.agent_name or '-'} ({orden.agent_country or '-'})")

    c.showPage()
    c.save()
    return buffer.getvalue()
