"""
Servicios de documentos de órdenes
"""

from .voucher_pdf import generar_voucher

__all__ = [
    "generar_voucher",
]
