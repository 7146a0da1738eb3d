"""
Calculadora de importes
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Funciones puras para el total de una línea y los totales de un documento.
Toda la aritmética es Decimal y sin redondeos intermedios: round_money()
se aplica solo al persistir o al presentar un importe.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from taller.schemas.quote import LineItem

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def _pct(value: Optional[Decimal]) -> Decimal:
    return Decimal(value) if value else ZERO


def round_money(value: Decimal) -> Decimal:
    """Redondea un importe a 2 decimales (half-up)."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def unit_amount(item: LineItem) -> Decimal:
    """
    Importe unitario de la línea antes del descuento.

    horas × tarifa cuando ambos valores están presentes y no son cero;
    si no, el precio unitario.
    """
    if item.hours and item.hourly_rate:
        return item.hours * item.hourly_rate
    return item.unit_price


def line_total(item: LineItem) -> Decimal:
    """
    Total de una línea: (unitario − descuento %) × cantidad.

    Una cantidad menor a 1 se cuenta como 1.
    """
    unit = unit_amount(item)
    discount = unit * _pct(item.discount_pct) / HUNDRED
    return (unit - discount) * max(item.quantity, 1)


def subtotal(items: Iterable[LineItem]) -> Decimal:
    """Suma de los totales de línea."""
    return sum((line_total(item) for item in items), ZERO)


@dataclass(frozen=True)
class DocumentTotals:
    """Desglose de totales de un documento (sin redondear)."""
    sub: Decimal
    rebate_amt: Decimal
    surcharge_amt: Decimal
    tax_amt: Decimal
    total: Decimal


def totals(
    items: Iterable[LineItem],
    rebate_pct: Optional[Decimal] = None,
    surcharge_pct: Optional[Decimal] = None,
    tax_pct: Optional[Decimal] = None,
) -> DocumentTotals:
    """
    Calcula los totales en orden: descuento, recargo, impuesto.

    El recargo se aplica sobre el subtotal ya descontado y el impuesto
    sobre la base con recargo.

    Example:
        subtotal 1000, descuento 10%, recargo 5%, IVA 21%
        → 100 / 45 / 198.45, total 1143.45
    """
    sub = subtotal(items)
    rebate_amt = sub * _pct(rebate_pct) / HUNDRED
    discounted = sub - rebate_amt
    surcharge_amt = discounted * _pct(surcharge_pct) / HUNDRED
    base = discounted + surcharge_amt
    tax_amt = base * _pct(tax_pct) / HUNDRED
    return DocumentTotals(
        sub=sub,
        rebate_amt=rebate_amt,
        surcharge_amt=surcharge_amt,
        tax_amt=tax_amt,
        total=base + tax_amt,
    )
