"""
View model de los documentos imprimibles (PDF)
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Estructuras planas que consumen las plantillas Jinja2. Los importes ya
vienen redondeados a 2 decimales.
"""

import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class Branding(BaseModel):
    """Datos del negocio impresos en el encabezado y el pie."""
    business_name: str
    subtitle: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    logo_path: Optional[str] = None
    footer_text: str = ""


class DocumentLine(BaseModel):
    """Línea de presupuesto lista para imprimir."""
    description: str
    detail: Optional[str] = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class LaborLine(BaseModel):
    description: str
    hours: Optional[Decimal] = None
    technician: Optional[str] = None
    price: Decimal


class PartLine(BaseModel):
    description: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class QuoteDocument(BaseModel):
    """Presupuesto para imprimir."""
    code: str
    client_name: str
    quote_date: datetime.date
    currency: str
    status: str
    lines: list[DocumentLine] = Field(default_factory=list)
    subtotal: Decimal
    rebate_pct: Optional[Decimal] = None
    rebate_amount: Decimal = Decimal("0.00")
    surcharge_pct: Optional[Decimal] = None
    surcharge_amount: Decimal = Decimal("0.00")
    tax_pct: Optional[Decimal] = None
    tax_amount: Decimal = Decimal("0.00")
    order_extras: Decimal = Decimal("0.00")
    total: Decimal
    notes: Optional[str] = None
    branding: Branding


class OrderDocument(BaseModel):
    """Orden de trabajo para imprimir."""
    code: str
    quote_code: Optional[str] = None
    client_name: str
    created_date: datetime.date
    currency: str
    status: str
    device_summary: str = ""
    accessories: Optional[str] = None
    diagnosis: Optional[str] = None
    labor: list[LaborLine] = Field(default_factory=list)
    parts: list[PartLine] = Field(default_factory=list)
    estimated_total: Decimal
    final_total: Decimal
    paid_to_date: Decimal
    balance: Decimal
    delivery_notes: Optional[str] = None
    warranty_days: Optional[int] = None
    branding: Branding
