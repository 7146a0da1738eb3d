"""
Schemas Pydantic de Presupuestos
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Define los schemas de validación y serialización para la API y para las
líneas embebidas en la base.
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# -------------------------------------------------------------------
# Enums
# -------------------------------------------------------------------

class ItemKind(str, Enum):
    """Tipo de línea del presupuesto."""
    PRODUCT = "product"
    SERVICE = "service"
    REPAIR = "repair"


class ItemCondition(str, Enum):
    """Estado del producto vendido."""
    NEW = "new"
    USED = "used"
    REFURBISHED = "refurbished"


class WarrantyUnit(str, Enum):
    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"


class QuoteStatus(str, Enum):
    """Estados posibles de un presupuesto."""
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    VOIDED = "voided"


class AcceptanceMethod(str, Enum):
    """Medio por el que el cliente aceptó el presupuesto."""
    SIGNATURE = "signature"
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    OTHER = "other"


class AcceptOutcome(str, Enum):
    """Resultado de la aceptación."""
    ACCEPTED = "accepted"
    ALREADY_ACCEPTED = "already_accepted"


# -------------------------------------------------------------------
# Matriz de transiciones de estado
# -------------------------------------------------------------------

# La validación ocurre en taller.services.quote_service; accepted se alcanza
# solo a través de QuoteService.accept.
VALID_TRANSITIONS: dict[QuoteStatus, list[QuoteStatus]] = {
    QuoteStatus.DRAFT: [
        QuoteStatus.SENT,
        QuoteStatus.ACCEPTED,
        QuoteStatus.REJECTED,
        QuoteStatus.VOIDED,
    ],
    QuoteStatus.SENT: [QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.VOIDED],
    QuoteStatus.REJECTED: [QuoteStatus.VOIDED],
    QuoteStatus.ACCEPTED: [],  # Estado final
    QuoteStatus.VOIDED: [],  # Estado final
}


def _normalize_currency(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().upper()
    if len(v) != 3 or not v.isalpha():
        raise ValueError("La moneda debe ser un código de 3 letras (ej. ARS)")
    return v


# -------------------------------------------------------------------
# Línea de presupuesto
# -------------------------------------------------------------------

class LineItem(BaseModel):
    """
    Línea de un presupuesto.

    Los productos se cotizan por precio unitario. Servicios y reparaciones
    usan horas × tarifa cuando ambos valores están presentes y, si no, el
    precio unitario.

    Attributes:
        id: Identificador estable de la línea
        kind: product | service | repair
        description: Descripción
        quantity: Cantidad (≥ 1)
        unit_price: Precio unitario
        hours / hourly_rate: Horas y tarifa (servicios y reparaciones)
        discount_pct: Descuento de la línea (0-100)
        brand / model / serial: Datos del equipo
        condition: new | used | refurbished
        warranty_value / warranty_unit: Garantía
        note: Nota libre
        order_code: Orden de trabajo de la que proviene la línea (agregada al sincronizar)
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    kind: ItemKind = Field(..., description="Tipo de línea")
    description: str = Field(..., min_length=1, max_length=500, description="Descripción")
    quantity: int = Field(1, ge=1, description="Cantidad")
    unit_price: Decimal = Field(Decimal("0"), ge=Decimal("0"), description="Precio unitario")
    hours: Optional[Decimal] = Field(None, ge=Decimal("0"), description="Horas de trabajo")
    hourly_rate: Optional[Decimal] = Field(None, ge=Decimal("0"), description="Tarifa por hora")
    discount_pct: Optional[Decimal] = Field(
        None, ge=Decimal("0"), le=Decimal("100"), description="Descuento de la línea (%)"
    )
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    serial: Optional[str] = Field(None, max_length=100, description="IMEI o número de serie")
    condition: Optional[ItemCondition] = None
    warranty_value: Optional[int] = Field(None, ge=0)
    warranty_unit: Optional[WarrantyUnit] = None
    note: Optional[str] = Field(None, max_length=1000)
    order_code: Optional[str] = Field(None, max_length=20, description="Orden de origen de la línea")

    @model_validator(mode="after")
    def validate_product_pricing(self) -> "LineItem":
        """Los productos no admiten horas ni tarifa horaria."""
        if self.kind == ItemKind.PRODUCT and (self.hours is not None or self.hourly_rate is not None):
            raise ValueError("Los productos se cotizan por precio unitario, sin horas ni tarifa")
        return self


# -------------------------------------------------------------------
# Aceptación
# -------------------------------------------------------------------

class Acceptance(BaseModel):
    """Constancia de la aceptación del cliente. Inmutable."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=200, description="Nombre de quien acepta")
    document_id: Optional[str] = Field(None, max_length=50, description="DNI / CUIT")
    method: AcceptanceMethod = Field(AcceptanceMethod.SIGNATURE, description="Medio de aceptación")
    signature_ref: Optional[str] = Field(None, max_length=500, description="Referencia a la firma")
    accepted_at: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc),
        description="Fecha/hora de aceptación",
    )


class QuoteAcceptResult(BaseModel):
    """
    Resultado de QuoteService.accept.

    `already_accepted` no es un error: lleva el id de la orden existente
    para que el cliente pueda redirigir.
    """
    outcome: AcceptOutcome
    order_id: uuid.UUID


# -------------------------------------------------------------------
# Schemas de Presupuesto
# -------------------------------------------------------------------

class QuotePricing(BaseModel):
    """Ajustes globales del presupuesto."""
    rebate_pct: Optional[Decimal] = Field(None, ge=Decimal("0"), le=Decimal("100"), description="Descuento (%)")
    surcharge_pct: Optional[Decimal] = Field(None, ge=Decimal("0"), le=Decimal("100"), description="Recargo (%)")
    tax_pct: Optional[Decimal] = Field(None, ge=Decimal("0"), le=Decimal("100"), description="Impuesto (%)")


class QuoteCreate(QuotePricing):
    """
    Schema para crear un presupuesto.

    Cliente vacío o lista de líneas vacía se rechazan en el service
    (BusinessValidationError).
    """
    client_name: str = Field("", max_length=200, description="Nombre del cliente")
    quote_date: datetime.date = Field(default_factory=datetime.date.today)
    currency: Optional[str] = Field(None, description="Moneda (default: la configurada)")
    items: list[LineItem] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_currency(v)


class QuoteUpdate(QuotePricing):
    """
    Schema para actualizar un presupuesto.

    Todos los campos son opcionales. El estado y la orden vinculada no
    forman parte del schema: cambian solo por las operaciones dedicadas.
    """
    model_config = ConfigDict(extra="forbid")

    client_name: Optional[str] = Field(None, max_length=200)
    quote_date: Optional[datetime.date] = None
    currency: Optional[str] = None
    items: Optional[list[LineItem]] = None
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_currency(v)


class QuoteReason(BaseModel):
    """Motivo opcional de rechazo o anulación."""
    reason: Optional[str] = Field(None, max_length=500)


class QuoteRead(QuotePricing):
    """Schema de lectura de un presupuesto."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    year: int
    sequence: int
    client_name: str
    quote_date: datetime.date
    currency: str
    items: list[LineItem]
    notes: Optional[str]
    total: Decimal
    status: QuoteStatus
    acceptance: Optional[Acceptance] = None
    order_id: Optional[uuid.UUID] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class QuoteSummary(BaseModel):
    """Fila del listado de presupuestos."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    client_name: str
    quote_date: datetime.date
    currency: str
    total: Decimal
    status: QuoteStatus
    order_id: Optional[uuid.UUID] = None
    created_at: datetime.datetime


class QuoteList(BaseModel):
    """
    Página del listado de presupuestos (más recientes primero).

    Attributes:
        items: Presupuestos de la página
        next_cursor: created_at del último elemento; None si no hay más páginas
        next_cursor_id: id del último elemento, desempata el cursor
    """
    items: list[QuoteSummary]
    next_cursor: Optional[datetime.datetime] = None
    next_cursor_id: Optional[uuid.UUID] = None
