"""
Schemas Pydantic de Órdenes de Trabajo
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Define los schemas de validación y serialización para la API y para las
entradas de mano de obra y repuestos embebidas en la orden.
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from taller.schemas.quote import LineItem


# -------------------------------------------------------------------
# Enums
# -------------------------------------------------------------------

class WorkStatus(str, Enum):
    """Estados del trabajo en el taller."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    AWAITING_PARTS = "awaiting_parts"
    PAUSED = "paused"
    COMPLETED = "completed"
    DELIVERED = "delivered"


class PayStatus(str, Enum):
    """
    Estado de pago, derivado de paid_to_date y balance.

    `refunded` existe para compatibilidad de datos; ninguna operación lo asigna.
    """
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


class DeviceType(str, Enum):
    PHONE = "phone"
    TABLET = "tablet"
    COMPUTER = "computer"
    CONSOLE = "console"
    PRINTER = "printer"
    OTHER = "other"


# -------------------------------------------------------------------
# Documentos embebidos
# -------------------------------------------------------------------

class Device(BaseModel):
    """Equipo recibido. Se completa con marca/modelo/serie de la primera línea."""
    type: Optional[DeviceType] = None
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    serial: Optional[str] = Field(None, max_length=100)
    accessories: Optional[str] = Field(None, max_length=500, description="Cargador, funda, etc.")


class LaborEntry(BaseModel):
    """
    Mano de obra registrada en la orden.

    `price` es el importe de la entrada; `hours` es solo informativo.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    description: str = Field(..., min_length=1, max_length=500)
    hours: Optional[Decimal] = Field(None, ge=Decimal("0"))
    price: Optional[Decimal] = Field(None, ge=Decimal("0"))
    technician: Optional[str] = Field(None, max_length=100)


class PartEntry(BaseModel):
    """Repuesto utilizado; aporta price × quantity al total."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    description: str = Field(..., min_length=1, max_length=500)
    quantity: int = Field(1, ge=1)
    cost: Optional[Decimal] = Field(None, ge=Decimal("0"), description="Costo de compra")
    price: Optional[Decimal] = Field(None, ge=Decimal("0"), description="Precio de venta unitario")
    batch_serial: Optional[str] = Field(None, max_length=100, description="Lote o número de serie")


# -------------------------------------------------------------------
# Schemas de Orden de Trabajo
# -------------------------------------------------------------------

class WorkOrderSave(BaseModel):
    """
    Guardado conjunto de la orden desde la pantalla de trabajo.

    Solo se aplican los campos enviados. Las listas de entradas reemplazan
    a las existentes.
    """
    model_config = ConfigDict(extra="forbid")

    device: Optional[Device] = None
    diagnosis: Optional[str] = Field(None, max_length=5000)
    delivery_notes: Optional[str] = Field(None, max_length=5000)
    warranty_days: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=5000)
    labor_entries: Optional[list[LaborEntry]] = None
    part_entries: Optional[list[PartEntry]] = None
    status: Optional[WorkStatus] = None


class WorkOrderStatusUpdate(BaseModel):
    """Cambio de estado de la orden."""
    status: WorkStatus = Field(..., description="Nuevo estado de la orden")


class WorkOrderRead(BaseModel):
    """Schema de lectura de una orden de trabajo."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    year: int
    sequence: int
    quote_id: uuid.UUID
    client_name: str
    device: Device
    diagnosis: Optional[str]
    labor_entries: list[LaborEntry]
    part_entries: list[PartEntry]
    quote_items_snapshot: list[LineItem]
    currency: str
    status: WorkStatus
    pay_status: PayStatus
    estimated_total: Decimal
    final_total: Decimal
    paid_to_date: Decimal
    balance: Decimal
    started_at: Optional[datetime.datetime]
    completed_at: Optional[datetime.datetime]
    delivered_at: Optional[datetime.datetime]
    delivery_notes: Optional[str]
    warranty_days: Optional[int]
    notes: Optional[str]
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @field_validator("device", mode="before")
    @classmethod
    def default_device(cls, v):
        return v or {}

    @computed_field
    @property
    def labor_total(self) -> Decimal:
        """Suma de la mano de obra."""
        return sum((e.price or Decimal("0") for e in self.labor_entries), Decimal("0"))

    @computed_field
    @property
    def parts_total(self) -> Decimal:
        """Suma de repuestos (precio × cantidad)."""
        return sum(
            ((e.price or Decimal("0")) * e.quantity for e in self.part_entries),
            Decimal("0"),
        )


class WorkOrderSummary(BaseModel):
    """Fila del listado de órdenes."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    quote_id: uuid.UUID
    client_name: str
    status: WorkStatus
    pay_status: PayStatus
    currency: str
    final_total: Decimal
    balance: Decimal
    created_at: datetime.datetime


class WorkOrderList(BaseModel):
    """
    Página del listado de órdenes (más recientes primero).

    Attributes:
        items: Órdenes de la página
        next_cursor: created_at del último elemento; None si no hay más páginas
        next_cursor_id: id del último elemento, desempata el cursor
    """
    items: list[WorkOrderSummary]
    next_cursor: Optional[datetime.datetime] = None
    next_cursor_id: Optional[uuid.UUID] = None
