"""
Schemas Pydantic de Pagos
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PaymentMethod(str, Enum):
    """Medios de pago aceptados."""
    CASH = "cash"
    TRANSFER = "transfer"
    DEBIT = "debit"
    CREDIT = "credit"
    WALLET = "wallet"
    OTHER = "other"


class ReceiptType(str, Enum):
    """Comprobante emitido por el pago."""
    RECEIPT = "receipt"
    INVOICE_A = "invoice_a"
    INVOICE_B = "invoice_b"
    INVOICE_C = "invoice_c"


class PaymentCreate(BaseModel):
    """
    Schema para registrar un pago.

    El importe debe ser mayor a cero; la regla se valida en PaymentService
    (BusinessValidationError). Sin moneda se usa la de la orden.
    """
    amount: Decimal = Field(..., description="Importe del pago")
    currency: Optional[str] = Field(None, description="Moneda (default: la de la orden)")
    method: PaymentMethod = Field(PaymentMethod.CASH, description="Medio de pago")
    quote_id: Optional[uuid.UUID] = Field(None, description="Presupuesto de origen (default: el de la orden)")
    installments: Optional[int] = Field(None, ge=1, description="Cuotas")
    surcharge_pct: Optional[Decimal] = Field(None, ge=Decimal("0"), le=Decimal("100"))
    external_reference: Optional[str] = Field(None, max_length=100)
    receipt_type: Optional[ReceiptType] = None
    receipt_number: Optional[str] = Field(None, max_length=50)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        """Normaliza el código de moneda."""
        if v is None:
            return v
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("La moneda debe ser un código de 3 letras (ej. ARS)")
        return v


class PaymentRead(BaseModel):
    """Schema de lectura de un pago."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    quote_id: Optional[uuid.UUID]
    amount: Decimal
    currency: str
    method: PaymentMethod
    installments: Optional[int]
    surcharge_pct: Optional[Decimal]
    external_reference: Optional[str]
    receipt_type: Optional[ReceiptType]
    receipt_number: Optional[str]
    created_at: datetime.datetime
