"""
Schemas Pydantic de Taller IT

Schemas de validación y serialización de la API y de los documentos
embebidos en la base.
"""

# Import de los schemas para acceso directo
# ej: from taller.schemas import QuoteRead, WorkOrderRead

from taller.schemas.common import to_document, to_documents
from taller.schemas.quote import (
    Acceptance,
    AcceptanceMethod,
    AcceptOutcome,
    ItemCondition,
    ItemKind,
    LineItem,
    QuoteAcceptResult,
    QuoteCreate,
    QuoteList,
    QuoteRead,
    QuoteReason,
    QuoteStatus,
    QuoteSummary,
    QuoteUpdate,
    WarrantyUnit,
)
from taller.schemas.work_order import (
    Device,
    DeviceType,
    LaborEntry,
    PartEntry,
    PayStatus,
    WorkOrderList,
    WorkOrderRead,
    WorkOrderSave,
    WorkOrderStatusUpdate,
    WorkOrderSummary,
    WorkStatus,
)
from taller.schemas.payment import PaymentCreate, PaymentMethod, PaymentRead, ReceiptType
from taller.schemas.document import Branding, OrderDocument, QuoteDocument
from taller.schemas.dashboard import DashboardStats

__all__ = [
    "to_document",
    "to_documents",
    # Quote
    "Acceptance",
    "AcceptanceMethod",
    "AcceptOutcome",
    "ItemCondition",
    "ItemKind",
    "LineItem",
    "QuoteAcceptResult",
    "QuoteCreate",
    "QuoteList",
    "QuoteRead",
    "QuoteReason",
    "QuoteStatus",
    "QuoteSummary",
    "QuoteUpdate",
    "WarrantyUnit",
    # WorkOrder
    "Device",
    "DeviceType",
    "LaborEntry",
    "PartEntry",
    "PayStatus",
    "WorkOrderList",
    "WorkOrderRead",
    "WorkOrderSave",
    "WorkOrderStatusUpdate",
    "WorkOrderSummary",
    "WorkStatus",
    # Payment
    "PaymentCreate",
    "PaymentMethod",
    "PaymentRead",
    "ReceiptType",
    # Document
    "Branding",
    "OrderDocument",
    "QuoteDocument",
    # Dashboard
    "DashboardStats",
]
