"""
Router FastAPI de Órdenes de Trabajo
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Endpoints de consulta y edición de órdenes, mano de obra, repuestos,
pagos y PDF.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.database import get_db
from taller.schemas.payment import PaymentCreate, PaymentRead
from taller.schemas.quote import QuoteRead
from taller.schemas.work_order import (
    LaborEntry,
    PartEntry,
    WorkOrderList,
    WorkOrderRead,
    WorkOrderSave,
    WorkOrderStatusUpdate,
    WorkOrderSummary,
    WorkStatus,
)
from taller.services.document_service import PdfService, build_order_document
from taller.services.payment_service import PaymentService
from taller.services.quote_service import QuoteService
from taller.services.work_order_service import WorkOrderService

# Logger del módulo
logger = logging.getLogger(__name__)

# Instancias de los service
quote_service = QuoteService()
work_order_service = WorkOrderService(quote_service)
payment_service = PaymentService(work_order_service)
pdf_service = PdfService()

router = APIRouter(
    prefix="/work-orders",
    tags=["Órdenes de Trabajo"],
)


# -------------------------------------------------------------------
# Órdenes
# -------------------------------------------------------------------

@router.get(
    "/",
    name="ordenes_lista",
    summary="Lista de órdenes de trabajo",
    description="Órdenes de la más reciente a la más antigua, paginadas por cursor.",
    response_model=WorkOrderList,
    status_code=status.HTTP_200_OK,
)
async def get_work_orders(
    limit: Optional[int] = Query(None, ge=1, le=200, description="Elementos por página"),
    start_after: Optional[datetime.datetime] = Query(
        None, description="Cursor: created_at del último elemento recibido"
    ),
    start_after_id: Optional[uuid.UUID] = Query(
        None, description="Cursor: id del último elemento recibido"
    ),
    status_filter: Optional[WorkStatus] = Query(None, description="Filtro por estado"),
    db: AsyncSession = Depends(get_db),
) -> WorkOrderList:
    orders, next_cursor, next_cursor_id = await work_order_service.get_all(
        db,
        limit=limit,
        start_after=start_after,
        start_after_id=start_after_id,
        status_filter=status_filter,
    )
    return WorkOrderList(
        items=[WorkOrderSummary.model_validate(o) for o in orders],
        next_cursor=next_cursor,
        next_cursor_id=next_cursor_id,
    )


@router.get(
    "/{order_id}",
    name="orden_detalle",
    summary="Detalle de orden de trabajo",
    response_model=WorkOrderRead,
    status_code=status.HTTP_200_OK,
)
async def get_work_order(
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> WorkOrderRead:
    order = await work_order_service.get_by_id(db, order_id)
    return WorkOrderRead.model_validate(order)


@router.put(
    "/{order_id}",
    name="orden_guardar",
    summary="Guardar orden de trabajo",
    description=(
        "Guarda diagnóstico, notas, entradas y estado en una transacción e "
        "incorpora al presupuesto las entradas nuevas."
    ),
    response_model=WorkOrderRead,
    status_code=status.HTTP_200_OK,
)
async def save_work_order(
    data: WorkOrderSave,
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> WorkOrderRead:
    order = await work_order_service.save(db, order_id, data)
    return WorkOrderRead.model_validate(order)


@router.patch(
    "/{order_id}/status",
    name="orden_cambiar_estado",
    summary="Cambiar estado",
    response_model=WorkOrderRead,
    status_code=status.HTTP_200_OK,
)
async def change_work_order_status(
    data: WorkOrderStatusUpdate,
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> WorkOrderRead:
    order = await work_order_service.set_status(db, order_id, data.status)
    return WorkOrderRead.model_validate(order)


@router.post(
    "/{order_id}/sync",
    name="orden_sincronizar",
    summary="Sincronizar con el presupuesto",
    description="Agrega al presupuesto de origen las entradas de la orden que aún no tiene.",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def sync_work_order(
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    order = await work_order_service.get_by_id(db, order_id)
    quote = await quote_service.sync(db, order.id, order.quote_id)
    return QuoteRead.model_validate(quote)


@router.get(
    "/{order_id}/pdf",
    name="orden_pdf",
    summary="PDF de la orden",
    response_class=Response,
    status_code=status.HTTP_200_OK,
)
async def get_work_order_pdf(
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> Response:
    order = await work_order_service.get_by_id(db, order_id)
    quote = await quote_service.get_by_id(db, order.quote_id)
    pdf_bytes = pdf_service.render_order(build_order_document(order, quote_code=quote.code))
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{order.code}.pdf"'},
    )


# -------------------------------------------------------------------
# Mano de obra y repuestos
# -------------------------------------------------------------------

@router.post(
    "/{order_id}/labor",
    name="orden_agregar_mano_de_obra",
    summary="Agregar mano de obra",
    response_model=WorkOrderRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_labor(
    entry: LaborEntry,
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> WorkOrderRead:
    order = await work_order_service.add_labor(db, order_id, entry)
    return WorkOrderRead.model_validate(order)


@router.delete(
    "/{order_id}/labor/{entry_id}",
    name="orden_quitar_mano_de_obra",
    summary="Quitar mano de obra",
    response_model=WorkOrderRead,
    status_code=status.HTTP_200_OK,
)
async def remove_labor(
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    entry_id: uuid.UUID = Path(..., description="UUID de la entrada"),
    db: AsyncSession = Depends(get_db),
) -> WorkOrderRead:
    order = await work_order_service.remove_labor(db, order_id, entry_id)
    return WorkOrderRead.model_validate(order)


@router.post(
    "/{order_id}/parts",
    name="orden_agregar_repuesto",
    summary="Agregar repuesto",
    response_model=WorkOrderRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_part(
    entry: PartEntry,
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> WorkOrderRead:
    order = await work_order_service.add_part(db, order_id, entry)
    return WorkOrderRead.model_validate(order)


@router.delete(
    "/{order_id}/parts/{entry_id}",
    name="orden_quitar_repuesto",
    summary="Quitar repuesto",
    response_model=WorkOrderRead,
    status_code=status.HTTP_200_OK,
)
async def remove_part(
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    entry_id: uuid.UUID = Path(..., description="UUID de la entrada"),
    db: AsyncSession = Depends(get_db),
) -> WorkOrderRead:
    order = await work_order_service.remove_part(db, order_id, entry_id)
    return WorkOrderRead.model_validate(order)


# -------------------------------------------------------------------
# Pagos
# -------------------------------------------------------------------

@router.get(
    "/{order_id}/payments",
    name="orden_pagos_lista",
    summary="Pagos de la orden",
    response_model=list[PaymentRead],
    status_code=status.HTTP_200_OK,
)
async def get_payments(
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> list[PaymentRead]:
    payments = await payment_service.list_payments(db, order_id)
    return [PaymentRead.model_validate(p) for p in payments]


@router.post(
    "/{order_id}/payments",
    name="orden_registrar_pago",
    summary="Registrar pago",
    description="Registra un pago y actualiza lo pagado y el saldo de la orden.",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def register_payment(
    data: PaymentCreate,
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> PaymentRead:
    payment = await payment_service.register_payment(db, order_id, data)
    return PaymentRead.model_validate(payment)


@router.delete(
    "/{order_id}/payments/{payment_id}",
    name="orden_eliminar_pago",
    summary="Eliminar pago",
    description="Elimina el pago y revierte su efecto en la orden.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_payment(
    order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    payment_id: uuid.UUID = Path(..., description="UUID del pago"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await payment_service.delete_payment(db, payment_id, order_id)
