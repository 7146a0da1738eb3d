"""
Router FastAPI de Presupuestos
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Endpoints de alta, edición, cambios de estado, aceptación y PDF de
presupuestos.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.database import get_db
from taller.schemas.quote import (
    Acceptance,
    AcceptOutcome,
    QuoteAcceptResult,
    QuoteCreate,
    QuoteList,
    QuoteRead,
    QuoteReason,
    QuoteStatus,
    QuoteSummary,
    QuoteUpdate,
)
from taller.services.document_service import PdfService, build_quote_document
from taller.services.quote_service import QuoteService

# Logger del módulo
logger = logging.getLogger(__name__)

# Instancias de los service
quote_service = QuoteService()
pdf_service = PdfService()

router = APIRouter(
    prefix="/quotes",
    tags=["Presupuestos"],
)


@router.get(
    "/",
    name="presupuestos_lista",
    summary="Lista de presupuestos",
    description="Presupuestos del más reciente al más antiguo, paginados por cursor.",
    response_model=QuoteList,
    status_code=status.HTTP_200_OK,
)
async def get_quotes(
    limit: Optional[int] = Query(None, ge=1, le=200, description="Elementos por página"),
    start_after: Optional[datetime.datetime] = Query(
        None, description="Cursor: created_at del último elemento recibido"
    ),
    start_after_id: Optional[uuid.UUID] = Query(
        None, description="Cursor: id del último elemento recibido"
    ),
    status_filter: Optional[QuoteStatus] = Query(None, description="Filtro por estado"),
    db: AsyncSession = Depends(get_db),
) -> QuoteList:
    """
    Recupera una página de presupuestos.

    Returns:
        QuoteList: Presupuestos y cursor de la página siguiente
    """
    quotes, next_cursor, next_cursor_id = await quote_service.get_all(
        db,
        limit=limit,
        start_after=start_after,
        start_after_id=start_after_id,
        status_filter=status_filter,
    )
    return QuoteList(
        items=[QuoteSummary.model_validate(q) for q in quotes],
        next_cursor=next_cursor,
        next_cursor_id=next_cursor_id,
    )


@router.post(
    "/",
    name="presupuesto_crear",
    summary="Crear presupuesto",
    response_model=QuoteRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_quote(
    data: QuoteCreate,
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    """
    Crea un presupuesto en estado draft.

    Raises:
        BusinessValidationError: Cliente vacío o sin líneas
    """
    quote = await quote_service.create(db, data)
    return QuoteRead.model_validate(quote)


@router.get(
    "/{quote_id}",
    name="presupuesto_detalle",
    summary="Detalle de presupuesto",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def get_quote(
    quote_id: uuid.UUID = Path(..., description="UUID del presupuesto"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    quote = await quote_service.get_by_id(db, quote_id)
    return QuoteRead.model_validate(quote)


@router.put(
    "/{quote_id}",
    name="presupuesto_actualizar",
    summary="Actualizar presupuesto",
    description="Actualiza un presupuesto no aceptado y recalcula el total.",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def update_quote(
    data: QuoteUpdate,
    quote_id: uuid.UUID = Path(..., description="UUID del presupuesto"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    quote = await quote_service.update(db, quote_id, data)
    return QuoteRead.model_validate(quote)


@router.post(
    "/{quote_id}/send",
    name="presupuesto_enviar",
    summary="Marcar como enviado",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def send_quote(
    quote_id: uuid.UUID = Path(..., description="UUID del presupuesto"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    quote = await quote_service.mark_sent(db, quote_id)
    return QuoteRead.model_validate(quote)


@router.post(
    "/{quote_id}/reject",
    name="presupuesto_rechazar",
    summary="Registrar rechazo",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def reject_quote(
    data: Optional[QuoteReason] = None,
    quote_id: uuid.UUID = Path(..., description="UUID del presupuesto"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    quote = await quote_service.reject(db, quote_id, data.reason if data else None)
    return QuoteRead.model_validate(quote)


@router.post(
    "/{quote_id}/void",
    name="presupuesto_anular",
    summary="Anular presupuesto",
    description="Anula un presupuesto no aceptado; el motivo se agrega a las notas.",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def void_quote(
    data: Optional[QuoteReason] = None,
    quote_id: uuid.UUID = Path(..., description="UUID del presupuesto"),
    db: AsyncSession = Depends(get_db),
) -> QuoteRead:
    quote = await quote_service.void(db, quote_id, data.reason if data else None)
    return QuoteRead.model_validate(quote)


@router.post(
    "/{quote_id}/accept",
    name="presupuesto_aceptar",
    summary="Aceptar presupuesto",
    description=(
        "Acepta el presupuesto y crea la orden de trabajo. "
        "Responde 201 si creó la orden o 200 si ya estaba aceptado."
    ),
    response_model=QuoteAcceptResult,
    status_code=status.HTTP_201_CREATED,
)
async def accept_quote(
    acceptance: Acceptance,
    response: Response,
    quote_id: uuid.UUID = Path(..., description="UUID del presupuesto"),
    db: AsyncSession = Depends(get_db),
) -> QuoteAcceptResult:
    """
    Convierte el presupuesto en orden de trabajo, una sola vez.

    Returns:
        QuoteAcceptResult: outcome y id de la orden
    """
    result = await quote_service.accept(db, quote_id, acceptance)
    if result.outcome == AcceptOutcome.ALREADY_ACCEPTED:
        response.status_code = status.HTTP_200_OK
    return result


@router.get(
    "/{quote_id}/pdf",
    name="presupuesto_pdf",
    summary="PDF del presupuesto",
    response_class=Response,
    status_code=status.HTTP_200_OK,
)
async def get_quote_pdf(
    quote_id: uuid.UUID = Path(..., description="UUID del presupuesto"),
    db: AsyncSession = Depends(get_db),
) -> Response:
    quote = await quote_service.get_by_id(db, quote_id)
    pdf_bytes = pdf_service.render_quote(build_quote_document(quote))
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{quote.code}.pdf"'},
    )
