"""
Utilidades comunes para los schemas
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)
"""

from typing import Any, Iterable

from pydantic import BaseModel


def to_document(model: BaseModel) -> dict[str, Any]:
    """
    Serializa un schema como documento JSON embebido.

    Los campos opcionales sin valor se omiten: el documento nunca contiene
    claves con null.
    """
    return model.model_dump(mode="json", exclude_none=True)


def to_documents(models: Iterable[BaseModel]) -> list[dict[str, Any]]:
    """Serializa una lista de schemas (siempre devuelve una lista nueva)."""
    return [to_document(m) for m in models]
