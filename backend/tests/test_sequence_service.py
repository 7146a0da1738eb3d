"""
Test de la numeración anual de documentos.
"""

import asyncio

import pytest
from sqlalchemy import select

from taller.core.transactions import run_in_transaction
from taller.models import SequenceCounter
from taller.services.sequence_service import (
    SequenceKind,
    allocate_code,
    counter_key,
    format_code,
    next_sequence,
)


class TestFormatCode:
    """Test del formato de código."""

    def test_quote_and_order_prefixes(self):
        """Test P-AAAA-NNNN y OT-AAAA-NNNN."""
        assert format_code(SequenceKind.QUOTE, 2025, 7) == "P-2025-0007"
        assert format_code(SequenceKind.ORDER, 2025, 7) == "OT-2025-0007"

    def test_large_sequence_is_not_truncated(self):
        """Test a partir de 10000 se imprime completo."""
        assert format_code(SequenceKind.QUOTE, 2025, 12345) == "P-2025-12345"

    def test_counter_key(self):
        assert counter_key(SequenceKind.ORDER, 2026) == "order-2026"


class TestNextSequence:
    """Test de la asignación de números."""

    @pytest.mark.asyncio
    async def test_first_number_is_one(self, db):
        """Test el primer número del año es 1 y luego incrementa."""

        async def work():
            first = await next_sequence(db, SequenceKind.QUOTE, 2025)
            second = await next_sequence(db, SequenceKind.QUOTE, 2025)
            return first, second

        assert await run_in_transaction(db, work, operation="test") == (1, 2)

    @pytest.mark.asyncio
    async def test_counters_are_independent(self, db):
        """Test cada tipo y año tiene su propio contador."""

        async def work():
            await next_sequence(db, SequenceKind.QUOTE, 2025)
            await next_sequence(db, SequenceKind.QUOTE, 2025)
            order = await next_sequence(db, SequenceKind.ORDER, 2025)
            next_year = await next_sequence(db, SequenceKind.QUOTE, 2026)
            return order, next_year

        assert await run_in_transaction(db, work, operation="test") == (1, 1)

    @pytest.mark.asyncio
    async def test_rollback_returns_the_number(self, db):
        """Test un rollback no deja huecos en la numeración."""

        async def failing():
            await allocate_code(db, SequenceKind.ORDER, 2025)
            raise RuntimeError("falla después de asignar")

        with pytest.raises(RuntimeError):
            await run_in_transaction(db, failing, operation="test")

        async def work():
            return await allocate_code(db, SequenceKind.ORDER, 2025)

        assert await run_in_transaction(db, work, operation="test") == (1, "OT-2025-0001")

    @pytest.mark.asyncio
    async def test_concurrent_allocations_are_unique(self, session_factory):
        """Test 10 asignaciones concurrentes obtienen 1..10 sin duplicados."""

        async def allocate_once() -> int:
            async with session_factory() as session:

                async def work():
                    return await next_sequence(session, SequenceKind.QUOTE, 2025)

                return await run_in_transaction(session, work, operation="test")

        numbers = await asyncio.gather(*(allocate_once() for _ in range(10)))

        assert sorted(numbers) == list(range(1, 11))

        async with session_factory() as session:
            counter = (
                await session.execute(
                    select(SequenceCounter).where(SequenceCounter.key == "quote-2025")
                )
            ).scalar_one()
            assert counter.value == 10
