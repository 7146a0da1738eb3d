import asyncio
import sys
import os

# Agrega backend/ al PYTHONPATH para importar taller.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from taller.core.database import engine
from taller.models import Base


async def reset():
    print(f"Conectando a la base, eliminando tablas ({', '.join(Base.metadata.tables)})...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tablas eliminadas. Creando tablas nuevas...")
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("Base de datos reiniciada. Los contadores de numeración vuelven a cero.")


if __name__ == "__main__":
    asyncio.run(reset())
