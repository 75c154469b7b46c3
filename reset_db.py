import asyncio

from fieldservice.core.database import engine
from fieldservice.models import Base


async def reset():
    print(f"Reset schema su {engine.url.render_as_string()}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("Tabelle ricreate: " + ", ".join(sorted(Base.metadata.tables)))

if __name__ == "__main__":
    asyncio.run(reset())
