import asyncio
import sys
from pathlib import Path

# --- Path Setup ---
# This file is assumed to be in <project_root>/scripts/init_db.py
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy.ext.asyncio import create_async_engine

from src.tutor_billing_backend.common.config import settings
from src.tutor_billing_backend.database.models import Base


async def init_db(drop_first: bool = False):
    """Creates every billing table on the configured database."""
    print(f"Connecting to database (TEST_MODE={settings.TEST_MODE})...")
    engine = create_async_engine(settings.database_url)
    try:
        async with engine.begin() as conn:
            if drop_first:
                print("--- Dropping existing tables ---")
                await conn.run_sync(Base.metadata.drop_all)
            print("--- Creating tables ---")
            await conn.run_sync(Base.metadata.create_all)
        for table in Base.metadata.sorted_tables:
            print(f"  ✅ {table.name}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_db(drop_first="--drop" in sys.argv))
