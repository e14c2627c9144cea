"""
Initialize the database: create all tables and the demo accounts.
Run with: python -m scripts.init_db
"""

import asyncio
from medrep_portal.database import engine
from medrep_portal.main import create_tables, seed_demo_users


async def init():
    print("Creating database tables...")
    await create_tables()
    await seed_demo_users()
    print("Tables created and demo users seeded.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init())
