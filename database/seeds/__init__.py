"""
Seed data orchestration module.

Provides seed_all() to execute all seed scripts in dependency order.
Can be run standalone: python -m database.seeds
"""

from database.connection import Database
from database.seeds.artists import seed_artists


async def seed_all() -> None:
    """Execute all seed scripts against one store client."""
    print("Starting database seeding...")
    print("-" * 50)

    database = Database.from_settings()
    try:
        await seed_artists(database)
    finally:
        await database.dispose()

    print("-" * 50)
    print(" Database seeding complete!")

