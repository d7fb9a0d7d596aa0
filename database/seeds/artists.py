"""
Seed script for artists table.

Populates the database with the studio's resident artists. Existing names
are left untouched, so the script can be re-run safely.
"""

import asyncio

from sqlalchemy import select

from database.connection import Database
from database.models import Artist

ARTISTS_DATA: list[str] = [
    "Diego",
    "Valeria",
    "Camila",
]


async def seed_artists(database: Database | None = None) -> int:
    """
    Insert missing artists by name.

    Returns:
        Number of artists created
    """
    owns_database = database is None
    database = database or Database.from_settings()
    created = 0

    try:
        async with database.session() as session:
            result = await session.execute(select(Artist.name).where(Artist.name.in_(ARTISTS_DATA)))
            existing = set(result.scalars().all())

            for name in ARTISTS_DATA:
                if name in existing:
                    print(f"⊙ Artist already exists: {name}")
                    continue
                session.add(Artist(name=name))
                created += 1
                print(f"✓ Created artist: {name}")

            await session.commit()
    finally:
        if owns_database:
            await database.dispose()

    print(f"\n✓ Seeding complete! Artists created: {created}")
    return created


if __name__ == "__main__":
    print("Seeding artists table...")
    print("=" * 60)
    asyncio.run(seed_artists())
