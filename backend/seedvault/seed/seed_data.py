"""
Seed data script for the seed vault database.
Populates the default seed categories and their ID prefixes.

    python -m seedvault.seed.seed_data
"""
from seedvault.database import SessionLocal
from seedvault.models import SeedCategory

DEFAULT_CATEGORIES = {
    "Tomato": "TM",
    "Pepper": "PP",
    "Herb": "HB",
    "Flower": "FL",
    "Pea": "PE",
    "Bean": "BN",
    "Leafy Green": "LG",
    "Root Vegetable": "RV",
    "Brassica": "BR",
    "Vine/Squash": "VS",
    "Uncategorized": "U",
}


def seed_categories(session) -> int:
    """Insert the default categories that are missing; returns how many were added."""
    existing_names = {row.name.lower() for row in session.query(SeedCategory.name).all()}
    existing_prefixes = {row.prefix for row in session.query(SeedCategory.prefix).all()}

    added = 0
    for name, prefix in DEFAULT_CATEGORIES.items():
        if name.lower() in existing_names or prefix in existing_prefixes:
            continue
        session.add(SeedCategory(name=name, prefix=prefix))
        added += 1
    session.commit()
    return added


def seed_database():
    session = SessionLocal()
    try:
        added = seed_categories(session)
        print(f"✓ Added {added} categories ({session.query(SeedCategory).count()} total)")
    finally:
        session.close()


if __name__ == "__main__":
    seed_database()
