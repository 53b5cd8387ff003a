#!/usr/bin/env python3
"""
Create the Save Point tables and print the achievement catalog.
Run once against a fresh database; existing tables are left untouched.

Usage: python3 scripts/init_db.py [database_url]
"""

import os
import sys

if len(sys.argv) > 1:
    os.environ["SAVEPOINT_DATABASE_URL"] = sys.argv[1]

from sqlalchemy import inspect

from savepoint.database import Base, engine, DATABASE_URL
from savepoint import models  # Import all models to register them with Base
from savepoint.achievements import DEFAULT_ACHIEVEMENTS


def init_database():
    """Create any missing tables"""
    print(f"Initializing database: {DATABASE_URL}")
    existing = set(inspect(engine).get_table_names())
    Base.metadata.create_all(bind=engine)
    created = sorted(set(inspect(engine).get_table_names()) - existing)

    if created:
        print(f"\nCreated {len(created)} tables:")
        for table in created:
            print(f"  - {table}")
    else:
        print("\n✓ Database is already up to date!")


def print_catalog():
    print(f"\nAchievement catalog ({len(DEFAULT_ACHIEVEMENTS)} entries):")
    for achievement in DEFAULT_ACHIEVEMENTS:
        requirement = achievement.requirement
        print(
            f"  {achievement.icon} {achievement.id:<18} {achievement.rarity:<10} "
            f"{requirement.type}>={requirement.value:<5} +{achievement.reward_points} pts"
        )


if __name__ == "__main__":
    try:
        init_database()
    except Exception as e:
        print(f"\n✗ Initialization failed: {e}")
        sys.exit(1)
    print_catalog()
