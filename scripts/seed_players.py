#!/usr/bin/env python3
"""
Seed a season and its starting roster.

Players that already exist (case-insensitive) are skipped, so the script can
be run more than once.
"""

import argparse
import asyncio
import os
import sys

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from ladder.database import db  # noqa: E402
from ladder.services import data_service  # noqa: E402
from ladder.utils.validation import DuplicateNameError  # noqa: E402

SEASON_NAME = "Summer 2023"

PLAYERS = [
    "Cal Little", "Carrol Fifer", "Jake Leon-Guerrero", "Michael Nacinopa",
    "Thom Muccillo", "Oliver Lieu", "Missy Takahashi", "Collin Cejka",
    "David Swanson", "Corey Little", "Steven Rojo", "Bryan Anderson",
    "Daniel Bess", "Isai Valdez", "Paul Schierman", "Stephen Wald",
    "Lateah Holmes", "Andee Albert", "Dylan Owen", "Matthew Barnett",
    "Eli Reyes", "Casey Bisted", "Alex Berg", "Linsey Keitges",
    "Chad Hinke", "Ethan Phommasy", "Joe Avila", "Liam Wilkins",
    "Dylan Lee", "Christopher Kaczmarek", "Autumn Jimenez", "Bella Bowman",
    "Davey Tuncap", "Douglas Ishii", "Kyla Cain", "Neill Smith",
    "Justin Pothoof", "Jay Martini", "Tim Maass", "Jose Aguimatang",
    "Sara Brannman", "Jonathan Hinson",
]


async def seed(season_name: str, add_to_season: bool) -> None:
    await db.init_database()

    async with db.AsyncSessionLocal() as session:
        try:
            season = await data_service.create_season(session, season_name)
            print(f"✓ Created season {season['name']} (id {season['id']})")
        except DuplicateNameError:
            season = next(s for s in await data_service.list_seasons(session)
                          if s["name"].lower() == season_name.lower())
            print(f"⚠️  Season {season['name']} already exists (id {season['id']})")

        created = 0
        for name in PLAYERS:
            try:
                await data_service.create_player(
                    session, name, season_id=season["id"] if add_to_season else None
                )
                created += 1
            except DuplicateNameError:
                print(f"   ⚠️  {name} already exists, skipping")

    print(f"✓ Created {created} of {len(PLAYERS)} players")
    await db.engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Seed a season and its starting roster")
    parser.add_argument("--season", default=SEASON_NAME, help=f"Season name (default: {SEASON_NAME})")
    parser.add_argument(
        "--add-to-season",
        action="store_true",
        help="Also add each new player (unranked) to the season",
    )
    args = parser.parse_args()
    asyncio.run(seed(args.season, args.add_to_season))


if __name__ == "__main__":
    main()
