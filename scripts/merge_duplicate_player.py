#!/usr/bin/env python3
"""
Merge a duplicate player into the player being kept.

Every season ranking of OLD_NAME moves to NEW_NAME and OLD_NAME is deleted.
Nothing changes if both players were ranked in the same season.

Usage:
    python scripts/merge_duplicate_player.py "Cal Littel" "Cal Little"
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


async def merge(old_name: str, new_name: str) -> int:
    try:
        async with db.AsyncSessionLocal() as session:
            result = await data_service.merge_players(session, old_name, new_name)
    except data_service.NotFoundError as e:
        print(f"⚠️  {e}")
        return 1
    except ValueError as e:
        print(f"❌ {e}")
        return 1
    finally:
        await db.engine.dispose()

    print(
        f"✓ Moved {result['moved_rankings']} season ranking(s) to {new_name} "
        f"and removed player {result['removed_player_id']}"
    )
    return 0


def main():
    parser = argparse.ArgumentParser(description="Merge a duplicate player into another player")
    parser.add_argument("old_name", help="Name of the duplicate player to remove")
    parser.add_argument("new_name", help="Name of the player to keep")
    args = parser.parse_args()
    sys.exit(asyncio.run(merge(args.old_name, args.new_name)))


if __name__ == "__main__":
    main()
