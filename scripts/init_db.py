"""Create the billing tables and optionally seed a development profile.

Usage:
    python -m scripts.init_db
    python -m scripts.init_db --database-url sqlite+aiosqlite:///./dev.db
    python -m scripts.init_db --seed-user dev-user --credits 500 --streak 10
"""

from __future__ import annotations

import argparse
import asyncio

from wanderlust_billing.config import get_settings
from wanderlust_billing.database import create_schema, get_engine, make_session_factory
from wanderlust_billing.models import Profile


async def init_db(database_url: str, seed_user: str | None, credits: int, streak: int) -> None:
    """Create tables, then insert or update the seed profile."""
    target = database_url.split("@")[1] if "@" in database_url else database_url
    print(f"Target database: {target}")

    engine = get_engine(database_url)
    try:
        await create_schema(engine)
        print("Schema ready: profiles, transactions")

        if seed_user:
            factory = make_session_factory(engine)
            async with factory() as session:
                profile = await session.get(Profile, seed_user)
                if profile is None:
                    profile = Profile(id=seed_user, owned_levels=[])
                    session.add(profile)
                profile.credits = credits
                profile.streak_count = streak
                await session.commit()
            print(f"Seeded profile {seed_user} (credits={credits}, streak={streak})")
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create billing tables")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    parser.add_argument("--seed-user", default=None, help="Profile id to create")
    parser.add_argument("--credits", type=int, default=0)
    parser.add_argument("--streak", type=int, default=0)
    args = parser.parse_args()

    database_url = args.database_url or get_settings().database_url
    asyncio.run(init_db(database_url, args.seed_user, args.credits, args.streak))


if __name__ == "__main__":
    main()
