#!/usr/bin/env python
"""Seed development database with the demo Valentine page.

Constraints:
- Refuses to run in staging or prod (VALENTINE_ENV check)
- Idempotent: an existing demo page is left untouched
- Never runs automatically (manual invocation only)

Usage:
    DATABASE_URL=... python scripts/seed_dev.py
"""

import os
import sys
from pathlib import Path

# tests.fixtures lives under python/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "python"))


def main():
    # 1. Environment check (hard fail in staging/prod)
    valentine_env = os.getenv("VALENTINE_ENV", "local")
    if valentine_env not in ("local", "test"):
        print(f"ERROR: seed_dev.py refuses to run in VALENTINE_ENV={valentine_env}")
        sys.exit(1)

    # 2. Check DATABASE_URL
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL environment variable must be set")
        sys.exit(1)

    # 3. Import fixture data (single source of truth)
    from tests.fixtures import DEMO_PAGE, DEMO_PAGE_ID

    from valentine.config import get_settings
    from valentine.db.engine import create_db_engine
    from valentine.db.models import ValentinePage
    from valentine.db.session import create_session_factory

    engine = create_db_engine(database_url)
    session_factory = create_session_factory(engine)

    # 4. Idempotent seeding
    with session_factory() as db:
        created = db.get(ValentinePage, DEMO_PAGE_ID) is None
        if created:
            db.add(ValentinePage(**DEMO_PAGE))
            db.commit()

    # 5. Report
    db_display = database_url.split("@")[1] if "@" in database_url else database_url
    print(f"Database: {db_display}")
    print(f"VALENTINE_ENV: {valentine_env}")
    print()
    print(f"{'✓ Created' if created else '• Exists'}: page {DEMO_PAGE_ID}")
    print(f"Share link: {get_settings().share_link(DEMO_PAGE_ID)}")


if __name__ == "__main__":
    main()
