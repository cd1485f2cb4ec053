from __future__ import annotations

from luckydraw.db.engine import make_engine
from luckydraw.db.schema import missing_tables, upgrade_db


def main() -> int:
    """Migrate the configured database to head and confirm the draw tables exist."""
    upgrade_db()
    engine = make_engine()
    missing = missing_tables(engine)
    if missing:
        print("Tables still missing after upgrade:", ", ".join(missing))
        return 1
    print("Lucky draw schema is up to date.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
