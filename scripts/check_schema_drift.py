from __future__ import annotations

import sys

from sqlalchemy.exc import SQLAlchemyError

from luckydraw.db.engine import make_engine
from luckydraw.db.schema import schema_drift


def _print_ops(ops, indent: int = 0) -> None:
    prefix = "  " * indent
    for op in ops:
        print(f"{prefix}- {op}")
        sub_ops = getattr(op, "ops", None)
        if sub_ops:
            _print_ops(sub_ops, indent + 1)


def main() -> int:
    """Compare the draw_states schema on disk with the ORM models."""
    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        ops = schema_drift(engine)
    except (SQLAlchemyError, RuntimeError) as exc:
        print(f"Schema drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2
    if not ops:
        print(f"Schema drift check: OK for {url_display}.")
        return 0
    print(f"Schema drift check: FAILED for {url_display}:")
    _print_ops(ops)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
