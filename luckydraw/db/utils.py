from pathlib import Path
from datetime import datetime, timezone
from typing import Optional


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Resolve 'sqlite:///./relative/path' to an absolute sqlite:/// URL.

    Keeps other URL forms unchanged.
    """
    prefix = "sqlite:///./"
    if not url.startswith(prefix):
        return url
    rel = url[len(prefix) :]
    return f"sqlite:///{(project_root / rel).resolve()}"


def epoch_ms_now() -> int:
    """Return the current wall-clock time as integer epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def ms_to_datetime(epoch_ms: Optional[int]) -> Optional[datetime]:
    """Convert epoch milliseconds to an aware UTC datetime, or return None."""
    if epoch_ms is None:
        return None
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)

