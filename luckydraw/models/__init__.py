from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .draw_state import DrawState  # noqa: F401

__all__ = [
    "Base",
    "DrawState",
]
