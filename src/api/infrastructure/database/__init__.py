"""Database infrastructure - shared async engine and session primitives."""

from infrastructure.database.engines import (
    build_async_url,
    create_read_engine,
    create_write_engine,
)
from infrastructure.database.models import Base, TimestampMixin

__all__ = [
    "Base",
    "TimestampMixin",
    "build_async_url",
    "create_read_engine",
    "create_write_engine",
]
