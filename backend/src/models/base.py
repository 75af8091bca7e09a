"""Declarative base and column helpers shared by the compliance models"""

from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base
from sqlalchemy import TypeDecorator, JSON
from sqlalchemy.dialects.postgresql import JSONB


class PortableJSONB(TypeDecorator):
    """JSONB on PostgreSQL, plain JSON on SQLite (test database)."""
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


def utcnow() -> datetime:
    """Timezone-aware current time used for Python-side column defaults."""
    return datetime.now(timezone.utc)


Base = declarative_base()
