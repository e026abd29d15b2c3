"""
Column types and defaults shared by the ORM models.

Keeps the schema portable between SQLite (tests, local dev) and PostgreSQL.
"""
import uuid as uuid_module
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import Numeric, String, TypeDecorator


class UUID(TypeDecorator):
    """
    Platform-independent UUID type.

    Uses PostgreSQL's native UUID type when available, otherwise stores the
    canonical 36-character string form. Bound values may be ``uuid.UUID``
    instances or strings; results are always ``uuid.UUID``.
    """

    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID as PG_UUID
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, uuid_module.UUID):
            value = uuid_module.UUID(str(value))
        if dialect.name == "postgresql":
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid_module.UUID):
            return value
        return uuid_module.UUID(value)


class ExactDecimal(TypeDecorator):
    """
    Decimal stored without rounding or a precision ceiling.

    PostgreSQL gets an unconstrained ``NUMERIC``. SQLite has no exact decimal
    type and would coerce through float, so the canonical string form is
    stored instead. Results are always ``Decimal``.
    """

    impl = String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Numeric(asdecimal=True))
        return dialect.type_descriptor(String())

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        if dialect.name == "postgresql":
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, Decimal):
            return value
        return Decimal(value)


def parse_uuid(value: Union[str, uuid_module.UUID, None]) -> Optional[uuid_module.UUID]:
    """Parse an identifier, returning None for anything that is not a UUID."""
    if value is None:
        return None
    if isinstance(value, uuid_module.UUID):
        return value
    try:
        return uuid_module.UUID(str(value))
    except (ValueError, AttributeError):
        return None


def utcnow() -> datetime:
    """Timezone-aware current time with microsecond precision."""
    return datetime.now(timezone.utc)
