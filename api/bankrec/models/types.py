from decimal import Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator

from ..services.calculator import STORAGE_PLACES, to_storage


class Money(TypeDecorator):
    """Fixed-point money: NUMERIC(18, 4), kept as text on SQLite.

    SQLite stores NUMERIC as a double, so values are written as their
    decimal string there and read back exactly.
    """

    impl = Numeric(18, 4)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(32))
        return dialect.type_descriptor(Numeric(18, 4))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = to_storage(value)
        return str(value) if dialect.name == "sqlite" else value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value)).quantize(STORAGE_PLACES)
