"""Column types shared across models."""

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import BigInteger, Numeric
from sqlalchemy.types import TypeDecorator


class ExactNumeric(TypeDecorator):
    """
    Fixed-point decimal with exact arithmetic on every backend.

    PostgreSQL gets a native NUMERIC(precision, scale). SQLite has no decimal
    type and would store floats, so there the value is kept as an integer
    count of ``10 ** -scale`` units. Expressions such as
    ``current_stock - :amount`` then stay exact inside the database.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int, scale: int):
        super().__init__(precision=precision, scale=scale)
        self.precision = precision
        self.scale = scale

    def quantize(self, value) -> Decimal:
        """Round a value to this column's scale."""
        if isinstance(value, float):
            value = str(value)
        return Decimal(value).quantize(Decimal(1).scaleb(-self.scale), rounding=ROUND_HALF_UP)

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(Numeric(self.precision, self.scale))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = self.quantize(value)
        if dialect.name == "sqlite":
            return int(value.scaleb(self.scale))
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return Decimal(int(value)).scaleb(-self.scale)
        return self.quantize(value)
