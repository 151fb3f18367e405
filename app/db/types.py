from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy.types import BigInteger, TypeDecorator


class Money(TypeDecorator):
    """A two-decimal amount stored as whole cents.

    Sums, comparisons and ``col + :x`` updates run on integers in every
    backend, so SQLite never sees a binary float.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Optional[int]:
        if value is None:
            return None
        cents = (Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return int(cents)

    def process_result_value(self, value: Any, dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-2)
