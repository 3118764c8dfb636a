from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext

from finshare.core.exceptions import ValidationError

getcontext().prec = 28
CENTS = Decimal("0.01")


def qround(d: Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value, operation: str = None, entity: str = None) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid amount: {value!r}", operation=operation, entity=entity)

    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}", operation=operation, entity=entity)

    return amount


def to_money(value, operation: str = None, entity: str = None) -> Decimal:
    return qround(to_decimal(value, operation, entity))


def require_cents(amount: Decimal, operation: str = None, entity: str = None) -> Decimal:
    # no silent rounding: 10.005 is an error, 10.500 is 10.50
    if amount.quantize(CENTS) != amount:
        raise ValidationError(f"Amount {amount} has more than 2 decimal places",
                              operation=operation, entity=entity)
    return amount.quantize(CENTS)


def entity_ref(kind: str, entity_id) -> str:
    return f"{kind}:{entity_id}"
