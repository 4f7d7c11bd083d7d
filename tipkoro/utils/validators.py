"""
Request payload parsing shared by the intake handlers
"""
from decimal import Decimal, InvalidOperation

from tipkoro.services.errors import ValidationError

CENT = Decimal('0.01')


def parse_amount(value, message='Invalid amount'):
    """Money from JSON (number or numeric string), rounded to 2 places"""
    if value is None or isinstance(value, bool):
        raise ValidationError(message)
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite():
            raise ValidationError(message)
        return amount.quantize(CENT)
    except (InvalidOperation, ValueError):
        raise ValidationError(message)


def parse_int(value, message):
    if value is None or isinstance(value, bool):
        raise ValidationError(message)
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(message)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(message)


def clean_text(value, max_length=None):
    """Strip a string field; empty becomes None"""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    if not value:
        return None
    if max_length is not None:
        value = value[:max_length]
    return value


def parse_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def json_object(payload):
    """Request body as a dict; a missing body counts as empty"""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload
