"""
utils/validators.py — Input validation helpers.

Validates:
- Path and form identifiers (positive integers)
- Numeric values (integers, decimals)
- ISO dates (YYYY-MM-DD)
- Boolean flags from checkboxes and JSON

Each helper returns the converted value or raises ValidationError naming
the offending field.
"""

from datetime import date, datetime

from errors import ValidationError

# SQLite INTEGER is a signed 64-bit value
MIN_INTEGER = -2 ** 63
MAX_INTEGER = 2 ** 63 - 1

TRUE_VALUES = {'1', 'true', 'on', 'yes', 'y'}
FALSE_VALUES = {'0', 'false', 'off', 'no', 'n', ''}


def check_integer_range(value, label, field=None):
    if not MIN_INTEGER <= value <= MAX_INTEGER:
        raise ValidationError(f"{label} is out of range.", field=field)
    return value


def parse_id(value, label='ID'):
    """Parse a positive integer identifier."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {label}.")
    try:
        result = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label}: {value!r} is not a number.")
    if result <= 0:
        raise ValidationError(f"Invalid {label}: must be positive.")
    return check_integer_range(result, f"Invalid {label}: value")


def parse_int(value, label):
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a whole number.", field=label)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{label} must be a whole number.", field=label)
        return check_integer_range(int(value), label, field=label)
    try:
        result = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a whole number.", field=label)
    return check_integer_range(result, label, field=label)


def parse_number(value, label):
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number.", field=label)
    try:
        result = float(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number.", field=label)
    if result != result or result in (float('inf'), float('-inf')):
        raise ValidationError(f"{label} must be a finite number.", field=label)
    return result


def parse_date(value, label):
    """Accept YYYY-MM-DD or a full ISO datetime string; return YYYY-MM-DD."""
    text = str(value).strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text).isoformat()
        # fromisoformat only understands a trailing Z from Python 3.11
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        raise ValidationError(f"{label} must be a date (YYYY-MM-DD).", field=label)


def parse_bool(value, label):
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValidationError(f"{label} must be true or false.", field=label)
