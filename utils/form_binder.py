"""
utils/form_binder.py — Generic entity binder for HTML forms and JSON bodies.

Every resource declares a field-type map in models.py; this module turns
request data into column values according to that map, so route handlers
never parse fields one by one.

HTML forms and JSON both use the camelCase field keys (`plantId`,
`plantingDate`, ...). JSON also accepts the snake_case column names.
"""

from errors import ValidationError
from utils.validators import parse_bool, parse_date, parse_int, parse_number


def split_list(raw):
    """'a, b,,c' -> ['a', 'b', 'c']"""
    return [part.strip() for part in str(raw).split(',') if part.strip()]


def coerce(field, value):
    """Convert one raw value to the Python type stored for `field`."""
    try:
        return _coerce(field, value)
    except ValidationError as e:
        # Name the input key, not the display label
        e.field = field.key
        raise


def _coerce(field, value):
    label = field.display_label

    if field.type in ('array', 'id_array'):
        if value is None:
            return None
        if isinstance(value, str):
            value = split_list(value)
        if not isinstance(value, (list, tuple)):
            raise ValidationError(f"{label} must be a list.", field=field.key)
        if field.type == 'id_array':
            return [parse_int(item, label) for item in value]
        return [str(item).strip() for item in value if str(item).strip()]

    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == '':
            return False if field.type == 'boolean' else None

    if field.type == 'integer':
        return parse_int(value, label)
    if field.type == 'number':
        return parse_number(value, label)
    if field.type == 'boolean':
        return parse_bool(value, label)
    if field.type == 'date':
        return parse_date(value, label)
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{label} must be text.", field=field.key)
    return str(value)


def bind_json(payload, fields):
    """
    Bind a decoded JSON object to column values.

    Only keys present in the payload are bound, so the result can be used
    for partial updates.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")

    data = {}
    for field in fields:
        if field.key in payload:
            data[field.name] = coerce(field, payload[field.key])
        elif field.name in payload:
            data[field.name] = coerce(field, payload[field.name])
    return data


def bind_form(form, fields):
    """
    Bind submitted HTML form data to column values.

    Every field is bound: blank inputs become None, an unchecked checkbox
    becomes False, array fields are comma-separated.
    """
    data = {}
    for field in fields:
        if field.type == 'boolean':
            data[field.name] = field.key in form and parse_bool(form.get(field.key), field.display_label)
        elif field.type in ('array', 'id_array'):
            data[field.name] = coerce(field, split_list(form.get(field.key, '')))
        else:
            data[field.name] = coerce(field, form.get(field.key, ''))
    return data


def bind_form_rows(form, fields, prefix):
    """
    Bind repeated form rows (e.g. companion plants) submitted as parallel
    lists named `<prefix><Key>` such as `companionPlantId`.

    Rows whose inputs are all blank are skipped.
    """
    columns = {
        field.name: form.getlist(prefix + field.key[0].upper() + field.key[1:])
        for field in fields
    }
    row_count = max((len(values) for values in columns.values()), default=0)

    rows = []
    for index in range(row_count):
        raw = {
            name: values[index] if index < len(values) else ''
            for name, values in columns.items()
        }
        if not any(str(v).strip() for v in raw.values()):
            continue
        rows.append({field.name: coerce(field, raw[field.name]) for field in fields})
    return rows


def submitted_values(form, fields):
    """Raw submitted inputs keyed like the form, for re-rendering after an error."""
    values = {}
    for field in fields:
        if field.type == 'boolean':
            values[field.key] = field.key in form
        else:
            values[field.key] = form.get(field.key, '')
    return values


def to_form_values(row, fields):
    """Column values -> the strings shown in form inputs (for re-rendering)."""
    values = {}
    for field in fields:
        value = row.get(field.name) if row else None
        if value is None:
            values[field.key] = ''
        elif field.type in ('array', 'id_array'):
            values[field.key] = ', '.join(str(v) for v in value)
        elif field.type == 'boolean':
            values[field.key] = bool(value)
        elif field.type == 'number' and float(value).is_integer():
            values[field.key] = str(int(value))
        else:
            values[field.key] = str(value)
    return values
