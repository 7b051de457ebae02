"""
Helpers shared by the dialect adapters
"""

from ..errors import MalformedModelError, ModelError
from ..model import RegulationType, VariableType

MISSING = object()


def pick(mapping, *names, default=MISSING):
    """
    Return the value of the first key present in ``mapping``.

    Dialects spell the same field differently (``FromVariable``,
    ``fromVariableId``...), so every lookup lists its accepted aliases.
    """
    for name in names:
        if name in mapping:
            return mapping[name]
    if default is MISSING:
        return None
    return default


def unquote(value):
    """Strip the extra quoting some BMA exports put around numbers, e.g. ``"\\"3\\""``."""
    while isinstance(value, str):
        stripped = value.strip()
        if len(stripped) >= 2 and stripped[0] == stripped[-1] == '"':
            value = stripped[1:-1]
        else:
            return stripped
    return value


def as_int(value, location, quoted=True):
    """
    Read an integer field.

    Args:
        value: Raw value, an int or (when ``quoted``) a numeric string
        location: Path used in the error message
        quoted: Accept numbers written as strings

    Raises:
        MalformedModelError: The value is missing or not an integer
    """
    if value is None:
        raise MalformedModelError("missing integer value", location)
    if quoted:
        value = unquote(value)
    if isinstance(value, bool):
        raise MalformedModelError(f"expected an integer, found {value!r}", location)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if quoted and isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            raise MalformedModelError(f"expected an integer, found {value!r}", location) from None
        if number.is_integer():
            return int(number)
    raise MalformedModelError(f"expected an integer, found {value!r}", location)


def as_float(value, location, default=None):
    if value is None:
        return default
    value = unquote(value)
    if value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise MalformedModelError(f"expected a number, found {value!r}", location) from None


def as_number(value, location, default=None):
    """Read a JSON number as written, keeping integers as integers."""
    if isinstance(value, bool):
        raise MalformedModelError(f"expected a number, found {value!r}", location)
    if isinstance(value, (int, float)):
        return value
    return as_float(value, location, default)


def as_optional_int(value, location):
    if value is None or unquote(value) == "":
        return None
    return as_int(value, location)


def as_identifier(value, location, quoted=True):
    """
    Read an identifier: an integer, or a non-empty string key.

    With ``quoted`` set, numeric strings become integers as in the BMA
    exports that quote every number.
    """
    if value is None:
        raise MalformedModelError("missing identifier", location)
    if isinstance(value, bool):
        raise MalformedModelError(f"invalid identifier {value!r}", location)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = unquote(value) if quoted else value
        if text == "":
            raise MalformedModelError("empty identifier", location)
        if quoted and text.lstrip("-").isdigit():
            return int(text)
        return text
    raise MalformedModelError(f"invalid identifier {value!r}", location)


def as_variable_type(value, location):
    try:
        return VariableType.from_str(unquote(value) if value is not None else None)
    except ValueError as e:
        raise MalformedModelError(str(e), location) from None


def as_regulation_type(value, location):
    if value is None:
        raise MalformedModelError("missing relationship type", location)
    try:
        return RegulationType.from_str(unquote(value))
    except ValueError as e:
        raise MalformedModelError(str(e), location) from None


def as_text(value, default=""):
    if value is None:
        return default
    return str(value)


def require_list(value, location):
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedModelError("expected a list", location)
    return value


def require_object(value, location):
    if not isinstance(value, dict):
        raise MalformedModelError("expected an object", location)
    return value


def add(model, method, item, location):
    """Call one of the Model constructors, reporting violations as decode errors."""
    try:
        return getattr(model, method)(item)
    except ModelError as e:
        raise MalformedModelError(str(e), location) from None
