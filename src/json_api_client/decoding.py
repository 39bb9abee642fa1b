"""JSON decoding into a generic value tree.

Decoded values use plain Python containers. Integers keep arbitrary
precision and non-integral numbers are decoded as :class:`~decimal.Decimal`
so nothing is silently rounded through a float.

Example:
    ```python
    from json_api_client.decoding import decode, encode

    value = decode(b'{"price": 19.99, "ids": [9007199254740993]}')
    assert value["price"] == Decimal("19.99")
    assert decode(encode(value)) == value
    ```
"""

import json
from decimal import Decimal
from typing import Any, TypeAlias

from json_api_client.errors.exceptions import DecodeError

JsonValue: TypeAlias = "None | bool | int | Decimal | str | list[JsonValue] | dict[str, JsonValue]"


class _NonStandardConstant(ValueError):
    pass


def _reject_constant(name: str) -> Any:
    raise _NonStandardConstant(f"non-standard JSON constant {name!r}")


def decode(data: bytes | str) -> JsonValue:
    """Parse a JSON document.

    Any JSON value is accepted at the top level, including bare arrays and
    scalars.

    Args:
        data: Raw response body.

    Returns:
        The decoded value tree.

    Raises:
        DecodeError: If the body is not valid UTF-8/JSON. ``position`` is the
            character offset of the problem when known.
    """
    try:
        return json.loads(data, parse_float=Decimal, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON at position {e.pos}: {e.msg}", position=e.pos, reason=e.msg) from e
    except UnicodeDecodeError as e:
        raise DecodeError(f"Response body is not valid text: {e.reason}", position=e.start, reason=e.reason) from e
    except _NonStandardConstant as e:
        raise DecodeError(f"Invalid JSON: {e}", reason=str(e)) from e
    except RecursionError as e:
        raise DecodeError("Invalid JSON: document nested too deeply", reason="nesting too deep") from e
    except ValueError as e:
        # int() digit limit (sys.set_int_max_str_digits) on very long integer literals
        raise DecodeError(f"Unsupported JSON number: {e}", reason=str(e)) from e


def encode(value: JsonValue) -> bytes:
    """Serialize a value tree canonically (sorted keys, compact separators).

    ``Decimal`` values are written verbatim, so ``decode(encode(v)) == v``
    for any value produced by :func:`decode`.
    """
    return _encode(value).encode("utf-8")


def _encode(value: Any) -> str:
    if value is None or isinstance(value, (bool, str)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Cannot encode non-finite number {value}")
        return str(value)
    if isinstance(value, float):
        return json.dumps(value, allow_nan=False)
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_encode(item) for item in value) + "]"
    if isinstance(value, dict):
        items = sorted(value.items())
        return "{" + ",".join(f"{json.dumps(str(k), ensure_ascii=False)}:{_encode(v)}" for k, v in items) + "}"
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
