"""Building CoAP resource payloads and formatting resource responses."""

from __future__ import annotations

import json
import math
import re
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Sequence

import cbor2

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_ATOI = re.compile(r"[+-]?[0-9]+")

_COAP_CODE_NAMES = {
    1: "GET",
    2: "POST",
    3: "PUT",
    4: "DELETE",
    65: "Created",
    66: "Deleted",
    67: "Valid",
    68: "Changed",
    69: "Content",
    128: "BadRequest",
    129: "Unauthorized",
    130: "BadOption",
    131: "Forbidden",
    132: "NotFound",
    133: "MethodNotAllowed",
    134: "NotAcceptable",
    140: "PreconditionFailed",
    141: "RequestEntityTooLarge",
    143: "UnsupportedMediaType",
    160: "InternalServerError",
    161: "NotImplemented",
    162: "BadGateway",
    163: "ServiceUnavailable",
    164: "GatewayTimeout",
    165: "ProxyingNotSupported",
}

_JSON_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


class PayloadError(ValueError):
    """Raised when a resource payload cannot be built."""


def _go_float_str(f: float) -> str:
    if math.isnan(f):
        return "NaN"
    if math.isinf(f):
        return "+Inf" if f > 0 else "-Inf"
    if f == 0:
        return "-0" if math.copysign(1.0, f) < 0 else "0"
    d = Decimal(repr(f)).normalize()
    sign, digit_tuple, exponent = d.as_tuple()
    digits = "".join(str(x) for x in digit_tuple)
    exp = len(digits) + exponent - 1
    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        exp_sign = "-" if exp < 0 else "+"
        return f"{'-' if sign else ''}{mantissa}e{exp_sign}{abs(exp):02d}"
    return format(d, "f")


def _go_value_str(value: Any) -> str:
    """Render a decoded value the way the default value format prints it."""
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _go_float_str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return "[" + " ".join(str(b) for b in value) + "]"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_go_value_str(v) for v in value) + "]"
    if isinstance(value, dict):
        items = sorted(
            ((_go_value_str(k), _go_value_str(v)) for k, v in value.items()),
            key=lambda kv: kv[0],
        )
        return "map[" + " ".join(f"{k}:{v}" for k, v in items) + "]"
    return str(value)


def _hex_dump(data: bytes) -> str:
    lines = []
    for off in range(0, len(data), 16):
        chunk = data[off : off + 16]
        cols = []
        for i in range(16):
            cols.append(f"{chunk[i]:02x} " if i < len(chunk) else "   ")
            if i == 7:
                cols.append(" ")
        text = "".join(chr(b) if 32 <= b <= 126 else "." for b in chunk)
        lines.append(f"{off:08x}  {''.join(cols)} |{text}|\n")
    return "".join(lines)


def _to_json(value: Any, indent: Optional[int] = None) -> str:
    separators = None if indent is not None else (",", ":")
    text = json.dumps(
        value, indent=indent, sort_keys=True, ensure_ascii=False, separators=separators
    )
    return text.translate(_JSON_ESCAPES)


def indent(s: str, num_spaces: int) -> str:
    """Prefix every line of ``s`` with ``num_spaces`` spaces."""
    tab = " " * num_spaces
    return tab + s.replace("\n", "\n" + tab)


def cbor_val_str(value: Any) -> str:
    """Render a decoded CBOR value: strings as is, bytes as a hex dump."""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return _hex_dump(bytes(value)).removesuffix("\n")
    return _go_value_str(value)


def _atoi(v: str) -> Optional[int]:
    if not _ATOI.fullmatch(v):
        return None
    num = int(v)
    if not _INT64_MIN <= num <= _INT64_MAX:
        return None
    return num


def extract_res_kv(params: Sequence[str]) -> dict[str, Any]:
    """Turn ``key=value`` arguments into a map of typed values.

    Quoted values stay strings, ``true``/``false`` in any case become
    booleans, decimal integers become ints and anything else stays a string.
    """
    m: dict[str, Any] = {}
    for param in params:
        key, sep, raw = param.partition("=")
        if not sep:
            raise PayloadError(f"invalid resource specifier: {param}")

        val: Any
        if len(raw) >= 2 and raw.startswith('"') and raw.endswith('"'):
            val = raw[1:-1]
        elif raw.lower() in ("true", "false"):
            val = raw.lower() == "true"
        else:
            num = _atoi(raw)
            val = raw if num is None else num
        m[key] = val
    return m


def coap_code_str(code: int) -> str:
    """Describe a CoAP response code as ``class.detail`` followed by its name."""
    cls = (code & 0xE0) >> 5
    d1 = (code & 0x18) >> 3
    d2 = code & 0x07
    name = _COAP_CODE_NAMES.get(code, f"Code({code})")
    return f"CoAP Response Code: {cls}.{d1}{d2} {name}\n"


def clean_up_map_value(value: Any) -> Any:
    """Make a decoded value JSON-friendly: string keys, scalars rendered as text."""
    if isinstance(value, (list, tuple)):
        return [clean_up_map_value(v) for v in value]
    if isinstance(value, dict):
        return {_go_value_str(k): clean_up_map_value(v) for k, v in value.items()}
    if isinstance(value, str):
        return value
    return _go_value_str(value)


def res_response_str(path: str, cbor_bytes: bytes) -> str:
    """Format a resource response body as indented JSON under its path."""
    s = path
    if cbor_bytes:
        try:
            decoded = cbor2.loads(cbor_bytes)
        except (cbor2.CBORDecodeError, EOFError, ValueError) as exc:
            s += f"\n    invalid incoming cbor:{exc}\n{_hex_dump(bytes(cbor_bytes))}"
            decoded = None
        s += "\n" + _to_json(clean_up_map_value(decoded), indent=4)
    else:
        s += "\n    <empty>"
    return s


def remove_floats(value: Any) -> Any:
    """Replace floats that hold whole numbers with ints, recursing into containers."""
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and _INT64_MIN <= value < 2.0**63:
            return int(value)
        return value
    if isinstance(value, list):
        value[:] = [remove_floats(v) for v in value]
        return value
    if isinstance(value, dict):
        for k, v in value.items():
            value[k] = remove_floats(v)
        return value
    return value


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON value {name}")


def parse_payload_json(arg: str, as_int: bool = False) -> Any:
    """Parse JSON text; numbers are floats unless ``as_int`` turns whole ones into ints."""
    try:
        val = json.loads(arg, parse_int=float, parse_constant=_reject_constant)
    except ValueError as exc:
        raise PayloadError(str(exc)) from exc
    if as_int:
        val = remove_floats(val)
    return val


def _encode(value: Any) -> bytes:
    try:
        return cbor2.dumps(value)
    except (cbor2.CBOREncodeError, TypeError, ValueError) as exc:
        raise PayloadError(str(exc)) from exc


def parse_payload(
    args: Sequence[str], as_json: bool = False, as_int: bool = False
) -> Optional[bytes]:
    """Encode command arguments as a CBOR payload, or return None for no payload.

    With ``as_json`` the first argument is JSON text; otherwise every
    argument is a ``key=value`` pair.
    """
    if not args:
        return None
    if as_json:
        val = parse_payload_json(args[0], as_int)
        if val is None:
            return None
    else:
        val = extract_res_kv(args)
    return _encode(val)


def _read_file(filename: str) -> bytes:
    try:
        return Path(filename).read_bytes()
    except OSError as exc:
        raise PayloadError(str(exc)) from exc


def calc_cbor_payload(
    args: Sequence[str],
    raw_filename: str = "",
    json_filename: str = "",
    bin_filename: str = "",
    as_int: bool = False,
) -> Optional[bytes]:
    """Work out the request body.

    A raw file is sent as is, a JSON file is encoded as CBOR, a binary file
    is encoded as a CBOR byte string; otherwise ``args`` are ``key=value``
    pairs.  The files are checked in that order.
    """
    if raw_filename:
        return _read_file(raw_filename)
    if json_filename:
        text = _read_file(json_filename).decode("utf-8", errors="replace")
        return _encode(parse_payload_json(text, as_int))
    if bin_filename:
        return _encode(_read_file(bin_filename))
    return parse_payload(args, False, as_int)