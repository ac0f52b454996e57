"""Argument parsing and output formatting for showing device logs."""

from __future__ import annotations

import base64
import json
import math
import re
from dataclasses import dataclass
from typing import Any, Sequence

import cbor2

UINT32_MAX = 0xFFFFFFFF

_INT_LITERAL = re.compile(
    r"(?P<sign>[+-]?)"
    r"(?:0[xX](?P<hex>[0-9a-fA-F]+)"
    r"|0[bB](?P<bin>[01]+)"
    r"|0[oO](?P<oct>[0-7]+)"
    r"|0(?P<old>[0-7]+)"
    r"|(?P<dec>0|[1-9][0-9]*))"
)

_JSON_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


class LogArgError(ValueError):
    """Raised for invalid log show arguments."""


@dataclass
class LogShowCfg:
    """Which log to show and from which index and timestamp."""

    name: str = ""
    last: bool = False
    index: int = 0
    timestamp: int = 0


def _parse_int(s: str, signed: bool) -> int:
    m = _INT_LITERAL.fullmatch(s)
    if m is None or (m.group("sign") and not signed):
        raise LogArgError(f"invalid syntax: {s!r}")
    if m.group("hex") is not None:
        value = int(m.group("hex"), 16)
    elif m.group("bin") is not None:
        value = int(m.group("bin"), 2)
    elif m.group("oct") is not None:
        value = int(m.group("oct"), 8)
    elif m.group("old") is not None:
        value = int(m.group("old"), 8)
    else:
        value = int(m.group("dec"), 10)
    if m.group("sign") == "-":
        value = -value
    if signed:
        if not -(2**63) <= value < 2**63:
            raise LogArgError(f"value out of range: {s!r}")
    elif value >= 2**64:
        raise LogArgError(f"value out of range: {s!r}")
    return value


def parse_log_show_args(args: Sequence[str]) -> LogShowCfg:
    """Parse ``[log-name [min-index|last [min-timestamp]]]``."""
    cfg = LogShowCfg()
    if not args:
        return cfg
    cfg.name = args[0]
    if len(args) < 2:
        return cfg

    if args[1] == "last":
        cfg.last = True
        cfg.index = 0
        cfg.timestamp = -1
        return cfg

    index = _parse_int(args[1], signed=False)
    if index > UINT32_MAX:
        raise LogArgError("index out of range")
    cfg.index = index

    if len(args) < 3:
        return cfg
    cfg.timestamp = _parse_int(args[2], signed=True)
    return cfg


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {(k if isinstance(k, str) else str(k)): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"unsupported value: {value}")
        if value.is_integer() and abs(value) < 1e21:
            return int(value)
    return value


def log_cbor_msg_text(data: bytes) -> str:
    """Convert a CBOR-encoded map to compact JSON text with sorted keys."""
    try:
        decoded = cbor2.loads(bytes(data))
    except (cbor2.CBORDecodeError, EOFError) as exc:
        raise ValueError(f"invalid CBOR: {exc}") from exc
    if not isinstance(decoded, dict):
        raise ValueError("CBOR value is not a map")
    try:
        text = json.dumps(
            _jsonable(decoded), sort_keys=True, ensure_ascii=False, separators=(",", ":")
        )
    except TypeError as exc:
        raise ValueError(str(exc)) from exc
    return text.translate(_JSON_ESCAPES)


def format_log_header() -> str:
    """Return the column heading line for log entries."""
    return (
        f"{'[index]':>10} {'[timestamp]':>22} | {'[module]':>16} "
        f"{'[level]':>16} {'[type]':>6} {'[img]':>8} [message]"
    )


def format_log_entry(
    index: int,
    timestamp: int,
    module_text: str,
    level_text: str,
    entry_type: Any,
    img_hash: bytes,
    msg_text: str,
) -> str:
    """Format one log entry as a line aligned with the header."""
    return (
        f"{index:>10} {timestamp:>20}us | {module_text:>16} {level_text:>16} "
        f"{str(entry_type):>6} {bytes(img_hash).hex():>8} {msg_text}"
    )