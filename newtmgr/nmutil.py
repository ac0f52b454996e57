"""Shared tool settings, transmit options and error-chain helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ToolInfo:
    """Names and version strings that identify the tool."""

    exe_name: str = "newtmgr"
    short_name: str = "Newtmgr"
    long_name: str = "Apache Newtmgr"
    version_string: str = "1.14.0-dev"
    cfg_filename: str = ".newtmgr.cp.json"


@dataclass(frozen=True)
class TxOptions:
    """Options for a single transaction: timeout in seconds and total tries."""

    timeout: float = 10.0
    tries: int = 1


@dataclass
class Options:
    """Settings given on the command line that apply to every command."""

    timeout: float = 10.0
    tries: int = 1
    conn_profile: str = ""
    device_name: str = ""
    ble_write_rsp: bool = False
    mtu_override: int = 0
    conn_type: str = ""
    conn_string: str = ""
    conn_extra: str = ""
    hci_idx: int = 0
    tool_info: ToolInfo = field(default_factory=ToolInfo)


def tx_options(opts: Options) -> TxOptions:
    """Build the transmit options described by ``opts``."""
    return TxOptions(timeout=float(opts.timeout), tries=opts.tries)


def error_caused_by(err: Optional[BaseException], cause: BaseException) -> bool:
    """Report whether ``cause`` is ``err`` or appears in its chain of causes."""
    seen: set[int] = set()
    cur = err
    while cur is not None and id(cur) not in seen:
        if cur is cause:
            return True
        seen.add(id(cur))
        cur = cur.__cause__
    return False