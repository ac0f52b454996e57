"""Parsing of connection strings for the BLE, LoRa and serial transports."""

from __future__ import annotations

import dataclasses
import math
import re
from dataclasses import dataclass, field
from typing import Any

from newtmgr.bledefs import BleAddr, BleAddrType, enum_from_string, parse_ble_addr
from newtmgr.bll import BllSesnCfg

COAP_LORA_PORT = 0xBB
DEFAULT_SERIAL_BAUD = 115200

_ATOI = re.compile(r"[+-]?[0-9]+")
_UINT = re.compile(r"[0-9]+")
_FLOAT = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


class ConnStringError(ValueError):
    """Raised when a connection string cannot be parsed."""


def _atoi(v: str) -> int:
    if not _ATOI.fullmatch(v):
        raise ValueError(v)
    return int(v)


def _parse_float(v: str) -> float:
    if not _FLOAT.fullmatch(v):
        raise ValueError(v)
    return float(v)


def _parse_bool(v: str) -> bool:
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(v)


def _pairs(cs: str, prefix: str):
    """Yield the key and value of each comma-separated ``key=value`` pair."""
    for part in cs.split(","):
        key, sep, value = part.partition("=")
        if not sep:
            raise ConnStringError(
                f"{prefix}expected comma-separated key=value pairs; no '=' in: {part}"
            )
        yield key, value


@dataclass
class BleConfig:
    """Connection settings for the BLE host daemon transport."""

    peer_addr_type: BleAddrType = BleAddrType.PUBLIC
    peer_addr: BleAddr = field(default_factory=BleAddr)
    peer_name: str = ""
    own_addr_type: BleAddrType = BleAddrType.RANDOM
    own_addr: BleAddr = field(default_factory=BleAddr)
    conn_timeout: float = 10.0
    blehostd_path: str = "blehostd"
    controller_path: str = ""
    hci_idx: int = 0


_BLE_PREFIX = "Invalid BLE connstring; "


def parse_ble_conn_string(cs: str, timeout: float = 10.0, hci_idx: int = 0) -> BleConfig:
    """Parse a BLE host daemon connection string."""
    bc = BleConfig(conn_timeout=timeout)

    for k, v in _pairs(cs, _BLE_PREFIX):
        if k == "peer_addr_type":
            try:
                bc.peer_addr_type = enum_from_string(BleAddrType, v)
            except ValueError:
                raise ConnStringError(f"{_BLE_PREFIX}Invalid peer_addr_type: {v}") from None
        elif k == "peer_addr":
            try:
                bc.peer_addr = parse_ble_addr(v)
            except ValueError as exc:
                raise ConnStringError(f"{_BLE_PREFIX}Invalid peer_addr; {exc}") from None
        elif k == "peer_name":
            bc.peer_name = v
        elif k == "own_addr_type":
            try:
                bc.own_addr_type = enum_from_string(BleAddrType, v)
            except ValueError:
                raise ConnStringError(f"{_BLE_PREFIX}Invalid own_addr_type: {v}") from None
        elif k == "own_addr":
            try:
                bc.own_addr = parse_ble_addr(v)
            except ValueError as exc:
                raise ConnStringError(f"{_BLE_PREFIX}Invalid own_addr; {exc}") from None
        elif k == "bhd_path":
            bc.blehostd_path = v
        elif k == "ctlr_path":
            bc.controller_path = v
        else:
            raise ConnStringError(f"{_BLE_PREFIX}Unrecognized key: {k}")

    bc.hci_idx = hci_idx
    return bc


@dataclass
class BllConfig:
    """Connection settings for the host's native BLE stack."""

    ctlr_name: str = ""
    own_addr_type: BleAddrType = BleAddrType.PUBLIC
    peer_id: str = ""
    peer_name: str = ""
    conn_timeout: float = 10.0
    hci_idx: int = 0


def parse_bll_conn_string(cs: str, timeout: float = 10.0, hci_idx: int = 0) -> BllConfig:
    """Parse a native BLE connection string; a blank string gives the defaults."""
    bc = BllConfig(conn_timeout=timeout)

    if cs.strip() == "":
        return bc

    for k, v in _pairs(cs, _BLE_PREFIX):
        if k == "ctlr_name":
            bc.ctlr_name = v
        elif k == "own_addr_type":
            try:
                bc.own_addr_type = enum_from_string(BleAddrType, v)
            except ValueError:
                raise ConnStringError(f"{_BLE_PREFIX}Invalid own_addr_type: {v}") from None
        elif k == "peer_id":
            bc.peer_id = v
        elif k == "peer_name":
            bc.peer_name = v
        elif k == "conn_timeout":
            try:
                bc.conn_timeout = _parse_float(v)
            except ValueError:
                raise ConnStringError(f"{_BLE_PREFIX}Invalid conn_timeout: {v}") from None
        else:
            raise ConnStringError(f"{_BLE_PREFIX}Unrecognized key: {k}")

    bc.hci_idx = hci_idx
    return bc


def build_bll_sesn_cfg(
    bc: BllConfig, device_name: str = "", write_rsp: bool = False
) -> BllSesnCfg:
    """Build native BLE session settings from ``bc``.

    A non-empty ``device_name`` replaces the configured peer name.  The
    resulting advertisement filter expects objects with ``local_name`` and
    ``addr`` attributes.
    """
    if device_name:
        bc.peer_name = device_name

    sc = BllSesnCfg()

    if bc.peer_name:
        peer_name = bc.peer_name

        def adv_filter(adv: Any) -> bool:
            return adv.local_name == peer_name

    elif bc.peer_id:
        peer_id = bc.peer_id

        def adv_filter(adv: Any) -> bool:
            return str(adv.addr) == peer_id

    else:
        raise ConnStringError("bll session lacks a peer specifier")

    sc.adv_filter = adv_filter
    sc.write_rsp = write_rsp
    sc.conn_timeout = float(bc.conn_timeout) if not math.isnan(bc.conn_timeout) else 0.0
    return sc


@dataclass
class LoraConfig:
    """Settings for the LoRa gateway transport."""

    addr: str = ""
    seg_sz: int = 0
    confirmed_tx: bool = False
    port: int = COAP_LORA_PORT


def parse_mtech_lora_conn_string(cs: str) -> LoraConfig:
    """Parse a LoRa gateway connection string; an empty string gives the defaults."""
    mc = LoraConfig()
    if not cs:
        return mc

    for k, v in _pairs(cs, ""):
        if k == "addr":
            mc.addr = v
        elif k == "segsz":
            try:
                mc.seg_sz = _atoi(v)
            except ValueError:
                raise ConnStringError(f"Invalid SegSz: {v}") from None
        elif k == "confirmedtx":
            try:
                mc.confirmed_tx = _parse_bool(v)
            except ValueError:
                raise ConnStringError(f"Invalid confirmedtx: {v}") from None
        elif k == "port":
            if not _UINT.fullmatch(v) or int(v) > 0xFF:
                raise ConnStringError(f"Invalid port number: {v}")
            mc.port = int(v)
        else:
            raise ConnStringError(f"Unrecognized key: {k}")

    return mc


def apply_lora_device_name(mc: LoraConfig, device_name: str) -> LoraConfig:
    """Return a copy of ``mc`` whose address is ``device_name`` when one is given."""
    if device_name:
        return dataclasses.replace(mc, addr=device_name)
    return dataclasses.replace(mc)


@dataclass
class SerialConfig:
    """Settings for the serial transport; ``read_timeout`` is in seconds."""

    dev_path: str = ""
    baud: int = DEFAULT_SERIAL_BAUD
    mtu: int = 0
    read_timeout: float = 10.0


_SERIAL_PREFIX = "Invalid serial connstring; "


def parse_serial_conn_string(cs: str, read_timeout: float = 10.0) -> SerialConfig:
    """Parse a serial connection string.

    A bare token without ``=`` names the device file, as in older profiles.
    """
    sc = SerialConfig(read_timeout=read_timeout)

    for part in cs.split(","):
        k, sep, v = part.partition("=")
        if not sep:
            k, v = "dev", part

        if k == "dev":
            sc.dev_path = v
        elif k == "baud":
            try:
                sc.baud = _atoi(v)
            except ValueError:
                raise ConnStringError(f"{_SERIAL_PREFIX}Invalid baud: {v}") from None
        elif k == "mtu":
            try:
                sc.mtu = _atoi(v)
            except ValueError:
                raise ConnStringError(f"{_SERIAL_PREFIX}Invalid mtu: {v}") from None
        else:
            raise ConnStringError(f"{_SERIAL_PREFIX}Unrecognized key: {k}")

    return sc