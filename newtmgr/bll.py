"""Native BLE session settings, MTU negotiation and UUID conversion."""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from newtmgr.bledefs import BLE_ATT_MTU_DFLT, BleUuid

log = logging.getLogger(__name__)

# Used when neither the peer nor the command line yields a usable MTU.
FALLBACK_MTU = 185

_EXCHANGE_ATTEMPTS = 3


class MtuClient(Protocol):
    """A BLE client able to negotiate the ATT MTU."""

    def exchange_mtu(self, preferred_mtu: int) -> int: ...


@dataclass
class BllSesnCfg:
    """Settings for a session over the host's native BLE stack.

    ``adv_filter`` is called with each advertisement seen while connecting
    and returns True for the peer to connect to.  ``conn_timeout`` is in
    seconds.
    """

    mgmt_proto: Any = None
    adv_filter: Optional[Callable[[Any], bool]] = None
    preferred_mtu: int = 512
    conn_timeout: float = 10.0
    conn_tries: int = 3
    write_rsp: bool = False
    tx_filter: Optional[Callable[..., Any]] = None
    rx_filter: Optional[Callable[..., Any]] = None


def exchange_mtu(
    client: MtuClient,
    preferred_mtu: int,
    mtu_override: int = 0,
    is_darwin: Optional[bool] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Negotiate the ATT MTU with ``client`` and return the value to use.

    On macOS the stack may report a stale default until it has finished its
    own exchange, so the query is retried with a pause in between.  A
    non-zero ``mtu_override`` replaces the negotiated value; it must be at
    least 23.
    """
    if is_darwin is None:
        is_darwin = sys.platform == "darwin"

    log.debug("Exchanging MTU")
    mtu = 0
    for _ in range(_EXCHANGE_ATTEMPTS):
        mtu = client.exchange_mtu(int(preferred_mtu))
        if not is_darwin:
            break
        if mtu > BLE_ATT_MTU_DFLT:
            break
        log.debug(
            "macOS reports an MTU of <=23.  "
            "Assume exchange hasn't completed; wait and requery."
        )
        sleep(1.0)

    if mtu_override != 0:
        if mtu_override < BLE_ATT_MTU_DFLT:
            raise ValueError("MTU should be at least 23")
        mtu = mtu_override

    if mtu < BLE_ATT_MTU_DFLT:
        mtu = FALLBACK_MTU

    log.debug("Exchanged MTU; ATT MTU = %d", mtu)
    return mtu


def uuid_from_bll_uuid(raw: bytes) -> BleUuid:
    """Convert a little-endian UUID as reported by the BLE stack."""
    raw = bytes(raw)
    if len(raw) == 2:
        return BleUuid(u16=int.from_bytes(raw, "little"))
    if len(raw) == 16:
        return BleUuid(u128=raw[::-1])
    raise ValueError(f"Invalid UUID: {raw!r}")