"""Bluetooth Low Energy definitions: addresses, UUIDs, enumerations and GATT types."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

BLE_ATT_ATTR_MAX_LEN = 512
BLE_ATT_MTU_DFLT = 23

CCCD_UUID = 0x2902

IOTIVITY_SVC_UUID = "ade3d529-c784-4f63-a987-eb69f70ee816"
IOTIVITY_REQ_CHR_UUID = "ad7b334f-4637-4b86-90b6-9d787f03d218"
IOTIVITY_RSP_CHR_UUID = "e9241982-4580-42c4-8831-95048216b256"

UNAUTH_SVC_UUID = "0c08c213-98ed-4e43-a499-7e1137c39567"
UNAUTH_REQ_CHR_UUID = "69b8a928-2ab2-487b-923e-54ce53a18bc1"
UNAUTH_RSP_CHR_UUID = "bca10aea-5df1-4248-b72b-f52955ad9c88"

SECURE_SVC_UUID = 0xFE18
SECURE_REQ_CHR_UUID = 0x1000
SECURE_RSP_CHR_UUID = 0x1001

NMP_PLAIN_SVC_UUID = "8d53dc1d-1db7-4cd3-868b-8a527460aa84"
NMP_PLAIN_CHR_UUID = "da2e7828-fbce-4e01-ae9e-261174997c48"

OMP_UNSEC_SVC_UUID = "ade3d529-c784-4f63-a987-eb69f70ee816"
OMP_UNSEC_REQ_CHR_UUID = "ad7b334f-4637-4b86-90b6-9d787f03d218"
OMP_UNSEC_RSP_CHR_UUID = "e9241982-4580-42c4-8831-95048216b256"

OMP_SEC_SVC_UUID = SECURE_SVC_UUID
OMP_SEC_REQ_CHR_UUID = SECURE_REQ_CHR_UUID
OMP_SEC_RSP_CHR_UUID = SECURE_RSP_CHR_UUID

UNKNOWN_NAME = "???"

_LABELS: dict[type, dict[int, str]] = {}


def enum_to_string(value: enum.IntEnum) -> str:
    """Return the wire name of an enumeration member, or "???" if it has none."""
    labels = _LABELS.get(type(value), {})
    return labels.get(int(value), UNKNOWN_NAME)


def enum_from_string(enum_cls: type, s: str):
    """Look up the member of ``enum_cls`` whose wire name is ``s``."""
    for number, name in _LABELS.get(enum_cls, {}).items():
        if name == s:
            return enum_cls(number)
    raise ValueError(f"Invalid {enum_cls.__name__} string: {s}")


class _LabeledEnum(enum.IntEnum):
    def __str__(self) -> str:
        return enum_to_string(self)


class BleAddrType(_LabeledEnum):
    PUBLIC = 0
    RANDOM = 1
    RPA_PUB = 2
    RPA_RND = 3


_LABELS[BleAddrType] = {0: "public", 1: "random", 2: "rpa_pub", 3: "rpa_rnd"}


class BleScanFilterPolicy(_LabeledEnum):
    NO_WL = 0
    USE_WL = 1
    NO_WL_INITA = 2
    USE_WL_INITA = 3


_LABELS[BleScanFilterPolicy] = {
    0: "no_wl",
    1: "use_wl",
    2: "no_wl_inita",
    3: "use_wl_inita",
}


class BleAdvEventType(_LabeledEnum):
    IND = 0
    DIRECT_IND_HD = 1
    SCAN_IND = 2
    NONCONN_IND = 3
    DIRECT_IND_LD = 4


_LABELS[BleAdvEventType] = {
    0: "ind",
    1: "direct_ind_hd",
    2: "scan_ind",
    3: "nonconn_ind",
    4: "direct_ind_ld",
}


class BleAdvConnMode(_LabeledEnum):
    NON = 0
    DIR = 1
    UND = 2


_LABELS[BleAdvConnMode] = {0: "non", 1: "dir", 2: "und"}


class BleAdvDiscMode(_LabeledEnum):
    NON = 0
    LTD = 1
    GEN = 2


_LABELS[BleAdvDiscMode] = {0: "non", 1: "ltd", 2: "gen"}


class BleAdvFilterPolicy(_LabeledEnum):
    NONE = 0
    SCAN = 1
    CONN = 2
    BOTH = 3


_LABELS[BleAdvFilterPolicy] = {0: "none", 1: "scan", 2: "conn", 3: "both"}


class BleGattOp(_LabeledEnum):
    READ_CHR = 0
    WRITE_CHR = 1
    READ_DSC = 2
    WRITE_DSC = 3


_LABELS[BleGattOp] = {0: "read_chr", 1: "write_chr", 2: "read_dsc", 3: "write_dsc"}


class BleSvcType(_LabeledEnum):
    PRIMARY = 0
    SECONDARY = 1


_LABELS[BleSvcType] = {0: "primary", 1: "secondary"}


class BleSmAction(_LabeledEnum):
    OOB = 0
    INPUT = 1
    DISP = 2
    NUMCMP = 3


_LABELS[BleSmAction] = {0: "oob", 1: "input", 2: "disp", 3: "numcmp"}


class BleSmIoCap(_LabeledEnum):
    DISP_ONLY = 0
    DISP_YES_NO = 1
    KEYBOARD_ONLY = 2
    NO_IO = 3
    KEYBOARD_DISP = 4


_LABELS[BleSmIoCap] = {
    0: "disp_only",
    1: "disp_yes_no",
    2: "keyboard_only",
    3: "no_io",
    4: "keyboard_disp",
}


class BleSmKeyDist(_LabeledEnum):
    ENC = 0
    ID = 1
    SIGN = 2
    LINK = 3


_LABELS[BleSmKeyDist] = {0: "enc", 1: "id", 2: "sign", 3: "link"}


class BleSmAuthReq(_LabeledEnum):
    BOND = 0
    MITM = 1
    SC = 2
    KEYPRESS = 3


_LABELS[BleSmAuthReq] = {0: "bond", 1: "mitm", 2: "sc", 3: "keypress"}


class BleRole(enum.IntEnum):
    MASTER = 0
    SLAVE = 1


class BleEncryptWhen(enum.IntEnum):
    NEVER = 0
    AS_REQD = 1
    ALWAYS = 2


class BleChrFlags(enum.IntFlag):
    BROADCAST = 0x0001
    READ = 0x0002
    WRITE_NO_RSP = 0x0004
    WRITE = 0x0008
    NOTIFY = 0x0010
    INDICATE = 0x0020
    AUTH_SIGN_WRITE = 0x0040
    RELIABLE_WRITE = 0x0080
    AUX_WRITE = 0x0100
    READ_ENC = 0x0200
    READ_AUTHEN = 0x0400
    READ_AUTHOR = 0x0800
    WRITE_ENC = 0x1000
    WRITE_AUTHEN = 0x2000
    WRITE_AUTHOR = 0x4000


class BleAttFlags(enum.IntFlag):
    READ = 0x01
    WRITE = 0x02
    READ_ENC = 0x04
    READ_AUTHEN = 0x08
    READ_AUTHOR = 0x10
    WRITE_ENC = 0x20
    WRITE_AUTHEN = 0x40
    WRITE_AUTHOR = 0x80


class BleDiscChrProperties(enum.IntFlag):
    BROADCAST = 0x01
    READ = 0x02
    WRITE_NO_RSP = 0x04
    WRITE = 0x08
    NOTIFY = 0x10
    INDICATE = 0x20
    AUTH_SIGN_WRITE = 0x40
    EXTENDED = 0x80


_HEX_OCTET_RE = re.compile(r"[0-9a-f]+")


@dataclass(frozen=True)
class BleAddr:
    """A six-byte Bluetooth device address."""

    raw: bytes = bytes(6)

    def __post_init__(self) -> None:
        if len(self.raw) != 6:
            raise ValueError(f"BLE address must be 6 bytes, got {len(self.raw)}")
        object.__setattr__(self, "raw", bytes(self.raw))

    def __str__(self) -> str:
        return ":".join(f"{b:02x}" for b in self.raw)

    def to_json(self) -> str:
        return str(self)

    @classmethod
    def from_json(cls, value) -> "BleAddr":
        if not isinstance(value, str):
            raise TypeError(f"BLE address must be a string, got {type(value).__name__}")
        return parse_ble_addr(value)


def parse_ble_addr(s: str) -> BleAddr:
    """Parse a colon-separated address such as ``"0a:0b:0c:0d:0e:0f"``."""
    parts = s.lower().split(":")
    if len(parts) != 6:
        raise ValueError(f"invalid BLE addr string: {s}")
    octets = []
    for part in parts:
        if not _HEX_OCTET_RE.fullmatch(part):
            raise ValueError(f"invalid BLE addr byte: {part!r}")
        value = int(part, 16)
        if value > 0xFF:
            raise ValueError(f"BLE addr byte out of range: {part!r}")
        octets.append(value)
    return BleAddr(bytes(octets))


@dataclass(frozen=True)
class BleDev:
    addr_type: BleAddrType = BleAddrType.PUBLIC
    addr: BleAddr = field(default_factory=BleAddr)

    def __str__(self) -> str:
        return f"{enum_to_string(self.addr_type)},{self.addr}"


_INT_LITERAL = re.compile(
    r"0[xX](?P<hex>[0-9a-fA-F]+)"
    r"|0[bB](?P<bin>[01]+)"
    r"|0[oO](?P<oct>[0-7]+)"
    r"|0(?P<oldoct>[0-7]+)"
    r"|(?P<dec>0|[1-9][0-9]*)"
)


def parse_uuid16(s: str) -> int:
    """Parse a 16-bit UUID written as a decimal, hex, octal or binary literal."""
    m = _INT_LITERAL.fullmatch(s)
    if m is None:
        raise ValueError(f"Invalid UUID: {s}")
    if m.group("hex") is not None:
        value = int(m.group("hex"), 16)
    elif m.group("bin") is not None:
        value = int(m.group("bin"), 2)
    elif m.group("oct") is not None:
        value = int(m.group("oct"), 8)
    elif m.group("oldoct") is not None:
        value = int(m.group("oldoct"), 8)
    else:
        value = int(m.group("dec"), 10)
    if value > 0xFFFF:
        raise ValueError(f"Invalid UUID: {s}")
    return value


_UUID128_DASHES = (8, 13, 18, 23)
_HEX_PAIR = re.compile(r"[0-9a-fA-F]{2}")


def parse_uuid128(s: str) -> bytes:
    """Parse a dashed 128-bit UUID string into 16 bytes in textual order."""
    if len(s) != 36:
        raise ValueError(f"Invalid UUID: {s}")
    out = bytearray()
    i = 0
    while i < 36:
        if i in _UUID128_DASHES:
            if s[i] != "-":
                raise ValueError(f"Invalid UUID: {s}")
            i += 1
            continue
        pair = s[i : i + 2]
        if not _HEX_PAIR.fullmatch(pair):
            raise ValueError(f"Invalid UUID: {s}")
        out.append(int(pair, 16))
        i += 2
    return bytes(out)


def format_uuid128(raw: bytes) -> str:
    """Format 16 bytes as a dashed 128-bit UUID string."""
    if len(raw) != 16:
        raise ValueError(f"128-bit UUID must be 16 bytes, got {len(raw)}")
    parts = []
    for i, b in enumerate(raw):
        if i in (4, 6, 8, 10):
            parts.append("-")
        parts.append(f"{b:02x}")
    return "".join(parts)


@dataclass(frozen=True)
class BleUuid:
    """A BLE UUID; the 16-bit form is used when ``u16`` is non-zero."""

    u16: int = 0
    u128: bytes = bytes(16)

    def __post_init__(self) -> None:
        if not 0 <= self.u16 <= 0xFFFF:
            raise ValueError(f"16-bit UUID out of range: {self.u16}")
        if len(self.u128) != 16:
            raise ValueError(f"128-bit UUID must be 16 bytes, got {len(self.u128)}")
        object.__setattr__(self, "u128", bytes(self.u128))

    def __str__(self) -> str:
        if self.u16 != 0:
            return f"0x{self.u16:04x}"
        return format_uuid128(self.u128)

    def to_json(self):
        if self.u16 != 0:
            return self.u16
        return format_uuid128(self.u128)

    @classmethod
    def from_json(cls, value) -> "BleUuid":
        if isinstance(value, str):
            return parse_uuid(value)
        if isinstance(value, int) and not isinstance(value, bool):
            if not 0 <= value <= 0xFFFF:
                raise ValueError(f"16-bit UUID out of range: {value}")
            return cls(u16=value)
        raise TypeError(f"cannot decode UUID from {type(value).__name__}")


def parse_uuid(s: str) -> BleUuid:
    """Parse a UUID string, trying the 16-bit form before the 128-bit form."""
    try:
        return BleUuid(u16=parse_uuid16(s))
    except ValueError:
        pass
    return BleUuid(u128=parse_uuid128(s))


def uuid16(value: int) -> BleUuid:
    """Build a UUID from a 16-bit value."""
    return BleUuid(u16=value)


def compare_uuids(a: BleUuid, b: BleUuid) -> int:
    """Order two UUIDs; negative, zero or positive like a comparison function."""
    if a.u16 != 0 or b.u16 != 0:
        return a.u16 - b.u16
    return (a.u128 > b.u128) - (a.u128 < b.u128)


@dataclass(frozen=True)
class BleChrId:
    svc_uuid: BleUuid = field(default_factory=BleUuid)
    chr_uuid: BleUuid = field(default_factory=BleUuid)

    def __str__(self) -> str:
        return f"s={self.svc_uuid} c={self.chr_uuid}"


def compare_chr_ids(a: BleChrId, b: BleChrId) -> int:
    """Order two characteristic identifiers by service, then characteristic."""
    rc = compare_uuids(a.svc_uuid, b.svc_uuid)
    if rc != 0:
        return rc
    return compare_uuids(a.chr_uuid, b.chr_uuid)


@dataclass
class BleMgmtChrs:
    nmp_req_chr: Optional[BleChrId] = None
    nmp_rsp_chr: Optional[BleChrId] = None
    res_req_chr: Optional[BleChrId] = None
    res_rsp_chr: Optional[BleChrId] = None


@dataclass
class BleAdvFields:
    """Advertisement fields; optional ones are None when the sender omitted them."""

    data: bytes = b""
    flags: Optional[int] = None
    uuids16: list[int] = field(default_factory=list)
    uuids16_is_complete: bool = False
    uuids32: list[int] = field(default_factory=list)
    uuids32_is_complete: bool = False
    uuids128: list[bytes] = field(default_factory=list)
    uuids128_is_complete: bool = False
    name: Optional[str] = None
    name_is_complete: bool = False
    tx_pwr_lvl: Optional[int] = None
    slave_itvl_min: Optional[int] = None
    slave_itvl_max: Optional[int] = None
    svc_data_uuid16: bytes = b""
    public_tgt_addrs: list[BleAddr] = field(default_factory=list)
    appearance: Optional[int] = None
    adv_itvl: Optional[int] = None
    svc_data_uuid32: bytes = b""
    svc_data_uuid128: bytes = b""
    uri: Optional[str] = None
    mfg_data: bytes = b""


@dataclass
class BleAdvReport:
    event_type: BleAdvEventType = BleAdvEventType.IND
    sender: BleDev = field(default_factory=BleDev)
    rssi: int = 0
    fields: BleAdvFields = field(default_factory=BleAdvFields)


@dataclass
class BleConnDesc:
    conn_handle: int = 0
    own_id_addr_type: BleAddrType = BleAddrType.PUBLIC
    own_id_addr: BleAddr = field(default_factory=BleAddr)
    own_ota_addr_type: BleAddrType = BleAddrType.PUBLIC
    own_ota_addr: BleAddr = field(default_factory=BleAddr)
    peer_id_addr_type: BleAddrType = BleAddrType.PUBLIC
    peer_id_addr: BleAddr = field(default_factory=BleAddr)
    peer_ota_addr_type: BleAddrType = BleAddrType.PUBLIC
    peer_ota_addr: BleAddr = field(default_factory=BleAddr)
    role: BleRole = BleRole.MASTER
    encrypted: bool = False
    authenticated: bool = False
    bonded: bool = False
    key_size: int = 0

    def __str__(self) -> str:
        return (
            f"conn_handle={self.conn_handle} "
            f"own_id_addr={enum_to_string(self.own_id_addr_type)},{self.own_id_addr} "
            f"own_ota_addr={enum_to_string(self.own_ota_addr_type)},{self.own_ota_addr} "
            f"peer_id_addr={enum_to_string(self.peer_id_addr_type)},{self.peer_id_addr} "
            f"peer_ota_addr={enum_to_string(self.peer_ota_addr_type)},{self.peer_ota_addr}"
        )


@dataclass
class BleGattAccess:
    op: BleGattOp = BleGattOp.READ_CHR
    conn_handle: int = 0
    svc_uuid: BleUuid = field(default_factory=BleUuid)
    chr_uuid: BleUuid = field(default_factory=BleUuid)
    data: bytes = b""


@dataclass
class BleDsc:
    uuid: BleUuid = field(default_factory=BleUuid)
    att_flags: BleAttFlags = BleAttFlags(0)
    min_key_size: int = 0


@dataclass
class BleChr:
    uuid: BleUuid = field(default_factory=BleUuid)
    flags: BleChrFlags = BleChrFlags(0)
    min_key_size: int = 0
    access_cb: Optional[Callable[[BleGattAccess], tuple[int, bytes]]] = None
    dscs: list[BleDsc] = field(default_factory=list)


@dataclass
class BleSvc:
    uuid: BleUuid = field(default_factory=BleUuid)
    svc_type: BleSvcType = BleSvcType.PRIMARY
    chrs: list[BleChr] = field(default_factory=list)


@dataclass
class BlePairCfg:
    io_cap: BleSmIoCap = BleSmIoCap.DISP_ONLY
    oob: bool = False
    bonding: bool = False
    mitm: bool = False
    sc: bool = False
    keypress: bool = False
    our_key_dist: BleSmKeyDist = BleSmKeyDist.ENC
    their_key_dist: BleSmKeyDist = BleSmKeyDist.ENC