"""Conversion of device core dumps into ELF core files."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional

COREDUMP_TLV_IMAGE = 1
COREDUMP_TLV_MEM = 2
COREDUMP_TLV_REGS = 3

COREDUMP_MAGIC = 0x690C47C3

ELFCLASS32 = 1
ELFDATA2LSB = 1
EV_CURRENT = 1
ELFOSABI_NONE = 0
ET_CORE = 4
EM_ARM = 40
SHN_UNDEF = 0
PT_LOAD = 1
PT_NOTE = 4
PF_R = 4
NT_PRSTATUS = 1

_DUMP_HDR = struct.Struct("<II")
_TLV = struct.Struct("<BBHI")
_ELF_HDR = struct.Struct("<16sHHIIIIIHHHHHH")
_PROG_HDR = struct.Struct("<IIIIIIII")
_SECTION_HDR_SIZE = 40
_NOTE_HDR = struct.Struct("<III")
_NUM_REGS = 18
_PRSTATUS = struct.Struct(f"<{_NUM_REGS * 2 + 1}I")
_NOTE_NAME = b".reg"


class CoreConvertError(Exception):
    """Raised when a core dump cannot be read or converted."""


@dataclass
class _ProgHdr:
    type: int
    vaddr: int = 0
    filesz: int = 0
    memsz: int = 0
    flags: int = 0
    align: int = 4
    off: int = 0
    paddr: int = 0

    def pack(self) -> bytes:
        return _PROG_HDR.pack(
            self.type,
            self.off,
            self.vaddr,
            self.paddr,
            self.filesz,
            self.memsz,
            self.flags,
            self.align,
        )


def _pad4(data: bytes) -> bytes:
    rem = len(data) % 4
    return data if rem == 0 else data + bytes(4 - rem)


class CoreConvert:
    """Turns a core dump stream into an ARM ELF core file."""

    def __init__(self) -> None:
        self.image_hash: Optional[bytes] = None
        self._phdrs: list[_ProgHdr] = []
        self._data: list[bytes] = []

    @staticmethod
    def _read_exact(source: BinaryIO, size: int) -> bytes:
        buf = source.read(size)
        if size > 0 and not buf:
            raise CoreConvertError("Error reading: EOF")
        return buf

    def _read_hdr(self, source: BinaryIO) -> None:
        buf = self._read_exact(source, _DUMP_HDR.size)
        if len(buf) != _DUMP_HDR.size:
            raise CoreConvertError("Short read")
        magic, _size = _DUMP_HDR.unpack(buf)
        if magic != COREDUMP_MAGIC:
            raise CoreConvertError("Source file is not corefile")

    @staticmethod
    def _read_tlv(source: BinaryIO) -> Optional[tuple[int, int, int]]:
        buf = source.read(_TLV.size)
        if not buf:
            return None
        if len(buf) != _TLV.size:
            raise CoreConvertError("Short read")
        tlv_type, _pad, length, off = _TLV.unpack(buf)
        return tlv_type, length, off

    def _add_mem(self, off: int, mem: bytes) -> None:
        self._phdrs.append(
            _ProgHdr(type=PT_LOAD, vaddr=off, filesz=len(mem), memsz=len(mem), flags=PF_R)
        )
        self._data.append(_pad4(mem))

    @staticmethod
    def _reg_data(regs: bytes) -> bytes:
        values = [v for (v,) in struct.iter_unpack("<I", regs)][:_NUM_REGS]
        values += [0] * (_NUM_REGS - len(values))
        prstatus = _PRSTATUS.pack(*([0] * _NUM_REGS), *values, 0)
        name = _pad4(_NOTE_NAME + b"\x00")
        note = _NOTE_HDR.pack(len(_NOTE_NAME) + 1, _PRSTATUS.size, NT_PRSTATUS)
        return note + name + prstatus

    def _add_regs(self, regs: bytes) -> None:
        data = self._reg_data(regs)
        self._phdrs.append(_ProgHdr(type=PT_NOTE, filesz=len(data)))
        self._data.append(data)

    def _elf_header(self) -> bytes:
        ident = b"\x7fELF" + bytes([ELFCLASS32, ELFDATA2LSB, EV_CURRENT, ELFOSABI_NONE, 0, 0])
        return _ELF_HDR.pack(
            ident,
            ET_CORE,
            EM_ARM,
            EV_CURRENT,
            0,
            _ELF_HDR.size,
            0,
            0,
            _ELF_HDR.size,
            _PROG_HDR.size,
            len(self._phdrs),
            _SECTION_HDR_SIZE,
            0,
            SHN_UNDEF,
        )

    def _set_offsets(self) -> None:
        off = _ELF_HDR.size + len(self._phdrs) * _PROG_HDR.size
        for phdr, data in zip(self._phdrs, self._data):
            phdr.off = off
            off += len(data)

    def convert(self, source: Optional[BinaryIO], target: Optional[BinaryIO]) -> None:
        """Read a core dump from ``source`` and write an ELF core to ``target``."""
        if source is None or target is None:
            raise CoreConvertError("Missing file parameters")

        self.image_hash = None
        self._phdrs = []
        self._data = []

        self._read_hdr(source)
        while (tlv := self._read_tlv(source)) is not None:
            tlv_type, length, off = tlv
            data = self._read_exact(source, length)
            if len(data) != length:
                raise CoreConvertError("Short file")
            if tlv_type == COREDUMP_TLV_MEM:
                self._add_mem(off, data)
            elif tlv_type == COREDUMP_TLV_IMAGE:
                self.image_hash = data
            elif tlv_type == COREDUMP_TLV_REGS:
                if length % 4 != 0:
                    raise CoreConvertError("Invalid register area size")
                self._add_regs(data)
            else:
                raise CoreConvertError("Unknown TLV type")

        self._set_offsets()
        target.write(self._elf_header())
        for phdr in self._phdrs:
            target.write(phdr.pack())
        for data in self._data:
            target.write(data)


def convert_filenames(src_filename: str, dst_filename: str) -> CoreConvert:
    """Convert the core dump in ``src_filename`` to an ELF file at ``dst_filename``."""
    conv = CoreConvert()
    try:
        source = open(src_filename, "rb")
    except OSError as exc:
        raise CoreConvertError(f"Cannot open file {src_filename} - {exc}") from exc
    with source:
        try:
            target = open(dst_filename, "wb")
        except OSError as exc:
            raise CoreConvertError(f"Cannot open file {dst_filename} - {exc}") from exc
        with target:
            conv.convert(source, target)
    return conv