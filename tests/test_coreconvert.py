import io
import struct

import pytest

from newtmgr import coreconvert
from newtmgr.coreconvert import (
    COREDUMP_MAGIC,
    COREDUMP_TLV_IMAGE,
    COREDUMP_TLV_MEM,
    COREDUMP_TLV_REGS,
    CoreConvert,
    CoreConvertError,
    convert_filenames,
)

ELF_HDR = struct.Struct("<16sHHIIIIIHHHHHH")
PROG_HDR = struct.Struct("<IIIIIIII")


def _tlv(tlv_type, off, data):
    return struct.pack("<BBHI", tlv_type, 0, len(data), off) + data


def _dump(*tlvs, magic=COREDUMP_MAGIC):
    body = b"".join(tlvs)
    return struct.pack("<II", magic, len(body)) + body


def _convert(raw):
    conv = CoreConvert()
    out = io.BytesIO()
    conv.convert(io.BytesIO(raw), out)
    return conv, out.getvalue()


def _phdrs(elf):
    hdr = ELF_HDR.unpack_from(elf, 0)
    phoff, phentsize, phnum = hdr[5], hdr[9], hdr[10]
    return [PROG_HDR.unpack_from(elf, phoff + i * phentsize) for i in range(phnum)]


def test_elf_header_fields():
    _, elf = _convert(_dump(_tlv(COREDUMP_TLV_MEM, 0x20000000, b"\x01\x02\x03\x04")))
    hdr = ELF_HDR.unpack_from(elf, 0)
    assert hdr[0][:4] == b"\x7fELF"
    assert hdr[1] == coreconvert.ET_CORE
    assert hdr[2] == coreconvert.EM_ARM
    assert hdr[5] == hdr[8] == ELF_HDR.size
    assert hdr[9] == PROG_HDR.size
    assert hdr[10] == 1


def test_memory_segment_round_trip():
    mem = bytes(range(16))
    addr = 0x20001000
    _, elf = _convert(_dump(_tlv(COREDUMP_TLV_MEM, addr, mem)))
    (ph,) = _phdrs(elf)
    p_type, p_off, p_vaddr, _, p_filesz, p_memsz, p_flags, _ = ph
    assert p_type == coreconvert.PT_LOAD
    assert p_vaddr == addr
    assert p_filesz == p_memsz == len(mem)
    assert p_flags == coreconvert.PF_R
    assert elf[p_off : p_off + p_filesz] == mem


def test_unaligned_memory_is_padded():
    first = b"abcde"
    second = b"WXYZ"
    _, elf = _convert(
        _dump(_tlv(COREDUMP_TLV_MEM, 0x100, first), _tlv(COREDUMP_TLV_MEM, 0x200, second))
    )
    ph1, ph2 = _phdrs(elf)
    assert ph1[4] == len(first)
    assert (ph2[1] - ph1[1]) % 4 == 0
    assert ph2[1] - ph1[1] >= len(first)
    assert elf[ph2[1] : ph2[1] + len(second)] == second
    assert len(elf) == ph2[1] + len(second)


def test_image_hash_recorded():
    digest = bytes(range(32))
    conv, elf = _convert(_dump(_tlv(COREDUMP_TLV_IMAGE, 0, digest)))
    assert conv.image_hash == digest
    assert _phdrs(elf) == []


def test_register_note():
    regs = [0x11, 0x22, 0x33, 0x44]
    raw_regs = struct.pack("<4I", *regs)
    _, elf = _convert(_dump(_tlv(COREDUMP_TLV_REGS, 0, raw_regs)))
    (ph,) = _phdrs(elf)
    assert ph[0] == coreconvert.PT_NOTE
    off = ph[1]
    namesz, descsz, ntype = struct.unpack_from("<III", elf, off)
    assert ntype == coreconvert.NT_PRSTATUS
    assert elf[off + 12 : off + 12 + namesz] == b".reg\x00"
    name_len = (namesz + 3) // 4 * 4
    desc = elf[off + 12 + name_len : off + 12 + name_len + descsz]
    words = struct.unpack(f"<{descsz // 4}I", desc)
    assert list(words[18:22]) == regs
    assert all(w == 0 for i, w in enumerate(words) if not 18 <= i < 22)
    assert ph[4] == 12 + name_len + descsz


def test_bad_magic():
    with pytest.raises(CoreConvertError, match="not corefile"):
        _convert(_dump(magic=0x12345678))


def test_unknown_tlv_type():
    with pytest.raises(CoreConvertError, match="Unknown TLV type"):
        _convert(_dump(_tlv(9, 0, b"\x00\x00\x00\x00")))


def test_register_size_not_multiple_of_four():
    with pytest.raises(CoreConvertError, match="Invalid register area size"):
        _convert(_dump(_tlv(COREDUMP_TLV_REGS, 0, b"\x01\x02\x03")))


def test_truncated_data():
    raw = _dump(_tlv(COREDUMP_TLV_MEM, 0, b"abcdefgh"))[:-3]
    with pytest.raises(CoreConvertError, match="Short file"):
        _convert(raw)


def test_truncated_tlv_header():
    raw = _dump() + b"\x02\x00"
    with pytest.raises(CoreConvertError, match="Short read"):
        _convert(raw)


def test_missing_files():
    with pytest.raises(CoreConvertError, match="Missing file parameters"):
        CoreConvert().convert(None, io.BytesIO())


def test_convert_filenames(tmp_path):
    src = tmp_path / "core.bin"
    dst = tmp_path / "core.elf"
    digest = b"\xaa" * 8
    src.write_bytes(_dump(_tlv(COREDUMP_TLV_IMAGE, 0, digest), _tlv(COREDUMP_TLV_MEM, 4, b"data")))
    conv = convert_filenames(str(src), str(dst))
    assert conv.image_hash == digest
    elf = dst.read_bytes()
    (ph,) = _phdrs(elf)
    assert elf[ph[1] : ph[1] + 4] == b"data"


def test_convert_filenames_missing_source(tmp_path):
    with pytest.raises(CoreConvertError, match="Cannot open file"):
        convert_filenames(str(tmp_path / "absent"), str(tmp_path / "out.elf"))