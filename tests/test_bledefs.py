import pytest

from newtmgr.bledefs import (
    BLE_ATT_MTU_DFLT,
    CCCD_UUID,
    NMP_PLAIN_SVC_UUID,
    NMP_PLAIN_CHR_UUID,
    SECURE_SVC_UUID,
    BleAddr,
    BleAddrType,
    BleAdvConnMode,
    BleAdvEventType,
    BleChrId,
    BleConnDesc,
    BleDev,
    BleGattOp,
    BleRole,
    BleScanFilterPolicy,
    BleSmIoCap,
    BleUuid,
    compare_chr_ids,
    compare_uuids,
    enum_from_string,
    enum_to_string,
    format_uuid128,
    parse_ble_addr,
    parse_uuid,
    parse_uuid128,
    parse_uuid16,
    uuid16,
)


@pytest.mark.parametrize(
    "member, name",
    [
        (BleAddrType.PUBLIC, "public"),
        (BleAddrType.RANDOM, "random"),
        (BleAddrType.RPA_PUB, "rpa_pub"),
        (BleAddrType.RPA_RND, "rpa_rnd"),
        (BleScanFilterPolicy.USE_WL_INITA, "use_wl_inita"),
        (BleAdvEventType.DIRECT_IND_LD, "direct_ind_ld"),
        (BleGattOp.WRITE_DSC, "write_dsc"),
        (BleSmIoCap.KEYBOARD_DISP, "keyboard_disp"),
    ],
)
def test_enum_names_round_trip(member, name):
    assert enum_to_string(member) == name
    assert enum_from_string(type(member), name) is member


def test_enum_str_uses_wire_name():
    member = enum_from_string(BleAdvConnMode, "und")
    assert member is BleAdvConnMode.UND
    assert str(member) == "und"


def test_enum_without_names_gives_unknown():
    assert enum_to_string(BleRole.SLAVE) == "???"


def test_enum_from_string_rejects_unknown():
    with pytest.raises(ValueError, match="Invalid BleAddrType string: bogus"):
        enum_from_string(BleAddrType, "bogus")


def test_parse_ble_addr_round_trip():
    text = "0a:1b:2c:3d:4e:5f"
    addr = parse_ble_addr(text)
    assert str(addr) == text
    assert addr.raw == bytes([0x0A, 0x1B, 0x2C, 0x3D, 0x4E, 0x5F])


def test_parse_ble_addr_is_case_insensitive_and_pads():
    addr = parse_ble_addr("A:0B:C:0D:E:F0")
    assert str(addr) == "0a:0b:0c:0d:0e:f0"


@pytest.mark.parametrize(
    "text", ["0a:0b:0c:0d:0e", "0a:0b:0c:0d:0e:0f:10", "0a:0b:0c:0d:0e:zz", "0a:0b:0c:0d:0e:100", ""]
)
def test_parse_ble_addr_rejects_bad_input(text):
    with pytest.raises(ValueError):
        parse_ble_addr(text)


def test_ble_addr_requires_six_bytes():
    with pytest.raises(ValueError):
        BleAddr(b"\x01\x02")


def test_ble_addr_json_round_trip():
    addr = parse_ble_addr("01:02:03:04:05:06")
    assert BleAddr.from_json(addr.to_json()) == addr


def test_ble_dev_str():
    dev = BleDev(BleAddrType.RANDOM, parse_ble_addr("01:02:03:04:05:06"))
    assert str(dev) == "random,01:02:03:04:05:06"


@pytest.mark.parametrize("text", ["0x2902", "10498", "0X2902", "024402"])
def test_parse_uuid16_literals(text):
    assert parse_uuid16(text) == CCCD_UUID


@pytest.mark.parametrize("text", ["0x10000", "-1", "abc", "", "0x"])
def test_parse_uuid16_rejects(text):
    with pytest.raises(ValueError):
        parse_uuid16(text)


def test_parse_uuid128_round_trip():
    raw = parse_uuid128(NMP_PLAIN_SVC_UUID)
    assert len(raw) == 16
    assert raw[0] == 0x8D
    assert format_uuid128(raw) == NMP_PLAIN_SVC_UUID


def test_parse_uuid128_accepts_upper_case():
    raw = parse_uuid128(NMP_PLAIN_CHR_UUID.upper())
    assert format_uuid128(raw) == NMP_PLAIN_CHR_UUID


@pytest.mark.parametrize(
    "text",
    [
        NMP_PLAIN_SVC_UUID[:-1],
        NMP_PLAIN_SVC_UUID.replace("-", "x", 1),
        "g" + NMP_PLAIN_SVC_UUID[1:],
    ],
)
def test_parse_uuid128_rejects(text):
    with pytest.raises(ValueError):
        parse_uuid128(text)


def test_parse_uuid_prefers_16_bit():
    u = parse_uuid("0x2902")
    assert u.u16 == CCCD_UUID
    assert u.u128 == bytes(16)
    assert str(u) == "0x2902"


def test_parse_uuid_falls_back_to_128_bit():
    u = parse_uuid(NMP_PLAIN_SVC_UUID)
    assert u.u16 == 0
    assert str(u) == NMP_PLAIN_SVC_UUID


def test_parse_uuid_rejects_garbage():
    with pytest.raises(ValueError):
        parse_uuid("not-a-uuid")


def test_uuid_json_round_trip():
    for u in (uuid16(SECURE_SVC_UUID), parse_uuid(NMP_PLAIN_SVC_UUID)):
        assert BleUuid.from_json(u.to_json()) == u
    assert uuid16(SECURE_SVC_UUID).to_json() == SECURE_SVC_UUID
    assert BleUuid.from_json("0x2902") == uuid16(CCCD_UUID)


def test_uuid_from_json_rejects_out_of_range():
    with pytest.raises(ValueError):
        BleUuid.from_json(0x10000)
    with pytest.raises(TypeError):
        BleUuid.from_json(True)


def test_compare_uuids():
    a = uuid16(0x1000)
    b = uuid16(0x1001)
    assert compare_uuids(a, b) < 0
    assert compare_uuids(b, a) > 0
    assert compare_uuids(a, a) == 0
    big = parse_uuid(NMP_PLAIN_SVC_UUID)
    small = parse_uuid(NMP_PLAIN_CHR_UUID)
    assert compare_uuids(big, small) > 0
    assert compare_uuids(small, big) < 0
    assert compare_uuids(big, parse_uuid(NMP_PLAIN_SVC_UUID)) == 0


def test_compare_chr_ids():
    svc = parse_uuid(NMP_PLAIN_SVC_UUID)
    a = BleChrId(svc, uuid16(0x1000))
    b = BleChrId(svc, uuid16(0x1001))
    assert compare_chr_ids(a, b) < 0
    assert compare_chr_ids(a, BleChrId(svc, uuid16(0x1000))) == 0
    other = BleChrId(uuid16(0x0001), uuid16(0x1001))
    assert compare_chr_ids(other, a) != 0
    assert str(a) == f"s={NMP_PLAIN_SVC_UUID} c=0x1000"


def test_conn_desc_str_names_addresses():
    addr = parse_ble_addr("01:02:03:04:05:06")
    desc = BleConnDesc(conn_handle=BLE_ATT_MTU_DFLT, peer_id_addr_type=BleAddrType.RANDOM, peer_id_addr=addr)
    text = str(desc)
    assert text.startswith(f"conn_handle={BLE_ATT_MTU_DFLT} ")
    assert "peer_id_addr=random,01:02:03:04:05:06" in text
    assert "own_id_addr=public,00:00:00:00:00:00" in text