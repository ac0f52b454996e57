import base64
import json

import cbor2
import pytest

from newtmgr.logshow import (
    LogArgError,
    LogShowCfg,
    format_log_entry,
    format_log_header,
    log_cbor_msg_text,
    parse_log_show_args,
)


def test_parse_no_args():
    assert parse_log_show_args([]) == LogShowCfg()


def test_parse_name_only():
    assert parse_log_show_args(["reboot_log"]) == LogShowCfg(name="reboot_log")


def test_parse_last():
    cfg = parse_log_show_args(["reboot_log", "last"])
    assert cfg.name == "reboot_log"
    assert cfg.index == 0
    assert cfg.timestamp == -1
    assert cfg.last is True


def test_parse_last_ignores_timestamp():
    assert parse_log_show_args(["reboot_log", "last", "5"]).timestamp == -1


def test_parse_index():
    cfg = parse_log_show_args(["reboot_log", "5"])
    assert cfg.index == 5
    assert cfg.timestamp == 0


def test_parse_index_and_timestamp():
    cfg = parse_log_show_args(["reboot_log", "3", "1122222"])
    assert (cfg.index, cfg.timestamp) == (3, 1122222)


def test_parse_hex_index():
    assert parse_log_show_args(["x", "0x10"]).index == 16


def test_parse_negative_timestamp():
    assert parse_log_show_args(["x", "1", "-3"]).timestamp == -3


def test_parse_max_index():
    assert parse_log_show_args(["x", "0xffffffff"]).index == 0xFFFFFFFF


@pytest.mark.parametrize(
    "args",
    [
        ["x", "4294967296"],
        ["x", "abc"],
        ["x", "-1"],
        ["x", "1", "zz"],
    ],
)
def test_parse_errors(args):
    with pytest.raises(LogArgError):
        parse_log_show_args(args)


def test_log_cbor_msg_text_sorted_compact():
    text = log_cbor_msg_text(cbor2.dumps({"b": 1, "a": "x"}))
    assert json.loads(text) == {"a": "x", "b": 1}
    assert text.index('"a"') < text.index('"b"')
    assert " " not in text


def test_log_cbor_msg_text_bytes_base64():
    text = log_cbor_msg_text(cbor2.dumps({"d": b"\x00\x01"}))
    assert json.loads(text)["d"] == base64.b64encode(b"\x00\x01").decode("ascii")


def test_log_cbor_msg_text_whole_float():
    text = log_cbor_msg_text(cbor2.dumps({"f": 2.0}))
    assert '"f":2}' in text


def test_log_cbor_msg_text_not_map():
    with pytest.raises(ValueError):
        log_cbor_msg_text(cbor2.dumps([1]))


def test_log_cbor_msg_text_invalid():
    with pytest.raises(ValueError):
        log_cbor_msg_text(b"\x82\x01")


def test_header_columns():
    header = format_log_header()
    assert header.split() == [
        "[index]",
        "[timestamp]",
        "|",
        "[module]",
        "[level]",
        "[type]",
        "[img]",
        "[message]",
    ]
    assert header.startswith("   [index] ")


def test_entry_aligned_with_header():
    entry = format_log_entry(7, 123, "mod (4)", "info (1)", "str", b"\xab\xcd", "hello")
    assert entry.index("|") == format_log_header().index("|")
    assert entry.startswith(" " * 9 + "7 ")
    assert "123us |" in entry
    assert entry.split() == ["7", "123us", "|", "mod", "(4)", "info", "(1)", "str", "abcd", "hello"]


def test_entry_empty_hash():
    entry = format_log_entry(0, 0, "m", "l", "bin", b"", "x")
    assert entry.endswith(" " * 8 + " x")