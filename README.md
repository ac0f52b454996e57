# newtmgr

Helpers for managing remote embedded devices: named connection profiles,
connection-string parsing, BLE address and UUID types, conversion of device
core dumps to ELF core files, CoAP resource payloads and log output
formatting.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

The `newtmgr` command shows its version and manages connection profiles.
Profiles are stored as a JSON list in `~/.newtmgr.cp.json`, each entry with
the keys `MyName`, `MyType` and `MyConnString`.

```
newtmgr version
newtmgr conn add mydev type=serial connstring=dev=/dev/ttyUSB0,baud=115200
newtmgr conn show
newtmgr conn show mydev
newtmgr conn delete mydev
```

- `conn add <name> [type=...] [connstring=...]` stores a profile; a type is
  required. Types are `serial`, `oic_serial`, `ble`, `oic_ble`, `bhd`,
  `oic_bhd`, `udp`, `oic_udp` and `oic_mtech`.
- `conn show [name]` lists all profiles, or the one named, sorted by name.
- `conn delete <name>` removes a profile.

Run with no subcommand, `newtmgr` (or `newtmgr conn`) prints its help. On a
usage error the message goes to standard error, the command's help follows
and the exit status is 1.

Global options: `-c/--conn`, `-t/--timeout`, `-r/--tries`, `-l/--loglevel`
(`panic`, `fatal`, `error`, `warn`, `warning`, `info`, `debug`, `trace`),
`--name`, `--write-rsp`, `--conntype`, `--connstring`, `--connextra`,
`--ompres`, `-i/--hci`, and on macOS `-m/--mtu-ovrd`. Of these only
`--loglevel` affects the commands above; the others are accepted and parsed.

## Library

- `newtmgr.bledefs`: BLE enumerations with their wire names
  (`enum_to_string`, `enum_from_string`), `BleAddr` and `parse_ble_addr`,
  `BleUuid` with `parse_uuid`, `parse_uuid16`, `parse_uuid128`,
  `format_uuid128`, `uuid16`, `compare_uuids`, and GATT, advertisement and
  pairing data classes.
- `newtmgr.connprofile`: `ConnProfile`, `ConnType` and `ConnProfileManager`
  (`load`, `save`, `profiles`, `get`, `add`, `delete`), which keeps profiles
  in a JSON file (by default `default_config_path()`);
  `conn_type_from_string` and `conn_type_to_string`.
- `newtmgr.connconfig`: connection-string parsers
  `parse_serial_conn_string`, `parse_ble_conn_string`,
  `parse_bll_conn_string`, `parse_mtech_lora_conn_string`, plus
  `build_bll_sesn_cfg` and `apply_lora_device_name`. Errors raise
  `ConnStringError`.
- `newtmgr.bll`: `BllSesnCfg` session settings, `exchange_mtu` for ATT MTU
  negotiation against any client with an `exchange_mtu(preferred)` method,
  and `uuid_from_bll_uuid`.
- `newtmgr.coreconvert`: `convert_filenames(src, dst)` turns a device core
  dump into an ARM ELF core file and returns a `CoreConvert` whose
  `image_hash` holds the image hash found in the dump; `CoreConvert.convert`
  works on open binary streams. Errors raise `CoreConvertError`.
- `newtmgr.resource`: builds CBOR payloads from `key=value` arguments or JSON
  (`extract_res_kv`, `parse_payload`, `parse_payload_json`,
  `calc_cbor_payload`) and renders responses (`res_response_str`,
  `coap_code_str`).
- `newtmgr.logshow`: `parse_log_show_args` for
  `[log-name [min-index|last [min-timestamp]]]`, `log_cbor_msg_text`,
  `format_log_header` and `format_log_entry`.
- `newtmgr.nmutil`: `ToolInfo`, `Options`, `TxOptions`, `tx_options` and
  `error_caused_by`.

## What this package does not do

It has no transports or sessions: it does not open serial ports, BLE, UDP or
LoRa connections and does not talk to devices. There are therefore no device
commands (image upload, log show, stats, config, reset, echo, file transfer,
CoAP resource access or an interactive shell). The connection-string parsers,
payload builders and log formatters prepare and present data for such
commands but nothing here sends it.