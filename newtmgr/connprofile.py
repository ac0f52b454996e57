"""Connection profiles and their persistent store."""

from __future__ import annotations

import enum
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

log = logging.getLogger(__name__)

DEFAULT_CFG_FILENAME = ".newtmgr.cp.json"


class ConnProfileError(Exception):
    """Raised for invalid, missing or unreadable connection profiles."""


class ConnType(enum.IntEnum):
    NONE = 0
    SERIAL_PLAIN = 1
    SERIAL_OIC = 2
    BLL_PLAIN = 3
    BLL_OIC = 4
    BLE_PLAIN = 5
    BLE_OIC = 6
    UDP_PLAIN = 7
    UDP_OIC = 8
    MTECH_LORA_OIC = 9


_CONN_TYPE_NAMES = {
    ConnType.SERIAL_PLAIN: "serial",
    ConnType.SERIAL_OIC: "oic_serial",
    ConnType.BLL_PLAIN: "ble",
    ConnType.BLL_OIC: "oic_ble",
    ConnType.BLE_PLAIN: "bhd",
    ConnType.BLE_OIC: "oic_bhd",
    ConnType.UDP_PLAIN: "udp",
    ConnType.UDP_OIC: "oic_udp",
    ConnType.MTECH_LORA_OIC: "oic_mtech",
    ConnType.NONE: "???",
}


def conn_type_to_string(conn_type: ConnType) -> str:
    """Return the name used for ``conn_type`` in profiles and on the command line."""
    return _CONN_TYPE_NAMES.get(conn_type, "")


def conn_type_from_string(s: str) -> ConnType:
    """Look up a connection type by name."""
    for conn_type, name in _CONN_TYPE_NAMES.items():
        if name == s:
            return conn_type
    raise ConnProfileError(f"Invalid connection type: {s}")


@dataclass
class ConnProfile:
    name: str = ""
    type: ConnType = ConnType.NONE
    conn_string: str = ""

    def __str__(self) -> str:
        return (
            f"name={self.name} type={conn_type_to_string(self.type)} "
            f"connstring={self.conn_string}"
        )

    def to_json(self) -> dict:
        return {
            "MyName": self.name,
            "MyType": conn_type_to_string(self.type),
            "MyConnString": self.conn_string,
        }

    @classmethod
    def from_json(cls, obj) -> "ConnProfile":
        if not isinstance(obj, dict):
            raise ConnProfileError(f"connection profile must be an object, got {obj!r}")
        name = obj.get("MyName", "")
        conn_string = obj.get("MyConnString", "")
        type_name = obj.get("MyType", "")
        for key, value in (("MyName", name), ("MyType", type_name), ("MyConnString", conn_string)):
            if not isinstance(value, str):
                raise ConnProfileError(f"{key} must be a string, got {value!r}")
        try:
            conn_type = conn_type_from_string(type_name)
        except ConnProfileError:
            conn_type = ConnType.NONE
        return cls(name=name, type=conn_type, conn_string=conn_string)


def sort_conn_profiles(profiles: Iterable[ConnProfile]) -> list[ConnProfile]:
    """Return the profiles as a new list ordered by name."""
    return sorted(profiles, key=lambda p: p.name)


def default_config_path(filename: str = DEFAULT_CFG_FILENAME) -> Path:
    """Return the path of ``filename`` in the user's home directory."""
    return Path.home() / filename


class ConnProfileManager:
    """Keeps the set of named connection profiles stored in a JSON file."""

    def __init__(self, path: Optional[Union[str, os.PathLike]] = None) -> None:
        self.path = Path(path) if path is not None else default_config_path()
        self._profiles: dict[str, ConnProfile] = {}
        self.load()

    def load(self) -> None:
        """Replace the profiles in memory with those stored in the file."""
        log.debug("Reading connection profiles from %s", self.path)
        self._profiles = {}
        try:
            text = self.path.read_text()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise ConnProfileError(str(exc)) from exc

        try:
            items = json.loads(text)
            if items is None:
                items = []
            if not isinstance(items, list):
                raise ConnProfileError("expected a list of connection profiles")
            profiles = [ConnProfile.from_json(item) for item in items]
        except (ValueError, ConnProfileError) as exc:
            raise ConnProfileError(
                f"error reading connection profile config ({self.path}): {exc}"
            ) from exc

        for profile in profiles:
            self._profiles[profile.name] = profile

    def save(self) -> None:
        """Write all profiles to the file, ordered by name."""
        blob = json.dumps([p.to_json() for p in self.profiles()], indent=4)
        try:
            self.path.write_text(blob)
        except OSError as exc:
            raise ConnProfileError(str(exc)) from exc

    def profiles(self) -> list[ConnProfile]:
        """Return every profile, ordered by name."""
        log.debug("Getting list of connection profiles")
        return sort_conn_profiles(self._profiles.values())

    def get(self, name: str) -> ConnProfile:
        """Return the profile called ``name``."""
        try:
            return self._profiles[name]
        except KeyError:
            raise ConnProfileError(f'connection profile "{name}" doesn\'t exist') from None

    def add(self, profile: ConnProfile) -> None:
        """Add or replace a profile and save the store."""
        self._profiles[profile.name] = profile
        self.save()

    def delete(self, name: str) -> None:
        """Remove the profile called ``name`` and save the store."""
        if name not in self._profiles:
            raise ConnProfileError(f'connection profile "{name}" doesn\'t exist')
        del self._profiles[name]
        self.save()